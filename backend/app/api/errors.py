"""
Translate domain errors into HTTP responses.

Every error body has a `message`; validation failures add an `errors` list of
{field, message}. Store failures are logged with their detail and answered
with a generic message.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import BookingSystemError, StoreError
from app.core.logging import get_logger

logger = get_logger(__name__)


def _field_name(location: tuple) -> str:
    # Drop the leading "body"/"query"/"path" marker
    parts = [str(part) for part in location[1:]] or [str(part) for part in location]
    return ".".join(parts)


async def booking_system_error_handler(request: Request, exc: BookingSystemError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error("store_error_response", code=exc.code.value, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field_name(tuple(error.get("loc", ()))), "message": error.get("msg", "Invalid value")}
        for error in exc.errors()
    ]
    logger.info("request_validation_failed", errors=len(errors))
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "code": "VALIDATION_ERROR", "errors": errors},
    )


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("unhandled_store_error", error=str(exc))
    return JSONResponse(status_code=500, content=StoreError().to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingSystemError, booking_system_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
