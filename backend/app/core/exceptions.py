"""
Domain errors raised by the service layer.

Services never raise HTTPException; each error carries the status code the
transport should use and a message that is safe to show to the caller.
The FastAPI handlers in app.api.errors do the translation.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    STORE_ERROR = "STORE_ERROR"
    SERVICE_BUSY = "SERVICE_BUSY"


class BookingSystemError(Exception):
    """Base domain error with code, status and user-safe message."""

    code: ErrorCode = ErrorCode.STORE_ERROR
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code.value}

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(BookingSystemError):
    """Malformed or missing input. Carries field-level detail."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400

    def __init__(self, message: str = "Validation failed", errors: Optional[list[dict]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class UnauthorizedError(BookingSystemError):
    code = ErrorCode.UNAUTHORIZED
    status_code = 401

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class ForbiddenError(BookingSystemError):
    code = ErrorCode.FORBIDDEN
    status_code = 403

    def __init__(self, message: str = "Manager access required") -> None:
        super().__init__(message)


class NotFoundError(BookingSystemError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class ConflictError(BookingSystemError):
    code = ErrorCode.CONFLICT
    status_code = 409


class InsufficientCapacityError(BookingSystemError):
    """Admission control rejection. `available` is the exact remaining count."""

    code = ErrorCode.INSUFFICIENT_CAPACITY
    status_code = 400

    def __init__(self, section_name: str, available: int, requested: int) -> None:
        super().__init__(f"Only {available} seats available in {section_name} section")
        self.section_name = section_name
        self.available = available
        self.requested = requested

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["available"] = self.available
        return data


class InvalidTransitionError(BookingSystemError):
    code = ErrorCode.INVALID_TRANSITION
    status_code = 400

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot change booking status from {current} to {target}")
        self.current = current
        self.target = target


class StoreError(BookingSystemError):
    """Persistence failure. The detail is logged, never returned."""

    code = ErrorCode.STORE_ERROR
    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


class ServiceBusyError(StoreError):
    """A section lock could not be acquired within BOOKING_LOCK_TIMEOUT."""

    code = ErrorCode.SERVICE_BUSY
    status_code = 503

    def __init__(self, message: str = "Booking service is busy, please try again") -> None:
        super().__init__(message)
