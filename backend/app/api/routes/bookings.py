"""
Public booking endpoints: guest/customer checkout and lookups.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.models.user import User
from app.schemas.booking import BookingCreate, BookingEnvelope, BookingResponse
from app.services.booking_service import book_seats, get_booking_by_code, get_user_bookings
from app.services.interfaces.section_lock import SectionLockStrategy
from app.services.strategy_factory import get_section_lock
from app.core.security import get_current_user_id, get_optional_user

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingEnvelope, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user: Optional[User] = Depends(get_optional_user),
    locks: SectionLockStrategy = Depends(get_section_lock),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve seats in a section.

    Open to guests; a bearer token links the booking to the account.
    The capacity check and insert are serialized per section, so concurrent
    requests for the last seats cannot oversell. A rejected request gets a 400
    stating exactly how many seats remain.
    """
    booking = await book_seats(db, booking_data, user_id=user.id if user else None, locks=locks)
    return BookingEnvelope(
        message="Booking created successfully",
        booking=BookingResponse.model_validate(booking),
    )


@router.get("/my", response_model=list[BookingResponse])
async def list_my_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user."""
    return await get_user_bookings(db, user_id)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(booking_id: str, db: AsyncSession = Depends(get_db)):
    """Look a booking up by its reference code (e.g. EPM2X1F0A7K3Q)."""
    return await get_booking_by_code(db, booking_id)
