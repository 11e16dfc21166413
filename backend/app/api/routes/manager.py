"""
Manager endpoints: event administration, booking lifecycle, dashboard and
user roles. Every route requires a manager token.
"""

from math import ceil
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import require_manager
from app.db.base import MAX_ROW_ID
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.booking import BookingEnvelope, BookingListResponse, BookingResponse, DashboardResponse
from app.schemas.event import EventCreate, EventEnvelope, EventListResponse, EventResponse, EventUpdate
from app.schemas.user import UserEnvelope, UserResponse
from app.services import auth_service, booking_service, event_service
from app.services.availability_service import event_with_availability, events_with_availability
from app.services.dashboard_service import get_dashboard
from app.services.interfaces.section_lock import SectionLockStrategy
from app.services.strategy_factory import get_section_lock

router = APIRouter(prefix="/manager", tags=["Manager"], dependencies=[Depends(require_manager)])


# ========== EVENT MANAGEMENT ==========

@router.get("/events", response_model=EventListResponse)
async def list_all_events(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """All events, inactive included, newest first."""
    events, total = await event_service.list_events(db, active_only=False, page=page, page_size=page_size)
    return EventListResponse(
        events=await events_with_availability(db, events),
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/events", response_model=EventEnvelope, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(event_data: EventCreate, db: AsyncSession = Depends(get_db)):
    event = await event_service.create_event(db, event_data)
    return EventEnvelope(
        message="Event created successfully",
        event=EventResponse(**await event_with_availability(db, event)),
    )


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_any_event(
    event_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.get_event(db, event_id, include_inactive=True)
    return await event_with_availability(db, event)


@router.put("/events/{event_id}", response_model=EventEnvelope)
async def update_event_endpoint(
    patch: EventUpdate,
    event_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    locks: SectionLockStrategy = Depends(get_section_lock),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.update_event(db, event_id, patch, locks=locks)
    return EventEnvelope(
        message="Event updated successfully",
        event=EventResponse(**await event_with_availability(db, event)),
    )


@router.delete("/events/{event_id}")
async def delete_event_endpoint(
    event_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: AsyncSession = Depends(get_db),
):
    removed = await event_service.delete_event(db, event_id)
    return {"message": "Event and related bookings deleted successfully", "bookings_deleted": removed}


# ========== BOOKING MANAGEMENT ==========

@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings_endpoint(
    event_id: Optional[int] = Query(None, ge=1, le=MAX_ROW_ID),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    bookings, total = await booking_service.list_bookings(
        db, event_id=event_id, status=status_filter, page=page, limit=limit
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        total_pages=ceil(total / limit),
        current_page=page,
    )


@router.put("/bookings/{booking_ref}/confirm", response_model=BookingEnvelope)
async def confirm_booking_endpoint(booking_ref: str, db: AsyncSession = Depends(get_db)):
    """Mark a reservation as paid/confirmed. Accepts the numeric id or the booking code."""
    booking = await booking_service.confirm_booking(db, booking_ref)
    return BookingEnvelope(message="Booking confirmed successfully", booking=BookingResponse.model_validate(booking))


@router.put("/bookings/{booking_ref}/cancel", response_model=BookingEnvelope)
async def cancel_booking_endpoint(booking_ref: str, db: AsyncSession = Depends(get_db)):
    """Cancel a booking; its seats become available immediately."""
    booking = await booking_service.cancel_booking(db, booking_ref)
    return BookingEnvelope(message="Booking cancelled successfully", booking=BookingResponse.model_validate(booking))


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard_endpoint(db: AsyncSession = Depends(get_db)):
    return await get_dashboard(db)


# ========== USER MANAGEMENT ==========

@router.get("/users", response_model=list[UserResponse])
async def list_users_endpoint(q: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    return await auth_service.list_users(db, q)


@router.put("/users/{user_id}/promote", response_model=UserEnvelope)
async def promote_user(
    user_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    manager: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.set_role(db, user_id, UserRole.MANAGER, acting_user=manager)
    return UserEnvelope(message="User promoted to manager successfully", user=UserResponse.model_validate(user))


@router.put("/users/{user_id}/demote", response_model=UserEnvelope)
async def demote_user(
    user_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    manager: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.set_role(db, user_id, UserRole.CUSTOMER, acting_user=manager)
    return UserEnvelope(message="User demoted to customer successfully", user=UserResponse.model_validate(user))
