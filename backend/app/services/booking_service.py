"""
Booking service with concurrency-safe seat admission.

CONCURRENCY STRATEGY: Serialized Check-and-Insert per Section
=============================================================

Problem:
  Two guests ask for the last 3 seats of a section at the same time.
  Both sum the committed quantity, both see 3 left, both insert.
  Result: Oversell.

Solution:
  The read (sum of Reserved + Confirmed quantities) and the write (insert
  the new booking) for one section run while holding that section's lock,
  and the lock is released only after the transaction commits.

  1. Acquire the section lock (in-process asyncio.Lock or Redis lock,
     chosen by BOOKING_LOCK_BACKEND, bounded by BOOKING_LOCK_TIMEOUT)
  2. SELECT the section row FOR UPDATE (PostgreSQL row lock, so separate
     processes using the local strategy still serialize)
  3. Sum committed quantity; reject if capacity - committed < quantity
  4. INSERT the booking as Reserved and COMMIT
  5. Release the lock

  Different sections never contend with each other. Cancelling or
  confirming a booking only ever lowers or keeps the committed total, so
  transitions do not take the section lock.

Alternatives considered:
  - A denormalized available_seats counter with optimistic versioning:
    faster reads, but the counter can drift from the ledger and needs
    reconciliation. Here the ledger is the only source of truth.
  - SERIALIZABLE isolation with retry: correct, but aborts and retries
    under contention and behaves differently across database backends.
"""

import secrets
import string
import time
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import false, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import get_settings
from app.core.exceptions import (
    InsufficientCapacityError,
    InvalidTransitionError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from app.core.logging import bind_booking_context, get_logger
from app.core.metrics import booking_latency, record_booking_attempt, record_transition
from app.db.base import MAX_ROW_ID
from app.models.booking import Booking, BookingStatus
from app.models.event import Event, Section
from app.schemas.booking import BookingCreate
from app.services.availability_service import committed
from app.services.interfaces.section_lock import SectionLockStrategy
from app.services.strategy_factory import get_section_lock

logger = get_logger(__name__)

BOOKING_CODE_PREFIX = "EP"
MAX_CODE_ATTEMPTS = 5

# Status state machine. Anything not listed is rejected, including no-ops.
ALLOWED_TRANSITIONS = {
    BookingStatus.RESERVED: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
}

_BASE36 = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_booking_code(now_ms: Optional[int] = None, random_part: Optional[int] = None) -> str:
    """EP + base36(milliseconds since epoch) + 5 base36 random chars, uppercase."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if random_part is None:
        random_part = secrets.randbelow(36 ** 5)
    return f"{BOOKING_CODE_PREFIX}{to_base36(now_ms)}{to_base36(random_part).rjust(5, '0')}"


async def _unused_booking_code(db: AsyncSession) -> str:
    # The unique constraint on booking_id is the real guarantee
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_booking_code()
        taken = await db.scalar(select(Booking.id).where(Booking.booking_id == code))
        if taken is None:
            return code
        logger.info("booking_code_collision", booking_code=code)
    raise StoreError("Could not allocate a booking reference")


async def _lock_section_row(db: AsyncSession, section_id: int):
    """Current (total_capacity, price) of the section, read under a row lock.

    Renders as SELECT ... FOR UPDATE on PostgreSQL, plain SELECT on SQLite.
    """
    result = await db.execute(
        select(Section.total_capacity, Section.price)
        .where(Section.id == section_id)
        .with_for_update()
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Section no longer exists")
    return row.total_capacity, row.price


async def book_seats(
    db: AsyncSession,
    booking_data: BookingCreate,
    user_id: Optional[int] = None,
    locks: Optional[SectionLockStrategy] = None,
) -> Booking:
    """
    Reserve seats in a section of an active event.

    The booking is committed before this returns. On any failure nothing is
    written.

    Raises:
        ValidationError: quantity outside 1..MAX_BOOKING_QUANTITY
        NotFoundError: unknown/inactive event, or no such section on it
        InsufficientCapacityError: fewer seats left than requested
        ServiceBusyError: section lock not acquired in time
        StoreError: the database failed
    """
    settings = get_settings()
    quantity = booking_data.quantity
    if not 1 <= quantity <= settings.MAX_BOOKING_QUANTITY:
        raise ValidationError.for_field(
            "quantity", f"Quantity must be between 1 and {settings.MAX_BOOKING_QUANTITY}"
        )

    start = time.perf_counter()
    event = await db.get(Event, booking_data.event_id)
    if event is None or not event.is_active:
        record_booking_attempt("rejected")
        raise NotFoundError("Event not found or inactive")

    section = event.section_by_name(booking_data.section_name)
    if section is None:
        record_booking_attempt("rejected")
        raise NotFoundError(f"Section {booking_data.section_name} not found for this event")

    event_id, section_id, section_name = event.id, section.id, section.name
    bind_booking_context(event_id=event_id, section_id=section_id)
    locks = locks or get_section_lock()

    async with locks.hold(event_id, section_id):
        try:
            capacity, price = await _lock_section_row(db, section_id)
            seats_taken = await committed(db, event_id, section_id)
            remaining = capacity - seats_taken

            if remaining < quantity:
                await db.rollback()
                record_booking_attempt("insufficient_capacity")
                logger.warning(
                    "booking_failed_no_seats",
                    section=section_name,
                    requested=quantity,
                    available=max(0, remaining),
                )
                raise InsufficientCapacityError(section_name, max(0, remaining), quantity)

            booking = Booking(
                booking_id=await _unused_booking_code(db),
                event=event,
                section=section,
                section_name=section_name,
                user_id=user_id,
                customer_name=booking_data.customer_name,
                customer_email=booking_data.customer_email.lower(),
                customer_phone=booking_data.customer_phone,
                quantity=quantity,
                status=BookingStatus.RESERVED,
                total_amount=price * quantity,
                booking_date=datetime.now(timezone.utc),
            )
            db.add(booking)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            record_booking_attempt("error")
            logger.error("booking_store_error", error=str(e))
            raise StoreError()

    booking_latency.observe(time.perf_counter() - start)
    record_booking_attempt("success", seats=quantity)
    logger.info(
        "booking_created",
        booking_code=booking.booking_id,
        user_id=user_id,
        section=section_name,
        seats=quantity,
        remaining=remaining - quantity,
    )
    return booking


def _with_event():
    return selectinload(Booking.event)


async def get_booking_by_code(db: AsyncSession, booking_code: str) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.booking_id == booking_code.strip().upper())
        .options(_with_event())
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """Get all bookings for a user, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .options(_with_event())
        .order_by(Booking.booking_date.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def list_bookings(
    db: AsyncSession,
    event_id: Optional[int] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Booking], int]:
    """Manager listing with optional event/status filters."""
    if status is not None and status not in BookingStatus.ALL:
        raise ValidationError.for_field("status", f"Status must be one of {', '.join(BookingStatus.ALL)}")

    query = select(Booking)
    if event_id is not None:
        query = query.where(Booking.event_id == event_id)
    if status is not None:
        query = query.where(Booking.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()

    result = await db.execute(
        query.options(_with_event())
        .order_by(Booking.booking_date.desc(), Booking.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


def _booking_ref_clause(booking_ref: Union[int, str]):
    # Numeric refs are row ids; codes always start with letters
    if isinstance(booking_ref, int) or booking_ref.strip().isdecimal():
        row_id = int(booking_ref)
        if not 1 <= row_id <= MAX_ROW_ID:
            return false()
        return Booking.id == row_id
    return Booking.booking_id == booking_ref.strip().upper()


async def transition_booking(db: AsyncSession, booking_ref: Union[int, str], target_status: str) -> Booking:
    """
    Move a booking along the status state machine.

    `booking_ref` is either the numeric id or the human booking code.
    Reserved -> Confirmed, Reserved -> Cancelled and Confirmed -> Cancelled
    are the only legal edges. The booking row is locked for the update so two
    managers acting at once cannot both apply a transition from the same state.
    """
    if target_status not in (BookingStatus.CONFIRMED, BookingStatus.CANCELLED):
        raise ValidationError.for_field("status", "Target status must be Confirmed or Cancelled")

    result = await db.execute(
        select(Booking).where(_booking_ref_clause(booking_ref)).options(_with_event()).with_for_update()
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking not found")

    current, booking_code = booking.status, booking.booking_id
    if target_status not in ALLOWED_TRANSITIONS.get(current, set()):
        await db.rollback()
        record_transition(current, target_status, applied=False)
        logger.warning(
            "booking_transition_rejected",
            booking_code=booking_code,
            from_status=current,
            to_status=target_status,
        )
        raise InvalidTransitionError(current, target_status)

    booking.status = target_status
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("booking_transition_store_error", booking_code=booking_code, error=str(e))
        raise StoreError()

    record_transition(current, target_status, applied=True)
    logger.info(
        "booking_status_changed",
        booking_code=booking.booking_id,
        from_status=current,
        to_status=target_status,
        seats_released=booking.quantity if target_status == BookingStatus.CANCELLED else 0,
    )
    return booking


async def confirm_booking(db: AsyncSession, booking_ref: Union[int, str]) -> Booking:
    return await transition_booking(db, booking_ref, BookingStatus.CONFIRMED)


async def cancel_booking(db: AsyncSession, booking_ref: Union[int, str]) -> Booking:
    return await transition_booking(db, booking_ref, BookingStatus.CANCELLED)
