"""
Availability calculator.

Committed seats for a section are the sum of quantities of its Reserved and
Confirmed bookings. Nothing here is cached or stored: every call aggregates
the ledger, so a cancellation or a new booking is visible on the very next
read.
"""

from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking, BookingStatus
from app.models.event import Event, Section


async def committed(db: AsyncSession, event_id: int, section_id: int) -> int:
    """Seats currently counted against the section's capacity."""
    result = await db.execute(
        select(func.coalesce(func.sum(Booking.quantity), 0)).where(
            Booking.event_id == event_id,
            Booking.section_id == section_id,
            Booking.status.in_(BookingStatus.COMMITTED),
        )
    )
    return int(result.scalar_one())


async def committed_by_section(db: AsyncSession, event_ids: Iterable[int]) -> dict[int, int]:
    """Committed seats for every section of the given events, in one grouped query."""
    event_ids = list(event_ids)
    if not event_ids:
        return {}

    result = await db.execute(
        select(Booking.section_id, func.sum(Booking.quantity))
        .where(
            Booking.event_id.in_(event_ids),
            Booking.status.in_(BookingStatus.COMMITTED),
        )
        .group_by(Booking.section_id)
    )
    return {section_id: int(total) for section_id, total in result.all()}


def available(section: Section, committed_seats: int) -> int:
    return max(0, section.total_capacity - committed_seats)


def section_view(section: Section, committed_seats: int) -> dict:
    remaining = available(section, committed_seats)
    return {
        "id": section.id,
        "name": section.name,
        "price": section.price,
        "total_capacity": section.total_capacity,
        "description": section.description,
        "color": section.color,
        "available_capacity": remaining,
        "is_available": remaining > 0,
    }


def event_view(event: Event, committed_map: dict[int, int]) -> dict:
    """Event payload with per-section availability filled in."""
    return {
        "id": event.id,
        "title": event.title,
        "date": event.date,
        "time": event.time,
        "location": event.location,
        "description": event.description,
        "venue_layout": event.venue_layout,
        "venue_layout_description": event.venue_layout_description,
        "is_active": event.is_active,
        "created_at": event.created_at,
        "sections": [
            section_view(section, committed_map.get(section.id, 0))
            for section in event.sections
        ],
    }


async def events_with_availability(db: AsyncSession, events: list[Event]) -> list[dict]:
    committed_map = await committed_by_section(db, [event.id for event in events])
    return [event_view(event, committed_map) for event in events]


async def event_with_availability(db: AsyncSession, event: Event) -> dict:
    return (await events_with_availability(db, [event]))[0]
