"""
Manager dashboard statistics.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.booking import Booking, BookingStatus
from app.models.event import Event

RECENT_BOOKINGS = 5


async def get_dashboard(db: AsyncSession) -> dict:
    """Event/booking counts, confirmed revenue and the latest bookings."""
    total_events = await db.scalar(select(func.count(Event.id)))
    active_events = await db.scalar(select(func.count(Event.id)).where(Event.is_active.is_(True)))

    status_counts = dict(
        (await db.execute(select(Booking.status, func.count(Booking.id)).group_by(Booking.status))).all()
    )

    revenue = await db.scalar(
        select(func.coalesce(func.sum(Booking.total_amount), 0)).where(
            Booking.status == BookingStatus.CONFIRMED
        )
    )

    recent = await db.execute(
        select(Booking)
        .options(selectinload(Booking.event))
        .order_by(Booking.booking_date.desc(), Booking.id.desc())
        .limit(RECENT_BOOKINGS)
    )

    return {
        "stats": {
            "total_events": total_events or 0,
            "active_events": active_events or 0,
            "total_bookings": sum(status_counts.values()),
            "reserved_bookings": status_counts.get(BookingStatus.RESERVED, 0),
            "confirmed_bookings": status_counts.get(BookingStatus.CONFIRMED, 0),
            "cancelled_bookings": status_counts.get(BookingStatus.CANCELLED, 0),
            "total_revenue": Decimal(str(revenue or 0)),
        },
        "recent_bookings": list(recent.scalars().all()),
    }
