"""
Booking model: one row per reservation in a section.

Key design decisions:
- booking_id is the human-facing code; a unique constraint backs it so
  uniqueness never rests on collision probability alone
- section_id is the accounting key; section_name is a display snapshot
- total_amount snapshots price * quantity at creation time
- Cancelled rows are kept; they simply stop counting against capacity
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class BookingStatus:
    RESERVED = "Reserved"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"

    ALL = (RESERVED, CONFIRMED, CANCELLED)
    # Statuses whose quantity counts against section capacity
    COMMITTED = (RESERVED, CONFIRMED)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(String(32), nullable=False, unique=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    section_id = Column(Integer, ForeignKey("sections.id", ondelete="RESTRICT"), nullable=False)
    section_name = Column(String(50), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(50), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(30), nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.RESERVED)
    total_amount = Column(Numeric(12, 2), nullable=False)
    booking_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    event = relationship("Event", back_populates="bookings")
    section = relationship("Section")
    user = relationship("User", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("quantity >= 1 AND quantity <= 10", name="check_booking_quantity_range"),
        CheckConstraint("total_amount >= 0", name="check_booking_amount_non_negative"),
        CheckConstraint(
            "status IN ('Reserved', 'Confirmed', 'Cancelled')", name="check_booking_status"
        ),
        # Covers the committed-quantity aggregate
        Index("ix_bookings_section_status", "section_id", "status"),
        Index("ix_bookings_booking_date", "booking_date"),
    )

    def __repr__(self) -> str:
        return f"<Booking(code={self.booking_id}, section={self.section_id}, qty={self.quantity}, status={self.status})>"
