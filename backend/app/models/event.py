"""
Event and Section models.

Key design decisions:
- Sections live in their own table with a stable id, so renaming a section
  never orphans the bookings that reference it
- (event_id, name) is unique: the public booking API addresses sections by name
- No seat counter is stored. Availability is always derived from the
  bookings ledger (see availability_service)
- Deleting an event cascades to its sections and bookings
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin

DEFAULT_SECTION_COLOR = "#3B82F6"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(20), nullable=False)
    location = Column(String(200), nullable=False)
    description = Column(String(500), nullable=False)
    venue_layout = Column(String(500), nullable=True)
    venue_layout_description = Column(String(200), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    sections = relationship(
        "Section",
        back_populates="event",
        order_by="Section.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    bookings = relationship(
        "Booking",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # Public listing: active events sorted by date
        Index("ix_events_active_date", "is_active", "date"),
    )

    def section_by_name(self, name: str):
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, active={self.is_active})>"


class Section(Base):
    __tablename__ = "sections"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    total_capacity = Column(Integer, nullable=False)
    description = Column(String(100), nullable=True)
    color = Column(String(20), nullable=False, default=DEFAULT_SECTION_COLOR)
    position = Column(Integer, nullable=False, default=0)

    event = relationship("Event", back_populates="sections")

    __table_args__ = (
        UniqueConstraint("event_id", "name", name="uq_section_event_name"),
        CheckConstraint("price >= 0", name="check_section_price_non_negative"),
        CheckConstraint("total_capacity >= 1", name="check_section_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Section(id={self.id}, event={self.event_id}, name={self.name}, capacity={self.total_capacity})>"
