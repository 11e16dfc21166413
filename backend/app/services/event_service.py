"""
Event service handling CRUD operations and section-list replacement.
"""

from contextlib import AsyncExitStack
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import BookingSystemError, ConflictError, NotFoundError, StoreError, ValidationError
from app.core.logging import get_logger
from app.models.booking import Booking
from app.models.event import DEFAULT_SECTION_COLOR, Event, Section
from app.schemas.event import EventCreate, EventUpdate, SectionInput
from app.services.availability_service import committed
from app.services.interfaces.section_lock import SectionLockStrategy
from app.services.strategy_factory import get_section_lock

logger = get_logger(__name__)

# Optional event fields a patch may reset to null
CLEARABLE_FIELDS = {"venue_layout", "venue_layout_description"}


async def _load_event(db: AsyncSession, event_id: int) -> Optional[Event]:
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .options(selectinload(Event.sections))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _integrity_error(e: IntegrityError) -> BookingSystemError:
    # PostgreSQL names the constraint, SQLite names the columns
    detail = str(e.orig)
    if "uq_section_event_name" in detail or "sections.event_id, sections.name" in detail:
        return ValidationError.for_field("sections", "Section names must be unique within an event")
    if "foreign key" in detail.lower():
        return ConflictError("Bookings changed while the event was being saved, please retry")
    return StoreError()


async def _commit(db: AsyncSession, action: str, flush_only: bool = False) -> None:
    try:
        if flush_only:
            await db.flush()
        else:
            await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("event_integrity_error", action=action, error=str(e.orig))
        raise _integrity_error(e)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("event_store_error", action=action, error=str(e))
        raise StoreError()


def _new_section(data: SectionInput, position: int) -> Section:
    return Section(
        name=data.name,
        price=data.price,
        total_capacity=data.total_capacity,
        description=data.description,
        color=data.color or DEFAULT_SECTION_COLOR,
        position=position,
    )


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    """Create an event together with its sections."""
    event = Event(
        **event_data.model_dump(exclude={"sections"}),
        sections=[_new_section(section, i) for i, section in enumerate(event_data.sections)],
    )
    db.add(event)
    await _commit(db, "create")

    logger.info(
        "event_created",
        event_id=event.id,
        title=event_data.title,
        sections=len(event_data.sections),
        seats=sum(s.total_capacity for s in event_data.sections),
    )
    return await _load_event(db, event.id)


async def get_event(db: AsyncSession, event_id: int, include_inactive: bool = False) -> Event:
    """Get a single event by ID. Inactive events are hidden unless asked for."""
    event = await _load_event(db, event_id)
    if event is None or (not event.is_active and not include_inactive):
        raise NotFoundError("Event not found")
    return event


async def list_events(
    db: AsyncSession,
    active_only: bool = True,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Event], int]:
    """
    List events with pagination.
    Public listings are active events by date; the manager view shows
    everything, newest first.
    """
    query = select(Event)
    if active_only:
        query = query.where(Event.is_active.is_(True)).order_by(Event.date.asc(), Event.id.asc())
    else:
        query = query.order_by(Event.created_at.desc(), Event.id.desc())

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()

    result = await db.execute(
        query.options(selectinload(Event.sections))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def _section_has_bookings(db: AsyncSession, section_id: int) -> bool:
    found = await db.scalar(select(Booking.id).where(Booking.section_id == section_id).limit(1))
    return found is not None


async def _lock_section_row(db: AsyncSession, section: Section) -> None:
    """Take the row lock book_seats takes (FOR UPDATE on PostgreSQL, no-op on SQLite)."""
    found = await db.scalar(select(Section.id).where(Section.id == section.id).with_for_update())
    if found is None:
        raise NotFoundError(f"Section {section.name} no longer exists")


def _match_sections(event: Event, incoming: list[SectionInput]) -> list[tuple[Optional[Section], SectionInput]]:
    """Pair incoming sections with existing ones by id, falling back to name."""
    by_id = {section.id: section for section in event.sections}
    by_name = {section.name: section for section in event.sections}
    used: set[int] = set()
    pairs = []

    for index, data in enumerate(incoming):
        if data.id is not None:
            target = by_id.get(data.id)
            if target is None:
                raise ValidationError.for_field(
                    f"sections[{index}].id", f"Section {data.id} does not belong to this event"
                )
        else:
            target = by_name.get(data.name)

        if target is not None:
            if target.id in used:
                raise ValidationError.for_field(
                    f"sections[{index}]", f"Section {target.name} is listed more than once"
                )
            used.add(target.id)
        pairs.append((target, data))
    return pairs


async def update_event(
    db: AsyncSession,
    event_id: int,
    patch: EventUpdate,
    locks: Optional[SectionLockStrategy] = None,
) -> Event:
    """
    Apply a partial update.

    When `sections` is supplied it replaces the whole section list. Sections
    keep their id (and their bookings) when matched by id or name. A section
    that has bookings cannot be dropped, and a capacity cannot go below the
    seats already committed. Both checks run under the section lock and the
    section row lock that book_seats takes, so a concurrent booking cannot
    slip in between check and commit.
    """
    event = await _load_event(db, event_id)
    if event is None:
        raise NotFoundError("Event not found")

    fields = {
        field: value
        for field, value in patch.model_dump(exclude_unset=True, exclude={"sections"}).items()
        if value is not None or field in CLEARABLE_FIELDS
    }

    if patch.sections is None:
        for field, value in fields.items():
            setattr(event, field, value)
        await _commit(db, "update")
        logger.info("event_updated", event_id=event_id, sections_replaced=False)
        return await _load_event(db, event_id)

    pairs = _match_sections(event, patch.sections)
    incoming = {target.id: data for target, data in pairs if target is not None}

    # Sorted by id so two updates never wait on each other in opposite order
    existing = sorted(event.sections, key=lambda section: section.id)

    locks = locks or get_section_lock()
    async with AsyncExitStack() as stack:
        for section in existing:
            await stack.enter_async_context(locks.hold(event_id, section.id))

        for section in existing:
            await _lock_section_row(db, section)
            data = incoming.get(section.id)
            if data is None:
                if await _section_has_bookings(db, section.id):
                    raise ValidationError.for_field(
                        "sections", f"Section {section.name} has bookings and cannot be removed"
                    )
                continue

            seats_taken = await committed(db, event_id, section.id)
            if data.total_capacity < seats_taken:
                raise ValidationError.for_field(
                    "sections",
                    f"Section {section.name} already has {seats_taken} seats booked; "
                    f"capacity cannot be lowered to {data.total_capacity}",
                )

        for field, value in fields.items():
            setattr(event, field, value)

        # Removed rows are deleted and renamed rows parked under placeholder
        # names before the final names are written, so (event_id, name) stays
        # unique at every statement of the flush.
        renamed = [target for target, data in pairs if target is not None and target.name != data.name]
        if renamed or len(incoming) < len(existing):
            event.sections = [target for target, _ in pairs if target is not None]
            for target in renamed:
                target.name = f"~renaming~{target.id}"
            await _commit(db, "update", flush_only=True)

        sections = []
        for position, (target, data) in enumerate(pairs):
            if target is None:
                sections.append(_new_section(data, position))
                continue
            target.name = data.name
            target.price = data.price
            target.total_capacity = data.total_capacity
            target.description = data.description
            if data.color:
                target.color = data.color
            target.position = position
            sections.append(target)
        event.sections = sections

        await _commit(db, "update")

    logger.info("event_updated", event_id=event_id, sections_replaced=True, sections=len(pairs))
    return await _load_event(db, event_id)


async def delete_event(db: AsyncSession, event_id: int) -> int:
    """Hard-delete an event and every booking that references it. Returns the booking count removed."""
    event = await _load_event(db, event_id)
    if event is None:
        raise NotFoundError("Event not found")

    result = await db.execute(delete(Booking).where(Booking.event_id == event_id))
    removed = result.rowcount or 0
    await db.delete(event)
    await _commit(db, "delete")

    logger.info("event_deleted", event_id=event_id, bookings_removed=removed)
    return removed
