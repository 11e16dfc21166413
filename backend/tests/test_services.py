"""
Service-level tests for availability accounting, event updates and the
operator CLI.
"""

import pytest
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from app import cli
from app.core.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from app.models.booking import Booking, BookingStatus
from app.models.user import User, UserRole
from app.schemas.event import EventUpdate, SectionInput
from app.schemas.user import UserCreate
from app.services import auth_service, event_service
from app.services.availability_service import available, committed, committed_by_section
from app.services.event_service import update_event
from app.services.interfaces.local_lock import LocalSectionLock


async def _add_booking(db_session, event, section, quantity, status, code):
    db_session.add(Booking(
        booking_id=code,
        event_id=event.id,
        section_id=section.id,
        section_name=section.name,
        customer_name="Ledger Entry",
        customer_email="ledger@example.com",
        customer_phone="555-0000",
        quantity=quantity,
        status=status,
        total_amount=section.price * quantity,
    ))
    await db_session.commit()


@pytest.mark.asyncio
async def test_committed_ignores_cancelled(db_session, test_event):
    ga, vip = test_event.sections
    await _add_booking(db_session, test_event, ga, 3, BookingStatus.RESERVED, "EPTEST00001")
    await _add_booking(db_session, test_event, ga, 2, BookingStatus.CONFIRMED, "EPTEST00002")
    await _add_booking(db_session, test_event, ga, 4, BookingStatus.CANCELLED, "EPTEST00003")
    await _add_booking(db_session, test_event, vip, 1, BookingStatus.RESERVED, "EPTEST00004")

    assert await committed(db_session, test_event.id, ga.id) == 5
    assert await committed_by_section(db_session, [test_event.id]) == {ga.id: 5, vip.id: 1}
    assert available(ga, 5) == 5


@pytest.mark.asyncio
async def test_committed_for_empty_section(db_session, test_event):
    assert await committed(db_session, test_event.id, test_event.sections[0].id) == 0
    assert await committed_by_section(db_session, []) == {}


@pytest.mark.asyncio
async def test_available_never_negative(test_event):
    # A capacity below committed can only come from data repaired by hand
    assert available(test_event.sections[1], 9) == 0


@pytest.mark.asyncio
async def test_update_matches_sections_by_name(db_session, test_event):
    ga, vip = test_event.sections
    patch = EventUpdate(sections=[
        SectionInput(name="VIP", price=Decimal("150.00"), total_capacity=6),
        SectionInput(name="GA", price=Decimal("50.00"), total_capacity=10),
    ])

    event = await update_event(db_session, test_event.id, patch, locks=LocalSectionLock())
    assert [(s.id, s.name) for s in event.sections] == [(vip.id, "VIP"), (ga.id, "GA")]
    assert event.sections[0].total_capacity == 6


@pytest.mark.asyncio
async def test_update_clears_optional_fields(db_session, test_event):
    await update_event(db_session, test_event.id, EventUpdate(venue_layout="Floor plan A"))
    event = await update_event(db_session, test_event.id, EventUpdate(venue_layout=None))
    assert event.venue_layout is None


@pytest.mark.asyncio
async def test_update_ignores_null_required_fields(db_session, test_event):
    event = await update_event(db_session, test_event.id, EventUpdate(title=None))
    assert event.title == "Summer Concert"


@pytest.mark.asyncio
async def test_cli_create_manager(db_session, session_factory, monkeypatch):
    monkeypatch.setattr(cli, "AsyncSessionLocal", session_factory)

    user_id = await cli.create_manager("ops@example.com", "ops", "opspassword123")

    user = await db_session.get(User, user_id)
    assert user.role == UserRole.MANAGER
    assert user.email == "ops@example.com"

    with pytest.raises(ConflictError):
        await cli.create_manager("ops@example.com", "ops2", "opspassword123")


@pytest.mark.asyncio
async def test_cli_promote(db_session, session_factory, monkeypatch, test_user):
    monkeypatch.setattr(cli, "AsyncSessionLocal", session_factory)

    assert await cli.promote("TEST@example.com") == test_user.id
    await db_session.refresh(test_user)
    assert test_user.role == UserRole.MANAGER

    with pytest.raises(NotFoundError):
        await cli.promote("ghost@example.com")


def test_cli_parser():
    parser = cli.build_parser()
    args = parser.parse_args(["create-manager", "--email", "a@example.com", "--username", "alice"])
    assert args.command == "create-manager"
    assert args.password is None

    with pytest.raises(SystemExit):
        parser.parse_args([])


class _FailingCommitSession:
    def __init__(self, error):
        self.error = error
        self.rolled_back = False

    async def commit(self):
        raise self.error

    async def rollback(self):
        self.rolled_back = True


@pytest.mark.asyncio
@pytest.mark.parametrize("detail, expected", [
    ('duplicate key value violates unique constraint "uq_section_event_name"', ValidationError),
    ("UNIQUE constraint failed: sections.event_id, sections.name", ValidationError),
    ('update or delete on table "sections" violates foreign key constraint "bookings_section_id_fkey"', ConflictError),
    ("FOREIGN KEY constraint failed", ConflictError),
    ("NOT NULL constraint failed: events.title", StoreError),
])
async def test_event_commit_maps_integrity_errors(detail, expected):
    session = _FailingCommitSession(IntegrityError("COMMIT", {}, Exception(detail)))
    with pytest.raises(expected):
        await event_service._commit(session, "delete")
    assert session.rolled_back


@pytest.mark.asyncio
async def test_register_loses_race_with_conflict(db_session, test_user, monkeypatch):
    """A duplicate that slips past the pre-checks is still a 409, not a store error."""

    async def nothing_taken(db, column, value):
        return False

    monkeypatch.setattr(auth_service, "_taken", nothing_taken)

    with pytest.raises(ConflictError):
        await auth_service.register_user(
            db_session,
            UserCreate(email="test@example.com", username="racer", password="racepassword123"),
        )
