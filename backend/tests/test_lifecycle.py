"""
Tests for the booking status state machine.
"""

import pytest
from httpx import AsyncClient

from app.core.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from app.models.booking import BookingStatus
from app.services.booking_service import ALLOWED_TRANSITIONS, transition_booking


async def _book(client: AsyncClient, payload: dict) -> dict:
    response = await client.post("/api/v1/bookings/", json=payload)
    assert response.status_code == 201
    return response.json()["booking"]


@pytest.mark.asyncio
async def test_confirm_then_cancel(
    client: AsyncClient, test_event, booking_payload, manager_headers, section_available
):
    booking = await _book(client, booking_payload(test_event.id, quantity=3))

    confirmed = await client.put(f"/api/v1/manager/bookings/{booking['id']}/confirm", headers=manager_headers)
    assert confirmed.status_code == 200
    assert confirmed.json()["message"] == "Booking confirmed successfully"
    assert confirmed.json()["booking"]["status"] == "Confirmed"
    # Confirmed seats still count against capacity
    assert await section_available(client, test_event.id) == 7

    cancelled = await client.put(f"/api/v1/manager/bookings/{booking['id']}/cancel", headers=manager_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["booking"]["status"] == "Cancelled"
    assert await section_available(client, test_event.id) == 10


@pytest.mark.asyncio
async def test_cancel_reserved(client: AsyncClient, test_event, booking_payload, manager_headers):
    booking = await _book(client, booking_payload(test_event.id))
    response = await client.put(f"/api/v1/manager/bookings/{booking['id']}/cancel", headers=manager_headers)
    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "Cancelled"


@pytest.mark.asyncio
async def test_cancelled_cannot_be_confirmed(
    client: AsyncClient, test_event, booking_payload, manager_headers, section_available
):
    """Reviving a cancelled booking would bypass the capacity check."""
    booking = await _book(client, booking_payload(test_event.id, quantity=2))
    await client.put(f"/api/v1/manager/bookings/{booking['id']}/cancel", headers=manager_headers)

    response = await client.put(f"/api/v1/manager/bookings/{booking['id']}/confirm", headers=manager_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRANSITION"
    assert response.json()["message"] == "Cannot change booking status from Cancelled to Confirmed"
    assert await section_available(client, test_event.id) == 10


@pytest.mark.asyncio
async def test_repeat_transition_rejected(client: AsyncClient, test_event, booking_payload, manager_headers):
    booking = await _book(client, booking_payload(test_event.id))
    await client.put(f"/api/v1/manager/bookings/{booking['id']}/confirm", headers=manager_headers)

    again = await client.put(f"/api/v1/manager/bookings/{booking['id']}/confirm", headers=manager_headers)
    assert again.status_code == 400

    await client.put(f"/api/v1/manager/bookings/{booking['id']}/cancel", headers=manager_headers)
    cancel_again = await client.put(f"/api/v1/manager/bookings/{booking['id']}/cancel", headers=manager_headers)
    assert cancel_again.status_code == 400


@pytest.mark.asyncio
async def test_transition_by_booking_code(client: AsyncClient, test_event, booking_payload, manager_headers):
    booking = await _book(client, booking_payload(test_event.id))
    code = booking["booking_id"]

    response = await client.put(f"/api/v1/manager/bookings/{code.lower()}/confirm", headers=manager_headers)
    assert response.status_code == 200
    assert response.json()["booking"]["id"] == booking["id"]
    assert response.json()["booking"]["status"] == "Confirmed"

    missing = await client.put("/api/v1/manager/bookings/EPNOSUCHCODE/cancel", headers=manager_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_transition_unknown_booking(client: AsyncClient, manager_headers):
    response = await client.put("/api/v1/manager/bookings/99999/confirm", headers=manager_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("booking_ref", ["0", "2147483648", "99999999999999999999999"])
async def test_transition_out_of_range_id_is_not_found(client: AsyncClient, manager_headers, booking_ref):
    response = await client.put(f"/api/v1/manager/bookings/{booking_ref}/confirm", headers=manager_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Booking not found"


@pytest.mark.asyncio
async def test_customer_cannot_transition(client: AsyncClient, test_event, booking_payload, auth_headers):
    booking = await _book(client, booking_payload(test_event.id))
    response = await client.put(f"/api/v1/manager/bookings/{booking['id']}/cancel", headers=auth_headers)
    assert response.status_code == 403


def test_transition_table():
    assert ALLOWED_TRANSITIONS[BookingStatus.RESERVED] == {BookingStatus.CONFIRMED, BookingStatus.CANCELLED}
    assert ALLOWED_TRANSITIONS[BookingStatus.CONFIRMED] == {BookingStatus.CANCELLED}
    assert ALLOWED_TRANSITIONS[BookingStatus.CANCELLED] == set()


@pytest.mark.asyncio
async def test_transition_service_rejects_unknown_target(db_session):
    with pytest.raises(ValidationError):
        await transition_booking(db_session, 1, "Refunded")


@pytest.mark.asyncio
async def test_transition_service_not_found(db_session):
    with pytest.raises(NotFoundError):
        await transition_booking(db_session, 424242, BookingStatus.CONFIRMED)


@pytest.mark.asyncio
async def test_transition_service_invalid_edge(client: AsyncClient, db_session, test_event, booking_payload):
    booking = await _book(client, booking_payload(test_event.id))
    await transition_booking(db_session, booking["id"], BookingStatus.CANCELLED)

    with pytest.raises(InvalidTransitionError) as excinfo:
        await transition_booking(db_session, booking["id"], BookingStatus.CONFIRMED)
    assert excinfo.value.current == BookingStatus.CANCELLED
    assert excinfo.value.target == BookingStatus.CONFIRMED
