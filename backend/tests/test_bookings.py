"""
Tests for booking endpoints: checkout, capacity rejection and lookups.
"""

import re

import pytest
from decimal import Decimal
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_guest_booking(client: AsyncClient, test_event, booking_payload, section_available):
    """A guest can book without a token; the booking starts out Reserved."""
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_event.id, quantity=2, customer_email="Guest@Example.com"),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Booking created successfully"

    booking = data["booking"]
    assert re.fullmatch(r"EP[0-9A-Z]{6,}", booking["booking_id"])
    assert booking["status"] == "Reserved"
    assert booking["section_name"] == "GA"
    assert booking["quantity"] == 2
    assert booking["user_id"] is None
    assert booking["customer_email"] == "guest@example.com"
    assert Decimal(booking["total_amount"]) == Decimal("100.00")
    assert booking["event"]["title"] == "Summer Concert"

    assert await section_available(client, test_event.id) == 8


@pytest.mark.asyncio
async def test_booking_linked_to_user(
    client: AsyncClient, test_event, test_user, auth_headers, booking_payload
):
    response = await client.post(
        "/api/v1/bookings/", json=booking_payload(test_event.id), headers=auth_headers
    )
    assert response.status_code == 201
    assert response.json()["booking"]["user_id"] == test_user.id


@pytest.mark.asyncio
async def test_capacity_walkthrough(
    client: AsyncClient, test_event, booking_payload, section_available, manager_headers
):
    """GA holds 10: book 6, a request for 5 is refused with the exact count left, 4 fits."""
    assert await section_available(client, test_event.id) == 10

    first = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, quantity=6))
    assert first.status_code == 201
    assert await section_available(client, test_event.id) == 4

    refused = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, quantity=5))
    assert refused.status_code == 400
    body = refused.json()
    assert body["message"] == "Only 4 seats available in GA section"
    assert body["code"] == "INSUFFICIENT_CAPACITY"
    assert body["available"] == 4
    # A refusal commits nothing
    assert await section_available(client, test_event.id) == 4

    last = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, quantity=4))
    assert last.status_code == 201

    event = await client.get(f"/api/v1/events/{test_event.id}")
    ga = event.json()["sections"][0]
    assert ga["available_capacity"] == 0
    assert ga["is_available"] is False

    # Cancelling the first booking frees its seats on the next read
    cancelled = await client.put(
        f"/api/v1/manager/bookings/{first.json()['booking']['id']}/cancel", headers=manager_headers
    )
    assert cancelled.status_code == 200
    assert await section_available(client, test_event.id) == 6


@pytest.mark.asyncio
async def test_sold_out_section(client: AsyncClient, test_event, booking_payload):
    await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, "VIP", quantity=4))

    response = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, "VIP"))
    assert response.status_code == 400
    assert response.json()["message"] == "Only 0 seats available in VIP section"
    assert response.json()["available"] == 0


@pytest.mark.asyncio
async def test_book_exact_remaining(client: AsyncClient, test_event, booking_payload, section_available):
    response = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, "VIP", quantity=4))
    assert response.status_code == 201
    assert await section_available(client, test_event.id, "VIP") == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, 11, -1])
async def test_quantity_out_of_range(client: AsyncClient, test_event, booking_payload, quantity):
    response = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, quantity=quantity))
    assert response.status_code == 400
    assert any(error["field"] == "quantity" for error in response.json()["errors"])


@pytest.mark.asyncio
async def test_missing_fields(client: AsyncClient, test_event):
    response = await client.post("/api/v1/bookings/", json={"event_id": test_event.id})
    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"section_name", "customer_name", "customer_email", "customer_phone", "quantity"} <= fields


@pytest.mark.asyncio
async def test_invalid_email(client: AsyncClient, test_event, booking_payload):
    response = await client.post(
        "/api/v1/bookings/", json=booking_payload(test_event.id, customer_email="not-an-email")
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_section(client: AsyncClient, test_event, booking_payload):
    response = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, "Balcony"))
    assert response.status_code == 404
    assert response.json()["message"] == "Section Balcony not found for this event"


@pytest.mark.asyncio
async def test_unknown_event(client: AsyncClient, booking_payload):
    response = await client.post("/api/v1/bookings/", json=booking_payload(99999))
    assert response.status_code == 404
    assert response.json()["message"] == "Event not found or inactive"


@pytest.mark.asyncio
async def test_out_of_range_event_id_rejected(client: AsyncClient, booking_payload):
    response = await client.post("/api/v1/bookings/", json=booking_payload(99999999999999999999999))
    assert response.status_code == 400
    assert [e["field"] for e in response.json()["errors"]] == ["event_id"]


@pytest.mark.asyncio
async def test_inactive_event_not_bookable(client: AsyncClient, inactive_event, booking_payload):
    response = await client.post("/api/v1/bookings/", json=booking_payload(inactive_event.id))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_lookup_by_code(client: AsyncClient, test_event, booking_payload):
    created = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, quantity=3))
    code = created.json()["booking"]["booking_id"]

    response = await client.get(f"/api/v1/bookings/{code}")
    assert response.status_code == 200
    assert response.json()["quantity"] == 3

    # Codes are matched case-insensitively
    lowered = await client.get(f"/api/v1/bookings/{code.lower()}")
    assert lowered.status_code == 200
    assert lowered.json()["booking_id"] == code


@pytest.mark.asyncio
async def test_lookup_unknown_code(client: AsyncClient):
    response = await client.get("/api/v1/bookings/EPNOTAREALCODE")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_lookup_is_read_only(client: AsyncClient, test_event, booking_payload):
    created = await client.post("/api/v1/bookings/", json=booking_payload(test_event.id))
    code = created.json()["booking"]["booking_id"]

    first = await client.get(f"/api/v1/bookings/{code}")
    second = await client.get(f"/api/v1/bookings/{code}")
    assert first.json() == second.json()


@pytest.mark.asyncio
async def test_my_bookings(client: AsyncClient, test_event, auth_headers, booking_payload):
    """Only the caller's own bookings are returned, newest first."""
    await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, quantity=1), headers=auth_headers)
    await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, "VIP", quantity=2), headers=auth_headers)
    await client.post("/api/v1/bookings/", json=booking_payload(test_event.id, quantity=1))  # guest

    response = await client.get("/api/v1/bookings/my", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 2
    assert data[0]["section_name"] == "VIP"
    assert data[0]["event"]["id"] == test_event.id


@pytest.mark.asyncio
async def test_my_bookings_requires_auth(client: AsyncClient):
    response = await client.get("/api/v1/bookings/my")
    assert response.status_code == 401
