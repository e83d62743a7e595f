"""Tests for the reservation endpoints"""

import pytest
from httpx import AsyncClient


def reservation_payload(booking_date, **overrides):
    payload = {
        "date": booking_date.isoformat(),
        "slot": 10,
        "guests": 3,
        "table_numbers": [5],
        "contact_phone": "0612345678",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_reservation(authenticated_client: AsyncClient, test_tables, test_user, booking_date):
    response = await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, special_request="Window seat"),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "confirmed"
    assert data["table_numbers"] == [5]
    assert data["user_id"] == str(test_user.id)
    assert data["special_request"] == "Window seat"
    assert data["reservation_number"] == f"{booking_date:%Y%m%d}-1930-5"


@pytest.mark.asyncio
async def test_overlapping_reservation_conflicts(authenticated_client: AsyncClient, test_tables, booking_date):
    first = await authenticated_client.post("/reservations", json=reservation_payload(booking_date))
    assert first.status_code == 201

    response = await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, slot=11, guests=3),
    )

    assert response.status_code == 409
    assert response.json()["code"] == "SLOT_CONFLICT"
    assert response.json()["table_number"] == 5

    later = await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, slot=13, guests=3),
    )
    assert later.status_code == 201


@pytest.mark.asyncio
async def test_reservation_over_capacity(authenticated_client: AsyncClient, test_tables, booking_date):
    response = await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, guests=5),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "CAPACITY_EXCEEDED"


@pytest.mark.asyncio
async def test_reservation_unknown_table(authenticated_client: AsyncClient, test_tables, booking_date):
    response = await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, table_numbers=[99]),
    )

    assert response.status_code == 404
    assert response.json()["code"] == "TABLE_INVALID"


@pytest.mark.asyncio
async def test_reservation_invalid_slot(authenticated_client: AsyncClient, test_tables, booking_date):
    response = await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, slot=16),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SLOT"


@pytest.mark.asyncio
async def test_reservation_missing_fields(authenticated_client: AsyncClient, test_tables):
    response = await authenticated_client.post("/reservations", json={"slot": 10})

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_customer_notes_forbidden(authenticated_client: AsyncClient, test_tables, booking_date):
    response = await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, notes="Regular guest"),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient, test_tables, booking_date):
    response = await client.post("/reservations", json=reservation_payload(booking_date))

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_my_reservations(authenticated_client: AsyncClient, test_tables, booking_date):
    await authenticated_client.post("/reservations", json=reservation_payload(booking_date))
    await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, slot=1, table_numbers=[6]),
    )

    response = await authenticated_client.get("/reservations", params={"upcoming": True})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [item["slot"] for item in data["items"]] == [10, 1]

    response = await authenticated_client.get("/reservations", params={"status": "cancelled"})
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_get_reservation_of_other_user(
    client: AsyncClient, auth_headers, test_tables, test_user, other_user, booking_date
):
    created = await client.post(
        "/reservations",
        json=reservation_payload(booking_date),
        headers=auth_headers(test_user),
    )
    reservation_id = created.json()["id"]

    own = await client.get(f"/reservations/{reservation_id}", headers=auth_headers(test_user))
    assert own.status_code == 200

    response = await client.get(f"/reservations/{reservation_id}", headers=auth_headers(other_user))
    assert response.status_code == 403
    assert response.json()["code"] == "NOT_OWNER"


@pytest.mark.asyncio
async def test_get_unknown_reservation(authenticated_client: AsyncClient):
    response = await authenticated_client.get("/reservations/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["code"] == "RESERVATION_NOT_FOUND"


@pytest.mark.asyncio
async def test_reschedule_reservation(authenticated_client: AsyncClient, test_tables, booking_date):
    created = await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, guests=4, table_numbers=[1]),
    )
    reservation_id = created.json()["id"]

    response = await authenticated_client.put(
        f"/reservations/{reservation_id}",
        json={"table_numbers": [3], "slot": 11},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["table_numbers"] == [3]
    assert data["reservation_number"] == f"{booking_date:%Y%m%d}-2000-3"

    availability = await authenticated_client.get(
        "/tables/available",
        params={"date": booking_date.isoformat(), "slot": 10, "guests": 3},
    )
    body = availability.json()
    assert 1 in body["available_tables"]
    assert 3 in body["occupied_tables"]


@pytest.mark.asyncio
async def test_cancel_reservation(authenticated_client: AsyncClient, test_tables, booking_date, email_task):
    created = await authenticated_client.post("/reservations", json=reservation_payload(booking_date))
    reservation_id = created.json()["id"]

    response = await authenticated_client.delete(f"/reservations/{reservation_id}")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert email_task.calls == [("created", reservation_id), ("cancelled", reservation_id)]

    availability = await authenticated_client.get(
        "/tables/available",
        params={"date": booking_date.isoformat(), "slot": 10, "guests": 3},
    )
    assert 5 in availability.json()["available_tables"]

    again = await authenticated_client.delete(f"/reservations/{reservation_id}")
    assert again.status_code == 409
    assert again.json()["code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_list_time_slots(client: AsyncClient):
    response = await client.get("/reservations/slots")

    assert response.status_code == 200
    slots = response.json()
    assert len(slots) == 15
    assert slots[0] == {"slot": 1, "label": "11:00", "period": "lunch"}
    assert slots[-1] == {"slot": 15, "label": "22:00", "period": "dinner"}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_current_user(authenticated_client: AsyncClient, test_user):
    response = await authenticated_client.get("/auth/me")

    assert response.status_code == 200
    assert response.json()["email"] == test_user.email


@pytest.mark.asyncio
async def test_reservation_table_too_large(authenticated_client: AsyncClient, test_tables, booking_date):
    response = await authenticated_client.post(
        "/reservations",
        json=reservation_payload(booking_date, guests=2, table_numbers=[11]),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "TABLE_TOO_LARGE"
