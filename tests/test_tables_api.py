"""Tests for the table registry and availability endpoints"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_tables(admin_client: AsyncClient, test_tables):
    response = await admin_client.get("/tables")

    assert response.status_code == 200
    tables = response.json()
    assert len(tables) == 22
    assert tables[0]["table_number"] == 1
    assert tables[0]["capacity"] == 4
    assert tables[-1]["capacity"] == 6


@pytest.mark.asyncio
async def test_customer_cannot_manage_tables(authenticated_client: AsyncClient, test_tables):
    response = await authenticated_client.get("/tables")
    assert response.status_code == 403

    response = await authenticated_client.put("/tables/5", json={"capacity": 2})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_initialize_tables_once(admin_client: AsyncClient):
    first = await admin_client.post("/tables/initialize")
    assert first.status_code == 200
    assert first.json() == {"created": 22, "total": 22}

    second = await admin_client.post("/tables/initialize")
    assert second.json() == {"created": 0, "total": 22}


@pytest.mark.asyncio
async def test_create_table(admin_client: AsyncClient):
    response = await admin_client.post(
        "/tables",
        json={"table_number": 3, "capacity": 2, "notes": "Bar"},
    )

    assert response.status_code == 201
    assert response.json()["notes"] == "Bar"

    duplicate = await admin_client.post("/tables", json={"table_number": 3})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "TABLE_EXISTS"


@pytest.mark.asyncio
async def test_update_table(admin_client: AsyncClient, test_tables):
    response = await admin_client.put("/tables/5", json={"capacity": 8, "notes": "Terrace"})

    assert response.status_code == 200
    assert response.json()["capacity"] == 8
    assert response.json()["notes"] == "Terrace"

    invalid = await admin_client.put("/tables/5", json={"capacity": 13})
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "INVALID_CAPACITY"

    renumber = await admin_client.put("/tables/5", json={"table_number": 7})
    assert renumber.status_code == 400
    assert renumber.json()["code"] == "TABLE_NUMBER_IMMUTABLE"


@pytest.mark.asyncio
async def test_unknown_table(admin_client: AsyncClient, test_tables):
    response = await admin_client.get("/tables/99")

    assert response.status_code == 404
    assert response.json()["code"] == "TABLE_NOT_FOUND"


@pytest.mark.asyncio
async def test_manual_hold_and_release(admin_client: AsyncClient, test_tables, booking_date):
    day = booking_date.isoformat()

    held = await admin_client.post("/tables/5/bookings", json={"date": day, "slot": 5})
    assert held.status_code == 200
    assert held.json()["slots"] == [5, 6]
    assert held.json()["booked_slots"] == [5, 6]

    clash = await admin_client.post("/tables/5/bookings", json={"date": day, "slot": 4})
    assert clash.status_code == 409

    detail = await admin_client.get("/tables/5")
    assert detail.json()["bookings"] == [{"date": day, "booked_slots": [5, 6]}]

    released = await admin_client.delete("/tables/5/bookings", params={"date": day, "slot": 5})
    assert released.status_code == 200
    assert released.json()["booked_slots"] == []

    # Releasing again is harmless
    again = await admin_client.delete("/tables/5/bookings", params={"date": day, "slot": 5})
    assert again.status_code == 200


@pytest.mark.asyncio
async def test_manual_hold_invalid_slot(admin_client: AsyncClient, test_tables, booking_date):
    response = await admin_client.post(
        "/tables/5/bookings",
        json={"date": booking_date.isoformat(), "slot": 0},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SLOT"


@pytest.mark.asyncio
async def test_available_tables(authenticated_client: AsyncClient, test_tables, booking_date):
    response = await authenticated_client.get(
        "/tables/available",
        params={"date": booking_date.isoformat(), "slot": 7, "guests": 3},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["available_tables"] == list(range(1, 11))
    assert data["not_eligible_tables"] == list(range(11, 23))
    assert data["occupied_tables"] == []


@pytest.mark.asyncio
async def test_available_tables_invalid_guests(authenticated_client: AsyncClient, test_tables, booking_date):
    response = await authenticated_client.get(
        "/tables/available",
        params={"date": booking_date.isoformat(), "slot": 7, "guests": 0},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_GUEST_COUNT"


@pytest.mark.asyncio
async def test_day_availability(admin_client: AsyncClient, test_tables, booking_date):
    day = booking_date.isoformat()
    await admin_client.post("/tables/1/bookings", json={"date": day, "slot": 1})
    await admin_client.post("/tables/1/bookings", json={"date": day, "slot": 4})
    await admin_client.post("/tables/1/bookings", json={"date": day, "slot": 7})
    await admin_client.post("/tables/1/bookings", json={"date": day, "slot": 10})
    await admin_client.post("/tables/1/bookings", json={"date": day, "slot": 13})

    response = await admin_client.get("/tables/availability", params={"date": day})

    assert response.status_code == 200
    by_table = {entry["table_number"]: entry for entry in response.json()}
    assert by_table[1]["booked_slots"] == list(range(1, 16))
    assert by_table[1]["is_fully_booked"] is True
    assert by_table[2]["available_slots"] == list(range(1, 16))
