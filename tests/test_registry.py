"""Tests for the table registry"""

import pytest

from app.errors import ConflictError, NotFoundError, ValidationError
from app.services.registry import TableRegistry, default_capacity_plan


@pytest.mark.asyncio
async def test_initialize_creates_standard_tables(test_db):
    registry = TableRegistry(test_db)

    created = await registry.initialize()
    await test_db.commit()

    tables = await registry.list_tables()
    assert created == 22
    assert [table.table_number for table in tables] == list(range(1, 23))
    assert all(table.is_active for table in tables)
    assert (await registry.get_table(10)).capacity == 4
    assert (await registry.get_table(11)).capacity == 6


@pytest.mark.asyncio
async def test_initialize_is_idempotent(test_db, test_tables):
    registry = TableRegistry(test_db)

    assert await registry.initialize() == 0
    assert await registry.count() == 22


@pytest.mark.asyncio
async def test_initialize_with_custom_plan(test_db):
    registry = TableRegistry(test_db)

    created = await registry.initialize(count=3, capacity_plan=lambda number: 2)

    assert created == 3
    assert [table.capacity for table in await registry.list_tables()] == [2, 2, 2]


def test_default_capacity_plan():
    assert default_capacity_plan(1) == 4
    assert default_capacity_plan(10) == 4
    assert default_capacity_plan(11) == 6


@pytest.mark.asyncio
async def test_get_unknown_table(test_db, test_tables):
    with pytest.raises(NotFoundError) as exc_info:
        await TableRegistry(test_db).get_table(99)

    assert exc_info.value.code == "TABLE_NOT_FOUND"


@pytest.mark.asyncio
async def test_get_tables_omits_unknown_numbers(test_db, test_tables):
    found = await TableRegistry(test_db).get_tables([1, 5, 99])

    assert sorted(found) == [1, 5]


@pytest.mark.asyncio
async def test_create_table_rejects_duplicates(test_db):
    registry = TableRegistry(test_db)
    await registry.create_table(3, capacity=2)
    await test_db.commit()

    with pytest.raises(ConflictError) as exc_info:
        await registry.create_table(3, capacity=4)

    assert exc_info.value.code == "TABLE_EXISTS"


@pytest.mark.asyncio
@pytest.mark.parametrize("number", [0, 23, -1])
async def test_create_table_number_out_of_range(test_db, number):
    with pytest.raises(ValidationError) as exc_info:
        await TableRegistry(test_db).create_table(number)

    assert exc_info.value.code == "INVALID_TABLE_NUMBER"


@pytest.mark.asyncio
@pytest.mark.parametrize("capacity", [0, 13])
async def test_create_table_capacity_out_of_range(test_db, capacity):
    with pytest.raises(ValidationError) as exc_info:
        await TableRegistry(test_db).create_table(1, capacity=capacity)

    assert exc_info.value.code == "INVALID_CAPACITY"


@pytest.mark.asyncio
async def test_update_table(test_db, test_tables):
    registry = TableRegistry(test_db)

    table = await registry.update_table(
        5, {"capacity": 8, "notes": "By the window", "is_active": False}
    )
    await test_db.commit()

    assert table.capacity == 8
    assert table.notes == "By the window"
    assert table.is_active is False
    assert 5 not in [t.table_number for t in await registry.list_active_tables()]


@pytest.mark.asyncio
async def test_update_table_capacity_bounds(test_db, test_tables):
    registry = TableRegistry(test_db)

    assert (await registry.update_table(5, {"capacity": 12})).capacity == 12
    assert (await registry.update_table(5, {"capacity": 1})).capacity == 1

    with pytest.raises(ValidationError) as exc_info:
        await registry.update_table(5, {"capacity": 13})
    assert exc_info.value.code == "INVALID_CAPACITY"


@pytest.mark.asyncio
async def test_update_table_number_is_immutable(test_db, test_tables):
    registry = TableRegistry(test_db)

    # Same number is accepted
    await registry.update_table(5, {"table_number": 5, "capacity": 2})

    with pytest.raises(ValidationError) as exc_info:
        await registry.update_table(5, {"table_number": 6})
    assert exc_info.value.code == "TABLE_NUMBER_IMMUTABLE"


@pytest.mark.asyncio
async def test_update_table_notes_too_long(test_db, test_tables):
    with pytest.raises(ValidationError) as exc_info:
        await TableRegistry(test_db).update_table(5, {"notes": "x" * 201})

    assert exc_info.value.code == "NOTES_TOO_LONG"


@pytest.mark.asyncio
async def test_update_table_rejects_unknown_fields(test_db, test_tables):
    with pytest.raises(ValidationError) as exc_info:
        await TableRegistry(test_db).update_table(5, {"color": "red"})

    assert exc_info.value.code == "UNKNOWN_FIELDS"
