"""Table registry and availability API endpoints"""

import datetime as dt
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import ValidationError
from app.models.user import User, UserRole
from app.schemas.reservation import AvailabilityResponse
from app.schemas.table import (
    TableCreate,
    TableUpdate,
    TableResponse,
    TableDetailResponse,
    BookingEntryResponse,
    TableBookingRequest,
    TableBookingResponse,
    TableDayAvailabilityResponse,
    InitializeTablesResponse,
)
from app.services.ledger import BookingLedger
from app.services.registry import TableRegistry
from app.services.reservations import ReservationService
from app.services.slots import is_valid_slot, service_span
from app.api.auth import get_current_active_user, require_role
from app.api.reservations import get_reservation_service

import structlog

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=List[TableResponse])
async def list_tables(
    active_only: bool = False,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """List all tables (Admin only)"""
    return await TableRegistry(db).list_tables(active_only=active_only)


@router.post("", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
async def create_table(
    table_data: TableCreate,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Provision a table (Admin only)"""
    table = await TableRegistry(db).create_table(**table_data.model_dump())
    await db.commit()
    await db.refresh(table)
    return table


@router.post("/initialize", response_model=InitializeTablesResponse)
async def initialize_tables(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Create the fixed set of tables once (Admin only)"""
    registry = TableRegistry(db)
    created = await registry.initialize()
    await db.commit()
    return InitializeTablesResponse(created=created, total=await registry.count())


@router.get("/available", response_model=AvailabilityResponse)
async def get_available_tables(
    date: dt.date,
    slot: int,
    guests: int = Query(1),
    exclude_reservation_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_active_user),
    service: ReservationService = Depends(get_reservation_service),
):
    """Partition tables into available, occupied and not eligible"""
    result = await service.check_availability(date, slot, guests, exclude_reservation_id)
    return AvailabilityResponse(
        date=date,
        slot=slot,
        guests=guests,
        available_tables=result.available,
        occupied_tables=result.occupied,
        not_eligible_tables=result.not_eligible,
    )


@router.get("/availability", response_model=List[TableDayAvailabilityResponse])
async def get_day_availability(
    date: dt.date,
    current_user: User = Depends(get_current_active_user),
    service: ReservationService = Depends(get_reservation_service),
):
    """Booked and bookable slots of every active table on a day"""
    availability = await service.day_availability(date)
    return [
        TableDayAvailabilityResponse(
            table_number=entry.table_number,
            capacity=entry.capacity,
            booked_slots=entry.booked_slots,
            available_slots=entry.available_slots,
            is_fully_booked=entry.is_fully_booked,
        )
        for entry in availability
    ]


@router.get("/{table_number}", response_model=TableDetailResponse)
async def get_table(
    table_number: int,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Get a table with its booking entries (Admin only)"""
    table = await TableRegistry(db).get_table(table_number)
    entries = await BookingLedger(db).get_entries(table_number)

    return TableDetailResponse(
        **TableResponse.model_validate(table).model_dump(),
        bookings=[
            BookingEntryResponse(date=entry.date, booked_slots=entry.booked_slots)
            for entry in entries
        ],
    )


@router.put("/{table_number}", response_model=TableResponse)
async def update_table(
    table_number: int,
    table_data: TableUpdate,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Update capacity, notes or active flag (Admin only)"""
    table = await TableRegistry(db).update_table(
        table_number, table_data.model_dump(exclude_unset=True)
    )
    await db.commit()
    await db.refresh(table)
    return table


def _validated_span(slot: int):
    if not is_valid_slot(slot):
        raise ValidationError("Invalid slot number", code="INVALID_SLOT", details={"slot": slot})
    return service_span(slot)


@router.post("/{table_number}/bookings", response_model=TableBookingResponse)
async def add_table_booking(
    table_number: int,
    booking: TableBookingRequest,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Hold a service span on a table without a reservation (Admin only)"""
    await TableRegistry(db).get_table(table_number)
    span = _validated_span(booking.slot)
    ledger = BookingLedger(db)

    async with ledger.lock([(table_number, booking.date)]):
        await ledger.hold_slots(table_number, booking.date, span)
        await db.commit()

    logger.info(
        "Manual table hold",
        table_number=table_number,
        date=booking.date.isoformat(),
        slots=list(span),
        admin_id=str(current_user.id),
    )
    return TableBookingResponse(
        table_number=table_number,
        date=booking.date,
        slots=list(span),
        booked_slots=sorted(await ledger.get_occupied_slots(table_number, booking.date)),
    )


@router.delete("/{table_number}/bookings", response_model=TableBookingResponse)
async def remove_table_booking(
    table_number: int,
    date: dt.date,
    slot: int,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Release a service span on a table (Admin only)"""
    await TableRegistry(db).get_table(table_number)
    span = _validated_span(slot)
    ledger = BookingLedger(db)

    async with ledger.lock([(table_number, date)]):
        released = await ledger.release_slots(table_number, date, span)
        await db.commit()

    logger.info(
        "Manual table release",
        table_number=table_number,
        date=date.isoformat(),
        released=released,
        admin_id=str(current_user.id),
    )
    return TableBookingResponse(
        table_number=table_number,
        date=date,
        slots=list(span),
        booked_slots=sorted(await ledger.get_occupied_slots(table_number, date)),
    )
