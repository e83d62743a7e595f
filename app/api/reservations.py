"""Reservation API endpoints"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.reservation import Reservation
from app.models.user import User
from app.schemas.reservation import (
    ReservationCreate,
    ReservationUpdate,
    ReservationResponse,
    ReservationListResponse,
    TimeSlotResponse,
)
from app.services.reservations import ReservationService
from app.services.slots import all_slots, local_now
from app.api.auth import get_current_active_user

router = APIRouter()


def get_reservation_service(db: AsyncSession = Depends(get_db)) -> ReservationService:
    """Reservation service bound to the request session"""
    return ReservationService(db)


@router.get("", response_model=ReservationListResponse)
async def list_my_reservations(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    upcoming: bool = False,
    past: bool = False,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """List the current user's reservations with pagination"""
    query = select(Reservation).where(Reservation.user_id == current_user.id)
    count_query = select(func.count(Reservation.id)).where(Reservation.user_id == current_user.id)

    if status:
        query = query.where(Reservation.status == status)
        count_query = count_query.where(Reservation.status == status)

    today = local_now().date()
    if upcoming:
        query = query.where(Reservation.date >= today)
        count_query = count_query.where(Reservation.date >= today)
    elif past:
        query = query.where(Reservation.date < today)
        count_query = count_query.where(Reservation.date < today)

    # Get total
    total_result = await db.execute(count_query)
    total = total_result.scalar()

    # Get paginated results
    offset = (page - 1) * page_size
    query = (
        query.order_by(Reservation.date.desc(), Reservation.slot.desc())
        .offset(offset)
        .limit(page_size)
    )

    result = await db.execute(query)
    reservations = result.scalars().all()

    return ReservationListResponse(
        items=reservations,
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=ReservationResponse, status_code=201)
async def create_reservation(
    reservation_data: ReservationCreate,
    current_user: User = Depends(get_current_active_user),
    service: ReservationService = Depends(get_reservation_service),
):
    """Create a new reservation"""
    return await service.create_reservation(
        user_id=current_user.id,
        is_admin=current_user.is_admin,
        **reservation_data.model_dump(),
    )


@router.get("/slots", response_model=List[TimeSlotResponse])
async def list_time_slots():
    """Bookable start times of a day"""
    return [
        TimeSlotResponse(slot=slot.number, label=slot.label, period=slot.period)
        for slot in all_slots()
    ]


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: UUID,
    current_user: User = Depends(get_current_active_user),
    service: ReservationService = Depends(get_reservation_service),
):
    """Get reservation details"""
    return await service.get_reservation(
        reservation_id, current_user.id, current_user.is_admin
    )


@router.put("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: UUID,
    reservation_data: ReservationUpdate,
    current_user: User = Depends(get_current_active_user),
    service: ReservationService = Depends(get_reservation_service),
):
    """Update or reschedule a reservation"""
    return await service.update_reservation(
        reservation_id,
        current_user.id,
        reservation_data.model_dump(exclude_unset=True),
        is_admin=current_user.is_admin,
    )


@router.delete("/{reservation_id}", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: UUID,
    current_user: User = Depends(get_current_active_user),
    service: ReservationService = Depends(get_reservation_service),
):
    """Cancel a reservation"""
    return await service.cancel_reservation(
        reservation_id, current_user.id, current_user.is_admin
    )
