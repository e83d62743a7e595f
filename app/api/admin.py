"""Admin reservation management endpoints"""

import datetime as dt
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.audit import AuditLog
from app.models.reservation import Reservation, ReservationStatus
from app.models.user import User, UserRole
from app.schemas.reservation import (
    ReservationUpdate,
    ReservationStatusUpdate,
    ReservationResponse,
    ReservationListResponse,
    ReservationStatsResponse,
    AuditLogResponse,
)
from app.services.lifecycle import parse_status
from app.services.reservations import ReservationService
from app.services.slots import local_now
from app.api.auth import require_role
from app.api.reservations import get_reservation_service

router = APIRouter()


@router.get("", response_model=ReservationListResponse)
async def list_reservations(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    date: Optional[dt.date] = None,
    search: Optional[str] = None,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """List all reservations with filters (Admin only)"""
    query = select(Reservation)

    if status:
        query = query.where(Reservation.status == parse_status(status).value)
    if date:
        query = query.where(Reservation.date == date)
    if search:
        pattern = f"%{search}%"
        query = query.join(User, Reservation.user_id == User.id).where(
            or_(
                User.email.ilike(pattern),
                User.full_name.ilike(pattern),
                Reservation.contact_phone.ilike(pattern),
                Reservation.reservation_number.ilike(pattern),
            )
        )

    # Get total
    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
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


@router.get("/stats", response_model=ReservationStatsResponse)
async def reservation_stats(
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Reservation counts per status (Admin only)"""
    result = await db.execute(
        select(Reservation.status, func.count(Reservation.id)).group_by(Reservation.status)
    )
    by_status = {status.value: 0 for status in ReservationStatus}
    for status, count in result.all():
        by_status[status] = count

    today = local_now().date()
    today_result = await db.execute(
        select(func.count(Reservation.id)).where(
            Reservation.date == today,
            Reservation.status != ReservationStatus.CANCELLED.value,
        )
    )
    upcoming_result = await db.execute(
        select(func.count(Reservation.id)).where(
            Reservation.date >= today,
            Reservation.status == ReservationStatus.CONFIRMED.value,
        )
    )

    return ReservationStatsResponse(
        total_reservations=sum(by_status.values()),
        reservations_by_status=by_status,
        today=today_result.scalar(),
        upcoming=upcoming_result.scalar(),
    )


@router.put("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: UUID,
    reservation_data: ReservationUpdate,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    service: ReservationService = Depends(get_reservation_service),
):
    """Update any reservation, bypassing the customer time windows (Admin only)"""
    return await service.update_reservation(
        reservation_id,
        current_user.id,
        reservation_data.model_dump(exclude_unset=True),
        is_admin=True,
    )


@router.patch("/{reservation_id}/status", response_model=ReservationResponse)
async def update_reservation_status(
    reservation_id: UUID,
    status_data: ReservationStatusUpdate,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    service: ReservationService = Depends(get_reservation_service),
):
    """Seat, complete, cancel or mark a reservation as no-show (Admin only)"""
    return await service.transition_status(
        reservation_id, status_data.status, current_user.id, is_admin=True
    )


@router.get("/{reservation_id}/audit", response_model=List[AuditLogResponse])
async def reservation_audit_trail(
    reservation_id: UUID,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """Audit trail of a reservation (Admin only)"""
    await service.get_reservation(reservation_id, current_user.id, is_admin=True)

    result = await db.execute(
        select(AuditLog)
        .where(
            AuditLog.resource_type == "reservation",
            AuditLog.resource_id == str(reservation_id),
        )
        .order_by(AuditLog.created_at)
    )
    return result.scalars().all()
