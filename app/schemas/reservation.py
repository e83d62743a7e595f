"""Reservation schemas"""

import datetime as dt
from datetime import datetime
from typing import Optional, List, Dict
from uuid import UUID
from pydantic import BaseModel


class ReservationCreate(BaseModel):
    """Create reservation request"""
    date: dt.date
    slot: int
    guests: int
    table_numbers: List[int]
    contact_phone: str
    special_request: Optional[str] = None
    notes: Optional[str] = None


class ReservationUpdate(BaseModel):
    """Update reservation request"""
    date: Optional[dt.date] = None
    slot: Optional[int] = None
    guests: Optional[int] = None
    table_numbers: Optional[List[int]] = None
    contact_phone: Optional[str] = None
    special_request: Optional[str] = None
    notes: Optional[str] = None


class ReservationStatusUpdate(BaseModel):
    """Admin status transition request"""
    status: str


class ReservationResponse(BaseModel):
    """Reservation response"""
    id: UUID
    reservation_number: str
    user_id: UUID
    date: dt.date
    slot: int
    guests: int
    table_numbers: List[int]
    status: str
    contact_phone: str
    special_request: Optional[str]
    notes: Optional[str]
    seated_at: Optional[datetime]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReservationListResponse(BaseModel):
    """Paginated reservation list"""
    items: List[ReservationResponse]
    total: int
    page: int
    page_size: int


class TimeSlotResponse(BaseModel):
    """Bookable start time"""
    slot: int
    label: str
    period: str


class AvailabilityResponse(BaseModel):
    """Tables partitioned for a date, slot and party size"""
    date: dt.date
    slot: int
    guests: int
    available_tables: List[int] = []
    occupied_tables: List[int] = []
    not_eligible_tables: List[int] = []


class ReservationStatsResponse(BaseModel):
    """Reservation counts for the admin dashboard"""
    total_reservations: int
    reservations_by_status: Dict[str, int]
    today: int
    upcoming: int


class AuditLogResponse(BaseModel):
    """Audit trail entry"""
    id: UUID
    actor_id: Optional[UUID]
    actor_type: Optional[str]
    action: str
    data_json: Optional[dict]
    created_at: datetime

    class Config:
        from_attributes = True
