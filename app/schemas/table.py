"""Table schemas"""

import datetime as dt
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel


class TableCreate(BaseModel):
    """Provision table request"""
    table_number: int
    capacity: int = 4
    notes: Optional[str] = None
    is_active: bool = True


class TableUpdate(BaseModel):
    """Update table request"""
    table_number: Optional[int] = None
    capacity: Optional[int] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class TableResponse(BaseModel):
    """Table response"""
    table_number: int
    capacity: int
    is_active: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BookingEntryResponse(BaseModel):
    """Held slots of a table on one day"""
    date: dt.date
    booked_slots: List[int]


class TableDetailResponse(TableResponse):
    """Table with its booking entries"""
    bookings: List[BookingEntryResponse] = []


class TableBookingRequest(BaseModel):
    """Manual hold of a service span"""
    date: dt.date
    slot: int


class TableBookingResponse(BaseModel):
    """Result of a manual hold or release"""
    table_number: int
    date: dt.date
    slots: List[int]
    booked_slots: List[int]


class TableDayAvailabilityResponse(BaseModel):
    """Occupancy of a table over one day"""
    table_number: int
    capacity: int
    booked_slots: List[int]
    available_slots: List[int]
    is_fully_booked: bool

    class Config:
        from_attributes = True


class InitializeTablesResponse(BaseModel):
    """Registry bootstrap result"""
    created: int
    total: int
