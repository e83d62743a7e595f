"""Pydantic schemas for request/response validation"""

from app.schemas.auth import (
    TokenPayload,
    UserResponse,
)
from app.schemas.table import (
    TableCreate,
    TableUpdate,
    TableResponse,
    TableDetailResponse,
    TableBookingRequest,
    TableBookingResponse,
    TableDayAvailabilityResponse,
    InitializeTablesResponse,
)
from app.schemas.reservation import (
    ReservationCreate,
    ReservationUpdate,
    ReservationStatusUpdate,
    ReservationResponse,
    ReservationListResponse,
    AvailabilityResponse,
    TimeSlotResponse,
)

__all__ = [
    "TokenPayload",
    "UserResponse",
    "TableCreate",
    "TableUpdate",
    "TableResponse",
    "TableDetailResponse",
    "TableBookingRequest",
    "TableBookingResponse",
    "TableDayAvailabilityResponse",
    "InitializeTablesResponse",
    "ReservationCreate",
    "ReservationUpdate",
    "ReservationStatusUpdate",
    "ReservationResponse",
    "ReservationListResponse",
    "AvailabilityResponse",
    "TimeSlotResponse",
]
