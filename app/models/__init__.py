"""Database models"""

from app.models.table import Table, TableBooking
from app.models.reservation import Reservation, ReservationStatus
from app.models.audit import AuditLog
from app.models.user import User, UserRole

__all__ = [
    "Table",
    "TableBooking",
    "Reservation",
    "ReservationStatus",
    "AuditLog",
    "User",
    "UserRole",
]
