"""Domain errors surfaced to API clients with stable error codes"""

from typing import Any, Dict, Optional


class BookingError(Exception):
    """Base class for reservation and table booking failures"""

    status_code: int = 400
    default_code: str = "BOOKING_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Response body for this error"""
        return {"detail": self.message, "code": self.code, **self.details}


class ValidationError(BookingError):
    """Malformed or out-of-range input"""
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(BookingError):
    """Unknown table or reservation"""
    status_code = 404
    default_code = "NOT_FOUND"


class CapacityError(BookingError):
    """Assigned tables cannot seat the party"""
    status_code = 400
    default_code = "CAPACITY_EXCEEDED"


class ConflictError(BookingError):
    """Requested slots are already held"""
    status_code = 409
    default_code = "SLOT_CONFLICT"

    def __init__(self, *args, rolled_back: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        # Set when the session transaction was rolled back by the store
        self.rolled_back = rolled_back


class AuthorizationError(BookingError):
    """Caller may not perform this mutation"""
    status_code = 403
    default_code = "FORBIDDEN"


class InvalidTransitionError(BookingError):
    """Illegal reservation status change"""
    status_code = 409
    default_code = "INVALID_TRANSITION"
