"""Reservation model"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, JSON, Text, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


class ReservationStatus(str, enum.Enum):
    """Reservation lifecycle states"""
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class Reservation(Base):
    """Table reservations"""
    __tablename__ = "reservations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    # Human readable label: YYYYMMDD-HHMM-T1-T2
    reservation_number = Column(String(64), nullable=False, index=True)

    # Booking details
    date = Column(Date, nullable=False, index=True)
    slot = Column(Integer, nullable=False)
    guests = Column(Integer, nullable=False)
    table_numbers = Column(JSON, nullable=False, default=list)

    # Status
    status = Column(String(20), nullable=False, default=ReservationStatus.CONFIRMED.value)

    # Contact and requests
    contact_phone = Column(String(20), nullable=False)
    special_request = Column(String(200))
    notes = Column(Text)

    # Lifecycle timestamps
    seated_at = Column(DateTime)
    completed_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="reservations")
