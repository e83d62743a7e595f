"""Physical table and booking ledger models"""

from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.database import Base


class Table(Base):
    """Physical restaurant table"""
    __tablename__ = "tables"

    table_number = Column(Integer, primary_key=True, autoincrement=False)
    capacity = Column(Integer, nullable=False, default=4)
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(String(200))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bookings = relationship(
        "TableBooking",
        back_populates="table",
    )


class TableBooking(Base):
    """One held slot of a table on a calendar day"""
    __tablename__ = "table_bookings"
    __table_args__ = (
        UniqueConstraint("table_number", "date", "slot", name="uq_table_booking_slot"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    table_number = Column(Integer, ForeignKey("tables.table_number"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    slot = Column(Integer, nullable=False)

    # Holder; null for manual admin holds
    reservation_id = Column(Uuid, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    table = relationship("Table", back_populates="bookings")
