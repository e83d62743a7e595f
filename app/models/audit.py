"""Audit log model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, Uuid

from app.database import Base


class AuditLog(Base):
    """Audit trail for reservation changes"""
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Actor information
    actor_id = Column(Uuid)  # User ID or null for system
    actor_type = Column(String(50))  # customer, admin, system

    # Action details
    action = Column(String(100), nullable=False)  # create_reservation, update_status, etc.
    resource_type = Column(String(50))  # reservation, table
    resource_id = Column(String(64), index=True)

    # Change data
    data_json = Column(JSON)  # {"before": {...}, "after": {...}}

    created_at = Column(DateTime, default=datetime.utcnow)
