"""Audit trail model for the database."""

from sqlalchemy import Column, DateTime, Integer, JSON, String

from chitfund.core.database import Base
from chitfund.core.utils import utcnow


class AuditLog(Base):
    """Write-once record of an action taken in the system."""
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(100), nullable=False, index=True)
    details = Column(JSON, nullable=False, default=dict)
    actor_id = Column(Integer, nullable=True, index=True)
    actor_role = Column(String(30), nullable=True)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(64), nullable=True)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
