"""Pydantic schemas for audit log entries."""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class AuditLogCreate(BaseModel):
    """Entry posted by a client screen."""
    action: str = Field(..., min_length=1, max_length=100)
    details: Dict[str, Any] = Field(default_factory=dict)
    entity_type: Optional[str] = Field(None, max_length=50)
    entity_id: Optional[str] = Field(None, max_length=64)


class AuditLog(AuditLogCreate):
    id: int
    actor_id: Optional[int] = None
    actor_role: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
