"""Repository for the audit trail."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.audit.models import AuditLog

logger = logging.getLogger(__name__)


def _jsonable(details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    # Dates, Decimals and enums end up as strings
    return json.loads(json.dumps(details or {}, default=str))


def log_audit(
    session: AsyncSession,
    action: str,
    details: Optional[Dict[str, Any]] = None,
    actor=None,
    entity_type: Optional[str] = None,
    entity_id: Any = None,
    ip_address: Optional[str] = None,
) -> Optional[AuditLog]:
    """
    Stage an audit entry on the caller's session.

    The entry is committed together with the change it describes. Problems
    building the entry are logged and never fail the main operation.
    """
    try:
        if not action:
            logger.warning("Audit log skipped: missing action (entity=%s:%s)", entity_type, entity_id)
            return None
        entry = AuditLog(
            action=action,
            details=_jsonable(details),
            actor_id=getattr(actor, "id", None),
            actor_role=getattr(actor, "role", None),
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            ip_address=ip_address,
        )
        session.add(entry)
        return entry
    except (TypeError, ValueError) as e:
        logger.error("Failed to create audit log for %s: %s", action, e)
        return None


class AuditRepository:
    """Repository for audit log operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, action: str, details: Dict[str, Any], actor=None,
                     entity_type: Optional[str] = None, entity_id: Optional[str] = None,
                     ip_address: Optional[str] = None) -> AuditLog:
        """Persist an entry posted by a client."""
        entry = AuditLog(
            action=action,
            details=_jsonable(details),
            actor_id=getattr(actor, "id", None),
            actor_role=getattr(actor, "role", None),
            entity_type=entity_type,
            entity_id=entity_id,
            ip_address=ip_address,
        )
        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        action: Optional[str] = None,
        actor_id: Optional[int] = None,
        actor_ids: Optional[List[int]] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[AuditLog]:
        """Newest entries first with optional filtering."""
        query = select(AuditLog)

        if action:
            query = query.where(AuditLog.action == action)
        if actor_id is not None:
            query = query.where(AuditLog.actor_id == actor_id)
        if actor_ids is not None:
            query = query.where(AuditLog.actor_id.in_(actor_ids))
        if date_from:
            query = query.where(AuditLog.created_at >= date_from)
        if date_to:
            query = query.where(AuditLog.created_at <= date_to)

        query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
