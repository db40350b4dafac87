"""Audit trail endpoints."""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.audit import schemas
from chitfund.audit.repository import AuditRepository
from chitfund.core.init_db import get_db
from chitfund.user.models import Role, User
from restapi.endpoints.auth import get_current_user, require_roles

router = APIRouter(
    prefix="/api/audit-log",
    tags=["audit"],
    responses={404: {"description": "Not found"}},
)


@router.post("", response_model=schemas.AuditLog, status_code=201)
async def create_audit_log(
    entry: schemas.AuditLogCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record an action reported by a client; actor and address come from the request."""
    return await AuditRepository(db).create(
        entry.action,
        entry.details,
        actor=current_user,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        ip_address=request.client.host if request.client else None,
    )


@router.get("", response_model=List[schemas.AuditLog])
async def read_audit_log(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Number of records to return"),
    action: Optional[str] = Query(None, description="Filter by action"),
    actor_id: Optional[int] = Query(None, description="Filter by acting user"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(Role.SUPER_ADMIN, Role.BRANCH_MANAGER))
):
    """
    Audit entries, newest first.

    Branch managers only see actions taken by staff of their own branch.
    """
    actor_ids = None
    if current_user.role == Role.BRANCH_MANAGER.value:
        result = await db.execute(select(User.id).where(User.branch_id == current_user.branch_id))
        actor_ids = list(result.scalars().all())

    return await AuditRepository(db).get_all(
        skip=skip,
        limit=limit,
        action=action,
        actor_id=actor_id,
        actor_ids=actor_ids,
        date_from=date_from,
        date_to=date_to,
    )
