"""Collection QR code endpoints."""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.core.init_db import get_db
from chitfund.qrcode import schemas
from chitfund.qrcode.repository import QRCodeRepository
from chitfund.user.models import Role, STAFF_ROLES, User
from chitfund.user.repository import UserRepository
from restapi.endpoints.auth import branch_scope, ensure_branch_access, require_roles
from restapi.endpoints.customers import target_branch

router = APIRouter(
    prefix="/qrcodes",
    tags=["qr codes"],
    responses={404: {"description": "Not found"}},
)

managers = require_roles(Role.SUPER_ADMIN, Role.DEPARTMENT_HEAD, Role.MANDAL_HEAD, Role.BRANCH_MANAGER)


async def check_agent(db: AsyncSession, agent_id: Optional[int], branch_id: int) -> None:
    if agent_id is None:
        return
    agent = await UserRepository(db).get_by_id(agent_id)
    if agent is None or agent.role != Role.AGENT.value:
        raise HTTPException(status_code=400, detail="QR codes can only be assigned to agents")
    if agent.branch_id != branch_id:
        raise HTTPException(status_code=400, detail="Agent belongs to a different branch")


async def get_qrcode_or_404(db: AsyncSession, qr_id: int, current_user: User):
    qr = await QRCodeRepository(db).get_by_id(qr_id)
    if qr is None:
        raise HTTPException(status_code=404, detail="QR code not found")
    ensure_branch_access(current_user, qr.branch_id)
    return qr


@router.post("/", response_model=schemas.QRCode, status_code=201)
async def create_qrcode(
    qr: schemas.QRCodeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(managers)
):
    """Generate a QR code for a branch, optionally handing it to an agent."""
    branch_id = await target_branch(db, current_user, qr.branch_id)
    await check_agent(db, qr.assigned_to, branch_id)
    return await QRCodeRepository(db).create(branch_id, qr.assigned_to, current_user)


@router.get("/", response_model=List[schemas.QRCode])
async def read_qrcodes(
    branch_id: Optional[int] = Query(None, description="Filter by branch (head office only)"),
    status: Optional[str] = Query(None, description="active, assigned or inactive"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES))
):
    return await QRCodeRepository(db).get_all(branch_id=branch_scope(current_user, branch_id), status=status)


@router.put("/{qr_id}/assign", response_model=schemas.QRCode)
async def assign_qrcode(
    qr_id: int,
    assignment: schemas.QRCodeAssign,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(managers)
):
    """Reassign a code to another agent, or release it with an empty assignee."""
    qr = await get_qrcode_or_404(db, qr_id, current_user)
    if qr.status == "inactive":
        raise HTTPException(status_code=400, detail="QR code is inactive")
    await check_agent(db, assignment.assigned_to, qr.branch_id)
    return await QRCodeRepository(db).assign(qr, assignment.assigned_to, current_user)


@router.post("/{qr_id}/deactivate", response_model=schemas.QRCode)
async def deactivate_qrcode(
    qr_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(managers)
):
    qr = await get_qrcode_or_404(db, qr_id, current_user)
    return await QRCodeRepository(db).deactivate(qr, current_user)
