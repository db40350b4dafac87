"""Chit group endpoints: groups, members, contributions and auction scheduling."""

from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.chit import rules, schemas
from chitfund.chit.repository import ChitRepository
from chitfund.core.init_db import get_db
from chitfund.customer.repository import CustomerRepository
from chitfund.user.models import Role, STAFF_ROLES, User
from restapi.endpoints.auth import branch_scope, ensure_branch_access, get_current_user, require_roles
from restapi.endpoints.customers import target_branch

router = APIRouter(
    prefix="/chit-groups",
    tags=["chit groups"],
    responses={404: {"description": "Not found"}},
)

staff = require_roles(*STAFF_ROLES)
managers = require_roles(Role.SUPER_ADMIN, Role.DEPARTMENT_HEAD, Role.MANDAL_HEAD, Role.BRANCH_MANAGER)


async def get_group_or_404(db: AsyncSession, group_id: int, current_user: User):
    group = await ChitRepository(db).get_group(group_id)
    if group is None:
        raise HTTPException(status_code=404, detail="Chit group not found")
    ensure_branch_access(current_user, group.branch_id)
    return group


def installment_breakdown(chit_value, max_members, commission_percentage) -> schemas.InstallmentBreakdown:
    figures = rules.calculate_installment(chit_value, max_members, commission_percentage)
    return schemas.InstallmentBreakdown(
        installment=float(figures.installment),
        monthly_collection=float(figures.monthly_collection),
        total_commission=float(figures.total_commission),
    )


@router.post("/installment", response_model=schemas.InstallmentBreakdown)
async def calculate_installment(
    request: schemas.InstallmentRequest,
    current_user: User = Depends(get_current_user)
):
    """Installment per member, monthly collection and commission for a proposed group."""
    return installment_breakdown(request.chit_value, request.max_members, request.commission_percentage)


@router.post("/", response_model=schemas.ChitGroup, status_code=201)
async def create_group(
    group: schemas.ChitGroupCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(managers)
):
    branch_id = await target_branch(db, current_user, group.branch_id)
    return await ChitRepository(db).create_group(group, branch_id, current_user)


@router.get("/", response_model=List[schemas.ChitGroup])
async def read_groups(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Number of records to return"),
    branch_id: Optional[int] = Query(None, description="Filter by branch (head office only)"),
    status: Optional[schemas.GroupStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Groups visible to the caller; customers only see groups they belong to."""
    repo = ChitRepository(db)
    if current_user.role == Role.CUSTOMER.value:
        customer = await CustomerRepository(db).get_by_user_id(current_user.id)
        if customer is None:
            return []
        return await repo.get_groups(skip=skip, limit=limit, status=status, customer_id=customer.id)
    return await repo.get_groups(
        skip=skip, limit=limit, branch_id=branch_scope(current_user, branch_id), status=status
    )


@router.get("/{group_id}", response_model=schemas.ChitGroupDetail)
async def read_group(
    group_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    group = await get_group_or_404(db, group_id, current_user)
    return schemas.ChitGroupDetail(
        **schemas.ChitGroup.model_validate(group).model_dump(),
        member_count=await ChitRepository(db).member_count(group.id),
        installment=installment_breakdown(group.chit_value, group.max_members, group.commission_percentage),
    )


@router.put("/{group_id}", response_model=schemas.ChitGroup)
async def update_group(
    group_id: int,
    group: schemas.ChitGroupUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(managers)
):
    db_group = await get_group_or_404(db, group_id, current_user)
    return await ChitRepository(db).update_group(db_group, group, current_user)


@router.post("/{group_id}/members", response_model=schemas.Member, status_code=201)
async def add_member(
    group_id: int,
    member: schemas.MemberCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    group = await get_group_or_404(db, group_id, current_user)
    customer = await CustomerRepository(db).get_by_id(member.customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    if customer.branch_id != group.branch_id:
        raise HTTPException(status_code=400, detail="Customer belongs to a different branch")

    db_member, error = await ChitRepository(db).add_member(group, customer.id, current_user)
    if error:
        status_code = 409 if "already a member" in error else 400
        raise HTTPException(status_code=status_code, detail=error)
    return db_member


@router.get("/{group_id}/members", response_model=List[schemas.Member])
async def read_members(
    group_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    await get_group_or_404(db, group_id, current_user)
    return await ChitRepository(db).get_members(group_id)


@router.post("/{group_id}/contributions", response_model=schemas.Contribution, status_code=201)
async def record_contribution(
    group_id: int,
    contribution: schemas.ContributionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    """Collect a member's installment; amount and cycle default from the group."""
    group = await get_group_or_404(db, group_id, current_user)
    db_contribution, error = await ChitRepository(db).record_contribution(group, contribution, current_user)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return db_contribution


@router.get("/{group_id}/contributions", response_model=List[schemas.Contribution])
async def read_contributions(
    group_id: int,
    cycle_number: Optional[int] = Query(None, gt=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    await get_group_or_404(db, group_id, current_user)
    return await ChitRepository(db).get_contributions(group_id, cycle_number)


@router.get("/{group_id}/contributions/export")
async def export_contributions(
    group_id: int,
    format: Literal["csv", "json"] = Query("csv"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    """Download the group's contributions as CSV or JSON."""
    await get_group_or_404(db, group_id, current_user)
    content = await ChitRepository(db).export_contributions(group_id, format)
    media_type = "application/json" if format == "json" else "text/csv"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="contributions_{group_id}.{format}"'},
    )


@router.post("/{group_id}/auctions", response_model=schemas.Auction, status_code=201)
async def create_auction(
    group_id: int,
    auction: schemas.AuctionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(managers)
):
    """Schedule the auction for a cycle of an active group."""
    group = await get_group_or_404(db, group_id, current_user)
    db_auction, error = await ChitRepository(db).create_auction(group, auction, current_user)
    if error:
        status_code = 409 if "already exists" in error else 400
        raise HTTPException(status_code=status_code, detail=error)
    return db_auction


@router.get("/{group_id}/auctions", response_model=List[schemas.Auction])
async def read_auctions(
    group_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff)
):
    await get_group_or_404(db, group_id, current_user)
    return await ChitRepository(db).get_group_auctions(group_id)
