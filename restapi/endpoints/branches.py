"""Branch endpoints for the API."""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.branch import schemas
from chitfund.branch.repository import BranchRepository
from chitfund.core.init_db import get_db
from chitfund.user.models import HEAD_OFFICE_ROLES, Role, STAFF_ROLES, User
from chitfund.user.repository import UserRepository
from restapi.endpoints.auth import require_roles

router = APIRouter(
    prefix="/branches",
    tags=["branches"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.Branch, status_code=201)
async def create_branch(
    branch: schemas.BranchCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(Role.SUPER_ADMIN))
):
    repo = BranchRepository(db)
    if await repo.code_exists(branch.code):
        raise HTTPException(status_code=409, detail=f"Branch code {branch.code.upper()} is already in use")
    return await repo.create(branch, current_user)


@router.get("/", response_model=List[schemas.Branch])
async def read_branches(
    status: Optional[str] = Query(None, description="active or inactive"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES))
):
    return await BranchRepository(db).get_all(status=status)


@router.get("/{branch_id}", response_model=schemas.Branch)
async def read_branch(
    branch_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*STAFF_ROLES))
):
    branch = await BranchRepository(db).get_by_id(branch_id)
    if branch is None:
        raise HTTPException(status_code=404, detail="Branch not found")
    return branch


@router.put("/{branch_id}", response_model=schemas.Branch)
async def update_branch(
    branch_id: int,
    branch: schemas.BranchUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(*HEAD_OFFICE_ROLES))
):
    updated = await BranchRepository(db).update(branch_id, branch, current_user)
    if updated is None:
        raise HTTPException(status_code=404, detail="Branch not found")
    return updated


@router.post("/{branch_id}/manager", response_model=schemas.Branch)
async def assign_manager(
    branch_id: int,
    assignment: schemas.ManagerAssignment,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(Role.SUPER_ADMIN))
):
    """Appoint a staff member as manager of the branch."""
    repo = BranchRepository(db)
    branch = await repo.get_by_id(branch_id)
    if branch is None:
        raise HTTPException(status_code=404, detail="Branch not found")

    manager = await UserRepository(db).get_by_id(assignment.manager_id)
    if manager is None:
        raise HTTPException(status_code=404, detail="User not found")
    if manager.role == Role.CUSTOMER.value:
        raise HTTPException(status_code=400, detail="A customer cannot manage a branch")

    return await repo.assign_manager(branch, manager, current_user)
