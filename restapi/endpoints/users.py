"""Staff and user management endpoints."""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.core.init_db import get_db
from chitfund.core.schemas import Message
from chitfund.user import schemas
from chitfund.user.models import Role, User
from chitfund.user.repository import UserRepository
from restapi.endpoints.auth import branch_scope, ensure_branch_access, require_roles

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={404: {"description": "Not found"}},
)

admin_only = require_roles(Role.SUPER_ADMIN)
staff_managers = require_roles(Role.SUPER_ADMIN, Role.DEPARTMENT_HEAD, Role.MANDAL_HEAD, Role.BRANCH_MANAGER)


@router.post("/", response_model=schemas.User, status_code=201)
async def create_user(
    user: schemas.UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(admin_only)
):
    """Create a staff member or customer login."""
    repo = UserRepository(db)

    if await repo.exists(user.email):
        raise HTTPException(
            status_code=409,
            detail="User with this email already exists"
        )

    return await repo.create(user, created_by=current_user)


@router.get("/", response_model=List[schemas.User])
async def read_users(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of records to return"),
    role: Optional[Role] = Query(None, description="Filter by role"),
    status: Optional[str] = Query(None, description="Filter by account status"),
    branch_id: Optional[int] = Query(None, description="Filter by branch (head office only)"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff_managers)
):
    """Get list of users; branch managers only see their own branch."""
    repo = UserRepository(db)
    return await repo.get_all(
        skip=skip,
        limit=limit,
        role=role.value if role else None,
        status=status,
        branch_id=branch_scope(current_user, branch_id),
    )


@router.get("/freeze-logs", response_model=List[schemas.FreezeLog])
async def read_freeze_logs(
    user_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(admin_only)
):
    """History of account freezes, newest first."""
    return await UserRepository(db).get_freeze_logs(user_id)


@router.get("/{user_id}", response_model=schemas.User)
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(staff_managers)
):
    """Get a specific user by ID."""
    repo = UserRepository(db)
    user = await repo.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    ensure_branch_access(current_user, user.branch_id)
    return user


@router.put("/{user_id}", response_model=schemas.User)
async def update_user(
    user_id: int,
    user: schemas.UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(admin_only)
):
    """Update role, status, branch or contact details of a user."""
    updated_user = await UserRepository(db).update(user_id, user, actor=current_user)
    if not updated_user:
        raise HTTPException(status_code=404, detail="User not found")
    return updated_user


@router.delete("/{user_id}", response_model=Message)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(admin_only)
):
    """Deactivate a user."""
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    if not await UserRepository(db).delete(user_id, actor=current_user):
        raise HTTPException(status_code=404, detail="User not found")
    return Message(message="User deactivated successfully")


@router.post("/{user_id}/freeze", response_model=schemas.User)
async def freeze_user(
    user_id: int,
    request: schemas.FreezeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(admin_only)
):
    """Freeze an account; its open sessions end immediately."""
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot freeze your own account")
    user = await UserRepository(db).set_frozen(user_id, True, current_user, request.reason)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/{user_id}/unfreeze", response_model=schemas.User)
async def unfreeze_user(
    user_id: int,
    request: schemas.FreezeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(admin_only)
):
    user = await UserRepository(db).set_frozen(user_id, False, current_user, request.reason)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
