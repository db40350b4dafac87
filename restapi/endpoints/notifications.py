"""Notification endpoints."""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.core.init_db import get_db
from chitfund.core.schemas import Message
from chitfund.notification import schemas
from chitfund.notification.repository import NotificationRepository
from chitfund.user.models import Role, User
from restapi.endpoints.auth import branch_scope, get_current_user, require_roles

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    responses={404: {"description": "Not found"}},
)


@router.get("/", response_model=List[schemas.Notification])
async def read_notifications(
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The caller's notifications, newest first."""
    return await NotificationRepository(db).get_for_user(current_user.id, unread_only, skip, limit)


@router.get("/unread-count", response_model=schemas.UnreadCount)
async def read_unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return schemas.UnreadCount(unread=await NotificationRepository(db).unread_count(current_user.id))


@router.post("/read-all", response_model=Message)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await NotificationRepository(db).mark_all_read(current_user.id)
    return Message(message="All notifications marked as read")


@router.post("/{notification_id}/read", response_model=schemas.Notification)
async def mark_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = await NotificationRepository(db).mark_read(notification_id, current_user.id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.post("/send", response_model=Message)
async def send_notification(
    notification: schemas.NotificationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(
        Role.SUPER_ADMIN, Role.DEPARTMENT_HEAD, Role.MANDAL_HEAD, Role.BRANCH_MANAGER
    ))
):
    """
    Send a notification to explicit users, or to every active user of a
    role and/or branch. Branch managers can only reach their own branch.
    """
    repo = NotificationRepository(db)
    if notification.user_ids:
        recipients = await repo.recipients(user_ids=notification.user_ids)
    else:
        recipients = await repo.recipients(
            role=notification.role,
            branch_id=branch_scope(current_user, notification.branch_id),
        )
    if not recipients:
        raise HTTPException(status_code=400, detail="No recipients matched")

    count = await repo.send(recipients, notification.title, notification.message, notification.type)
    return Message(message=f"Notification sent to {count} user(s)")
