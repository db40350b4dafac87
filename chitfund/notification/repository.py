"""Repository for in-app notifications."""

from typing import Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.notification.models import Notification
from chitfund.user.models import User


class NotificationRepository:
    """Repository for notification operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def send(self, user_ids: Iterable[int], title: str, message: str, type: str = "info") -> int:
        """Create one notification per recipient; returns how many were sent."""
        count = 0
        for user_id in set(user_ids):
            self.session.add(Notification(user_id=user_id, title=title, message=message, type=type))
            count += 1
        await self.session.commit()
        return count

    async def recipients(self, user_ids: Optional[List[int]] = None, role: Optional[str] = None,
                         branch_id: Optional[int] = None) -> List[int]:
        """Resolve explicit ids, or every active user matching role and branch."""
        if user_ids:
            result = await self.session.execute(select(User.id).where(User.id.in_(user_ids)))
            return list(result.scalars().all())
        query = select(User.id).where(User.status == "active")
        if role:
            query = query.where(User.role == role)
        if branch_id is not None:
            query = query.where(User.branch_id == branch_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_for_user(self, user_id: int, unread_only: bool = False,
                           skip: int = 0, limit: int = 50) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def unread_count(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id, Notification.read.is_(False)
            )
        )
        return result.scalar() or 0

    async def mark_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        result = await self.session.execute(
            select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            return None
        notification.read = True
        await self.session.commit()
        await self.session.refresh(notification)
        return notification

    async def mark_all_read(self, user_id: int) -> None:
        await self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        await self.session.commit()
