"""Repository for user operations."""

import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.audit.repository import log_audit
from chitfund.core.config import get_settings
from chitfund.core.security import get_password_hash, new_session_id, verify_password
from chitfund.core.utils import utcnow
from chitfund.session.manager import is_expired, is_warning_due, time_remaining
from chitfund.user.models import FreezeLog, User, UserSession
from chitfund.user.schemas import UserCreate, UserUpdate
from chitfund.user.utils import generate_referral_code

logger = logging.getLogger(__name__)
settings = get_settings()


class UserRepository:
    """Repository for user operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, user: UserCreate, created_by: Optional[User] = None,
                     referred_by: Optional[User] = None) -> User:
        """Create a new user."""
        db_user = User(
            name=user.name,
            email=user.email.lower(),
            mobile=user.mobile,
            password=get_password_hash(user.password),
            role=user.role.value,
            branch_id=user.branch_id,
            referral_code=generate_referral_code(user.name),
            referred_by=referred_by.id if referred_by else None,
            registration_date=date.today(),
        )
        self.session.add(db_user)
        await self.session.flush()
        log_audit(self.session, "user.create",
                  {"email": db_user.email, "role": db_user.role, "referred_by": db_user.referred_by},
                  actor=created_by, entity_type="user", entity_id=db_user.id)
        await self.session.commit()
        await self.session.refresh(db_user)
        return db_user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email (the login name)."""
        result = await self.session.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_by_referral_code(self, code: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.referral_code == code.strip().upper())
        )
        return result.scalar_one_or_none()

    async def get_referrals(self, referrer: User) -> List[User]:
        """Users who registered with ``referrer``'s code, oldest first."""
        result = await self.session.execute(
            select(User).where(User.referred_by == referrer.id).order_by(User.registration_date, User.id)
        )
        return list(result.scalars().all())

    async def exists(self, email: str) -> bool:
        """Check if user with given email exists."""
        result = await self.session.execute(
            select(User.id).where(User.email == email.lower())
        )
        return result.scalar_one_or_none() is not None

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        role: Optional[str] = None,
        status: Optional[str] = None,
        branch_id: Optional[int] = None,
    ) -> List[User]:
        """Get all users with optional filtering."""
        query = select(User)

        if role:
            query = query.where(User.role == role)
        if status:
            query = query.where(User.status == status)
        if branch_id is not None:
            query = query.where(User.branch_id == branch_id)

        query = query.order_by(User.id).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update(self, user_id: int, user: UserUpdate, actor: Optional[User] = None) -> Optional[User]:
        """Update user by ID."""
        db_user = await self.get_by_id(user_id)
        if not db_user:
            return None

        changes = user.model_dump(exclude_unset=True, mode="json")
        for field, value in changes.items():
            setattr(db_user, field, value)

        log_audit(self.session, "user.update", changes, actor=actor, entity_type="user", entity_id=user_id)
        await self.session.commit()
        await self.session.refresh(db_user)
        return db_user

    async def delete(self, user_id: int, actor: Optional[User] = None) -> bool:
        """Deactivate user by ID; rows referenced by loans and logs are kept."""
        db_user = await self.get_by_id(user_id)
        if not db_user:
            return False

        db_user.status = "inactive"
        log_audit(self.session, "user.deactivate", {"email": db_user.email},
                  actor=actor, entity_type="user", entity_id=user_id)
        await self.session.commit()
        return True

    async def change_password(self, db_user: User, current: str, new: str) -> bool:
        if not verify_password(current, db_user.password):
            return False
        db_user.password = get_password_hash(new)
        log_audit(self.session, "user.password_change", {}, actor=db_user, entity_type="user", entity_id=db_user.id)
        await self.session.commit()
        return True

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        db_user = await self.get_by_email(email)
        if not db_user or not verify_password(password, db_user.password):
            return None
        return db_user

    # freeze / unfreeze

    async def set_frozen(self, user_id: int, frozen: bool, actor: User,
                         reason: Optional[str] = None) -> Optional[User]:
        """Freeze or unfreeze an account and record it in the freeze log."""
        db_user = await self.get_by_id(user_id)
        if not db_user:
            return None

        action = "freeze" if frozen else "unfreeze"
        db_user.is_frozen = frozen
        self.session.add(FreezeLog(user_id=user_id, frozen_by=actor.id, action=action, reason=reason))
        if frozen:
            # A frozen account loses its open logins
            result = await self.session.execute(
                select(UserSession).where(UserSession.user_id == user_id, UserSession.ended_at.is_(None))
            )
            for open_session in result.scalars().all():
                open_session.ended_at = utcnow()
                open_session.end_reason = "frozen"
        log_audit(self.session, f"user.{action}", {"reason": reason}, actor=actor,
                  entity_type="user", entity_id=user_id)
        await self.session.commit()
        await self.session.refresh(db_user)
        return db_user

    async def get_freeze_logs(self, user_id: Optional[int] = None) -> List[FreezeLog]:
        query = select(FreezeLog)
        if user_id is not None:
            query = query.where(FreezeLog.user_id == user_id)
        result = await self.session.execute(query.order_by(FreezeLog.created_at.desc(), FreezeLog.id.desc()))
        return list(result.scalars().all())

    # login sessions

    async def start_session(self, db_user: User, ip_address: Optional[str] = None) -> UserSession:
        now = utcnow()
        user_session = UserSession(id=new_session_id(), user_id=db_user.id, started_at=now, last_activity=now)
        self.session.add(user_session)
        log_audit(self.session, "SESSION_STARTED", {"email": db_user.email}, actor=db_user,
                  entity_type="session", entity_id=user_session.id, ip_address=ip_address)
        await self.session.commit()
        return user_session

    async def get_session(self, session_id: str) -> Optional[UserSession]:
        result = await self.session.execute(
            select(UserSession).where(UserSession.id == session_id)
        )
        return result.scalar_one_or_none()

    async def touch_session(self, session_id: str, db_user: User,
                            touch: bool = True) -> Tuple[Optional[UserSession], str]:
        """
        Register activity on a login session.

        Returns the session and ``"ok"``, or ``None`` with ``"missing"``,
        ``"timeout"`` or the reason an already closed session ended. An idle
        session is closed and audited the first time it is seen expired.
        With ``touch=False`` the idle clock is only checked, not restarted.
        """
        user_session = await self.get_session(session_id)
        if user_session is None or user_session.user_id != db_user.id:
            return None, "missing"
        if user_session.ended_at is not None:
            return None, user_session.end_reason or "ended"

        now = utcnow()
        if is_expired(user_session.last_activity, now, self.timeout_seconds):
            user_session.ended_at = now
            user_session.end_reason = "timeout"
            log_audit(self.session, "SESSION_TIMEOUT", {"detail": "Session timed out due to inactivity"},
                      actor=db_user, entity_type="session", entity_id=session_id)
            await self.session.commit()
            logger.info("Session %s of user %s timed out", session_id, db_user.id)
            return None, "timeout"

        if touch:
            user_session.last_activity = now
            await self.session.commit()
        return user_session, "ok"

    async def end_session(self, user_session: UserSession, db_user: User, reason: str = "logout") -> None:
        user_session.ended_at = utcnow()
        user_session.end_reason = reason
        log_audit(self.session, "LOGOUT", {}, actor=db_user, entity_type="session", entity_id=user_session.id)
        await self.session.commit()

    @property
    def timeout_seconds(self) -> int:
        return settings.SESSION_TIMEOUT_MINUTES * 60

    def session_state(self, user_session: UserSession) -> dict:
        now = utcnow()
        timeout = self.timeout_seconds
        warning = settings.SESSION_WARNING_MINUTES * 60
        return {
            "session_id": user_session.id,
            "started_at": user_session.started_at,
            "last_activity": user_session.last_activity,
            "time_remaining_seconds": int(time_remaining(user_session.last_activity, now, timeout)),
            "warning_active": is_warning_due(user_session.last_activity, now, timeout, warning),
        }
