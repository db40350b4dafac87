"""User, freeze log and login session models for the database."""

import enum

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from chitfund.core.database import Base
from chitfund.core.utils import utcnow


class Role(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    DEPARTMENT_HEAD = "department_head"
    MANDAL_HEAD = "mandal_head"
    BRANCH_MANAGER = "branch_manager"
    AGENT = "agent"
    CUSTOMER = "customer"


class UserStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    REJECTED = "rejected"


# Roles that work across every branch
HEAD_OFFICE_ROLES = (Role.SUPER_ADMIN, Role.DEPARTMENT_HEAD, Role.MANDAL_HEAD)
STAFF_ROLES = HEAD_OFFICE_ROLES + (Role.BRANCH_MANAGER, Role.AGENT)


class User(Base):
    """Login account for staff members and customers."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    mobile = Column(String(20), nullable=True)
    password = Column(String(255), nullable=False)  # Hashed password
    role = Column(String(30), nullable=False, default=Role.CUSTOMER.value)
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    is_frozen = Column(Boolean, nullable=False, default=False)
    wallet_balance = Column(Numeric(12, 2), nullable=False, default=0)
    referral_code = Column(String(20), unique=True, nullable=True)
    referred_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    registration_date = Column(Date, nullable=False)

    branch = relationship("Branch", foreign_keys=[branch_id])
    sessions = relationship("UserSession", back_populates="user")

    @property
    def is_head_office(self) -> bool:
        return self.role in {r.value for r in HEAD_OFFICE_ROLES}


class FreezeLog(Base):
    """History of account freezes and unfreezes."""
    __tablename__ = "freeze_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    frozen_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    action = Column(String(10), nullable=False)  # freeze | unfreeze
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class UserSession(Base):
    """Server-side record of a login, used for idle timeout."""
    __tablename__ = "user_sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    last_activity = Column(DateTime, nullable=False, default=utcnow)
    ended_at = Column(DateTime, nullable=True)
    end_reason = Column(String(20), nullable=True)  # logout | timeout | frozen

    user = relationship("User", back_populates="sessions")
