"""Pydantic schemas for users, login and sessions."""

from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field

from chitfund.user.models import Role, UserStatus


class UserBase(BaseModel):
    """Base user schema."""
    name: str = Field(..., min_length=2, max_length=120)
    email: EmailStr
    mobile: Optional[str] = Field(None, pattern=r"^\+?\d{10,13}$")
    role: Role = Role.CUSTOMER
    branch_id: Optional[int] = None


class UserCreate(UserBase):
    """Schema for user creation."""
    password: str = Field(..., min_length=8)


class UserRegister(UserCreate):
    """Self-registration, optionally with the referral code of an existing user."""
    referral_code: Optional[str] = Field(None, max_length=20)


class UserUpdate(BaseModel):
    """Schema for partial user updates by an administrator."""
    name: Optional[str] = Field(None, min_length=2, max_length=120)
    mobile: Optional[str] = Field(None, pattern=r"^\+?\d{10,13}$")
    role: Optional[Role] = None
    status: Optional[UserStatus] = None
    branch_id: Optional[int] = None


class User(UserBase):
    """Schema for user response."""
    id: int
    status: UserStatus
    is_frozen: bool
    wallet_balance: float
    referral_code: Optional[str] = None
    referred_by: Optional[int] = None
    registration_date: date

    class Config:
        from_attributes = True


class UserWithToken(User):
    access_token: str
    token_type: str = "bearer"
    session_timeout_minutes: int


class Referral(BaseModel):
    """A user who registered with someone's referral code."""
    id: int
    name: str
    status: UserStatus
    registration_date: date

    class Config:
        from_attributes = True


class ReferralSummary(BaseModel):
    referral_code: Optional[str] = None
    total_referrals: int
    referrals: List[Referral]


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class FreezeRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class FreezeLog(BaseModel):
    id: int
    user_id: int
    frozen_by: int
    action: str
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SessionInfo(BaseModel):
    """Idle-session state for the current login."""
    session_id: str
    started_at: datetime
    last_activity: datetime
    time_remaining_seconds: int
    warning_active: bool
