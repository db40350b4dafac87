"""Pydantic schemas for branches."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field


class BranchBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=120)
    code: str = Field(..., min_length=2, max_length=20)
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None


class BranchCreate(BranchBase):
    pass


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=120)
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    status: Optional[Literal["active", "inactive"]] = None


class ManagerAssignment(BaseModel):
    manager_id: int


class Branch(BranchBase):
    id: int
    status: str
    manager_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
