"""Pydantic schemas for customer data validation."""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, EmailStr, Field

IdProofType = Literal["AADHAR", "PAN", "PASSPORT", "DRIVING_LICENSE"]
CustomerStatus = Literal["active", "inactive", "pending", "rejected"]


class CustomerBase(BaseModel):
    """Base customer schema."""
    name: str = Field(..., min_length=2, max_length=120)
    email: Optional[EmailStr] = None
    mobile: str = Field(..., pattern=r"^\+?\d{10,13}$")
    id_proof_type: Optional[IdProofType] = None
    id_proof_number: Optional[str] = Field(None, max_length=40)
    age: Optional[int] = Field(None, ge=0, le=120)
    monthly_income: Optional[float] = Field(None, ge=0)


class CustomerCreate(CustomerBase):
    """Schema for customer creation; head office staff pick the branch."""
    branch_id: Optional[int] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=120)
    email: Optional[EmailStr] = None
    mobile: Optional[str] = Field(None, pattern=r"^\+?\d{10,13}$")
    status: Optional[CustomerStatus] = None
    id_proof_type: Optional[IdProofType] = None
    id_proof_number: Optional[str] = Field(None, max_length=40)
    age: Optional[int] = Field(None, ge=0, le=120)
    monthly_income: Optional[float] = Field(None, ge=0)


class KycDecision(BaseModel):
    status: Literal["verified", "rejected"]
    note: Optional[str] = None


class Customer(CustomerBase):
    """Schema for customer response."""
    id: int
    code: str
    status: str
    kyc_status: str
    branch_id: int
    user_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EligibilityRequest(BaseModel):
    age: int = Field(..., ge=0, le=120)
    income: float = Field(..., ge=0, description="Monthly income in rupees")


class EligibilityResult(BaseModel):
    eligible: bool
    message: str


class CustomerUploadError(BaseModel):
    row: int
    message: str


class CustomerUploadResponse(BaseModel):
    success: bool
    message: str
    created: int = 0
    errors: Optional[List[CustomerUploadError]] = None
