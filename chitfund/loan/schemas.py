"""Pydantic schemas for loans and repayments."""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

LoanStatus = Literal["pending", "approved", "rejected", "disbursed", "completed", "defaulted"]
PaymentMode = Literal["cash", "bank_transfer", "upi"]


class LoanBase(BaseModel):
    customer_id: int
    amount: float = Field(..., gt=0)
    interest_rate: float = Field(..., ge=0, le=60, description="Annual interest in percent")
    duration: int = Field(..., gt=0, le=360, description="Months")
    purpose: Optional[str] = Field(None, max_length=255)


class LoanCreate(LoanBase):
    pass


class LoanRequest(BaseModel):
    """Loan asked for by a chit group member; eligibility is checked first."""
    chit_group_id: int
    amount: float = Field(..., gt=0)
    interest_rate: float = Field(12, ge=0, le=60)
    duration: int = Field(12, gt=0, le=360)
    purpose: Optional[str] = Field(None, max_length=255)


class LoanStatusUpdate(BaseModel):
    status: LoanStatus
    note: Optional[str] = None


class Loan(LoanBase):
    id: int
    branch_id: int
    status: LoanStatus
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    disbursed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RepaymentCreate(BaseModel):
    amount: float = Field(..., gt=0)
    payment_date: Optional[date] = None
    payment_mode: PaymentMode = "cash"


class Repayment(BaseModel):
    id: int
    loan_id: int
    amount: float
    payment_date: date
    payment_mode: str
    status: str
    collected_by: Optional[int] = None

    class Config:
        from_attributes = True


class EmiRequest(BaseModel):
    principal: float = Field(..., gt=0)
    annual_rate: float = Field(..., ge=0, le=60)
    months: int = Field(..., gt=0, le=360)


class EmiResult(BaseModel):
    emi: float
    total_interest: float
    total_amount: float


class ScheduleRow(BaseModel):
    installment: int
    due_date: date
    payment: float
    principal: float
    interest: float
    balance: float


class LoanDetail(Loan):
    emi: float
    total_repaid: float
    outstanding: float
    repayments: List[Repayment]
    schedule: List[ScheduleRow]


class LoanEligibility(BaseModel):
    is_eligible: bool
    details: Dict[str, Any]
