"""Pydantic schemas for chit groups, members, contributions and auctions."""

from datetime import date, datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

GroupStatus = Literal["pending", "active", "completed", "cancelled"]
AuctionStatus = Literal["scheduled", "active", "completed", "cancelled"]


class ChitGroupBase(BaseModel):
    """Base chit group schema."""
    group_name: str = Field(..., min_length=2, max_length=120)
    chit_value: float = Field(..., gt=0)
    commission_percentage: float = Field(5, ge=0, le=100)
    duration: int = Field(..., gt=0, le=120, description="Months")
    max_members: int = Field(..., gt=0, le=500)
    description: Optional[str] = None
    start_date: Optional[date] = None


class ChitGroupCreate(ChitGroupBase):
    branch_id: Optional[int] = None


class ChitGroupUpdate(BaseModel):
    group_name: Optional[str] = Field(None, min_length=2, max_length=120)
    description: Optional[str] = None
    status: Optional[GroupStatus] = None
    start_date: Optional[date] = None


class ChitGroup(ChitGroupBase):
    id: int
    branch_id: int
    current_cycle: int
    status: GroupStatus
    created_at: datetime

    class Config:
        from_attributes = True


class InstallmentBreakdown(BaseModel):
    installment: float
    monthly_collection: float
    total_commission: float


class ChitGroupDetail(ChitGroup):
    member_count: int
    installment: InstallmentBreakdown


class InstallmentRequest(BaseModel):
    chit_value: float = Field(..., ge=0)
    max_members: int = Field(..., ge=0)
    commission_percentage: float = Field(0, ge=0, le=100)


class MemberCreate(BaseModel):
    customer_id: int


class Member(BaseModel):
    id: int
    chit_group_id: int
    customer_id: int
    joined_at: datetime
    grab_cycle: Optional[int] = None

    class Config:
        from_attributes = True


class ContributionCreate(BaseModel):
    customer_id: int
    amount: Optional[float] = Field(None, gt=0, description="Defaults to the group installment")
    cycle_number: Optional[int] = Field(None, gt=0, description="Defaults to the current cycle")
    payment_date: Optional[date] = None
    payment_mode: Literal["cash", "bank_transfer", "upi"] = "cash"


class Contribution(BaseModel):
    id: int
    chit_group_id: int
    customer_id: int
    amount: float
    cycle_number: int
    payment_date: date
    payment_mode: str
    receipt_number: str
    status: str
    collected_by: Optional[int] = None

    class Config:
        from_attributes = True


class AuctionCreate(BaseModel):
    start_time: datetime
    cycle_number: Optional[int] = Field(None, gt=0, description="Defaults to the group's current cycle")


class BidCreate(BaseModel):
    customer_id: int
    amount: float


class Bid(BaseModel):
    id: int
    auction_id: int
    customer_id: int
    amount: float
    placed_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class Auction(BaseModel):
    id: int
    chit_group_id: int
    cycle_number: int
    start_time: datetime
    status: AuctionStatus
    winner_id: Optional[int] = None
    winning_bid_id: Optional[int] = None

    class Config:
        from_attributes = True


class AuctionDetail(Auction):
    bids: List[Bid]
    lowest_bid: Optional[float] = None


class AuctionResult(Auction):
    winning_amount: float
    dividend_per_member: float
