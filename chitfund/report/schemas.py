"""Pydantic schemas for dashboard and yearly reports."""

from typing import Dict, List, Optional
from pydantic import BaseModel


class Dashboard(BaseModel):
    """Schema for the role dashboard counters."""
    branch_id: Optional[int] = None
    total_customers: int
    active_customers: int
    pending_kyc: int
    active_groups: int
    loans_by_status: Dict[str, int]
    disbursed_amount: float
    contributions_collected: float


class MonthSummary(BaseModel):
    """Schema for monthly summary."""
    month: int
    year: int
    num_loans_disbursed: int
    disbursed_amount: float
    num_contributions: int
    collected_amount: float
    disbursed_percentage_of_year: float
    collected_percentage_of_year: float


class YearSummary(BaseModel):
    """Schema for yearly summary."""
    year: int
    branch_id: Optional[int] = None
    total_loans_disbursed: int
    total_disbursed_amount: float
    total_contributions: int
    total_collected_amount: float
    monthly_summaries: List[MonthSummary]
