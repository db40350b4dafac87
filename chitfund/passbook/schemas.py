"""Pydantic schemas for customer passbooks."""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel


class PassbookEntry(BaseModel):
    id: int
    chit_group_id: Optional[int] = None
    entry_type: Literal["credit", "debit"]
    category: str
    amount: float
    balance: float
    description: str
    reference: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class Passbook(BaseModel):
    customer_id: int
    balance: float
    total_credits: float
    total_debits: float
    entries: List[PassbookEntry]
