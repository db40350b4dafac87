from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class RiskAssessmentCreate(BaseModel):
    customer_id: int
    score: int = Field(..., ge=300, le=900)
    notes: Optional[str] = None


class RiskAssessment(BaseModel):
    id: int
    customer_id: int
    score: int
    level: str
    notes: Optional[str] = None
    assessed_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
