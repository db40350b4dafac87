from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class QRCodeCreate(BaseModel):
    assigned_to: Optional[int] = None
    branch_id: Optional[int] = None


class QRCodeAssign(BaseModel):
    assigned_to: Optional[int] = None


class QRCode(BaseModel):
    id: int
    code: str
    branch_id: int
    assigned_to: Optional[int] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True
