from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

NotificationType = Literal["info", "success", "warning", "error"]


class NotificationCreate(BaseModel):
    """Message sent by staff to one user, a role, or a branch."""
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    type: NotificationType = "info"
    user_ids: Optional[List[int]] = None
    role: Optional[str] = None
    branch_id: Optional[int] = None


class Notification(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: NotificationType
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UnreadCount(BaseModel):
    unread: int
