
from typing import Optional
from pydantic import BaseModel, UUID4
from datetime import datetime


class NotificationBase(BaseModel):
    title: str
    message: str
    type: str
    reference_id: Optional[UUID4] = None


class Notification(NotificationBase):
    id: UUID4
    user_id: UUID4
    is_read: bool = False
    created_at: datetime

    class Config:
        from_attributes = True
