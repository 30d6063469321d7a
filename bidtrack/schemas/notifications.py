from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class NotificationCreateRequest(BaseModel):
    userId: int
    title: str = Field(..., min_length=1, max_length=256)
    message: str = Field(..., min_length=1)
    type: Optional[str] = Field(default=None, max_length=64)
    bidId: Optional[int] = None


class NotificationResponse(BaseModel):
    id: int
    userId: int
    bidId: Optional[int] = None
    title: str
    message: str
    type: str
    isRead: bool
    createdAt: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    data: List[NotificationResponse]
    unreadCount: int


class UnreadCountResponse(BaseModel):
    unreadCount: int
