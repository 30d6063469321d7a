#bidtrack/schemas/bids.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from bidtrack.schemas.bid_types import StatusResponse


class BidCreateRequest(BaseModel):
    clientId: int
    title: str = Field(..., min_length=1, max_length=512)
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    status: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = None
    bidTypeId: Optional[int] = None
    parentId: Optional[int] = None

    workAddress: Optional[str] = None
    contactFullName: Optional[str] = None
    contactPhone: Optional[str] = None

    plannedResolutionDate: Optional[datetime] = None
    plannedReactionTimeMinutes: Optional[int] = Field(default=None, ge=0)
    plannedDurationMinutes: Optional[int] = Field(default=None, ge=0)
    assignedAt: Optional[datetime] = None
    spentTimeHours: Optional[Decimal] = Field(default=None, ge=0)


class BidUpdateRequest(BaseModel):
    """
    Partial update: only fields present in the payload are applied.
    A `status` here goes through the same gate as POST /bids/{id}/status.
    """
    clientId: Optional[int] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=512)
    amount: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = None
    bidTypeId: Optional[int] = None

    workAddress: Optional[str] = None
    contactFullName: Optional[str] = None
    contactPhone: Optional[str] = None

    plannedResolutionDate: Optional[datetime] = None
    plannedReactionTimeMinutes: Optional[int] = Field(default=None, ge=0)
    plannedDurationMinutes: Optional[int] = Field(default=None, ge=0)
    assignedAt: Optional[datetime] = None
    spentTimeHours: Optional[Decimal] = Field(default=None, ge=0)
    currentResponsibleUserId: Optional[int] = None


class BidStatusChangeRequest(BaseModel):
    status: str = Field(..., min_length=1, max_length=128)
    comment: Optional[str] = None


class BidResponse(BaseModel):
    id: int
    clientId: int
    clientName: Optional[str] = None
    bidTypeId: Optional[int] = None
    bidTypeName: Optional[str] = None
    parentId: Optional[int] = None

    title: str
    amount: float
    status: str
    currentStatus: Optional[StatusResponse] = None
    allowedActions: List[str] = Field(default_factory=list)
    description: Optional[str] = None

    workAddress: Optional[str] = None
    contactFullName: Optional[str] = None
    contactPhone: Optional[str] = None

    createdBy: int
    creatorName: Optional[str] = None
    currentResponsibleUserId: Optional[int] = None
    currentResponsibleUserName: Optional[str] = None
    responsibleName: Optional[str] = None

    plannedResolutionDate: Optional[datetime] = None
    plannedReactionTimeMinutes: Optional[int] = None
    plannedDurationMinutes: Optional[int] = None
    assignedAt: Optional[datetime] = None
    spentTimeHours: Optional[float] = None

    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


class BidListResponse(BaseModel):
    data: List[BidResponse]
    pagination: Pagination


class BidHistoryEntry(BaseModel):
    date: Optional[datetime] = None
    user: Optional[str] = None
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    id: int
    bidId: int
    userId: int
    userName: Optional[str] = None
    content: str
    createdAt: Optional[datetime] = None


class CommentUpdateRequest(BaseModel):
    content: str
