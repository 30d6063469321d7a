# bidtrack/schemas/bid_types.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# -----------------------
# Workflow elements
# -----------------------


class StatusSchema(BaseModel):
    """
    One element of a bid type's status set, as submitted with the bid type.
    Shape only: uniqueness and range rules apply on the targeted status endpoints.
    """
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, max_length=128)
    position: int
    allowedActions: List[str] = Field(default_factory=list)
    color: Optional[str] = None

    # role name, not a numeric id
    responsibleRoleId: Optional[str] = None
    responsibleUserId: Optional[Union[int, str]] = None

    @model_validator(mode="after")
    def _single_responsible(self) -> "StatusSchema":
        if self.responsibleRoleId and self.responsibleUserId:
            raise ValueError("Status may name a responsible role or a responsible user, not both.")
        return self


class TransitionSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    fromPosition: int
    toPosition: int


class StatusResponse(BaseModel):
    name: str
    position: int
    allowedActions: List[str] = Field(default_factory=list)
    color: Optional[str] = None
    responsibleRoleId: Optional[str] = None
    responsibleUserId: Optional[Union[int, str]] = None


# -----------------------
# Targeted status / transition edits
# -----------------------


class StatusCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    position: int
    allowedActions: Optional[List[str]] = None


class StatusUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    allowedActions: Optional[List[str]] = None


class TransitionCreateRequest(BaseModel):
    fromPosition: int
    toPosition: int


# -----------------------
# Bid type
# -----------------------


class BidTypeCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    description: Optional[str] = None
    statuses: List[StatusSchema] = Field(default_factory=list)
    transitions: List[TransitionSchema] = Field(default_factory=list)
    plannedReactionTimeMinutes: Optional[int] = Field(default=None, ge=0)
    plannedDurationMinutes: Optional[int] = Field(default=None, ge=0)


class BidTypeUpdateRequest(BidTypeCreateRequest):
    """Full replace; same shape as create."""


class BidTypeResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    statuses: List[StatusResponse]
    transitions: List[TransitionSchema]
    plannedReactionTimeMinutes: Optional[int] = None
    plannedDurationMinutes: Optional[int] = None
    version: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
