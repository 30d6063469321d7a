from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RoleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=512)
    permissions: Dict[str, Any] = Field(default_factory=dict)


class RoleResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    permissions: Dict[str, Any] = Field(default_factory=dict)
    createdAt: Optional[datetime] = None


class UserCreateRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1)
    fullName: str = Field(..., min_length=1, max_length=256)
    email: Optional[str] = Field(default=None, max_length=256)
    role: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    id: int
    username: str
    fullName: str
    email: Optional[str] = None
    role: str
    isActive: bool
    createdAt: Optional[datetime] = None


class RoleUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=512)
    permissions: Optional[Dict[str, Any]] = None


class UserUpdateRequest(BaseModel):
    username: Optional[str] = Field(default=None, min_length=1, max_length=64)
    password: Optional[str] = None
    fullName: Optional[str] = Field(default=None, min_length=1, max_length=256)
    email: Optional[str] = Field(default=None, max_length=256)
    role: Optional[str] = Field(default=None, min_length=1, max_length=128)
    isActive: Optional[bool] = None
