# bidtrack/models/bid_type.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import String, DateTime, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from bidtrack.db.base import Base
from bidtrack.db.types import JSONType


class BidType(Base):
    """
    Workflow template for bids.

    statuses_json / transitions_json hold the whole workflow definition inline;
    every targeted edit rewrites the full list. `version` is bumped on each
    flush and checked on UPDATE, so a writer holding a stale copy fails
    instead of silently overwriting a concurrent edit.
    """

    __tablename__ = "bid_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # [{name, position, allowedActions, color?, responsibleRoleId?, responsibleUserId?}]
    statuses_json: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    # [{fromPosition, toPosition}]
    transitions_json: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )

    planned_reaction_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    planned_duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version}
