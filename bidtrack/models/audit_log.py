from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import String, DateTime, Integer, Text, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bidtrack.db.base import Base
from bidtrack.db.types import JSONType


class BidAuditLog(Base):
    """
    Append-only audit trail for bids (status changes, edits).
    Rows are never updated; they are removed only together with their bid.
    """
    __tablename__ = "bid_audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    bid_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bids.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. BID_STATUS_CHANGED
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    request_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User", lazy="joined")

    __table_args__ = (
        Index("ix_bid_audit_bid_created", "bid_id", "created_at"),
        Index("ix_bid_audit_action", "action"),
    )
