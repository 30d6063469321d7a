# bidtrack/models/bid_comment.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, Text, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bidtrack.db.base import Base


class BidComment(Base):
    __tablename__ = "bid_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    bid_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bids.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    bid = relationship("Bid", back_populates="comments")
    user = relationship("User", lazy="joined")
