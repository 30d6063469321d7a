# bidtrack/models/bid.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Integer,
    Numeric,
    Text,
    ForeignKey,
    Index,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bidtrack.db.base import Base


class Bid(Base):
    __tablename__ = "bids"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    bid_type_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("bid_types.id", ondelete="SET NULL"), nullable=True
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("bids.id", ondelete="SET NULL"), nullable=True
    )

    title: Mapped[str] = mapped_column(String(512), nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0"), server_default=text("0")
    )

    # name of a status in the bid type's status set
    status: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    work_address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    contact_full_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    current_responsible_user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # SLA
    planned_resolution_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    planned_reaction_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    planned_duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    spent_time_hours: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    client = relationship("Client", back_populates="bids")
    bid_type = relationship("BidType", lazy="joined")
    creator = relationship("User", foreign_keys=[created_by], lazy="joined")
    current_responsible = relationship(
        "User", foreign_keys=[current_responsible_user_id], lazy="joined"
    )
    parent = relationship("Bid", remote_side=[id])

    comments = relationship(
        "BidComment",
        back_populates="bid",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BidComment.created_at",
    )

    __table_args__ = (
        Index("ix_bids_status", "status"),
        Index("ix_bids_bid_type", "bid_type_id"),
        Index("ix_bids_created_at", "created_at"),
    )
