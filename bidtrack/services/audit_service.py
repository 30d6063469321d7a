from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from bidtrack.models.audit_log import BidAuditLog


class AuditAction:
    BID_UPDATED = "BID_UPDATED"
    BID_STATUS_CHANGED = "BID_STATUS_CHANGED"
    BID_RESPONSIBLE_CHANGED = "BID_RESPONSIBLE_CHANGED"
    COMMENT_DELETED = "COMMENT_DELETED"


class AuditService:
    def write(
        self,
        db: Session,
        *,
        bid_id: int,
        user_id: Optional[int],
        action: str,
        details: Optional[str],
        details_json: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
        commit: bool = True,
    ) -> BidAuditLog:
        """
        Append-only insert. With commit=False the row joins the caller's
        transaction, so it lands together with the change it describes.
        """
        row = BidAuditLog(
            bid_id=bid_id,
            user_id=user_id,
            action=action,
            details=details,
            details_json=details_json or {},
            request_id=request_id,
        )
        db.add(row)
        if commit:
            db.commit()
            db.refresh(row)
        return row

    def for_bid(self, db: Session, bid_id: int) -> List[BidAuditLog]:
        return (
            db.execute(
                select(BidAuditLog)
                .where(BidAuditLog.bid_id == bid_id)
                .order_by(BidAuditLog.created_at.asc(), BidAuditLog.id.asc())
            )
            .scalars()
            .all()
        )
