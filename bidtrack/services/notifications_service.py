# bidtrack/services/notifications_service.py
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from bidtrack.core.errors import NotFoundError
from bidtrack.models.bid import Bid
from bidtrack.models.notification import Notification
from bidtrack.models.user import User

logger = logging.getLogger(__name__)

FILTERS = ("all", "unread", "read")


class NotificationType:
    GENERAL = "general"
    BID_ASSIGNED = "bid_assigned"
    BID_STATUS = "bid_status"


class NotificationsService:
    """
    Per-user inbox. A user only ever sees and changes their own rows;
    someone else's notification id behaves as if it did not exist.
    """

    def list(
        self,
        db: Session,
        *,
        user_id: int,
        filter: str = "all",
        limit: int = 50,
    ) -> Tuple[List[Notification], int]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if filter == "unread":
            stmt = stmt.where(Notification.is_read.is_(False))
        elif filter == "read":
            stmt = stmt.where(Notification.is_read.is_(True))

        rows = (
            db.execute(
                stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
            )
            .scalars()
            .all()
        )
        return rows, self.unread_count(db, user_id=user_id)

    def unread_count(self, db: Session, *, user_id: int) -> int:
        return db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        ).scalar_one()

    def _own(self, db: Session, notification_id: int, user_id: int) -> Notification:
        row = db.get(Notification, notification_id)
        if not row or row.user_id != user_id:
            raise NotFoundError("Notification not found")
        return row

    def mark_read(self, db: Session, notification_id: int, *, user_id: int) -> Notification:
        row = self._own(db, notification_id, user_id)
        row.is_read = True
        db.commit()
        db.refresh(row)
        return row

    def mark_all_read(self, db: Session, *, user_id: int) -> int:
        result = db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount or 0

    def delete(self, db: Session, notification_id: int, *, user_id: int) -> None:
        row = self._own(db, notification_id, user_id)
        db.delete(row)
        db.commit()

    def create(
        self,
        db: Session,
        *,
        user_id: int,
        title: str,
        message: str,
        type: Optional[str] = None,
        bid_id: Optional[int] = None,
        commit: bool = True,
    ) -> Notification:
        """
        With commit=False the row joins the caller's transaction.
        """
        if not db.get(User, user_id):
            raise NotFoundError("User not found")
        if bid_id is not None and not db.get(Bid, bid_id):
            raise NotFoundError("Bid not found")

        row = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type or NotificationType.GENERAL,
            bid_id=bid_id,
        )
        db.add(row)
        if commit:
            db.commit()
            db.refresh(row)

        logger.info(
            "notification created",
            extra={"user_id": user_id, "bid_id": bid_id, "notification_type": row.type},
        )
        return row
