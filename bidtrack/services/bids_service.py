# bidtrack/services/bids_service.py
from __future__ import annotations

import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bidtrack.core import workflow
from bidtrack.core.config import get_settings
from bidtrack.core.errors import (
    CommentBidMismatchError,
    DomainError,
    InvalidStatusError,
    NotFoundError,
    TransitionNotAllowedError,
)
from bidtrack.models.bid import Bid
from bidtrack.models.bid_comment import BidComment
from bidtrack.models.bid_type import BidType
from bidtrack.models.client import Client
from bidtrack.models.role import Role
from bidtrack.models.user import User
from bidtrack.services.audit_service import AuditAction, AuditService
from bidtrack.services.notifications_service import NotificationsService, NotificationType

logger = logging.getLogger(__name__)

UNASSIGNED_LABEL = "Не указан"


# payload key -> Bid attribute
_FIELD_MAP = {
    "clientId": "client_id",
    "title": "title",
    "amount": "amount",
    "description": "description",
    "bidTypeId": "bid_type_id",
    "workAddress": "work_address",
    "contactFullName": "contact_full_name",
    "contactPhone": "contact_phone",
    "plannedResolutionDate": "planned_resolution_date",
    "plannedReactionTimeMinutes": "planned_reaction_time_minutes",
    "plannedDurationMinutes": "planned_duration_minutes",
    "assignedAt": "assigned_at",
    "spentTimeHours": "spent_time_hours",
    "currentResponsibleUserId": "current_responsible_user_id",
}


def _jsonable(v: Any) -> Any:
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, datetime):
        return v.isoformat()
    return v


class BidService:
    """
    Bids and their status lifecycle.

    Status moves go through change_status(). When transition enforcement is on
    and the bid has a type, a move A -> B needs an edge A.position -> B.position
    in the type's graph. When off, any status string is accepted.
    """

    def __init__(self, enforce_transitions: Optional[bool] = None):
        if enforce_transitions is None:
            enforce_transitions = get_settings().enforce_status_transitions
        self.enforce_transitions = enforce_transitions
        self.audit = AuditService()
        self.notifications = NotificationsService()

    # ---------------------------
    # READS
    # ---------------------------

    def get(self, db: Session, bid_id: int) -> Bid:
        bid = db.get(Bid, bid_id)
        if not bid:
            raise NotFoundError("Bid not found")
        return bid

    def list(self, db: Session, *, page: int = 1, limit: int = 20) -> Tuple[List[Bid], Dict[str, int]]:
        total = db.execute(select(func.count(Bid.id))).scalar_one()
        rows = (
            db.execute(
                select(Bid)
                .order_by(Bid.created_at.desc(), Bid.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .unique()
            .scalars()
            .all()
        )
        pagination = {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }
        return rows, pagination

    def current_status(self, bid: Bid) -> Optional[Dict[str, Any]]:
        if not bid.bid_type:
            return None
        return workflow.find_status_by_name(bid.bid_type.statuses_json or [], bid.status)

    def responsible_name(self, db: Session, bid: Bid) -> Optional[str]:
        """
        Resolution order:
        1. user assigned on the bid
        2. responsible user of the current status
        3. responsible role of the current status

        A reference that no longer resolves renders as UNASSIGNED_LABEL.
        """
        if bid.current_responsible_user_id:
            return bid.current_responsible.full_name if bid.current_responsible else UNASSIGNED_LABEL

        status = self.current_status(bid)
        if not status:
            return None

        raw_user_id = status.get("responsibleUserId")
        if raw_user_id not in (None, ""):
            try:
                user = db.get(User, int(raw_user_id))
            except (TypeError, ValueError):
                logger.warning(
                    "invalid responsibleUserId on status",
                    extra={"bid_id": bid.id, "value": str(raw_user_id)},
                )
                user = None
            return user.full_name if user else UNASSIGNED_LABEL

        role_name = status.get("responsibleRoleId")
        if role_name:
            role = db.execute(select(Role).where(Role.name == role_name)).scalar_one_or_none()
            return f"Роль: {role.name}" if role else UNASSIGNED_LABEL

        return None

    # ---------------------------
    # CREATE / UPDATE / DELETE
    # ---------------------------

    def _require_client(self, db: Session, client_id: int) -> Client:
        client = db.get(Client, client_id)
        if not client:
            raise NotFoundError("Client not found")
        return client

    def _require_bid_type(self, db: Session, bid_type_id: int) -> BidType:
        bt = db.get(BidType, bid_type_id)
        if not bt:
            raise NotFoundError("Bid type not found")
        return bt

    def _require_user(self, db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _initial_status(self, bid_type: Optional[BidType], requested: Optional[str]) -> str:
        if bid_type is None:
            return requested or get_settings().default_bid_status

        statuses = bid_type.statuses_json or []
        if requested:
            if self.enforce_transitions and workflow.find_status_by_name(statuses, requested) is None:
                raise InvalidStatusError(
                    f'Status "{requested}" is not defined for bid type "{bid_type.name}"'
                )
            return requested

        first = workflow.initial_status(statuses)
        return first["name"] if first else get_settings().default_bid_status

    def create(
        self,
        db: Session,
        *,
        actor_user_id: int,
        data: Dict[str, Any],
    ) -> Bid:
        self._require_client(db, data["clientId"])

        parent_id = data.get("parentId")
        if parent_id is not None and not db.get(Bid, parent_id):
            raise NotFoundError("Parent bid not found")

        bid_type = None
        if data.get("bidTypeId") is not None:
            bid_type = self._require_bid_type(db, data["bidTypeId"])

        reaction = data.get("plannedReactionTimeMinutes")
        duration = data.get("plannedDurationMinutes")
        if bid_type is not None:
            # SLA defaults from the bid type unless the caller overrides them
            if reaction is None:
                reaction = bid_type.planned_reaction_time_minutes
            if duration is None:
                duration = bid_type.planned_duration_minutes

        bid = Bid(
            client_id=data["clientId"],
            bid_type_id=bid_type.id if bid_type else None,
            parent_id=parent_id,
            title=data["title"],
            amount=data.get("amount") or Decimal("0"),
            status=self._initial_status(bid_type, data.get("status")),
            description=data.get("description"),
            work_address=data.get("workAddress"),
            contact_full_name=data.get("contactFullName"),
            contact_phone=data.get("contactPhone"),
            created_by=actor_user_id,
            planned_resolution_date=data.get("plannedResolutionDate"),
            planned_reaction_time_minutes=reaction,
            planned_duration_minutes=duration,
            assigned_at=data.get("assignedAt"),
            spent_time_hours=data.get("spentTimeHours"),
        )
        db.add(bid)
        db.commit()
        db.refresh(bid)

        logger.info(
            "bid created",
            extra={"bid_id": bid.id, "bid_type_id": bid.bid_type_id, "status": bid.status},
        )
        return bid

    def update(
        self,
        db: Session,
        bid_id: int,
        *,
        actor_user_id: int,
        changes: Dict[str, Any],
        request_id: Optional[str] = None,
    ) -> Bid:
        """
        `changes` holds only the keys the caller actually sent.
        """
        bid = self.get(db, bid_id)

        if changes.get("clientId") is not None:
            self._require_client(db, changes["clientId"])
        if changes.get("bidTypeId") is not None:
            self._require_bid_type(db, changes["bidTypeId"])
        if changes.get("currentResponsibleUserId") is not None:
            self._require_user(db, changes["currentResponsibleUserId"])

        changed: Dict[str, Any] = {}
        for key, attr in _FIELD_MAP.items():
            if key not in changes:
                continue
            value = changes[key]
            if key in ("clientId", "title") and value is None:
                continue
            if key == "amount" and value is None:
                value = Decimal("0")
            if getattr(bid, attr) != value:
                setattr(bid, attr, value)
                changed[key] = _jsonable(value)

        if "bidTypeId" in changed:
            # relationship must follow the new foreign key before the status gate reads it
            db.flush()
            db.refresh(bid, attribute_names=["bid_type"])

        responsible_changed = "currentResponsibleUserId" in changed
        if responsible_changed:
            new_responsible = changed.pop("currentResponsibleUserId")
            self.audit.write(
                db,
                bid_id=bid.id,
                user_id=actor_user_id,
                action=AuditAction.BID_RESPONSIBLE_CHANGED,
                details=f"Responsible user set to {new_responsible}",
                details_json={"currentResponsibleUserId": new_responsible},
                request_id=request_id,
                commit=False,
            )

        if changed:
            self.audit.write(
                db,
                bid_id=bid.id,
                user_id=actor_user_id,
                action=AuditAction.BID_UPDATED,
                details="Changed fields: " + ", ".join(sorted(changed)),
                details_json=changed,
                request_id=request_id,
                commit=False,
            )

        new_status = changes.get("status")
        if new_status is not None and new_status != bid.status:
            self._apply_status(
                db,
                bid,
                to_status=new_status,
                actor_user_id=actor_user_id,
                request_id=request_id,
            )
        elif "bidTypeId" in changed:
            self._rebase_status(db, bid, actor_user_id=actor_user_id, request_id=request_id)

        if responsible_changed and bid.current_responsible_user_id not in (None, actor_user_id):
            self.notifications.create(
                db,
                user_id=bid.current_responsible_user_id,
                title="Назначена заявка",
                message=f"Вам назначена заявка #{bid.id}: {bid.title}",
                type=NotificationType.BID_ASSIGNED,
                bid_id=bid.id,
                commit=False,
            )

        db.commit()
        db.refresh(bid)
        return bid

    def delete(self, db: Session, bid_id: int) -> Bid:
        bid = self.get(db, bid_id)
        db.delete(bid)
        db.commit()
        logger.info("bid deleted", extra={"bid_id": bid_id})
        return bid

    # ---------------------------
    # STATUS LIFECYCLE
    # ---------------------------

    def is_move_allowed(self, bid: Bid, to_status: str) -> bool:
        if not self.enforce_transitions or bid.bid_type is None:
            return True

        statuses = bid.bid_type.statuses_json or []
        transitions = bid.bid_type.transitions_json or []

        if workflow.find_status_by_name(statuses, to_status) is None:
            return False
        # current status renamed or removed from the type: allow re-entry into the set
        if workflow.find_status_by_name(statuses, bid.status) is None:
            return True
        return workflow.is_transition_allowed(statuses, transitions, bid.status, to_status)

    def _apply_status(
        self,
        db: Session,
        bid: Bid,
        *,
        to_status: str,
        actor_user_id: int,
        request_id: Optional[str],
        comment: Optional[str] = None,
    ) -> None:
        if not self.is_move_allowed(bid, to_status):
            # is_move_allowed only refuses when the bid has a type
            statuses = bid.bid_type.statuses_json or []
            if workflow.find_status_by_name(statuses, to_status) is None:
                err: ValueError = InvalidStatusError(
                    f'Status "{to_status}" is not defined for bid type "{bid.bid_type.name}"'
                )
            else:
                err = TransitionNotAllowedError(
                    f'Transition from "{bid.status}" to "{to_status}" is not allowed'
                )
            db.rollback()
            raise err

        old_status = bid.status
        bid.status = to_status

        details_json: Dict[str, Any] = {"from": old_status, "to": to_status}
        if comment:
            details_json["comment"] = comment

        self.audit.write(
            db,
            bid_id=bid.id,
            user_id=actor_user_id,
            action=AuditAction.BID_STATUS_CHANGED,
            details=f'Status changed from "{old_status}" to "{to_status}"',
            details_json=details_json,
            request_id=request_id,
            commit=False,
        )

        if bid.current_responsible_user_id not in (None, actor_user_id):
            self.notifications.create(
                db,
                user_id=bid.current_responsible_user_id,
                title="Изменён статус заявки",
                message=f'Заявка #{bid.id}: "{old_status}" -> "{to_status}"',
                type=NotificationType.BID_STATUS,
                bid_id=bid.id,
                commit=False,
            )

        logger.info(
            "bid status changed",
            extra={"bid_id": bid.id, "from_status": old_status, "to_status": to_status},
        )

    def _rebase_status(
        self,
        db: Session,
        bid: Bid,
        *,
        actor_user_id: int,
        request_id: Optional[str],
    ) -> None:
        """
        After a bid type change, a status the new type does not define is
        replaced by the new type's initial status.
        """
        if not self.enforce_transitions or bid.bid_type is None:
            return

        statuses = bid.bid_type.statuses_json or []
        if workflow.find_status_by_name(statuses, bid.status) is not None:
            return

        first = workflow.initial_status(statuses)
        if first is None:
            db.rollback()
            raise InvalidStatusError(
                f'Bid type "{bid.bid_type.name}" has no initial status'
            )

        old_status = bid.status
        bid.status = first["name"]
        self.audit.write(
            db,
            bid_id=bid.id,
            user_id=actor_user_id,
            action=AuditAction.BID_STATUS_CHANGED,
            details=f'Status changed from "{old_status}" to "{bid.status}" (bid type changed)',
            details_json={"from": old_status, "to": bid.status, "reason": "bid_type_changed"},
            request_id=request_id,
            commit=False,
        )

    def change_status(
        self,
        db: Session,
        bid_id: int,
        *,
        to_status: str,
        actor_user_id: int,
        request_id: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> Bid:
        """
        Idempotent when the bid already sits in `to_status` (no audit entry).
        """
        bid = self.get(db, bid_id)
        if bid.status == to_status:
            return bid

        self._apply_status(
            db,
            bid,
            to_status=to_status,
            actor_user_id=actor_user_id,
            request_id=request_id,
            comment=comment,
        )
        db.commit()
        db.refresh(bid)
        return bid

    def available_statuses(self, bid: Bid) -> List[Dict[str, Any]]:
        """
        Statuses the bid may move to next (all of them when not enforced).
        """
        if bid.bid_type is None:
            return []
        statuses = bid.bid_type.statuses_json or []
        return workflow.sort_statuses(
            [s for s in statuses if s.get("name") != bid.status and self.is_move_allowed(bid, s["name"])]
        )

    # ---------------------------
    # COMMENTS
    # ---------------------------

    def list_comments(self, db: Session, bid_id: int) -> List[BidComment]:
        self.get(db, bid_id)
        return (
            db.execute(
                select(BidComment)
                .where(BidComment.bid_id == bid_id)
                .order_by(BidComment.created_at.asc(), BidComment.id.asc())
            )
            .scalars()
            .all()
        )

    def add_comment(self, db: Session, bid_id: int, *, user_id: int, content: str) -> BidComment:
        self.get(db, bid_id)
        row = BidComment(bid_id=bid_id, user_id=user_id, content=content)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    def _own_comment(self, db: Session, bid_id: int, comment_id: int, user_id: int, verb: str) -> BidComment:
        row = db.get(BidComment, comment_id)
        if not row:
            raise NotFoundError("Comment not found")
        if row.bid_id != bid_id:
            raise CommentBidMismatchError("Comment does not belong to this bid")
        if row.user_id != user_id:
            raise PermissionError(f"You can only {verb} your own comments")
        return row

    def update_comment(
        self,
        db: Session,
        bid_id: int,
        comment_id: int,
        *,
        user_id: int,
        content: str,
    ) -> BidComment:
        row = self._own_comment(db, bid_id, comment_id, user_id, "edit")

        content = (content or "").strip()
        if not content:
            raise DomainError("Comment content is required")

        row.content = content
        db.commit()
        db.refresh(row)
        return row

    def delete_comment(
        self,
        db: Session,
        bid_id: int,
        comment_id: int,
        *,
        user_id: int,
        request_id: Optional[str] = None,
    ) -> None:
        row = self._own_comment(db, bid_id, comment_id, user_id, "delete")

        self.audit.write(
            db,
            bid_id=bid_id,
            user_id=user_id,
            action=AuditAction.COMMENT_DELETED,
            details=f'Comment: "{row.content}"',
            details_json={"commentId": row.id},
            request_id=request_id,
            commit=False,
        )
        db.delete(row)
        db.commit()

    # ---------------------------
    # HISTORY
    # ---------------------------

    def history(self, db: Session, bid_id: int) -> List[Dict[str, Any]]:
        """
        Timeline: creation, comments and audit entries, oldest first.
        """
        bid = self.get(db, bid_id)

        entries: List[Dict[str, Any]] = [
            {
                "date": bid.created_at,
                "user": bid.creator.full_name if bid.creator else None,
                "action": "Bid created",
                "details": {},
            }
        ]

        for c in self.list_comments(db, bid_id):
            entries.append(
                {
                    "date": c.created_at,
                    "user": c.user.full_name if c.user else None,
                    "action": f"Comment added: {c.content}",
                    "details": {"commentId": c.id},
                }
            )

        for log in self.audit.for_bid(db, bid_id):
            entries.append(
                {
                    "date": log.created_at,
                    "user": log.user.full_name if log.user else None,
                    "action": log.action + (f": {log.details}" if log.details else ""),
                    "details": log.details_json or {},
                }
            )

        # stable: equal timestamps keep creation -> comments -> audit order
        entries.sort(key=lambda e: e["date"] or bid.created_at)
        return entries
