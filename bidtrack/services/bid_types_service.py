# bidtrack/services/bid_types_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from bidtrack.core import workflow
from bidtrack.core.errors import (
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
)
from bidtrack.models.bid_type import BidType

logger = logging.getLogger(__name__)


class BidTypeService:
    """
    Bid types and their inline workflow definition.

    Every status / transition edit is a read-modify-write of the whole list:
    - the row is read FOR UPDATE (serializes writers on PostgreSQL)
    - `expected_version`, when given, must match the stored version
    - the ORM version column rejects a flush made from a stale copy
    On any failure the session is rolled back and the stored lists are unchanged.
    """

    # ---------------------------
    # READS
    # ---------------------------

    def list(self, db: Session) -> List[BidType]:
        return (
            db.execute(
                select(BidType).order_by(BidType.created_at.desc(), BidType.id.desc())
            )
            .scalars()
            .all()
        )

    def get(self, db: Session, bid_type_id: int) -> BidType:
        bt = db.get(BidType, bid_type_id)
        if not bt:
            raise NotFoundError("Bid type not found")
        return bt

    def get_for_update(
        self,
        db: Session,
        bid_type_id: int,
        expected_version: Optional[int] = None,
    ) -> BidType:
        """
        Lock the bid type row and re-read it, so the lists we modify are current.
        """
        bt = (
            db.execute(
                select(BidType)
                .where(BidType.id == bid_type_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            .scalars()
            .one_or_none()
        )
        if not bt:
            raise NotFoundError("Bid type not found")
        if expected_version is not None and bt.version != expected_version:
            raise ConcurrentModificationError(
                f"Bid type was modified concurrently (expected version {expected_version}, "
                f"found {bt.version})"
            )
        return bt

    def list_statuses(self, db: Session, bid_type_id: int) -> List[Dict[str, Any]]:
        bt = self.get(db, bid_type_id)
        return workflow.sort_statuses(bt.statuses_json or [])

    def list_transitions(self, db: Session, bid_type_id: int) -> List[Dict[str, Any]]:
        bt = self.get(db, bid_type_id)
        return list(bt.transitions_json or [])

    def next_statuses(self, db: Session, bid_type_id: int, position: int) -> List[Dict[str, Any]]:
        bt = self.get(db, bid_type_id)
        return workflow.next_statuses(
            bt.statuses_json or [], bt.transitions_json or [], position=position
        )

    # ---------------------------
    # BID TYPE LIFECYCLE
    # ---------------------------

    def _assert_name_free(self, db: Session, name: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(BidType.id).where(BidType.name == name)
        if exclude_id is not None:
            stmt = stmt.where(BidType.id != exclude_id)
        if db.execute(stmt).first():
            raise ConflictError("Bid type with this name already exists")

    def create(
        self,
        db: Session,
        *,
        name: str,
        description: Optional[str],
        statuses: List[Dict[str, Any]],
        transitions: List[Dict[str, Any]],
        planned_reaction_time_minutes: Optional[int],
        planned_duration_minutes: Optional[int],
    ) -> BidType:
        self._assert_name_free(db, name)

        bt = BidType(
            name=name,
            description=description,
            statuses_json=list(statuses or []),
            transitions_json=list(transitions or []),
            planned_reaction_time_minutes=planned_reaction_time_minutes,
            planned_duration_minutes=planned_duration_minutes,
        )
        db.add(bt)
        self._commit(db)
        db.refresh(bt)

        logger.info("bid type created", extra={"bid_type_id": bt.id, "bid_type_name": bt.name})
        return bt

    def update(
        self,
        db: Session,
        bid_type_id: int,
        *,
        name: str,
        description: Optional[str],
        statuses: List[Dict[str, Any]],
        transitions: List[Dict[str, Any]],
        planned_reaction_time_minutes: Optional[int],
        planned_duration_minutes: Optional[int],
        expected_version: Optional[int] = None,
    ) -> BidType:
        bt = self.get_for_update(db, bid_type_id, expected_version)
        self._assert_name_free(db, name, exclude_id=bt.id)

        bt.name = name
        bt.description = description
        bt.statuses_json = list(statuses or [])
        bt.transitions_json = list(transitions or [])
        bt.planned_reaction_time_minutes = planned_reaction_time_minutes
        bt.planned_duration_minutes = planned_duration_minutes

        self._commit(db)
        db.refresh(bt)
        return bt

    def delete(self, db: Session, bid_type_id: int) -> None:
        bt = self.get(db, bid_type_id)
        db.delete(bt)
        self._commit(db)
        logger.info("bid type deleted", extra={"bid_type_id": bid_type_id})

    # ---------------------------
    # STATUS SET
    # ---------------------------

    def create_status(
        self,
        db: Session,
        bid_type_id: int,
        *,
        name: str,
        position: int,
        allowed_actions: Optional[List[str]] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        bt = self.get_for_update(db, bid_type_id, expected_version)
        try:
            bt.statuses_json, created = workflow.add_status(
                bt.statuses_json or [],
                name=name,
                position=position,
                allowed_actions=allowed_actions,
            )
        except ValueError:
            db.rollback()
            raise
        self._commit(db)
        return created

    def update_status(
        self,
        db: Session,
        bid_type_id: int,
        *,
        position: int,
        name: str,
        allowed_actions: Optional[List[str]] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        bt = self.get_for_update(db, bid_type_id, expected_version)
        try:
            bt.statuses_json, updated = workflow.update_status(
                bt.statuses_json or [],
                position=position,
                name=name,
                allowed_actions=allowed_actions,
            )
        except ValueError:
            db.rollback()
            raise
        self._commit(db)
        return updated

    def delete_status(
        self,
        db: Session,
        bid_type_id: int,
        *,
        position: int,
        expected_version: Optional[int] = None,
    ) -> None:
        bt = self.get_for_update(db, bid_type_id, expected_version)
        try:
            bt.statuses_json = workflow.remove_status(bt.statuses_json or [], position=position)
        except ValueError:
            db.rollback()
            raise
        self._commit(db)

    # ---------------------------
    # TRANSITION GRAPH
    # ---------------------------

    def create_transition(
        self,
        db: Session,
        bid_type_id: int,
        *,
        from_position: int,
        to_position: int,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        bt = self.get_for_update(db, bid_type_id, expected_version)
        try:
            bt.transitions_json, created = workflow.add_transition(
                bt.statuses_json or [],
                bt.transitions_json or [],
                from_position=from_position,
                to_position=to_position,
            )
        except ValueError:
            db.rollback()
            raise
        self._commit(db)
        return created

    def delete_transition(
        self,
        db: Session,
        bid_type_id: int,
        *,
        from_position: int,
        to_position: int,
        expected_version: Optional[int] = None,
    ) -> None:
        bt = self.get_for_update(db, bid_type_id, expected_version)
        try:
            bt.transitions_json = workflow.remove_transition(
                bt.transitions_json or [],
                from_position=from_position,
                to_position=to_position,
            )
        except ValueError:
            db.rollback()
            raise
        self._commit(db)

    # ---------------------------
    # INTERNAL
    # ---------------------------

    def _commit(self, db: Session) -> None:
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            raise ConcurrentModificationError("Bid type was modified concurrently")
        except IntegrityError:
            db.rollback()
            raise ConflictError("Bid type with this name already exists")
