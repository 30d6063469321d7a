# bidtrack/api/v1/bid_types.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from sqlalchemy.orm import Session

from bidtrack.core.auth_deps import get_current_principal
from bidtrack.db.session import get_db
from bidtrack.models.bid_type import BidType
from bidtrack.policies.rbac import (
    Principal,
    PERM_BID_TYPE_CREATE,
    PERM_BID_TYPE_DELETE,
    PERM_BID_TYPE_EDIT,
    require_permission,
)
from bidtrack.schemas.bid_types import (
    BidTypeCreateRequest,
    BidTypeResponse,
    BidTypeUpdateRequest,
    StatusCreateRequest,
    StatusResponse,
    StatusUpdateRequest,
    TransitionCreateRequest,
    TransitionSchema,
)
from bidtrack.services.bid_types_service import BidTypeService

router = APIRouter(prefix="/bid-types")


def _resp(bt: BidType) -> dict:
    return {
        "id": bt.id,
        "name": bt.name,
        "description": bt.description,
        "statuses": bt.statuses_json if isinstance(bt.statuses_json, list) else [],
        "transitions": bt.transitions_json if isinstance(bt.transitions_json, list) else [],
        "plannedReactionTimeMinutes": bt.planned_reaction_time_minutes,
        "plannedDurationMinutes": bt.planned_duration_minutes,
        "version": bt.version,
        "createdAt": bt.created_at,
        "updatedAt": bt.updated_at,
    }


def expected_version(if_match: Optional[str] = Header(default=None)) -> Optional[int]:
    """
    Optional compare-and-swap token: `If-Match: <version>` (quotes allowed).
    """
    if if_match is None:
        return None
    raw = if_match.strip().removeprefix("W/").strip('"')
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="If-Match must be a bid type version number.")


# ─────────────────────────────────────────────
# BID TYPES
# ─────────────────────────────────────────────


@router.get("", response_model=List[BidTypeResponse])
def list_bid_types(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return [_resp(bt) for bt in BidTypeService().list(db)]


@router.post("", response_model=BidTypeResponse, status_code=201)
def create_bid_type(
    body: BidTypeCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_TYPE_CREATE)

    bt = BidTypeService().create(
        db,
        name=body.name,
        description=body.description,
        statuses=[s.model_dump(exclude_none=True) for s in body.statuses],
        transitions=[t.model_dump() for t in body.transitions],
        planned_reaction_time_minutes=body.plannedReactionTimeMinutes,
        planned_duration_minutes=body.plannedDurationMinutes,
    )
    return _resp(bt)


@router.get("/{bidTypeId}", response_model=BidTypeResponse)
def get_bid_type(
    bidTypeId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return _resp(BidTypeService().get(db, bidTypeId))


@router.put("/{bidTypeId}", response_model=BidTypeResponse)
def update_bid_type(
    bidTypeId: int,
    body: BidTypeUpdateRequest,
    version: Optional[int] = Depends(expected_version),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_TYPE_EDIT)

    bt = BidTypeService().update(
        db,
        bidTypeId,
        name=body.name,
        description=body.description,
        statuses=[s.model_dump(exclude_none=True) for s in body.statuses],
        transitions=[t.model_dump() for t in body.transitions],
        planned_reaction_time_minutes=body.plannedReactionTimeMinutes,
        planned_duration_minutes=body.plannedDurationMinutes,
        expected_version=version,
    )
    return _resp(bt)


@router.delete("/{bidTypeId}", status_code=204)
def delete_bid_type(
    bidTypeId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_TYPE_DELETE)
    BidTypeService().delete(db, bidTypeId)
    return Response(status_code=204)


# ─────────────────────────────────────────────
# STATUSES
# ─────────────────────────────────────────────


@router.get("/{bidTypeId}/statuses", response_model=List[StatusResponse])
def list_statuses(
    bidTypeId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return BidTypeService().list_statuses(db, bidTypeId)


@router.post("/{bidTypeId}/statuses", response_model=StatusResponse, status_code=201)
def create_status(
    bidTypeId: int,
    body: StatusCreateRequest,
    version: Optional[int] = Depends(expected_version),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_TYPE_EDIT)
    return BidTypeService().create_status(
        db,
        bidTypeId,
        name=body.name,
        position=body.position,
        allowed_actions=body.allowedActions,
        expected_version=version,
    )


@router.put("/{bidTypeId}/statuses/{position}", response_model=StatusResponse)
def update_status(
    bidTypeId: int,
    position: int,
    body: StatusUpdateRequest,
    version: Optional[int] = Depends(expected_version),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_TYPE_EDIT)
    return BidTypeService().update_status(
        db,
        bidTypeId,
        position=position,
        name=body.name,
        allowed_actions=body.allowedActions,
        expected_version=version,
    )


@router.delete("/{bidTypeId}/statuses/{position}", status_code=204)
def delete_status(
    bidTypeId: int,
    position: int,
    version: Optional[int] = Depends(expected_version),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_TYPE_EDIT)
    BidTypeService().delete_status(db, bidTypeId, position=position, expected_version=version)
    return Response(status_code=204)


@router.get("/{bidTypeId}/statuses/{position}/next", response_model=List[StatusResponse])
def list_next_statuses(
    bidTypeId: int,
    position: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return BidTypeService().next_statuses(db, bidTypeId, position)


# ─────────────────────────────────────────────
# TRANSITIONS
# ─────────────────────────────────────────────


@router.get("/{bidTypeId}/transitions", response_model=List[TransitionSchema])
def list_transitions(
    bidTypeId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return BidTypeService().list_transitions(db, bidTypeId)


@router.post("/{bidTypeId}/transitions", response_model=TransitionSchema, status_code=201)
def create_transition(
    bidTypeId: int,
    body: TransitionCreateRequest,
    version: Optional[int] = Depends(expected_version),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_TYPE_EDIT)
    return BidTypeService().create_transition(
        db,
        bidTypeId,
        from_position=body.fromPosition,
        to_position=body.toPosition,
        expected_version=version,
    )


@router.delete("/{bidTypeId}/transitions/{fromPosition}/{toPosition}", status_code=204)
def delete_transition(
    bidTypeId: int,
    fromPosition: int,
    toPosition: int,
    version: Optional[int] = Depends(expected_version),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_TYPE_EDIT)
    BidTypeService().delete_transition(
        db,
        bidTypeId,
        from_position=fromPosition,
        to_position=toPosition,
        expected_version=version,
    )
    return Response(status_code=204)
