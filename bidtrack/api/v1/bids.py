# bidtrack/api/v1/bids.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from bidtrack.core.auth_deps import get_current_principal
from bidtrack.db.session import get_db
from bidtrack.models.bid import Bid
from bidtrack.policies.rbac import (
    Principal,
    PERM_BID_CREATE,
    PERM_BID_DELETE,
    PERM_BID_EDIT,
    require_permission,
)
from bidtrack.schemas.bid_types import StatusResponse
from bidtrack.schemas.bids import (
    BidCreateRequest,
    BidHistoryEntry,
    BidListResponse,
    BidResponse,
    BidStatusChangeRequest,
    BidUpdateRequest,
    CommentCreateRequest,
    CommentResponse,
    CommentUpdateRequest,
)
from bidtrack.services.bids_service import BidService

router = APIRouter(prefix="/bids")


def _num(v):
    return float(v) if v is not None else None


def _resp(db: Session, svc: BidService, b: Bid) -> dict:
    current = svc.current_status(b)
    return {
        "id": b.id,
        "clientId": b.client_id,
        "clientName": b.client.name if b.client else None,
        "bidTypeId": b.bid_type_id,
        "bidTypeName": b.bid_type.name if b.bid_type else None,
        "parentId": b.parent_id,
        "title": b.title,
        "amount": float(b.amount or 0),
        "status": b.status,
        "currentStatus": current,
        "allowedActions": list((current or {}).get("allowedActions") or []),
        "description": b.description,
        "workAddress": b.work_address,
        "contactFullName": b.contact_full_name,
        "contactPhone": b.contact_phone,
        "createdBy": b.created_by,
        "creatorName": b.creator.full_name if b.creator else None,
        "currentResponsibleUserId": b.current_responsible_user_id,
        "currentResponsibleUserName": (
            b.current_responsible.full_name if b.current_responsible else None
        ),
        "responsibleName": svc.responsible_name(db, b),
        "plannedResolutionDate": b.planned_resolution_date,
        "plannedReactionTimeMinutes": b.planned_reaction_time_minutes,
        "plannedDurationMinutes": b.planned_duration_minutes,
        "assignedAt": b.assigned_at,
        "spentTimeHours": _num(b.spent_time_hours),
        "createdAt": b.created_at,
        "updatedAt": b.updated_at,
    }


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.get("", response_model=BidListResponse)
def list_bids(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    svc = BidService()
    rows, pagination = svc.list(db, page=page, limit=limit)
    return {"data": [_resp(db, svc, b) for b in rows], "pagination": pagination}


@router.post("", response_model=BidResponse, status_code=201)
def create_bid(
    body: BidCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_CREATE)

    svc = BidService()
    bid = svc.create(db, actor_user_id=principal.user_id, data=body.model_dump())
    return _resp(db, svc, bid)


@router.get("/{bidId}", response_model=BidResponse)
def get_bid(
    bidId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    svc = BidService()
    return _resp(db, svc, svc.get(db, bidId))


@router.put("/{bidId}", response_model=BidResponse)
def update_bid(
    request: Request,
    bidId: int,
    body: BidUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_EDIT)

    svc = BidService()
    bid = svc.update(
        db,
        bidId,
        actor_user_id=principal.user_id,
        changes=body.model_dump(exclude_unset=True),
        request_id=_request_id(request),
    )
    return _resp(db, svc, bid)


@router.delete("/{bidId}", status_code=204)
def delete_bid(
    bidId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_DELETE)
    BidService().delete(db, bidId)
    return Response(status_code=204)


# ─────────────────────────────────────────────
# STATUS LIFECYCLE
# ─────────────────────────────────────────────


@router.post("/{bidId}/status", response_model=BidResponse)
def change_bid_status(
    request: Request,
    bidId: int,
    body: BidStatusChangeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_BID_EDIT)

    svc = BidService()
    bid = svc.change_status(
        db,
        bidId,
        to_status=body.status,
        actor_user_id=principal.user_id,
        request_id=_request_id(request),
        comment=body.comment,
    )
    return _resp(db, svc, bid)


@router.get("/{bidId}/next-statuses", response_model=List[StatusResponse])
def list_available_statuses(
    bidId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    svc = BidService()
    return svc.available_statuses(svc.get(db, bidId))


@router.get("/{bidId}/history", response_model=List[BidHistoryEntry])
def get_bid_history(
    bidId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return BidService().history(db, bidId)


# ─────────────────────────────────────────────
# COMMENTS
# ─────────────────────────────────────────────


def _comment(c) -> dict:
    return {
        "id": c.id,
        "bidId": c.bid_id,
        "userId": c.user_id,
        "userName": c.user.full_name if c.user else None,
        "content": c.content,
        "createdAt": c.created_at,
    }


@router.get("/{bidId}/comments", response_model=List[CommentResponse])
def list_comments(
    bidId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return [_comment(c) for c in BidService().list_comments(db, bidId)]


@router.post("/{bidId}/comments", response_model=CommentResponse, status_code=201)
def add_comment(
    bidId: int,
    body: CommentCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    row = BidService().add_comment(db, bidId, user_id=principal.user_id, content=body.content)
    return _comment(row)


@router.put("/{bidId}/comments/{commentId}", response_model=CommentResponse)
def update_comment(
    bidId: int,
    commentId: int,
    body: CommentUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    row = BidService().update_comment(
        db, bidId, commentId, user_id=principal.user_id, content=body.content
    )
    return _comment(row)


@router.delete("/{bidId}/comments/{commentId}", status_code=204)
def delete_comment(
    request: Request,
    bidId: int,
    commentId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    BidService().delete_comment(
        db, bidId, commentId, user_id=principal.user_id, request_id=_request_id(request)
    )
    return Response(status_code=204)
