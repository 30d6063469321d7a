# bidtrack/api/v1/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from bidtrack.core.auth_deps import get_current_principal
from bidtrack.db.session import get_db
from bidtrack.policies.rbac import Principal
from bidtrack.schemas.notifications import (
    NotificationCreateRequest,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from bidtrack.services.notifications_service import NotificationsService

router = APIRouter(prefix="/notifications")


def _resp(n) -> dict:
    return {
        "id": n.id,
        "userId": n.user_id,
        "bidId": n.bid_id,
        "title": n.title,
        "message": n.message,
        "type": n.type,
        "isRead": bool(n.is_read),
        "createdAt": n.created_at,
    }


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    filter: str = Query(default="all", pattern="^(all|unread|read)$"),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows, unread = NotificationsService().list(
        db, user_id=principal.user_id, filter=filter, limit=limit
    )
    return {"data": [_resp(n) for n in rows], "unreadCount": unread}


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return {"unreadCount": NotificationsService().unread_count(db, user_id=principal.user_id)}


@router.put("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    updated = NotificationsService().mark_all_read(db, user_id=principal.user_id)
    return {"updated": updated}


@router.put("/{notificationId}/read", response_model=NotificationResponse)
def mark_read(
    notificationId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return _resp(NotificationsService().mark_read(db, notificationId, user_id=principal.user_id))


@router.delete("/{notificationId}", status_code=204)
def delete_notification(
    notificationId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    NotificationsService().delete(db, notificationId, user_id=principal.user_id)
    return Response(status_code=204)


@router.post("", response_model=NotificationResponse, status_code=201)
def create_notification(
    body: NotificationCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    n = NotificationsService().create(
        db,
        user_id=body.userId,
        title=body.title,
        message=body.message,
        type=body.type,
        bid_id=body.bidId,
    )
    return _resp(n)
