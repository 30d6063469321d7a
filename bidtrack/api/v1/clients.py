# bidtrack/api/v1/clients.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from bidtrack.core.auth_deps import get_current_principal
from bidtrack.db.session import get_db
from bidtrack.policies.rbac import (
    Principal,
    PERM_CLIENT_CREATE,
    PERM_CLIENT_DELETE,
    PERM_CLIENT_EDIT,
    require_permission,
)
from bidtrack.schemas.clients import ClientCreateRequest, ClientPatchRequest, ClientResponse
from bidtrack.services.clients_service import ClientsService

router = APIRouter(prefix="/clients")


def _resp(c) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "email": c.email,
        "phone": c.phone,
        "responsibleUserId": c.responsible_user_id,
        "responsibleName": c.responsible.full_name if c.responsible else None,
        "createdAt": c.created_at,
        "updatedAt": c.updated_at,
    }


@router.get("", response_model=List[ClientResponse])
def list_clients(
    search: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return [_resp(c) for c in ClientsService().list(db, search=search, limit=limit)]


@router.post("", response_model=ClientResponse, status_code=201)
def create_client(
    body: ClientCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_CLIENT_CREATE)
    c = ClientsService().create(
        db,
        name=body.name,
        email=body.email,
        phone=body.phone,
        responsible_user_id=body.responsibleUserId,
    )
    return _resp(c)


@router.get("/{clientId}", response_model=ClientResponse)
def get_client(
    clientId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return _resp(ClientsService().get(db, clientId))


@router.put("/{clientId}", response_model=ClientResponse)
def update_client(
    clientId: int,
    body: ClientPatchRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_CLIENT_EDIT)
    c = ClientsService().patch(db, clientId, changes=body.model_dump(exclude_unset=True))
    return _resp(c)


@router.delete("/{clientId}", status_code=204)
def delete_client(
    clientId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_CLIENT_DELETE)
    ClientsService().delete(db, clientId)
    return Response(status_code=204)
