# bidtrack/api/v1/users.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from bidtrack.core.auth_deps import get_current_principal
from bidtrack.db.session import get_db
from bidtrack.policies.rbac import (
    Principal,
    PERM_ROLE_CREATE,
    PERM_ROLE_DELETE,
    PERM_ROLE_EDIT,
    PERM_USER_CREATE,
    PERM_USER_DELETE,
    PERM_USER_EDIT,
    require_permission,
)
from bidtrack.schemas.users import (
    RoleCreateRequest,
    RoleResponse,
    RoleUpdateRequest,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from bidtrack.services.users_service import RolesService, UsersService

roles_router = APIRouter(prefix="/roles")
users_router = APIRouter(prefix="/users")


def _role(r) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "description": r.description,
        "permissions": r.permissions_json or {},
        "createdAt": r.created_at,
    }


def _user(u) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "fullName": u.full_name,
        "email": u.email,
        "role": u.role,
        "isActive": bool(u.is_active),
        "createdAt": u.created_at,
    }


# ─────────────────────────────────────────────
# ROLES
# ─────────────────────────────────────────────


@roles_router.get("", response_model=List[RoleResponse])
def list_roles(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return [_role(r) for r in RolesService().list(db)]


@roles_router.post("", response_model=RoleResponse, status_code=201)
def create_role(
    body: RoleCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_ROLE_CREATE)
    r = RolesService().create(
        db, name=body.name, description=body.description, permissions=body.permissions
    )
    return _role(r)


@roles_router.get("/{roleId}", response_model=RoleResponse)
def get_role(
    roleId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return _role(RolesService().get(db, roleId))


@roles_router.put("/{roleId}", response_model=RoleResponse)
def update_role(
    roleId: int,
    body: RoleUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_ROLE_EDIT)
    r = RolesService().update(db, roleId, changes=body.model_dump(exclude_unset=True))
    return _role(r)


@roles_router.delete("/{roleId}", status_code=204)
def delete_role(
    roleId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_ROLE_DELETE)
    RolesService().delete(db, roleId)
    return Response(status_code=204)


# ─────────────────────────────────────────────
# USERS
# ─────────────────────────────────────────────


@users_router.get("", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return [_user(u) for u in UsersService().list(db)]


@users_router.post("", response_model=UserResponse, status_code=201)
def create_user(
    body: UserCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_USER_CREATE)
    u = UsersService().create(
        db,
        username=body.username,
        password=body.password,
        full_name=body.fullName,
        email=body.email,
        role=body.role,
    )
    return _user(u)


@users_router.get("/{userId}", response_model=UserResponse)
def get_user(
    userId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return _user(UsersService().get(db, userId))


@users_router.put("/{userId}", response_model=UserResponse)
def update_user(
    userId: int,
    body: UserUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_USER_EDIT)
    u = UsersService().update(db, userId, changes=body.model_dump(exclude_unset=True))
    return _user(u)


@users_router.delete("/{userId}", status_code=204)
def delete_user(
    userId: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    require_permission(principal, PERM_USER_DELETE)
    if userId == principal.user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account.")
    UsersService().delete(db, userId)
    return Response(status_code=204)
