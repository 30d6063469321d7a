#bidtrack/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import FrozenSet


@dataclass(frozen=True)
class Principal:
    user_id: int
    username: str
    role: str
    full_name: str
    permissions: FrozenSet[str] = field(default_factory=frozenset)


# --- Permission keys (stored as truthy flags in Role.permissions_json) ---
PERM_BID_TYPE_CREATE = "bid_type_create"
PERM_BID_TYPE_EDIT = "bid_type_edit"
PERM_BID_TYPE_DELETE = "bid_type_delete"

PERM_BID_CREATE = "bid_create"
PERM_BID_EDIT = "bid_edit"
PERM_BID_DELETE = "bid_delete"

PERM_CLIENT_CREATE = "client_create"
PERM_CLIENT_EDIT = "client_edit"
PERM_CLIENT_DELETE = "client_delete"

PERM_USER_CREATE = "user_create"
PERM_USER_EDIT = "user_edit"
PERM_USER_DELETE = "user_delete"
PERM_ROLE_CREATE = "role_create"
PERM_ROLE_EDIT = "role_edit"
PERM_ROLE_DELETE = "role_delete"

ALL_PERMISSIONS = (
    PERM_BID_TYPE_CREATE,
    PERM_BID_TYPE_EDIT,
    PERM_BID_TYPE_DELETE,
    PERM_BID_CREATE,
    PERM_BID_EDIT,
    PERM_BID_DELETE,
    PERM_CLIENT_CREATE,
    PERM_CLIENT_EDIT,
    PERM_CLIENT_DELETE,
    PERM_USER_CREATE,
    PERM_USER_EDIT,
    PERM_USER_DELETE,
    PERM_ROLE_CREATE,
    PERM_ROLE_EDIT,
    PERM_ROLE_DELETE,
)


def permissions_from_json(raw: dict | None) -> FrozenSet[str]:
    return frozenset(k for k, v in (raw or {}).items() if v)


def require_permission(principal: Principal, permission: str) -> None:
    if permission not in principal.permissions:
        raise PermissionError(
            f"Role {principal.role} not permitted for action {permission}."
        )
