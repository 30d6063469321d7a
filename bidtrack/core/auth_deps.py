#bidtrack/core/auth_deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from bidtrack.core.security import decode_token
from bidtrack.db.session import get_db
from bidtrack.models.role import Role
from bidtrack.models.user import User
from bidtrack.policies.rbac import Principal, permissions_from_json

bearer = HTTPBearer(auto_error=True)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Canonical authentication dependency.

    Guarantees:
    - JWT is valid and carries a user id
    - the user still exists and is active
    - permissions reflect the user's role as stored now, not at login time
    """

    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    raw_user_id = payload.get("user_id")
    if raw_user_id is None:
        raise HTTPException(status_code=401, detail="Token missing required claims.")

    try:
        user_id = int(raw_user_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid user id in token.")

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive.")

    role = db.execute(select(Role).where(Role.name == user.role)).scalar_one_or_none()

    principal = Principal(
        user_id=user.id,
        username=user.username,
        role=user.role,
        full_name=user.full_name,
        permissions=permissions_from_json(role.permissions_json if role else None),
    )

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal

    return principal
