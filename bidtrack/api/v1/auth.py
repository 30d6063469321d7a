#bidtrack/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from bidtrack.core.auth_deps import get_current_principal
from bidtrack.core.security import create_access_token
from bidtrack.db.session import get_db
from bidtrack.schemas.auth import LoginRequest, MeResponse, TokenResponse
from bidtrack.services.auth_service import authenticate

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, req.username, req.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    token = create_access_token(
        subject=str(user.id),
        claims={
            "user_id": user.id,
            "username": user.username,
        },
    )
    return TokenResponse(access_token=token)


@router.get("/me", response_model=MeResponse)
def get_me(principal=Depends(get_current_principal)):
    return {
        "user_id": principal.user_id,
        "username": principal.username,
        "role": principal.role,
        "full_name": principal.full_name,
    }
