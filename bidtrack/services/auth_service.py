# bidtrack/services/auth_service.py
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from bidtrack.core.security import verify_password
from bidtrack.models.user import User


def authenticate(db: Session, username: str, password: str) -> Optional[User]:
    user = db.execute(
        select(User).where(
            User.username == username,
            User.is_active.is_(True),
        )
    ).scalar_one_or_none()

    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user
