# bidtrack/services/users_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bidtrack.core.errors import ConflictError, NotFoundError
from bidtrack.core.security import hash_password
from bidtrack.models.role import Role
from bidtrack.models.user import User

logger = logging.getLogger(__name__)


class RolesService:
    def list(self, db: Session) -> List[Role]:
        return db.execute(select(Role).order_by(Role.name.asc())).scalars().all()

    def get(self, db: Session, role_id: int) -> Role:
        r = db.get(Role, role_id)
        if not r:
            raise NotFoundError("Role not found")
        return r

    def get_by_name(self, db: Session, name: str) -> Optional[Role]:
        return db.execute(select(Role).where(Role.name == name)).scalar_one_or_none()

    def create(
        self,
        db: Session,
        *,
        name: str,
        description: Optional[str],
        permissions: Dict[str, Any],
    ) -> Role:
        if self.get_by_name(db, name):
            raise ConflictError("Role with this name already exists")
        r = Role(name=name, description=description, permissions_json=permissions or {})
        db.add(r)
        db.commit()
        db.refresh(r)
        return r

    def update(self, db: Session, role_id: int, *, changes: Dict[str, Any]) -> Role:
        """
        Users reference roles by name, so a rename is carried over to them
        in the same transaction.
        """
        r = self.get(db, role_id)

        new_name = changes.get("name")
        if new_name is not None and new_name != r.name:
            other = self.get_by_name(db, new_name)
            if other is not None:
                raise ConflictError("Role with this name already exists")
            db.execute(
                update(User)
                .where(User.role == r.name)
                .values(role=new_name)
                .execution_options(synchronize_session=False)
            )
            logger.info("role renamed", extra={"role_id": r.id, "old_name": r.name, "new_name": new_name})
            r.name = new_name

        if "description" in changes:
            r.description = changes["description"]
        if changes.get("permissions") is not None:
            r.permissions_json = dict(changes["permissions"])

        db.commit()
        db.refresh(r)
        return r

    def delete(self, db: Session, role_id: int) -> None:
        r = self.get(db, role_id)
        in_use = db.execute(select(User.id).where(User.role == r.name)).first()
        if in_use:
            raise ConflictError("Role is assigned to users")
        db.delete(r)
        db.commit()


class UsersService:
    def list(self, db: Session) -> List[User]:
        return db.execute(select(User).order_by(User.full_name.asc())).scalars().all()

    def get(self, db: Session, user_id: int) -> User:
        u = db.get(User, user_id)
        if not u:
            raise NotFoundError("User not found")
        return u

    def _assert_username_free(self, db: Session, username: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(User.id).where(User.username == username)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        if db.execute(stmt).first():
            raise ConflictError("User with this username already exists")

    def create(
        self,
        db: Session,
        *,
        username: str,
        password: str,
        full_name: str,
        email: Optional[str],
        role: str,
    ) -> User:
        self._assert_username_free(db, username)
        if not RolesService().get_by_name(db, role):
            raise NotFoundError("Role not found")

        u = User(
            username=username,
            password_hash=hash_password(password),
            full_name=full_name,
            email=email,
            role=role,
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    def update(self, db: Session, user_id: int, *, changes: Dict[str, Any]) -> User:
        """
        Partial update; an empty or missing password keeps the current one.
        """
        u = self.get(db, user_id)

        if changes.get("username") is not None:
            self._assert_username_free(db, changes["username"], exclude_id=u.id)
            u.username = changes["username"]
        if changes.get("role") is not None:
            if not RolesService().get_by_name(db, changes["role"]):
                raise NotFoundError("Role not found")
            u.role = changes["role"]
        if changes.get("fullName") is not None:
            u.full_name = changes["fullName"]
        if "email" in changes:
            u.email = changes["email"]
        if changes.get("isActive") is not None:
            u.is_active = changes["isActive"]
        if changes.get("password"):
            u.password_hash = hash_password(changes["password"])

        db.commit()
        db.refresh(u)
        return u

    def delete(self, db: Session, user_id: int) -> None:
        u = self.get(db, user_id)
        db.delete(u)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("User is referenced by bids or comments; deactivate it instead")
        logger.info("user deleted", extra={"user_id": user_id})
