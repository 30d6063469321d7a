# bidtrack/services/clients_service.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from bidtrack.core.errors import NotFoundError
from bidtrack.models.client import Client
from bidtrack.models.user import User


class ClientsService:
    def list(self, db: Session, *, search: Optional[str] = None, limit: int = 200) -> List[Client]:
        stmt = select(Client).order_by(Client.name.asc())
        if search:
            stmt = stmt.where(Client.name.ilike(f"%{search}%"))
        return db.execute(stmt.limit(limit)).scalars().all()

    def get(self, db: Session, client_id: int) -> Client:
        c = db.get(Client, client_id)
        if not c:
            raise NotFoundError("Client not found")
        return c

    def _check_responsible(self, db: Session, user_id: Optional[int]) -> None:
        if user_id is not None and not db.get(User, user_id):
            raise NotFoundError("Responsible user not found")

    def create(
        self,
        db: Session,
        *,
        name: str,
        email: Optional[str],
        phone: Optional[str],
        responsible_user_id: Optional[int],
    ) -> Client:
        self._check_responsible(db, responsible_user_id)
        c = Client(
            name=name,
            email=email,
            phone=phone,
            responsible_user_id=responsible_user_id,
        )
        db.add(c)
        db.commit()
        db.refresh(c)
        return c

    def patch(self, db: Session, client_id: int, *, changes: Dict[str, Any]) -> Client:
        c = self.get(db, client_id)

        if "responsibleUserId" in changes:
            self._check_responsible(db, changes["responsibleUserId"])
            c.responsible_user_id = changes["responsibleUserId"]
        if changes.get("name") is not None:
            c.name = changes["name"]
        if "email" in changes:
            c.email = changes["email"]
        if "phone" in changes:
            c.phone = changes["phone"]

        db.commit()
        db.refresh(c)
        return c

    def delete(self, db: Session, client_id: int) -> None:
        c = self.get(db, client_id)
        db.delete(c)
        db.commit()
