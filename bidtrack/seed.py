from sqlalchemy import select
from sqlalchemy.orm import Session

import bidtrack.models  # noqa: F401
from bidtrack.core.security import hash_password
from bidtrack.db.session import SessionLocal
from bidtrack.models.bid_type import BidType
from bidtrack.models.role import Role
from bidtrack.models.user import User
from bidtrack.policies.rbac import (
    ALL_PERMISSIONS,
    PERM_BID_CREATE,
    PERM_BID_EDIT,
    PERM_CLIENT_CREATE,
    PERM_CLIENT_EDIT,
)

ROLES = {
    "Админ": {p: True for p in ALL_PERMISSIONS},
    "Менеджер": {
        PERM_BID_CREATE: True,
        PERM_BID_EDIT: True,
        PERM_CLIENT_CREATE: True,
        PERM_CLIENT_EDIT: True,
    },
    "Склад": {PERM_BID_EDIT: True},
}

DEFAULT_BID_TYPE = {
    "name": "Выдача оборудования без преднастройки и монтажа",
    "description": "Выдача оборудования клиенту со склада",
    "statuses": [
        {
            "name": "Открыта",
            "position": 1,
            "allowedActions": ["edit"],
            "responsibleRoleId": "Склад",
        },
        {
            "name": "Собрать",
            "position": 2,
            "allowedActions": ["edit", "close"],
            "color": "#3b82f6",
        },
        {
            "name": "Отложить",
            "position": 3,
            "allowedActions": ["edit"],
            "color": "#eab308",
        },
        {"name": "Закрыта", "position": 999, "allowedActions": []},
    ],
    "transitions": [
        {"fromPosition": 1, "toPosition": 2},
        {"fromPosition": 1, "toPosition": 3},
        {"fromPosition": 2, "toPosition": 3},
        {"fromPosition": 2, "toPosition": 999},
    ],
    "planned_reaction_time_minutes": 60,
    "planned_duration_minutes": 1440,
}


def seed():
    db: Session = SessionLocal()

    for name, perms in ROLES.items():
        if not db.execute(select(Role).where(Role.name == name)).scalar_one_or_none():
            db.add(Role(name=name, description=f"Seed role {name}", permissions_json=perms))
    db.commit()

    if not db.execute(select(User).where(User.username == "admin")).scalar_one_or_none():
        db.add(
            User(
                username="admin",
                password_hash=hash_password("admin"),
                full_name="Администратор",
                role="Админ",
            )
        )
        db.commit()

    bt_data = DEFAULT_BID_TYPE
    if not db.execute(select(BidType).where(BidType.name == bt_data["name"])).scalar_one_or_none():
        db.add(
            BidType(
                name=bt_data["name"],
                description=bt_data["description"],
                statuses_json=bt_data["statuses"],
                transitions_json=bt_data["transitions"],
                planned_reaction_time_minutes=bt_data["planned_reaction_time_minutes"],
                planned_duration_minutes=bt_data["planned_duration_minutes"],
            )
        )
        db.commit()

    db.close()


if __name__ == "__main__":
    seed()
