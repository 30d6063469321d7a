import os

# settings are read at import time; tests run against in-memory SQLite
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# FORCE model registration
import bidtrack.models  # noqa

from bidtrack.db.base import Base
from bidtrack.db.session import build_engine, get_db
from bidtrack.policies.rbac import PERM_BID_EDIT
from bidtrack.tests.factories import (
    auth_headers,
    create_bid_type,
    create_client,
    create_role,
    create_user,
)


@pytest.fixture(scope="function")
def engine():
    eng = build_engine(os.getenv("TEST_DATABASE_URL", "sqlite://"))
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(eng)
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin(db):
    create_role(db)
    return create_user(db)


@pytest.fixture
def client_row(db):
    return create_client(db)


@pytest.fixture
def bid_type(db):
    return create_bid_type(db)


@pytest.fixture
def api(session_factory):
    from bidtrack.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def warehouse_headers(db):
    create_role(db, name="Склад", permissions={PERM_BID_EDIT: True})
    return auth_headers(create_user(db, username="store1", role="Склад", full_name="Кладовщик"))
