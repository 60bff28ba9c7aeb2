"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of rallypoint.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from rallypoint.config import RallypointConfig  # noqa: E402
from rallypoint.database.models import Base  # noqa: E402
from rallypoint.services import (  # noqa: E402
    build_service,
    forum_service,
    lfg_service,
    user_service,
)


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINTs nest inside the transaction.

    pysqlite otherwise defers BEGIN until the first DML statement, and a
    SAVEPOINT issued before it would run (and commit) on its own.
    """

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Rallypoint tables.

    Uses StaticPool so the TestClient's worker thread shares the same
    in-memory database as the test body.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def test_config() -> RallypointConfig:
    return RallypointConfig(community_name="Test Community", api_port=8000)


# ---------------------------------------------------------------------------
# Domain factories
# ---------------------------------------------------------------------------
@pytest.fixture
def make_user(db_engine):
    """Factory: ``make_user("alice", vip_tier="diamond")`` → User."""

    def _make(username: str, **fields):
        return user_service.upsert_user(
            db_engine, f"user-{username}", username=username, **fields,
        )

    return _make


@pytest.fixture
def build(db_engine):
    return build_service.create_build(
        db_engine,
        author_id="user-author",
        title="Frontline Tank",
        game="Overwatch",
        content="Shield up, push the point.",
    )


@pytest.fixture
def lfg_post(db_engine):
    return lfg_service.create_lfg_post(
        db_engine,
        author_id="user-author",
        title="Ranked duo",
        game="Valorant",
        platform="PC",
        players_needed=2,
    )


@pytest.fixture
def category(db_engine):
    return forum_service.create_category(db_engine, name="General Discussion", sort_order=1)


@pytest.fixture
def thread(db_engine, category):
    return forum_service.create_thread(
        db_engine, category.id, "user-author", "Patch notes", "What changed?",
    )


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
def make_token(sub: str = "user-tester", *, is_admin: bool = False) -> str:
    """Create a bearer JWT.  Usable as both a fixture helper and a factory."""
    import jwt

    from rallypoint.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "username": sub, "is_admin": is_admin},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


def auth(sub: str = "user-tester", *, is_admin: bool = False) -> dict:
    return {"Authorization": f"Bearer {make_token(sub, is_admin=is_admin)}"}


@pytest.fixture
def client(db_engine, test_config):
    """FastAPI TestClient wired to the in-memory engine and a test config.

    The lifespan hook is not run, so no real DATABASE_URL is needed.
    """
    from fastapi.testclient import TestClient

    from rallypoint.api.main import app
    from rallypoint.api.routes import lfg as lfg_routes

    # Override the exact callables the routers captured at import time.
    app.dependency_overrides[lfg_routes.get_engine] = lambda: db_engine
    app.dependency_overrides[lfg_routes.get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
