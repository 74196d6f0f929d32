"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of nsasa.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402

from nsasa.config import PortalConfig, ScoringWeights  # noqa: E402
from nsasa.database.engine import get_session, init_db  # noqa: E402
from nsasa.database.models import Account, ApprovalStatus, Role  # noqa: E402
from nsasa.engine.events import get_change_bus  # noqa: E402
from nsasa.engine.policy import Actor  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent).

    Also maps BigInteger → INTEGER so autoincrement works on SQLite.
    """
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all portal tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in :func:`run_db`).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture(autouse=True)
def _clean_change_bus():
    """Subscribers registered by one test never leak into the next."""
    get_change_bus().clear()
    yield
    get_change_bus().clear()


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------
_email_counter = 0


def seed_account(
    engine: Engine,
    *,
    role: Role = Role.STUDENT,
    status: ApprovalStatus = ApprovalStatus.APPROVED,
    email: str | None = None,
    **fields,
) -> Account:
    """Insert an account directly, bypassing registration rules."""
    global _email_counter
    _email_counter += 1
    with get_session(engine) as session:
        account = Account(
            email=email or f"member{_email_counter}@example.edu",
            role=role.value,
            approval_status=status.value,
            **fields,
        )
        session.add(account)
        session.flush()
        session.refresh(account)
    return account


def actor_of(account: Account) -> Actor:
    return Actor(
        account_id=account.id,
        role=Role(account.role),
        approval_status=ApprovalStatus(account.approval_status),
        level=account.level,
    )


@pytest.fixture
def super_admin(db_engine) -> Actor:
    return actor_of(seed_account(db_engine, role=Role.SUPER_ADMIN, first_name="Root"))


@pytest.fixture
def admin(db_engine) -> Actor:
    return actor_of(seed_account(db_engine, role=Role.ADMIN, first_name="Ada"))


@pytest.fixture
def student(db_engine) -> Actor:
    return actor_of(seed_account(db_engine, first_name="Sam", level="300"))


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------
def make_token(sub: int | str) -> str:
    """Create a JWT for account *sub*.  Usable from any test module."""
    import jwt

    from nsasa.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": str(sub)}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth(account_id: int | str) -> dict:
    return {"Authorization": f"Bearer {make_token(account_id)}"}


@pytest.fixture
def portal_config() -> PortalConfig:
    return PortalConfig(
        portal_name="Test Portal",
        department="Testing",
        leaderboard_size=10,
        scoring=ScoringWeights(),
    )


@pytest.fixture
def client(db_engine, portal_config):
    """FastAPI TestClient wired to the in-memory database.

    Lifespan is not entered, so no real DATABASE_URL is needed.
    """
    from fastapi.testclient import TestClient

    from nsasa.api.deps import get_config, get_engine
    from nsasa.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: portal_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
