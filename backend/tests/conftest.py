"""Pytest configuration: in-memory SQLite test database & FastAPI TestClient."""

from __future__ import annotations

import io
import os
import tempfile
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Override env BEFORE importing app modules so Settings picks up test values.
os.environ.update(
    {
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET_KEY": "test-secret-key-for-pytest",
        "DEFAULT_ADMIN_EMAIL": "Owner@Casetrack.test",
        "LOCAL_CASE_STORE_DIR": tempfile.mkdtemp(prefix="casetrack-local-"),
        "LOG_LEVEL": "DEBUG",
        "DEBUG": "true",
    }
)

from casetrack.api.v1.deps import get_local_store  # noqa: E402
from casetrack.core.security import create_access_token  # noqa: E402
from casetrack.db.database import Base, get_db  # noqa: E402
from casetrack.db.models import Permission, Profile, UserPermission, UserRole  # noqa: E402
from casetrack.main import app  # noqa: E402
from casetrack.services.local_case_store import LocalCaseStore  # noqa: E402

# ── In-memory SQLite engine ────────────────────────────────────────
# StaticPool keeps one connection so the threadpool sees the same database.

_engine = create_engine(
    "sqlite://",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# SQLite doesn't enforce FK by default
@event.listens_for(_engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


_TestSession = sessionmaker(bind=_engine, class_=Session, expire_on_commit=False)


@pytest.fixture(autouse=True)
def _create_tables():
    """Create all tables before each test and drop after."""
    Base.metadata.create_all(bind=_engine)
    yield
    Base.metadata.drop_all(bind=_engine)


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Yield a test DB session."""
    session = _TestSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def local_store(tmp_path) -> LocalCaseStore:
    return LocalCaseStore(tmp_path / "local_cases")


@pytest.fixture()
def client(db: Session, local_store: LocalCaseStore) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to in-memory DB and a per-test local store."""

    def _override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_local_store] = lambda: local_store

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()


# ── Profiles & tokens ──────────────────────────────────────────────

@pytest.fixture()
def make_profile(db: Session) -> Callable[..., Profile]:
    def _make(
        email: str = "member@casetrack.test",
        role: UserRole = UserRole.member,
        is_enabled: bool = True,
        permissions=(),
    ) -> Profile:
        profile = Profile(email=email, full_name=email.split("@")[0], role=role, is_enabled=is_enabled)
        for permission in permissions:
            profile.permissions.append(UserPermission(permission=Permission(permission)))
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make


@pytest.fixture()
def uploader(make_profile) -> Profile:
    return make_profile(
        email="uploader@casetrack.test",
        permissions=[Permission.upload_excel_litigation, Permission.delete_dispute],
    )


@pytest.fixture()
def admin(make_profile) -> Profile:
    return make_profile(email="admin@casetrack.test", role=UserRole.admin)


def auth_headers(profile: Profile) -> dict:
    token = create_access_token({"sub": str(profile.id)})
    return {"Authorization": f"Bearer {token}"}


# ── Upload payloads ────────────────────────────────────────────────

CSV_HEADER = "Sr. No.,Parties,Forum,Particular,Start Date,Next Date,Amount involved,Remarks\n"


def csv_upload(body: str, filename: str = "register.csv", header: str = CSV_HEADER) -> dict:
    content = (header + body).encode("utf-8")
    return {"file": (filename, io.BytesIO(content), "text/csv")}
