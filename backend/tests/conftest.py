"""Pytest fixtures — a fresh SQLite file database per test.

Tables and seed users are written through a plain sync engine; services and
the app talk to the same file through the async (aiosqlite) driver, each
with its own connection.
"""
import os
import uuid
from dataclasses import dataclass, field

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from fastapi.testclient import TestClient

from app.database import Base, get_db
from app.main import app
from app.security import hash_password
from app.services.cart_service import CartStore, get_cart_store
from app.services.errors import NotificationError
from app.services.notifier import get_notifier
from app.services.policy import ActorContext

# Import all models so they register with Base.metadata
from app.models.user import User                 # noqa: F401
from app.models.activity import Activity         # noqa: F401
from app.models.rsvp import ActivityRsvp         # noqa: F401

TEST_PASSWORD = "secret123"


@dataclass
class SentEmail:
    subject: str
    html_body: str
    recipients: list[str]


@dataclass
class RecordingNotifier:
    """Notifier fake that records every send attempt."""

    fail: bool = False
    sent: list[SentEmail] = field(default_factory=list)

    async def send(self, subject, html_body, recipients) -> bool:
        self.sent.append(SentEmail(subject, html_body, list(recipients)))
        if self.fail:
            raise NotificationError("SMTP relay unavailable")
        return True

    def to(self, address: str) -> list[SentEmail]:
        return [m for m in self.sent if address in m.recipients]


@pytest.fixture(scope="function")
def db_path(tmp_path):
    """Create the schema in a fresh SQLite file for each test."""
    path = tmp_path / "activities.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    return path


@pytest_asyncio.fixture(scope="function")
async def db(db_path):
    """Yield an async session bound to the test database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    TestingSession = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    async with TestingSession() as session:
        yield session
    await engine.dispose()


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def carts():
    return CartStore()


@pytest.fixture(scope="function")
def client(db_path, notifier, carts):
    """FastAPI TestClient with database, notifier and cart store overridden."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    TestingSession = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

    async def _override_get_db():
        async with TestingSession() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_cart_store] = lambda: carts
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def make_user(db_path):
    """Factory: insert a user straight into the database and return it as a dict.

    This is the only way to get an admin, since the API never sets the flag.
    """
    engine = create_engine(f"sqlite:///{db_path}")
    Session = sessionmaker(bind=engine)

    def _make(name: str = "Member", admin: bool = False, email: str | None = None, username: str | None = None):
        username = username or f"{name.lower().replace(' ', '_')}_{uuid.uuid4().hex[:6]}"
        user = User(
            name=name,
            username=username,
            email=email if email is not None else f"{username}@example.com",
            phone="555-0100",
            password_hash=hash_password(TEST_PASSWORD),
            signature=name,
            admin=admin,
        )
        with Session() as session:
            session.add(user)
            session.commit()
            return {
                "user_id": user.user_id,
                "name": user.name,
                "username": user.username,
                "email": user.email,
                "admin": user.admin,
            }

    yield _make
    engine.dispose()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def actor_for(user: dict) -> ActorContext:
    """ActorContext for a user dict returned by ``make_user``."""
    return ActorContext(user_id=user["user_id"], is_admin=user["admin"], email=user["email"] or None)


def create_test_user(client: TestClient, name: str = "Test User", username: str | None = None, **extra) -> dict:
    """Helper — POST /api/users/register and return response JSON."""
    resp = client.post("/api/users/register", json={
        "name": name,
        "username": username or name.lower().replace(" ", "_"),
        "phone": "555-0100",
        "password": TEST_PASSWORD,
        "password2": TEST_PASSWORD,
        "signature": name,
        **extra,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()
