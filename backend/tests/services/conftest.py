"""Service test fixtures: async DB, seeded accounts, tokens and the FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session
    - get_message_gateway overridden with FakeGateway (records, never sends)
    - Assertions read through a NEW session (read_session) so they never see a
      stale identity map

Design Decisions:
    - SQLite in-memory with StaticPool: every session shares one connection,
      so rows committed by the app are visible to the test
    - Tokens signed with the same secret the app reads from settings: the real
      identity dependency runs in every route test
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from app.api.deps import get_message_gateway
from app.config import get_settings
from app.core.authorization import Caller
from app.core.domain_types import Role, UserId
from app.core.errors import MessagingGatewayError
from app.db.base import Base
from app.infrastructure.database import get_db
from app.main import app
from app.models import ServiceOffering, User


class FakeGateway:
    """MessageGateway double: records (to, body) pairs."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send(self, to: str, body: str) -> str | None:
        if self.fail:
            raise MessagingGatewayError("HTTP 503", status_code=503)
        self.sent.append((to, body))
        return f"SM{len(self.sent):032d}"


@dataclass
class Seed:
    client: User
    other_client: User
    performer: User
    other_performer: User
    admin: User
    service: ServiceOffering


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def read_session(test_session_factory):
    """Open a throwaway session for assertions: `async with read_session() as s`."""
    return test_session_factory


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
async def client(test_session_factory, fake_gateway):
    """FastAPI test client with DB and messaging dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_message_gateway] = lambda: fake_gateway

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
async def seed(test_db) -> Seed:
    """Two clients, two performers, one admin, one $150/hour service."""
    users = {
        "client": User(email="client@example.com", full_name="Casey Client",
                       phone="whatsapp:+61400000001", role=Role.CLIENT.value),
        "other_client": User(email="other@example.com", full_name="Olive Other",
                             phone="+61400000002", role=Role.CLIENT.value),
        "performer": User(email="perf@example.com", full_name="Pat Performer",
                          phone="whatsapp:+61400000003", role=Role.PERFORMER.value),
        "other_performer": User(email="perf2@example.com", full_name="Quinn Performer",
                                phone=None, role=Role.PERFORMER.value),
        "admin": User(email="admin@example.com", full_name="Ada Admin",
                      role=Role.ADMIN.value),
    }
    service = ServiceOffering(name="Hourly appearance", rate=Decimal("150.00"), unit="hour")
    test_db.add_all([*users.values(), service])
    await test_db.commit()
    return Seed(service=service, **users)


def _make_token(user: User, role: str | None = None) -> str:
    settings = get_settings()
    claims = {
        "sub": str(user.id),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
        "aud": settings.auth_jwt_audience,
        "app_metadata": {"role": role or user.role},
    }
    return jwt.encode(
        claims,
        settings.auth_jwt_secret,
        algorithm=settings.auth_jwt_algorithm,
    )


def _auth_header(user: User, role: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(user, role)}"}


@pytest.fixture
def auth():
    """Authorization header for a user, with its stored role unless overridden."""
    return _auth_header


@pytest.fixture
def as_caller():
    """Service-level Caller for a seeded user."""
    def _caller(user: User) -> Caller:
        return Caller(user_id=UserId(user.id), role=Role(user.role))
    return _caller


@pytest.fixture
def event_time() -> str:
    return (datetime.now(timezone.utc) + timedelta(days=14)).isoformat()
