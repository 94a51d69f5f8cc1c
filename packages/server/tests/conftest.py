"""
Shared fixtures for server tests.

Every test gets a fresh in-memory SQLite database and an in-memory stand-in
for the Redis revocation list.
"""

from __future__ import annotations

import os

os.environ["TASKFLOW_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["TASKFLOW_SECRET_KEY"] = "test-secret-key"
os.environ["TASKFLOW_APP_BASE_URL"] = "https://taskflow.test"

from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from taskflow.core import redis as redis_module  # noqa: E402
from taskflow.core.auth import SessionUser, create_jwt, hash_password  # noqa: E402
from taskflow.core.database import async_session_factory, drop_db, engine, init_db  # noqa: E402
from taskflow.main import app  # noqa: E402
from taskflow.models.membership import Membership  # noqa: E402
from taskflow.models.organization import Organization  # noqa: E402
from taskflow.models.profile import Profile  # noqa: E402
from taskflow.models.user import User  # noqa: E402
from taskflow_shared.schemas.common import Role  # noqa: E402
from taskflow_shared.schemas.organizations import OrgRead  # noqa: E402


class FakeRedis:
    """The subset of redis.asyncio.Redis used by the server."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def exists(self, key: str) -> int:
        return int(key in self.store)

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass


@pytest.fixture
async def database():
    await init_db()
    yield
    await drop_db()
    await engine.dispose()


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_module, "_redis_pool", fake)
    return fake


@pytest.fixture
async def session(database):
    async with async_session_factory() as s:
        yield s


@pytest.fixture
async def client(database):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(session):
    """Create a user (with a profile unless ``full_name`` is None) and commit."""

    async def _make(
        email: str,
        full_name: Optional[str] = "",
        password: Optional[str] = None,
    ) -> SessionUser:
        user = User(
            email=email.lower(),
            password_hash=hash_password(password) if password else None,
        )
        session.add(user)
        await session.flush()
        if full_name is not None:
            name = full_name or email.split("@")[0].title()
            session.add(Profile(id=user.id, full_name=name))
        await session.commit()
        return SessionUser(id=user.id, email=user.email)

    return _make


@pytest.fixture
def make_org(session):
    """Create an organization owned by ``owner`` plus extra memberships."""

    async def _make(owner: SessionUser, name: str = "Acme", members=()) -> OrgRead:
        org = Organization(name=name, created_by=owner.id)
        session.add(org)
        await session.flush()
        session.add(Membership(user_id=owner.id, organization_id=org.id, role=Role.OWNER.value))
        for user, role in members:
            session.add(Membership(user_id=user.id, organization_id=org.id, role=Role(role).value))
        await session.commit()
        return OrgRead.model_validate(org)

    return _make


@pytest.fixture
def bearer():
    def _headers(user: SessionUser) -> dict[str, str]:
        token, _ = create_jwt(user.id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
