from contextlib import contextmanager
from datetime import datetime, timezone

import fakeredis
import fakeredis.aioredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from main import app
from openmd.access import ActorContext, FrozenClock, OwnershipResolver, VisibilityPolicy
from openmd.api import deps
from openmd.core import redis_client
from openmd.core.database import Base, build_engine, get_db
from openmd.core.security import Argon2Hasher

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class PlainHasher:
    """Reversible stand-in for argon2 where hashing cost is irrelevant"""

    def hash(self, plaintext):
        return "plain$" + plaintext

    def verify(self, plaintext, hashed):
        return hashed == "plain$" + plaintext


async def create_tables(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def hasher():
    return PlainHasher()


@pytest.fixture
def policy(hasher, clock):
    return VisibilityPolicy(hasher, clock)


@pytest.fixture
def resolver():
    return OwnershipResolver()


@pytest.fixture
def anonymous():
    return ActorContext()


@pytest.fixture
def fast_hasher():
    return Argon2Hasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def fake_redis():
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
async def db_session(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'repo.db'}")
    await create_tables(engine)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def client(tmp_path, clock, fast_hasher, fake_redis):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_clock] = lambda: clock
    app.dependency_overrides[deps.get_hasher] = lambda: fast_hasher
    redis_client.set_redis(fake_redis)

    with TestClient(app) as test_client:
        test_client.portal.call(create_tables, engine)
        yield test_client
        test_client.portal.call(engine.dispose)

    app.dependency_overrides.clear()
    redis_client.set_redis(None)


API = "/api/v1"


def register_and_login(client, username="alice", password="secret1"):
    resp = client.post(f"{API}/auth/register", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    resp = client.post(f"{API}/auth/login", data={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


def create_note(client, **body):
    payload = {"title": "Hello", "content": "# Hello world"}
    payload.update(body)
    resp = client.post(f"{API}/notes", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


@contextmanager
def fresh_session(client):
    """Send requests from a cookie-less browser, then restore the original jar"""
    saved = client.cookies
    client.cookies = {}
    try:
        yield client
    finally:
        client.cookies = saved
