"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.redis_client import get_redis
from backend.app.core.jwt import create_access_token
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.services.events import get_event_publisher
import backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.published = []
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def publish(self, channel, message):
        if self._closed:
            raise ConnectionError("Redis connection closed")
        self.published.append((channel, message))
        return 1

    async def flushdb(self):
        if not self._closed:
            self.store = {}
            self.published = []

    async def aclose(self):
        self._closed = True
        self.store = {}


class RecordingPublisher:
    """Event publisher that keeps every published event for assertions."""

    def __init__(self):
        self.events = []

    async def publish(self, kind, payload):
        self.events.append((kind, payload))

    def kinds(self):
        return [kind for kind, _ in self.events]

    def of_kind(self, kind):
        return [payload for event_kind, payload in self.events if event_kind == kind]

    def clear(self):
        self.events = []


# Redis Fixture (Session Scope)
@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()

@pytest.fixture(scope="session")
def event_publisher_session():
    return RecordingPublisher()

@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session, event_publisher_session):
    """Apply overrides once for the session.
    Global override is safer here than per-test override to avoid app state flux.
    """

    # Patch the global redis client used by token revocation checks
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    async def override_get_event_publisher():
        return event_publisher_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_event_publisher] = override_get_event_publisher
    yield

    # Restore and clear
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client

@pytest.fixture(autouse=True)
async def setup_database(redis_client_session, event_publisher_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()
    event_publisher_session.clear()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session

@pytest.fixture
def events(event_publisher_session):
    return event_publisher_session


# Marketplace actors. Fixed ids keep scenario assertions readable.
ACTORS = {
    "admin": (1, UserRole.SUPER_ADMIN),
    "shipper": (5, UserRole.SHIPPER),
    "other_shipper": (6, UserRole.SHIPPER),
    "carrier": (7, UserRole.HAULER),
    "driver": (8, UserRole.DRIVER),
    "other_carrier": (9, UserRole.HAULER),
}


@pytest.fixture
async def users(db_session):
    """Create one user per marketplace actor and return them keyed by name."""
    created = {}
    for name, (user_id, role) in ACTORS.items():
        user = User(
            id=user_id,
            email=f"{name}@example.com",
            username=name,
            hashed_password="not-used",
            full_name=name.replace("_", " ").title(),
            role=role,
            is_active=True,
        )
        db_session.add(user)
        created[name] = user
    await db_session.commit()
    return created


def actor_payload(name):
    user_id, role = ACTORS[name]
    return {"sub": name, "user_id": user_id, "role": role.value}


@pytest.fixture
def actors(users):
    """Actor payloads as produced by get_current_user, keyed by name."""
    return {name: actor_payload(name) for name in ACTORS}


@pytest.fixture
def auth_headers(users):
    """Bearer headers per actor name."""
    return {
        name: {"Authorization": f"Bearer {create_access_token(actor_payload(name))}"}
        for name in ACTORS
    }


@pytest.fixture
def post_load(client, auth_headers):
    """Post a load as the given shipper and return the response body."""
    async def _post(actor="shipper", **overrides):
        body = {
            "title": "Feeder steers",
            "species": "cattle",
            "quantity": 40,
            "weight_kg": 18000,
            "pickup_location": "Roma Saleyards",
            "dropoff_location": "Dinmore Abattoir",
            "distance_km": 900,
            "offer_price": 1000,
            "currency": "usd",
        }
        body.update(overrides)
        response = await client.post("/v1/loads", json=body, headers=auth_headers[actor])
        assert response.status_code == 201, response.text
        return response.json()
    return _post


@pytest.fixture
def assign_load(client, auth_headers):
    """Assign a load to a carrier and return the raw response."""
    async def _assign(load_id, carrier_user_id=7, actor="shipper"):
        return await client.post(
            f"/v1/loads/{load_id}/assign",
            json={"carrier_user_id": carrier_user_id},
            headers=auth_headers[actor],
        )
    return _assign


@pytest.fixture
def session_factory():
    """Factory for independent sessions, one per unit of work under test."""
    return TestingSessionLocal
