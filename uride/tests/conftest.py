"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from uride.app.main import app
from uride.app.core.config import settings
from uride.app.core.security import get_password_hash
from uride.app.db.session import get_db, Base
from uride.app.core.redis_client import get_redis
import uride.app.core.redis_client as redis_client_module
from uride.app.models.user import User
from uride.app.models.enums import UserRole
from uride.app.domain.geo import Coordinate
from uride.app.storage.sql_store import SqlRideStore

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# New Delhi city centre; most fixtures place drivers around it
DELHI = Coordinate(28.6139, 77.2090)
INDIA_GATE = Coordinate(28.6129, 77.2295)
IGI_AIRPORT = Coordinate(28.5562, 77.1000)


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
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        return not self._closed

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def delete(self, key):
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    original_backend = settings.storage_backend
    redis_client_module.redis_client = redis_client_session
    settings.storage_backend = "sql"

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client
    settings.storage_backend = original_backend


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

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
async def sql_store(db_session):
    return SqlRideStore(db_session)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def signup(client, email, role="RIDER", name=None, **extra) -> dict:
    response = await client.post("/api/auth/signup", json={
        "email": email,
        "name": name or email.split("@")[0].title(),
        "password": "secret123",
        "role": role,
        **extra,
    })
    assert response.status_code == 201, response.text
    return response.json()


async def go_online_at(client, token, location: Coordinate):
    response = await client.put(
        "/api/drivers/me/location",
        json={"latitude": location.latitude, "longitude": location.longitude},
        headers=auth(token),
    )
    assert response.status_code == 200, response.text
    response = await client.put(
        "/api/drivers/me/status", json={"online_status": "online"}, headers=auth(token)
    )
    assert response.status_code == 200, response.text


@pytest.fixture
async def admin_token(client, db_session):
    """Admins cannot sign up through the API, so insert one directly."""
    db_session.add(User(
        email="admin@example.com",
        name="Admin",
        hashed_password=get_password_hash("admin123"),
        role=UserRole.ADMIN,
        is_active=True,
    ))
    await db_session.commit()

    response = await client.post(
        "/api/auth/login", json={"email": "admin@example.com", "password": "admin123"}
    )
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


@pytest.fixture
async def rider(client):
    return await signup(client, "rider@example.com")


@pytest.fixture
async def make_driver(client, admin_token):
    """Sign up a driver, approve them and put them online at `location`."""
    async def _make(email, location: Coordinate = None, approve=True, online=True):
        data = await signup(client, email, role="DRIVER")
        if approve:
            response = await client.post(
                f"/api/admin/drivers/{data['driver_id']}/approve",
                json={"approved": True},
                headers=auth(admin_token),
            )
            assert response.status_code == 200, response.text
        if online:
            await go_online_at(client, data["access_token"], location or DELHI)
        return data

    return _make
