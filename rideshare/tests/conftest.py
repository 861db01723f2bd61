"""
Centralized Test Configuration.
"""

import os

# Cheap hashes for tests; must be set before the app reads its settings
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from rideshare.app.main import app
from rideshare.app.db.session import get_db, Base
from rideshare.app.core.redis_client import get_redis
from rideshare.app.core.jwt import create_access_token
from rideshare.app.core.security import get_password_hash
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.assignment_enums import AssignmentStatus
from rideshare.app.models.enums import UserRole
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.models.user import User
from rideshare.app.models.vehicle import Vehicle
from rideshare.app.models.vehicle_enums import VehicleType, VehicleStatus
import rideshare.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


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


# In-memory stand-in for the Redis calls the app makes
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False
    
    async def ping(self):
        return not self._closed
    
    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)
    
    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True
    
    async def setex(self, key, seconds, value):
        return await self.set(key, value, ex=seconds)
    
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
    
    async def flushdb(self):
        if not self._closed:
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
    redis_client_module.redis_client = redis_client_session
    
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


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


def today_utc():
    return datetime.now(timezone.utc).date()


def auth_headers(user: User) -> dict:
    token = create_access_token(data={
        "sub": user.username,
        "user_id": user.id,
        "role": user.role.value
    })
    return {"Authorization": f"Bearer {token}"}


async def create_user(db: AsyncSession, username: str, role: UserRole, password: str = "secret123") -> User:
    user = User(
        email=f"{username}@example.com",
        username=username,
        full_name=username.title(),
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
        is_superuser=role == UserRole.ADMIN
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session):
    return await create_user(db_session, "admin", UserRole.ADMIN)


@pytest.fixture
async def driver_user(db_session):
    return await create_user(db_session, "driver", UserRole.DRIVER)


@pytest.fixture
async def other_driver(db_session):
    return await create_user(db_session, "otherdriver", UserRole.DRIVER)


@pytest.fixture
async def rider_user(db_session):
    return await create_user(db_session, "rider", UserRole.RIDER)


@pytest.fixture
async def vehicle(db_session):
    van = Vehicle(
        vehicle_type=VehicleType.VAN,
        model="Hiace",
        year=2021,
        color="White",
        license_plate="DHA-1234",
        capacity=2,
        is_available=True,
        status=VehicleStatus.ACTIVE
    )
    db_session.add(van)
    await db_session.commit()
    await db_session.refresh(van)
    return van


@pytest.fixture
async def route(db_session):
    """Depot -> School (order 1) -> Market (order 2) -> Office; stored out of order."""
    template = RouteTemplate(
        name="Morning Line",
        start_name="Depot",
        start_lat=23.80,
        start_lng=90.40,
        end_name="Office",
        end_lat=23.82,
        end_lng=90.42,
        stops=[
            {"name": "Market", "lat": 23.81, "lng": 90.41, "order": 2},
            {"name": "School", "lat": 23.805, "lng": 90.405, "order": 1},
        ],
        active=True
    )
    db_session.add(template)
    await db_session.commit()
    await db_session.refresh(template)
    return template


@pytest.fixture
async def assignment(db_session, driver_user, route, vehicle):
    """Today's one-off assignment of the driver on the route (4 stops in total)."""
    ride = Assignment(
        driver_id=driver_user.id,
        route_id=route.id,
        vehicle_id=vehicle.id,
        scheduled_date=today_utc(),
        scheduled_start_time="08:00",
        recurring_days=[],
        current_stop_index=0,
        status=AssignmentStatus.SCHEDULED
    )
    db_session.add(ride)
    await db_session.commit()
    await db_session.refresh(ride)
    return ride


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def driver_headers(driver_user):
    return auth_headers(driver_user)


@pytest.fixture
def other_driver_headers(other_driver):
    return auth_headers(other_driver)


@pytest.fixture
def rider_headers(rider_user):
    return auth_headers(rider_user)


@pytest.fixture
def today():
    return today_utc()
