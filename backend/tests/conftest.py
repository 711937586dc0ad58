"""
Centralized Test Configuration.
"""

import asyncio
import time
import uuid

import pytest
import polyline
from httpx import AsyncClient, ASGITransport
from redis.exceptions import LockNotOwnedError
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.jwt import create_access_token
from backend.app.core.redis_client import get_redis
from backend.app.models.animal import Animal
from backend.app.models.driver import Driver
from backend.app.models.enums import ComplexityType, TransportStatus
from backend.app.models.shelter import Shelter
from backend.app.models.transport import Transport
from backend.app.services.directions_client import (
    DistanceFound,
    RouteFound,
    RouteLeg,
    RouteUnavailable,
    get_directions_client,
)
from backend.app.services.pricing_seed import seed_pricing_defaults

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

DRIVER_USER_ID = 10
OTHER_DRIVER_USER_ID = 11
SHELTER_USER_ID = 20
ADMIN_USER_ID = 1

# Straight route north from (40.0, -75.0) to (40.1, -75.0), ~11.1 km
ROUTE_POINTS = [(40.0, -75.0), (40.05, -75.0), (40.1, -75.0)]
ROUTE_DISTANCE_METERS = 16093.44  # 10 miles
ROUTE_DURATION_SECONDS = 1200.0  # 20 minutes


class MockLock:
    """
    Token-checked lock over MockRedis with the redis-py Lock interface.

    The ownership check and delete in release() run without yielding to the
    event loop, matching the atomic release script of the real lock.
    """

    def __init__(self, redis, name, timeout=None, sleep=0.1, blocking_timeout=None, **kwargs):
        self.redis = redis
        self.name = name
        self.timeout = timeout
        self.sleep = sleep
        self.blocking_timeout = blocking_timeout
        self.token = None

    async def acquire(self):
        token = uuid.uuid4().hex
        deadline = None if self.blocking_timeout is None else time.monotonic() + self.blocking_timeout
        while True:
            if await self.redis.set(self.name, token, nx=True, ex=self.timeout):
                self.token = token
                return True
            if deadline is not None and time.monotonic() > deadline:
                return False
            await asyncio.sleep(self.sleep)

    async def release(self):
        if self.token is None or self.redis.store.get(self.name) != self.token:
            raise LockNotOwnedError("Cannot release a lock that's no longer owned")
        del self.redis.store[self.name]
        self.token = None


# Mock Redis for reliability in CI/CD
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

    async def set(self, key, value, ex=None, nx=False):
        if self._closed:
            return False
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    def lock(self, name, **kwargs):
        return MockLock(self, name, **kwargs)

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


class FakeDirectionsClient:
    """In-process stand-in for the directions provider."""

    def __init__(self):
        self.route_result = RouteFound(
            distance_meters=ROUTE_DISTANCE_METERS,
            duration_seconds=ROUTE_DURATION_SECONDS,
            encoded_polyline=polyline.encode(ROUTE_POINTS),
            legs=[
                RouteLeg("Head north", ROUTE_DISTANCE_METERS / 2, ROUTE_DURATION_SECONDS / 2, 40.05, -75.0),
                RouteLeg("Drop-off", ROUTE_DISTANCE_METERS / 2, ROUTE_DURATION_SECONDS / 2, 40.1, -75.0),
            ],
        )
        self.distance_result = DistanceFound(ROUTE_DISTANCE_METERS, ROUTE_DURATION_SECONDS)
        self.coordinates_valid = True
        self.address = "123 Main St, Springfield"
        self.route_calls = 0

    async def compute_route(self, origin, destination):
        self.route_calls += 1
        return self.route_result

    async def distance_matrix(self, origin, destination):
        return self.distance_result

    async def validate_coordinates(self, latitude, longitude):
        return self.coordinates_valid

    async def reverse_geocode_address(self, latitude, longitude):
        return self.address

    def fail_with(self, reason="directions provider timed out"):
        self.route_result = RouteUnavailable(reason)
        self.distance_result = RouteUnavailable(reason)
        self.address = None
        self.coordinates_valid = False


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints for SQLite."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def redis():
    return MockRedis()


@pytest.fixture
def directions():
    return FakeDirectionsClient()


@pytest.fixture(autouse=True)
def apply_overrides(session_factory, redis, directions):
    """Point the app at the per-test database, Redis and directions fakes."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_directions_client] = lambda: directions
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded_pricing(db_session):
    return await seed_pricing_defaults(db_session)


@pytest.fixture
async def shelter(db_session):
    shelter = Shelter(name="Happy Tails Rescue", address="1 Shelter Way")
    db_session.add(shelter)
    await db_session.commit()
    await db_session.refresh(shelter)
    return shelter


@pytest.fixture
async def driver(db_session):
    driver = Driver(user_id=DRIVER_USER_ID, name="Dana Driver", phone="555-0100")
    db_session.add(driver)
    await db_session.commit()
    await db_session.refresh(driver)
    return driver


async def make_transport(db_session, shelter, driver=None, complexity_type=ComplexityType.STANDARD, bonded=False):
    animal = Animal(shelter_id=shelter.id, name="Biscuit", breed="Beagle", complexity_type=complexity_type)
    db_session.add(animal)
    bonded_animal = None
    if bonded:
        bonded_animal = Animal(shelter_id=shelter.id, name="Gravy", breed="Beagle", complexity_type=complexity_type)
        db_session.add(bonded_animal)
    await db_session.flush()

    transport = Transport(
        shelter_id=shelter.id,
        animal_id=animal.id,
        bonded_pair_id=bonded_animal.id if bonded_animal else None,
        driver_id=driver.id if driver else None,
        status=TransportStatus.ACCEPTED if driver else TransportStatus.PENDING,
        pick_up_location="Shelter, 40.0,-75.0",
        pick_up_latitude=ROUTE_POINTS[0][0],
        pick_up_longitude=ROUTE_POINTS[0][1],
        drop_off_location="Foster home, 40.1,-75.0",
        drop_off_latitude=ROUTE_POINTS[-1][0],
        drop_off_longitude=ROUTE_POINTS[-1][1],
    )
    db_session.add(transport)
    await db_session.commit()
    await db_session.refresh(transport)
    return transport


@pytest.fixture
def transport_factory(db_session, shelter):
    async def factory(driver=None, complexity_type=ComplexityType.STANDARD, bonded=False):
        return await make_transport(db_session, shelter, driver, complexity_type, bonded)
    return factory


@pytest.fixture
async def transport(db_session, shelter, driver):
    return await make_transport(db_session, shelter, driver)


def auth_headers(role: str, user_id: int, shelter_id: int = None) -> dict:
    data = {"sub": f"{role.lower()}_{user_id}", "user_id": user_id, "role": role}
    if shelter_id is not None:
        data["shelter_id"] = shelter_id
    return {"Authorization": f"Bearer {create_access_token(data)}"}


@pytest.fixture
def admin_headers():
    return auth_headers("ADMIN", ADMIN_USER_ID)


@pytest.fixture
def driver_headers():
    return auth_headers("DRIVER", DRIVER_USER_ID)


@pytest.fixture
def shelter_headers(shelter):
    return auth_headers("SHELTER_ADMIN", SHELTER_USER_ID, shelter.id)
