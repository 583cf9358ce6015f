"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool, Pool

from backend.app.main import app
from backend.app.core.config import settings
from backend.app.db.session import get_db, Base
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.models.load import Load
from backend.app.models.load_enums import LoadStatus
from backend.app.models.truck import Truck
from backend.app.models.truck_enums import BUSY_TRUCK_STATUSES
from backend.app.services import freight_engine

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


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Route every request of the app to the in-memory database."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def restore_settings():
    """Tests may flip lifecycle settings; put them back afterwards."""
    original = (settings.confirm_delivery_step, settings.match_active_trucks_only)
    yield
    settings.confirm_delivery_step, settings.match_active_trucks_only = original


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Session the service-level tests drive the engine with
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    """
    Open extra sessions that act as concurrent requests.

    Every session shares the single StaticPool connection, so a commit in one
    also commits whatever another session has pending. Race tests built on
    this only exercise lost compare-and-set paths (zero rows updated, unique
    index violations), not transaction isolation.
    """
    return TestingSessionLocal


# Fixture objects are built in their own sessions and returned detached, so a
# rollback in db_session cannot expire them.

async def _create_user(email: str, role: UserRole) -> User:
    # Service-level tests never log in, so the hash is a placeholder
    async with TestingSessionLocal() as db:
        user = User(email=email, name=email.split("@")[0], hashed_password="not-a-real-hash", role=role)
        db.add(user)
        await db.commit()
        await db.refresh(user)
    return user


@pytest.fixture
async def shipper():
    return await _create_user("shipper@test.com", UserRole.SHIPPER)


@pytest.fixture
async def driver():
    return await _create_user("driver@test.com", UserRole.DRIVER)


@pytest.fixture
async def other_driver():
    return await _create_user("driver2@test.com", UserRole.DRIVER)


@pytest.fixture
def make_truck():
    """Factory: register a FREE truck for a driver."""
    async def _make(owner: User, truck_type, name=None) -> Truck:
        async with TestingSessionLocal() as db:
            return await freight_engine.create_truck(db, owner.id, truck_type, name)
    return _make


@pytest.fixture
def make_load(shipper):
    """Factory: create a NEW load owned by the shipper fixture."""
    async def _make(width=2, length=2, height=2, payload=100) -> Load:
        async with TestingSessionLocal() as db:
            return await freight_engine.create_load(db, shipper.id, {
                "dimensions": {"width": width, "length": length, "height": height},
                "payload": payload,
            })
    return _make


@pytest.fixture
def assert_invariants(db_session):
    """
    Check load/truck consistency: every ASSIGNED load is backed by exactly one
    busy truck of its driver, every busy truck backs exactly one ASSIGNED load,
    and ``state`` is set only while ASSIGNED.
    """
    async def _check():
        loads = (await db_session.execute(
            select(Load).execution_options(populate_existing=True)
        )).scalars().all()
        trucks = (await db_session.execute(
            select(Truck).execution_options(populate_existing=True)
        )).scalars().all()

        busy_trucks = {truck.id: truck for truck in trucks if truck.status in BUSY_TRUCK_STATUSES}
        active_loads = [load for load in loads if load.status == LoadStatus.ASSIGNED]

        for load in loads:
            assert (load.state is not None) == (load.status == LoadStatus.ASSIGNED)

        for load in active_loads:
            assert load.assigned_to is not None
            assert load.truck_id in busy_trucks
            assert busy_trucks[load.truck_id].created_by == load.assigned_to

        assert sorted(load.truck_id for load in active_loads) == sorted(busy_trucks)
    return _check

