"""Test configuration and fixtures"""

from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from uuid import uuid4

from app.main import app
from app.database import Base, get_db
from app.models.user import User, UserRole
from app.services.registry import TableRegistry
from app.services.slots import local_now


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Settable stand-in for the restaurant wall clock"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeEmailTask:
    """Records queued reservation emails instead of talking to the broker"""

    def __init__(self):
        self.calls = []
        self.error = None

    def delay(self, *args):
        if self.error is not None:
            raise self.error
        self.calls.append(args)


def future_date(days: int = 7):
    """A reservation day safely ahead of the real clock"""
    return local_now().date() + timedelta(days=days)


@pytest.fixture
def clock():
    """Clock fixed at noon on a day well ahead of the test data"""
    return FakeClock(datetime(2030, 6, 1, 12, 0))


@pytest.fixture
def booking_date():
    """Reservation day for API tests"""
    return future_date()


@pytest.fixture
def auth_headers():
    """Bearer headers for an arbitrary user"""
    from app.api.auth import create_access_token

    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}
    return _headers


@pytest.fixture(autouse=True)
def email_task(monkeypatch):
    """Never reach the real broker from tests"""
    fake = FakeEmailTask()
    monkeypatch.setattr("app.services.notifications.send_reservation_email", fake)
    return fake


@pytest.fixture
async def test_db():
    """Create test database"""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_tables(test_db):
    """The standard 22 tables: 1-10 seat four, 11-22 seat six"""
    await TableRegistry(test_db).initialize()
    await test_db.commit()
    return await TableRegistry(test_db).list_tables()


@pytest.fixture
async def test_user(test_db):
    """Create a customer"""
    user = User(
        id=uuid4(),
        email="guest@example.com",
        full_name="Test Guest",
        phone="0612345678",
        role=UserRole.CUSTOMER,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()

    return user


@pytest.fixture
async def other_user(test_db):
    """Create a second customer"""
    user = User(
        id=uuid4(),
        email="other@example.com",
        full_name="Other Guest",
        role=UserRole.CUSTOMER,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()

    return user


@pytest.fixture
async def test_admin_user(test_db):
    """Create an admin user"""
    user = User(
        id=uuid4(),
        email="admin@example.com",
        full_name="Admin User",
        role=UserRole.ADMIN,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()

    return user


@pytest.fixture
async def client(test_db):
    """Create test client with overridden database"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def authenticated_client(client, test_user):
    """Create customer authenticated test client"""
    from app.api.auth import create_access_token

    token = create_access_token(test_user)
    client.headers["Authorization"] = f"Bearer {token}"

    return client


@pytest.fixture
async def admin_client(client, test_admin_user):
    """Create admin authenticated test client"""
    from app.api.auth import create_access_token

    token = create_access_token(test_admin_user)
    client.headers["Authorization"] = f"Bearer {token}"

    return client
