# tests/conftest.py — Shared test fixtures
import os
import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"

import database
import invalidation
from models import Base
from auth import AuthService, CurrentUser, PRO_ENTITLEMENT
from database import get_db_session
from main import app
from sync_client.api import TaskBoardClient


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    # The app engine pools connections per event loop; each test runs its own loop
    await database.engine.dispose()
    invalidation.reset()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def make_user(org_id=None, entitlements=None, **identity) -> CurrentUser:
    return CurrentUser(
        id=identity.get("id", f"user_{uuid.uuid4().hex[:12]}"),
        email=identity.get("email", "member@example.com"),
        first_name=identity.get("first_name", "Test"),
        last_name=identity.get("last_name", "Member"),
        image_url=identity.get("image_url", "https://img.example.com/avatar.png"),
        organisation_id=org_id,
        entitlements=entitlements or [],
    )


@pytest.fixture
def org_id():
    return f"org_{uuid.uuid4().hex[:12]}"


@pytest.fixture
def test_user(org_id):
    """Free-plan member of the test organisation"""
    return make_user(org_id=org_id)


@pytest.fixture
def pro_user(org_id):
    """Member of the test organisation with the pro entitlement"""
    return make_user(org_id=org_id, entitlements=[PRO_ENTITLEMENT], email="pro@example.com")


@pytest.fixture
def other_org_user():
    return make_user(org_id=f"org_{uuid.uuid4().hex[:12]}", email="rival@example.com")


@pytest.fixture
def no_org_user():
    """Signed in, but not inside any organisation"""
    return make_user(org_id=None, email="loner@example.com")


@pytest_asyncio.fixture
async def board_api(client, test_user):
    """Sync-client API bound to the test user, talking to the app in-process"""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers=get_auth_headers(test_user),
    ) as ac:
        yield TaskBoardClient(client=ac)


def get_auth_headers(user: CurrentUser) -> dict:
    """Generate auth headers for a user"""
    token_data = {
        "sub": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "image_url": user.image_url,
        "org_id": user.organisation_id,
        "entitlements": user.entitlements,
    }
    token = AuthService.create_access_token(token_data)
    return {"Authorization": f"Bearer {token}"}
