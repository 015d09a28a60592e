import os
import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Isolated settings; the database itself is an in-memory mock per test.
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DB_NAME", "northbank_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")
os.environ.setdefault("ADMIN_PIN", "4321")
os.environ.setdefault("EXTERNAL_LINK_PIN", "0909")
os.environ["RATE_LIMIT_ENABLED"] = "false"

ADMIN_PIN = os.environ["ADMIN_PIN"]


@pytest_asyncio.fixture
async def db():
    from mongomock_motor import AsyncMongoMockClient

    from app.db.init import init_db
    database = AsyncMongoMockClient()["northbank_test"]
    await init_db(database)
    yield database


@pytest_asyncio.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    from app.main import app
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def make_user(db):
    """Register a user with a unique username and email."""
    from app.services.users import register_user

    async def _make(name: str = "Test User", password: str = "secret123"):
        handle = uuid.uuid4().hex[:10]
        return await register_user(name, f"{handle}@example.com", handle, password)

    return _make


@pytest.fixture
def funded_user(make_user):
    """A user whose checking (and optionally savings) starts with a deposit."""
    from app.services.transfers import mobile_deposit
    from app.services.user_store import load_user

    async def _make(checking="1000", savings=None):
        user = await make_user()
        if checking is not None:
            await mobile_deposit(user.id, checking)
        if savings is not None:
            from app.services.transfers import admin_update_balance
            await admin_update_balance(user.id, "savings", savings)
        return await load_user(user.id)

    return _make


@pytest.fixture
def auth_headers():
    from app.services.users import user_token

    def _headers(user) -> dict[str, str]:
        return {"Authorization": f"Bearer {user_token(user)}"}

    return _headers


@pytest.fixture
def admin_headers() -> dict[str, str]:
    from app.services.users import admin_token
    return {"Authorization": f"Bearer {admin_token(ADMIN_PIN)}"}
