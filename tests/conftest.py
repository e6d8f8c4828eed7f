import os
from contextlib import contextmanager
from typing import AsyncGenerator, Iterator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.base import Base
from libs.db.config import build_engine, build_session_factory
from libs.db.session import get_async_db
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Registers every onboarding table with Base.metadata
import services.onboarding_service.models  # noqa: F401

DEFAULT_AUTH_ID = "test-user"


def _test_database_url(tmp_path) -> str:
    url = os.environ.get("TEST_DATABASE_URL")
    if url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return f"sqlite+aiosqlite:///{tmp_path / 'onboarding.db'}"


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Engine on a throwaway database.

    SQLite gets a fresh file per test; a PostgreSQL TEST_DATABASE_URL is
    reset before and after each test.
    """
    engine = build_engine(_test_database_url(tmp_path))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Factory for independent sessions (one per simulated request)."""
    return build_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session for calling services directly.

    Services commit and roll back on their own, so the session is not wrapped
    in an outer transaction; isolation comes from the per-test database.
    """
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_auth_user(
    user_id: str = DEFAULT_AUTH_ID,
    email: Optional[str] = "test@example.com",
    role: str = "authenticated",
) -> AuthUser:
    return AuthUser(user_id=user_id, email=email, role=role)


def make_admin_user() -> AuthUser:
    return make_auth_user(user_id="service", email=None, role="service_role")


@contextmanager
def override_auth(app, user: AuthUser) -> Iterator[None]:
    """Temporarily authenticate requests to ``app`` as ``user``."""
    previous = app.dependency_overrides.get(get_current_user)
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def onboarding_app():
    from services.onboarding_service.app.main import app

    return app


@pytest_asyncio.fixture
async def client(
    onboarding_app, session_factory
) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the DB dependency pointed at the test database.

    Each request gets its own session, as in production.
    """

    async def _get_test_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    onboarding_app.dependency_overrides[get_async_db] = _get_test_db
    onboarding_app.dependency_overrides[get_current_user] = lambda: make_auth_user()

    async with AsyncClient(
        transport=ASGITransport(app=onboarding_app), base_url="http://test"
    ) as ac:
        yield ac

    onboarding_app.dependency_overrides.clear()
