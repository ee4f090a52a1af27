"""Shared fixtures for API tests."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from api.main import app
from core.auth import get_current_user, get_optional_user
from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def non_dev_settings(**overrides: object) -> Settings:
    """Settings with DEV_MODE off, so requests must carry real credentials."""
    values: dict[str, object] = {
        "database_url": TEST_DATABASE_URL,
        "VITE_DEV_MODE": "false",
        "VITE_AUTH0_DOMAIN": "test.auth0.com",
        "VITE_AUTH0_AUDIENCE": "https://api.test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@asynccontextmanager
async def create_user2_client(
    db_session: AsyncSession,
    auth0_id: str,
    email: str,
) -> AsyncGenerator[AsyncClient]:
    """
    Create an authenticated AsyncClient for a second user.

    Sets up a new user and overrides the auth dependencies so every request is
    made as that user. Cleans up dependency overrides on exit.
    """
    user2 = User(auth0_id=auth0_id, email=email)
    db_session.add(user2)
    await db_session.flush()

    get_settings.cache_clear()
    previous_overrides = dict(app.dependency_overrides)

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    async def override_get_current_user() -> User:
        return user2

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_optional_user] = override_get_current_user

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as user2_client:
            yield user2_client
    finally:
        app.dependency_overrides.clear()
        app.dependency_overrides.update(previous_overrides)


@asynccontextmanager
async def create_client_with_settings(
    db_session: AsyncSession,
    settings: Settings,
) -> AsyncGenerator[AsyncClient]:
    """Create an AsyncClient whose requests see the given settings."""
    previous_overrides = dict(app.dependency_overrides)

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    def override_get_settings() -> Settings:
        return settings

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = override_get_settings

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        app.dependency_overrides.update(previous_overrides)
