"""Shared test fixtures and configuration."""
import os

# Modules read settings lazily, but keep a complete environment around for
# anything that asks for them.
os.environ.setdefault("SECRET_KEY", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from anime_api.background import JobRunner  # noqa: E402
from anime_api.config import Settings  # noqa: E402
from anime_api.main import create_app  # noqa: E402

from tests.anime_helpers import (  # noqa: E402
    ADMIN_USERNAME,
    NO_ROLE_USERNAME,
    USER_USERNAME,
    FakeAnimeStore,
    FakeUserPort,
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        secret_key="test-secret-key-long-enough-for-hs256",
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def store() -> FakeAnimeStore:
    return FakeAnimeStore()


@pytest.fixture
def user_port() -> FakeUserPort:
    port = FakeUserPort()
    port.add(ADMIN_USERNAME, "ROLE_ADMIN,ROLE_USER")
    port.add(USER_USERNAME, "ROLE_USER")
    port.add(NO_ROLE_USERNAME, "")
    return port


@pytest.fixture
async def job_runner():
    runner = JobRunner()
    yield runner
    await runner.stop()


@pytest.fixture
def app(settings, store, user_port, job_runner):
    return create_app(settings, store=store, user_port=user_port, job_runner=job_runner)


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as c:
        yield c

