"""Root test fixtures shared across all test types.

Unit tests run against an in-memory SQLite database created from the
SQLModel metadata; nothing here needs PostgreSQL, Temporal or a cluster.
"""

import os

# Settings are read at import time by several modules
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE_SSL_MODE", "disable")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-0123456789abcdef")
os.environ.setdefault("URL_SIGNING_SECRET", "test-url-signing-secret-0123456789abcdef")
os.environ.setdefault("PROJECT_DEPLOYMENT_DNS_NAME", "projects.example.com")
os.environ.setdefault("PUBLIC_BASE_URL", "https://cars.example.com")
os.environ.setdefault("PIPELINE_RUNNER", "inline")
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("METRICS_API_KEY", None)

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import src.cars.models  # noqa: F401 - registers tables on the metadata
from src.cars.core.config import Settings, get_settings
from src.cars.core.db import get_session

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session configured like the application's (no expire on commit)."""
    async with get_session(engine) as session:
        yield session


@pytest.fixture
def session_factory(engine: AsyncEngine) -> Callable[[], AbstractAsyncContextManager[AsyncSession]]:
    """Opens a new session on the test engine, as BillingTick and runners expect."""
    return lambda: get_session(engine)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings whose artifact and build directories live under tmp_path."""
    return get_settings().model_copy(
        update={
            "artifact_dir": str(tmp_path / "artifacts"),
            "build_dir": str(tmp_path / "builds"),
            "registry_host": "registry.test:5000",
            "taal_api_key_main": "main-arc-key",
            "taal_api_key_test": "test-arc-key",
        }
    )
