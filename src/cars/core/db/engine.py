"""Async engine for the control plane database."""

import ssl
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.cars.core.config import Settings, get_settings

_engine: AsyncEngine | None = None

_UNVERIFIED_MODES = ("prefer", "require")
_VERIFIED_MODES = ("verify-ca", "verify-full")


def ssl_context_for(mode: str) -> ssl.SSLContext | None:
    """Map a libpq-style sslmode onto an SSLContext for asyncpg.

    Returns None for "disable".
    """
    if mode == "disable":
        return None
    if mode not in _UNVERIFIED_MODES + _VERIFIED_MODES:
        raise ValueError(f"Unsupported database SSL mode '{mode}'")

    context = ssl.create_default_context()
    if mode in _UNVERIFIED_MODES:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    else:
        context.check_hostname = mode == "verify-full"
        context.verify_mode = ssl.CERT_REQUIRED
    return context


def engine_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for create_async_engine.

    Pool sizing and SSL only apply to PostgreSQL; SQLite (local runs and
    tests) gets the driver defaults.
    """
    url = make_url(settings.database_url)
    if url.get_backend_name() != "postgresql":
        return {}

    options: dict[str, Any] = {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
    }
    context = ssl_context_for(settings.database_ssl_mode)
    if context is not None:
        options["connect_args"] = {"ssl": context}
    return options


def get_engine() -> AsyncEngine:
    """Process-wide engine, created on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database_url, **engine_options(settings))
    return _engine


async def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def sync_database_url(url: str) -> str:
    """Swap the asyncpg driver for psycopg so Alembic can run synchronously."""
    return url.replace("+asyncpg", "+psycopg")
