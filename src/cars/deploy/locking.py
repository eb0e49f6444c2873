"""Per-project deployment lock.

On PostgreSQL this is a session level advisory lock held on its own
connection, so it spans every commit the pipeline makes and is shared by
all API and worker processes. Other dialects (SQLite in tests) fall back to
an in-process lock.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from src.cars.core.logging import get_logger

logger = get_logger(__name__)

_local_locks: dict[UUID, asyncio.Lock] = {}


def advisory_key(project_id: UUID) -> int:
    """Signed 64-bit key derived from the project id."""
    return int.from_bytes(project_id.bytes[:8], "big", signed=True)


@asynccontextmanager
async def project_deployment_lock(engine: AsyncEngine, project_id: UUID) -> AsyncIterator[None]:
    if engine.dialect.name != "postgresql":
        lock = _local_locks.setdefault(project_id, asyncio.Lock())
        async with lock:
            yield
        return

    key = advisory_key(project_id)
    async with engine.connect() as conn:
        await conn.execute(text("SELECT pg_advisory_lock(:key)"), {"key": key})
        logger.debug("Project deployment lock acquired", project_id=str(project_id))
        try:
            yield
        finally:
            await conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": key})
            await conn.commit()
