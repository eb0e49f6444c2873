"""Health and Prometheus metrics endpoints."""

import secrets
import time
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text

from src.cars.core.config import get_settings
from src.cars.core.db import get_session
from src.cars.temporal.client import get_temporal_client

HEALTH_CACHE_TTL = 10  # seconds

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"


class _HealthCache:
    def __init__(self) -> None:
        self.report: dict[str, Any] | None = None
        self.taken_at: float = 0.0

    def fresh(self, now: float) -> dict[str, Any] | None:
        if self.report is None or now - self.taken_at >= HEALTH_CACHE_TTL:
            return None
        return {
            **self.report,
            "cached": True,
            "cache_age_seconds": round(now - self.taken_at, 1),
        }

    def store(self, report: dict[str, Any], now: float) -> None:
        self.report = report
        self.taken_at = now


_cache = _HealthCache()


def reset_health_cache() -> None:
    """Forget the last report (tests)."""
    global _cache
    _cache = _HealthCache()


async def check_database() -> str:
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        return f"{UNHEALTHY}: {e!s}"
    return HEALTHY


async def check_temporal() -> str:
    """Connectivity to Temporal, or "not_configured" for the inline runner."""
    if get_settings().pipeline_runner != "temporal":
        return "not_configured"
    try:
        await get_temporal_client()
    except Exception as e:
        return f"{UNHEALTHY}: {e!s}"
    return HEALTHY


def overall_status(database: str, temporal: str) -> str:
    """The database is required. Without Temporal only uploads and billing stop."""
    if database != HEALTHY:
        return UNHEALTHY
    if temporal.startswith(UNHEALTHY):
        return DEGRADED
    return HEALTHY


def _respond(report: dict[str, Any]) -> JSONResponse:
    healthy = report["status"] == HEALTHY
    code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=report, status_code=code)


def setup_health_endpoint(app: FastAPI) -> None:
    @app.get("/health", tags=["public"])
    async def health() -> JSONResponse:
        now = time.time()
        cached = _cache.fresh(now)
        if cached is not None:
            return _respond(cached)

        database = await check_database()
        temporal = await check_temporal()
        report = {
            "status": overall_status(database, temporal),
            "database": database,
            "temporal": temporal,
            "cached": False,
            "timestamp": now,
        }
        _cache.store(report, now)
        return _respond(report)


def setup_metrics(app: FastAPI) -> None:
    """Expose Prometheus metrics, guarded by X-Metrics-Key when configured."""
    settings = get_settings()
    instrumentator = Instrumentator(excluded_handlers=["/health", "/metrics"]).instrument(app)

    if not settings.metrics_api_key:
        instrumentator.expose(app, endpoint="/metrics")
        return

    expected_key = settings.metrics_api_key
    api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

    async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
        if api_key is None or not secrets.compare_digest(api_key, expected_key):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing metrics API key",
            )

    instrumentator.expose(app, endpoint="/metrics", dependencies=[Depends(verify_metrics_key)])
