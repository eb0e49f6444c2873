"""Per-request log context and access logging."""

import time

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.cars.core.logging import bind_request_context, clear_request_context, get_logger

logger = get_logger("src.cars.access")

# Probes and scrapes would drown the access log
_QUIET_PATHS = frozenset({"/health", "/metrics"})


async def logging_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Bind the correlation id for the request and log its outcome.

    Upload URLs embed a signature, so only the route prefix is logged for them.
    """
    clear_request_context()
    bind_request_context(correlation_id.get())
    started = time.perf_counter()
    try:
        response = await call_next(request)
        if request.url.path not in _QUIET_PATHS:
            path = request.url.path
            if path.startswith("/api/v1/upload/"):
                path = "/api/v1/upload/..."
            logger.info(
                "Request handled",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        return response
    finally:
        clear_request_context()
