"""Domain errors and the exception handlers that render them with request_id."""

from typing import Any

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.cars.core.logging import get_logger

logger = get_logger(__name__)


class CarsError(Exception):
    """Base class for errors raised by the service layer.

    Each subclass maps to one HTTP status. `extra` is merged into the
    JSON body next to `detail` (e.g. DNS instructions).
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra


class InputError(CarsError):
    """Caller sent something we cannot act on (bad manifest, bad amount, ...)."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(CarsError):
    """Bad bearer token or bad upload signature."""

    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(CarsError):
    """Authenticated, but not allowed (non-admin, insufficient balance)."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(CarsError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(CarsError):
    """Request conflicts with current state (deployment slot already used)."""

    status_code = status.HTTP_409_CONFLICT


class InfrastructureError(CarsError):
    """A collaborator (builder, cluster, metrics backend) failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(CarsError)
    async def cars_error_handler(request: Request, exc: CarsError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                **exc.extra,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
