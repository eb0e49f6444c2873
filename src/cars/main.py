from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.cars.api.middlewares import logging_context_middleware
from src.cars.api.v1.router import api_router
from src.cars.core.config import get_settings
from src.cars.core.db import dispose_engine
from src.cars.core.exceptions import setup_exception_handlers
from src.cars.core.health import setup_health_endpoint, setup_metrics
from src.cars.core.logging import get_logger, setup_logging
from src.cars.temporal.client import close_temporal_client

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}", pipeline_runner=settings.pipeline_runner)

    yield

    logger.info("Closing connections...")
    await close_temporal_client()
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "auth", "description": "Identity registration"},
    {"name": "projects", "description": "Project lifecycle and configuration"},
    {"name": "admins", "description": "Project admin membership"},
    {"name": "deployments", "description": "Deployment slots, history and logs"},
    {"name": "billing", "description": "Balance top-ups and accounting history"},
    {"name": "domains", "description": "Custom domain verification"},
    {"name": "engine-admin", "description": "Admin calls forwarded to a project's engine"},
    {"name": "upload", "description": "Signed artifact upload"},
    {"name": "public", "description": "Pricing and platform information"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Deployment and metering control plane for hosted overlay projects",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    setup_exception_handlers(app)

    # Middleware added last runs first: the correlation id must be set
    # before the logging context binds it.
    app.middleware("http")(logging_context_middleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(api_router)

    setup_metrics(app)
    setup_health_endpoint(app)

    return app


app = create_app()
