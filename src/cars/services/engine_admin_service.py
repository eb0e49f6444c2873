"""Admin actions proxied to a project's running overlay engine."""

from enum import Enum
from typing import Any

from src.cars.core.exceptions import InfrastructureError, InputError
from src.cars.core.logging import get_logger
from src.cars.deploy.synthesizer import public_host
from src.cars.infra.project_backend import ProjectBackendClient, ProjectBackendError
from src.cars.models import DeployTarget, Project

logger = get_logger(__name__)


class EngineAction(str, Enum):
    SYNC_ADVERTISEMENTS = "syncAdvertisements"
    START_GASP_SYNC = "startGASPSync"

    @property
    def timeout_seconds(self) -> float:
        return 120.0 if self is EngineAction.SYNC_ADVERTISEMENTS else 3600.0


class EngineAdminService:
    def __init__(self, client: ProjectBackendClient, base_domain: str):
        self.client = client
        self.base_domain = base_domain

    async def call(self, project: Project, action: EngineAction) -> tuple[str, Any]:
        if not project.admin_bearer_token:
            raise InputError("No admin bearer token stored for this project")

        backend_host = public_host(project, DeployTarget.BACKEND, self.base_domain)
        try:
            result = await self.client.call_admin(
                backend_host, project.admin_bearer_token, action.value, action.timeout_seconds
            )
        except ProjectBackendError as e:
            logger.error(
                f"{action.value} proxy error",
                backend_host=backend_host,
                status_code=e.status_code,
                error=str(e.detail),
            )
            raise InfrastructureError(
                f"{action.value} failed", backend_status=e.status_code, backend_error=e.detail
            ) from e
        return f"{action.value} called successfully", result
