from datetime import datetime

from src.cars.schemas.base import CamelModel


class DeploymentSlot(CamelModel):
    url: str
    deployment_id: str


class DeploymentRead(CamelModel):
    deployment_id: str
    status: str
    created_at: datetime
    error_message: str | None = None


class UploadResponse(CamelModel):
    message: str
    frontend_url: str | None = None
    backend_url: str | None = None


class LogsResponse(CamelModel):
    logs: str
