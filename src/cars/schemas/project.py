"""Project schemas for API request/response."""

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from src.cars.models import Network
from src.cars.schemas.base import CamelModel


class ProjectCreate(CamelModel):
    name: str | None = Field(default=None, max_length=200)
    network: Network | None = None
    private_key: str | None = Field(default=None, description="64 lowercase hex chars")

    @field_validator("network", mode="before")
    @classmethod
    def normalize_network(cls, v: Any) -> Any:
        if v in ("test", "testnet"):
            return Network.TESTNET
        if v in ("main", "mainnet"):
            return Network.MAINNET
        return v


class ProjectCreated(CamelModel):
    project_id: str
    message: str


class ProjectSummary(CamelModel):
    id: str
    name: str
    network: str
    balance: int
    created_at: datetime


class CustomDomains(CamelModel):
    frontend: str | None = None
    backend: str | None = None


class DefaultHosts(CamelModel):
    frontend: str
    backend: str


class ProjectInfo(CamelModel):
    id: str
    name: str
    network: str
    balance: int
    created_at: datetime
    ingress_enabled: bool
    custom_domains: CustomDomains
    default_hosts: DefaultHosts
    engine_config: dict[str, Any]
    web_ui_config: dict[str, Any] | None = None


class EngineSettingsUpdate(CamelModel):
    """Partial update; only the keys that are present are merged."""

    request_logging: bool | None = None
    gasp_sync: bool | None = None
    sync_configuration: dict[str, Any] | None = None
    log_time: bool | None = None
    log_prefix: str | None = Field(default=None, max_length=200)
    throw_on_broadcast_failure: bool | None = None

    def as_engine_config(self) -> dict[str, Any]:
        """Only the fields the caller actually sent, keyed the way the engine expects."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


class WebUIConfigUpdate(CamelModel):
    config: dict[str, Any]


class AdminRead(CamelModel):
    identity_key: str
    email: str | None
    added_at: datetime


class AdminChange(CamelModel):
    identity_key_or_email: str = Field(min_length=1, max_length=320)


class DomainRequest(CamelModel):
    domain: str = Field(min_length=1, max_length=253)


class DomainResponse(CamelModel):
    message: str
    domain: str


class EngineActionResponse(CamelModel):
    message: str
    result: Any = None
