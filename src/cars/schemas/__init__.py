from src.cars.schemas.auth import RegisterRequest, UserRead
from src.cars.schemas.base import CamelModel, MessageResponse
from src.cars.schemas.billing import AccountingEntryRead, BillingStats, PayRequest, PayResponse
from src.cars.schemas.deployment import (
    DeploymentRead,
    DeploymentSlot,
    LogsResponse,
    UploadResponse,
)
from src.cars.schemas.pagination import PaginatedResponse
from src.cars.schemas.project import (
    AdminChange,
    AdminRead,
    CustomDomains,
    DefaultHosts,
    DomainRequest,
    DomainResponse,
    EngineActionResponse,
    EngineSettingsUpdate,
    ProjectCreate,
    ProjectCreated,
    ProjectInfo,
    ProjectSummary,
    WebUIConfigUpdate,
)
from src.cars.schemas.public import Pricing, PublicInfo

__all__ = [
    "AccountingEntryRead",
    "AdminChange",
    "AdminRead",
    "BillingStats",
    "CamelModel",
    "CustomDomains",
    "DefaultHosts",
    "DeploymentRead",
    "DeploymentSlot",
    "DomainRequest",
    "DomainResponse",
    "EngineActionResponse",
    "EngineSettingsUpdate",
    "LogsResponse",
    "MessageResponse",
    "PaginatedResponse",
    "PayRequest",
    "PayResponse",
    "Pricing",
    "ProjectCreate",
    "ProjectCreated",
    "ProjectInfo",
    "ProjectSummary",
    "PublicInfo",
    "RegisterRequest",
    "UserRead",
    "WebUIConfigUpdate",
]
