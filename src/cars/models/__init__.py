"""Model exports.

Import from here: `from src.cars.models import Project, Deployment`
"""

from src.cars.models.deployment import Deployment
from src.cars.models.enums import (
    DEPLOYMENT_STAGE_ORDER,
    AccountingEntryType,
    DeploymentStatus,
    DeployTarget,
    LogLevel,
    Network,
)
from src.cars.models.ledger import AccountingEntry, LogEntry
from src.cars.models.project import Project, ProjectAdmin
from src.cars.models.user import User

__all__ = [
    # Enums
    "AccountingEntryType",
    "DEPLOYMENT_STAGE_ORDER",
    "DeployTarget",
    "DeploymentStatus",
    "LogLevel",
    "Network",
    # Models
    "AccountingEntry",
    "Deployment",
    "LogEntry",
    "Project",
    "ProjectAdmin",
    "User",
]
