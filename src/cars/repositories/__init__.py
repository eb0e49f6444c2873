"""Repository layer - data access abstraction."""

from src.cars.repositories.base import BaseRepository
from src.cars.repositories.deployment import DeploymentRepository
from src.cars.repositories.ledger import AccountingEntryRepository, LogEntryRepository
from src.cars.repositories.project import ProjectAdminRepository, ProjectRepository
from src.cars.repositories.user import UserRepository

__all__ = [
    "AccountingEntryRepository",
    "BaseRepository",
    "DeploymentRepository",
    "LogEntryRepository",
    "ProjectAdminRepository",
    "ProjectRepository",
    "UserRepository",
]
