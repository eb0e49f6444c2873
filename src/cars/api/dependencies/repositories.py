"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.cars.api.dependencies.db import DBSession
from src.cars.repositories import (
    AccountingEntryRepository,
    DeploymentRepository,
    LogEntryRepository,
    ProjectAdminRepository,
    ProjectRepository,
    UserRepository,
)


def get_user_repository(session: DBSession) -> UserRepository:
    return UserRepository(session)


def get_project_repository(session: DBSession) -> ProjectRepository:
    return ProjectRepository(session)


def get_project_admin_repository(session: DBSession) -> ProjectAdminRepository:
    return ProjectAdminRepository(session)


def get_deployment_repository(session: DBSession) -> DeploymentRepository:
    return DeploymentRepository(session)


def get_log_entry_repository(session: DBSession) -> LogEntryRepository:
    return LogEntryRepository(session)


def get_accounting_entry_repository(session: DBSession) -> AccountingEntryRepository:
    return AccountingEntryRepository(session)


UserRepo = Annotated[UserRepository, Depends(get_user_repository)]
ProjectRepo = Annotated[ProjectRepository, Depends(get_project_repository)]
ProjectAdminRepo = Annotated[ProjectAdminRepository, Depends(get_project_admin_repository)]
DeploymentRepo = Annotated[DeploymentRepository, Depends(get_deployment_repository)]
LogEntryRepo = Annotated[LogEntryRepository, Depends(get_log_entry_repository)]
AccountingEntryRepo = Annotated[AccountingEntryRepository, Depends(get_accounting_entry_repository)]
