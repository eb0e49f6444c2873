"""FastAPI dependency injection definitions - Lobby Pattern."""

from src.cars.api.dependencies.auth import (
    AdminProject,
    CurrentUser,
    IdentityKey,
    get_admin_project,
    get_current_user,
    get_identity_key,
)
from src.cars.api.dependencies.db import DBSession, get_db_session
from src.cars.api.dependencies.repositories import (
    AccountingEntryRepo,
    DeploymentRepo,
    LogEntryRepo,
    ProjectAdminRepo,
    ProjectRepo,
    UserRepo,
)
from src.cars.api.dependencies.services import (
    AdminServiceDep,
    BillingServiceDep,
    DeploymentServiceDep,
    DomainServiceDep,
    EngineAdminServiceDep,
    LogServiceDep,
    PipelineRunnerDep,
    ProjectServiceDep,
    RolloutEngineDep,
    get_pipeline_runner,
    get_rollout_engine,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Auth
    "AdminProject",
    "CurrentUser",
    "IdentityKey",
    "get_admin_project",
    "get_current_user",
    "get_identity_key",
    # Repositories
    "AccountingEntryRepo",
    "DeploymentRepo",
    "LogEntryRepo",
    "ProjectAdminRepo",
    "ProjectRepo",
    "UserRepo",
    # Services
    "AdminServiceDep",
    "BillingServiceDep",
    "DeploymentServiceDep",
    "DomainServiceDep",
    "EngineAdminServiceDep",
    "LogServiceDep",
    "PipelineRunnerDep",
    "ProjectServiceDep",
    "RolloutEngineDep",
    "get_pipeline_runner",
    "get_rollout_engine",
]
