"""Service factory dependencies."""

from functools import partial
from typing import Annotated

from fastapi import Depends

from src.cars.api.dependencies.db import DBSession
from src.cars.api.dependencies.repositories import (
    AccountingEntryRepo,
    DeploymentRepo,
    LogEntryRepo,
    ProjectAdminRepo,
    ProjectRepo,
    UserRepo,
)
from src.cars.billing import BillingRates
from src.cars.core.config import get_settings
from src.cars.core.db import get_session
from src.cars.core.security import get_signature_service
from src.cars.deploy.rollout import RolloutEngine
from src.cars.infra.dns import DohTxtResolver
from src.cars.infra.project_backend import ProjectBackendClient
from src.cars.services import (
    AdminService,
    BillingService,
    DeploymentService,
    DomainService,
    EngineAdminService,
    LogService,
    NotificationService,
    PipelineRunner,
    ProjectService,
)
from src.cars.services.deployment_pipeline import build_pipeline
from src.cars.temporal.client import get_temporal_client
from src.cars.temporal.runner import InlinePipelineRunner, TemporalPipelineRunner


def get_log_service(log_repo: LogEntryRepo) -> LogService:
    return LogService(log_repo)


LogServiceDep = Annotated[LogService, Depends(get_log_service)]


def get_notification_service(admin_repo: ProjectAdminRepo) -> NotificationService:
    return NotificationService(admin_repo)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


def get_rollout_engine() -> RolloutEngine:
    return RolloutEngine.from_settings(get_settings())


RolloutEngineDep = Annotated[RolloutEngine, Depends(get_rollout_engine)]


def get_project_service(
    session: DBSession,
    project_repo: ProjectRepo,
    admin_repo: ProjectAdminRepo,
    log_service: LogServiceDep,
    notifier: NotificationServiceDep,
) -> ProjectService:
    return ProjectService(session, project_repo, admin_repo, log_service, notifier)


def get_admin_service(
    session: DBSession,
    project_repo: ProjectRepo,
    admin_repo: ProjectAdminRepo,
    user_repo: UserRepo,
    log_service: LogServiceDep,
    notifier: NotificationServiceDep,
) -> AdminService:
    return AdminService(session, project_repo, admin_repo, user_repo, log_service, notifier)


def get_billing_service(
    session: DBSession,
    project_repo: ProjectRepo,
    accounting_repo: AccountingEntryRepo,
    log_service: LogServiceDep,
    notifier: NotificationServiceDep,
    rollout: RolloutEngineDep,
) -> BillingService:
    settings = get_settings()
    return BillingService(
        session=session,
        project_repo=project_repo,
        accounting_repo=accounting_repo,
        log_service=log_service,
        notifier=notifier,
        gate=rollout,
        rates=BillingRates.from_settings(settings),
        gating_enabled=settings.access_gating_enabled,
        interval_minutes=settings.billing_interval_minutes,
    )


def get_deployment_service(
    session: DBSession,
    deployment_repo: DeploymentRepo,
    project_repo: ProjectRepo,
    log_service: LogServiceDep,
) -> DeploymentService:
    return DeploymentService(
        session,
        deployment_repo,
        project_repo,
        log_service,
        get_signature_service(),
        get_settings(),
    )


def get_domain_service(
    session: DBSession,
    log_service: LogServiceDep,
    notifier: NotificationServiceDep,
) -> DomainService:
    return DomainService(
        session, DohTxtResolver(get_settings().dns_resolver_url), log_service, notifier
    )


def get_engine_admin_service() -> EngineAdminService:
    return EngineAdminService(ProjectBackendClient(), get_settings().project_deployment_dns_name)


async def get_pipeline_runner() -> PipelineRunner:
    settings = get_settings()
    pipeline_factory = partial(build_pipeline, settings=settings)
    if settings.pipeline_runner == "inline":
        return InlinePipelineRunner(get_session, pipeline_factory)
    return TemporalPipelineRunner(
        await get_temporal_client(), settings, get_session, pipeline_factory
    )


ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]
AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]
BillingServiceDep = Annotated[BillingService, Depends(get_billing_service)]
DeploymentServiceDep = Annotated[DeploymentService, Depends(get_deployment_service)]
DomainServiceDep = Annotated[DomainService, Depends(get_domain_service)]
EngineAdminServiceDep = Annotated[EngineAdminService, Depends(get_engine_admin_service)]
PipelineRunnerDep = Annotated[PipelineRunner, Depends(get_pipeline_runner)]
