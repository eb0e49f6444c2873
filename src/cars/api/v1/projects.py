"""Project lifecycle endpoints: create, list, inspect, configure, delete."""

from fastapi import APIRouter, status

from src.cars.api.dependencies import (
    AdminProject,
    CurrentUser,
    ProjectServiceDep,
    RolloutEngineDep,
)
from src.cars.core.config import get_settings
from src.cars.deploy.synthesizer import default_host
from src.cars.models import DeployTarget, Project
from src.cars.schemas import (
    CustomDomains,
    DefaultHosts,
    EngineSettingsUpdate,
    MessageResponse,
    ProjectCreate,
    ProjectCreated,
    ProjectInfo,
    ProjectSummary,
    WebUIConfigUpdate,
)

router = APIRouter(prefix="/projects", tags=["projects"])


def _summary(project: Project) -> ProjectSummary:
    return ProjectSummary(
        id=project.external_id,
        name=project.name,
        network=project.network,
        balance=project.balance,
        created_at=project.created_at,
    )


def _info(project: Project) -> ProjectInfo:
    base_domain = get_settings().project_deployment_dns_name
    return ProjectInfo(
        id=project.external_id,
        name=project.name,
        network=project.network,
        balance=project.balance,
        created_at=project.created_at,
        ingress_enabled=project.ingress_enabled,
        custom_domains=CustomDomains(
            frontend=project.frontend_custom_domain,
            backend=project.backend_custom_domain,
        ),
        default_hosts=DefaultHosts(
            frontend=default_host(project, DeployTarget.FRONTEND, base_domain),
            backend=default_host(project, DeployTarget.BACKEND, base_domain),
        ),
        engine_config=project.engine_config,
        web_ui_config=project.web_ui_config,
    )


@router.post(
    "/create",
    response_model=ProjectCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
    description="Create a project with the caller as its first admin.",
    responses={
        201: {"description": "Project created"},
        400: {"description": "Invalid private key"},
        401: {"description": "Not authenticated or not registered"},
    },
)
async def create_project(
    request: ProjectCreate,
    user: CurrentUser,
    service: ProjectServiceDep,
) -> ProjectCreated:
    project = await service.create_project(
        user, name=request.name, network=request.network, private_key=request.private_key
    )
    return ProjectCreated(project_id=project.external_id, message="Project created")


@router.get(
    "/list",
    response_model=list[ProjectSummary],
    summary="List projects",
    description="Projects the caller administers.",
)
async def list_projects(user: CurrentUser, service: ProjectServiceDep) -> list[ProjectSummary]:
    return [_summary(p) for p in await service.list_projects(user)]


@router.get(
    "/{project_id}/info",
    response_model=ProjectInfo,
    summary="Project info",
    responses={
        200: {"description": "Project details"},
        403: {"description": "Not admin of project"},
        404: {"description": "Project not found"},
    },
)
async def project_info(project: AdminProject) -> ProjectInfo:
    return _info(project)


@router.post(
    "/{project_id}/settings/update",
    response_model=ProjectInfo,
    summary="Update engine settings",
    description="Merge the supplied engine settings into the stored config.",
    responses={
        200: {"description": "Settings updated"},
        403: {"description": "Not admin of project"},
        404: {"description": "Project not found"},
    },
)
async def update_settings(
    request: EngineSettingsUpdate,
    project: AdminProject,
    service: ProjectServiceDep,
) -> ProjectInfo:
    project = await service.update_engine_settings(project, request.as_engine_config())
    return _info(project)


@router.post(
    "/{project_id}/webui/config",
    response_model=MessageResponse,
    summary="Store web UI config",
    responses={
        200: {"description": "Config stored"},
        403: {"description": "Not admin of project"},
        404: {"description": "Project not found"},
    },
)
async def update_web_ui_config(
    request: WebUIConfigUpdate,
    project: AdminProject,
    service: ProjectServiceDep,
) -> MessageResponse:
    await service.update_web_ui_config(project, request.config)
    return MessageResponse(message="Web UI config updated")


@router.post(
    "/{project_id}/delete",
    response_model=MessageResponse,
    summary="Delete project",
    description="Uninstall cluster resources (best effort), notify admins and delete all records.",
    responses={
        200: {"description": "Project deleted"},
        403: {"description": "Not admin of project"},
        404: {"description": "Project not found"},
    },
)
async def delete_project(
    project: AdminProject,
    user: CurrentUser,
    service: ProjectServiceDep,
    rollout: RolloutEngineDep,
) -> MessageResponse:
    await service.delete_project(project, user, rollout)
    return MessageResponse(message="Project deleted")
