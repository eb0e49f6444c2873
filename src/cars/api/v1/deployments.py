"""Deployment slots, deployment listing and logs."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from src.cars.api.dependencies import (
    AdminProject,
    CurrentUser,
    DeploymentServiceDep,
    LogServiceDep,
)
from src.cars.schemas import (
    DeploymentRead,
    DeploymentSlot,
    LogsResponse,
    PaginatedResponse,
)

router = APIRouter(prefix="/projects", tags=["deployments"])


@router.post(
    "/{project_id}/deploy",
    response_model=DeploymentSlot,
    status_code=status.HTTP_201_CREATED,
    summary="Create deployment slot",
    description="Issue a single-use signed upload URL for a new deployment.",
    responses={
        201: {"description": "Deployment slot issued"},
        403: {"description": "Not admin of project"},
        404: {"description": "Project not found"},
    },
)
async def create_deployment(
    project: AdminProject,
    user: CurrentUser,
    service: DeploymentServiceDep,
) -> DeploymentSlot:
    deployment, url = await service.create_slot(project, user)
    return DeploymentSlot(url=url, deployment_id=deployment.external_id)


@router.get(
    "/{project_id}/deploys/list",
    response_model=PaginatedResponse[DeploymentRead],
    summary="List deployments",
    description="Deployments of a project, newest first, with cursor-based pagination.",
)
async def list_deployments(
    project: AdminProject,
    service: DeploymentServiceDep,
    cursor: Annotated[str | None, Query(description="Cursor for pagination")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max items to return")] = 50,
) -> PaginatedResponse[DeploymentRead]:
    deployments, next_cursor, has_more = await service.list_deployments(project, cursor, limit)
    return PaginatedResponse(
        items=[
            DeploymentRead(
                deployment_id=d.external_id,
                status=d.status,
                created_at=d.created_at,
                error_message=d.error_message,
            )
            for d in deployments
        ],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/{project_id}/logs/project",
    response_model=LogsResponse,
    summary="Project log",
    description="Project-level log lines as `[timestamp] message` text.",
)
async def project_logs(project: AdminProject, logs: LogServiceDep) -> LogsResponse:
    return LogsResponse(logs=await logs.project_log(project.id))


@router.get(
    "/{project_id}/logs/deployment/{deployment_id}",
    response_model=LogsResponse,
    summary="Deployment log",
    responses={
        404: {"description": "Deployment not found"},
    },
)
async def deployment_logs(
    deployment_id: str,
    project: AdminProject,
    service: DeploymentServiceDep,
    logs: LogServiceDep,
) -> LogsResponse:
    deployment = await service.get_for_project(project, deployment_id)
    return LogsResponse(logs=await logs.deployment_log(deployment.id))
