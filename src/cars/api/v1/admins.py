"""Project admin membership endpoints."""

from fastapi import APIRouter

from src.cars.api.dependencies import AdminProject, AdminServiceDep, CurrentUser
from src.cars.schemas import AdminChange, AdminRead, MessageResponse

router = APIRouter(prefix="/projects", tags=["admins"])


@router.get(
    "/{project_id}/admins/list",
    response_model=list[AdminRead],
    summary="List admins",
    responses={
        403: {"description": "Not admin of project"},
        404: {"description": "Project not found"},
    },
)
async def list_admins(project: AdminProject, service: AdminServiceDep) -> list[AdminRead]:
    rows = await service.list_admins(project)
    return [
        AdminRead(identity_key=user.identity_key, email=user.email, added_at=admin.added_at)
        for admin, user in rows
    ]


@router.post(
    "/{project_id}/addAdmin",
    response_model=MessageResponse,
    summary="Add admin",
    description="Add a registered identity (by identity key or email) as a project admin.",
    responses={
        200: {"description": "Admin added, or already an admin"},
        400: {"description": "Target user not registered"},
        403: {"description": "Not admin of project"},
    },
)
async def add_admin(
    request: AdminChange,
    project: AdminProject,
    user: CurrentUser,
    service: AdminServiceDep,
) -> MessageResponse:
    message = await service.add_admin(project, request.identity_key_or_email, user)
    return MessageResponse(message=message)


@router.post(
    "/{project_id}/removeAdmin",
    response_model=MessageResponse,
    summary="Remove admin",
    responses={
        200: {"description": "Admin removed"},
        400: {"description": "Target not registered, not an admin, or the last admin"},
        403: {"description": "Not admin of project"},
    },
)
async def remove_admin(
    request: AdminChange,
    project: AdminProject,
    user: CurrentUser,
    service: AdminServiceDep,
) -> MessageResponse:
    message = await service.remove_admin(project, request.identity_key_or_email, user)
    return MessageResponse(message=message)
