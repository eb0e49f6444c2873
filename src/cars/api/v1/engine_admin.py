"""Admin actions forwarded to a project's running overlay engine."""

from fastapi import APIRouter

from src.cars.api.dependencies import AdminProject, EngineAdminServiceDep
from src.cars.schemas import EngineActionResponse
from src.cars.services import EngineAction

router = APIRouter(prefix="/projects", tags=["engine-admin"])

_RESPONSES: dict[int | str, dict[str, str]] = {
    200: {"description": "Engine action completed"},
    400: {"description": "No admin bearer token stored"},
    403: {"description": "Not admin of project"},
    500: {"description": "Project backend returned an error"},
}


@router.post(
    "/{project_id}/admin/sync-advertisements",
    response_model=EngineActionResponse,
    summary="Sync advertisements",
    responses=_RESPONSES,
)
async def sync_advertisements(
    project: AdminProject, service: EngineAdminServiceDep
) -> EngineActionResponse:
    message, result = await service.call(project, EngineAction.SYNC_ADVERTISEMENTS)
    return EngineActionResponse(message=message, result=result)


@router.post(
    "/{project_id}/admin/start-gasp-sync",
    response_model=EngineActionResponse,
    summary="Start GASP sync",
    responses=_RESPONSES,
)
async def start_gasp_sync(
    project: AdminProject, service: EngineAdminServiceDep
) -> EngineActionResponse:
    message, result = await service.call(project, EngineAction.START_GASP_SYNC)
    return EngineActionResponse(message=message, result=result)
