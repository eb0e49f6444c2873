"""Custom domain verification endpoints."""

from fastapi import APIRouter

from src.cars.api.dependencies import AdminProject, CurrentUser, DomainServiceDep
from src.cars.models import DeployTarget
from src.cars.schemas import DomainRequest, DomainResponse

router = APIRouter(prefix="/projects", tags=["domains"])

_RESPONSES: dict[int | str, dict[str, str]] = {
    200: {"description": "Domain verified and stored"},
    400: {"description": "Invalid domain or DNS verification failed (with instructions)"},
    403: {"description": "Not admin of project"},
}


@router.post(
    "/{project_id}/domains/frontend",
    response_model=DomainResponse,
    summary="Set frontend custom domain",
    responses=_RESPONSES,
)
async def set_frontend_domain(
    request: DomainRequest,
    project: AdminProject,
    user: CurrentUser,
    service: DomainServiceDep,
) -> DomainResponse:
    domain = await service.set_custom_domain(project, DeployTarget.FRONTEND, request.domain, user)
    return DomainResponse(message="Frontend custom domain verified and set", domain=domain)


@router.post(
    "/{project_id}/domains/backend",
    response_model=DomainResponse,
    summary="Set backend custom domain",
    responses=_RESPONSES,
)
async def set_backend_domain(
    request: DomainRequest,
    project: AdminProject,
    user: CurrentUser,
    service: DomainServiceDep,
) -> DomainResponse:
    domain = await service.set_custom_domain(project, DeployTarget.BACKEND, request.domain, user)
    return DomainResponse(message="Backend custom domain verified and set", domain=domain)
