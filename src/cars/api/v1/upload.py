"""Artifact upload: the only unauthenticated write, guarded by a signed URL."""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.cars.api.dependencies import DeploymentServiceDep, PipelineRunnerDep
from src.cars.core.exceptions import InputError
from src.cars.schemas import UploadResponse
from src.cars.services.deployment_pipeline import FailureKind

router = APIRouter(prefix="/upload", tags=["upload"])


async def read_artifact_body(request: Request, limit: int) -> bytes:
    """Read the request body, refusing it as soon as it exceeds limit bytes."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise InputError("Artifact too large")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise InputError("Artifact too large")
    return bytes(body)


@router.post(
    "/{deployment_id}/{signature}",
    response_model=UploadResponse,
    summary="Upload deployment artifact",
    description="Raw gzipped tarball body. Runs the deployment pipeline and returns its outcome.",
    responses={
        200: {"description": "Deployment completed"},
        400: {"description": "Artifact rejected (manifest, empty body, size, ...)"},
        401: {"description": "Invalid signature"},
        403: {"description": "Insufficient balance"},
        404: {"description": "Deployment not found"},
        409: {"description": "Deployment has already been used"},
        500: {"description": "Build or rollout failed"},
    },
)
async def upload_artifact(
    deployment_id: str,
    signature: str,
    request: Request,
    service: DeploymentServiceDep,
    runner: PipelineRunnerDep,
) -> UploadResponse | JSONResponse:
    # Reject bad signatures and used slots before reading the body
    await service.authorize_upload(deployment_id, signature)
    data = await read_artifact_body(request, service.settings.max_artifact_bytes)
    result = await service.accept_upload(deployment_id, signature, data, runner)

    if result.ok:
        return UploadResponse(
            message=result.message,
            frontend_url=result.frontend_url,
            backend_url=result.backend_url,
        )

    if result.error_kind is FailureKind.INPUT:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": result.message, "deploymentId": deployment_id},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Deployment failed, see the deployment log for details",
            "deploymentId": deployment_id,
        },
    )
