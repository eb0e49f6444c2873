"""Deployment pipeline activity."""

from dataclasses import dataclass
from uuid import UUID

from temporalio import activity

from src.cars.core.config import get_settings
from src.cars.core.db import get_session
from src.cars.services.deployment_pipeline import build_pipeline


@dataclass
class RunPipelineInput:
    deployment_id: str
    timeout_minutes: int = 60


@dataclass
class RunPipelineOutput:
    ok: bool
    status: str
    message: str
    frontend_url: str | None = None
    backend_url: str | None = None
    error_kind: str | None = None


@activity.defn
async def run_deployment_pipeline(input: RunPipelineInput) -> RunPipelineOutput:
    """Run every pipeline stage for one uploaded deployment.

    Failures are recorded on the deployment and returned, not raised, so
    Temporal never retries a build or rollout on its own.
    """
    activity.logger.info(f"Running deployment pipeline for {input.deployment_id}")
    settings = get_settings()
    async with get_session() as session:
        pipeline = build_pipeline(session, settings, heartbeat=activity.heartbeat)
        result = await pipeline.run(UUID(input.deployment_id))

    return RunPipelineOutput(
        ok=result.ok,
        status=result.status.value,
        message=result.message,
        frontend_url=result.frontend_url,
        backend_url=result.backend_url,
        error_kind=result.error_kind.value if result.error_kind else None,
    )
