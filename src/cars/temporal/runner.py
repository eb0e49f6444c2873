"""Pipeline runners used by the upload endpoint."""

from collections.abc import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from temporalio.client import Client, WorkflowFailureError
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.service import RPCError

from src.cars.core.config import Settings
from src.cars.core.exceptions import ConflictError
from src.cars.core.logging import get_logger
from src.cars.models import DeploymentStatus
from src.cars.services.billing_service import SessionFactory
from src.cars.services.deployment_pipeline import DeploymentPipeline, FailureKind, PipelineResult
from src.cars.temporal.activities import RunPipelineInput, RunPipelineOutput
from src.cars.temporal.routing import QueueKind, route_for
from src.cars.temporal.workflows import DeploymentPipelineWorkflow

logger = get_logger(__name__)

PipelineFactory = Callable[[AsyncSession], DeploymentPipeline]


def pipeline_workflow_id(deployment_external_id: str) -> str:
    return f"deployment-{deployment_external_id}"


def _to_result(output: RunPipelineOutput) -> PipelineResult:
    return PipelineResult(
        ok=output.ok,
        status=DeploymentStatus(output.status),
        message=output.message,
        frontend_url=output.frontend_url,
        backend_url=output.backend_url,
        error_kind=FailureKind(output.error_kind) if output.error_kind else None,
    )


class TemporalPipelineRunner:
    """Runs the pipeline on a deploy worker and waits for its result.

    When the workflow itself fails (activity timeout, worker lost, RPC error)
    the activity never got to record an outcome, so the failure is written
    here instead. Rows that already reached a terminal state are left alone.
    """

    def __init__(
        self,
        client: Client,
        settings: Settings,
        session_factory: SessionFactory,
        pipeline_factory: PipelineFactory,
    ):
        self.client = client
        self.settings = settings
        self.session_factory = session_factory
        self.pipeline_factory = pipeline_factory

    async def run(self, deployment_id: UUID, deployment_external_id: str) -> PipelineResult:
        route = route_for(
            namespace=self.settings.temporal_namespace,
            prefix=self.settings.temporal_queue_prefix,
            kind=QueueKind.DEPLOY,
        )
        try:
            output = await self.client.execute_workflow(
                DeploymentPipelineWorkflow.run,
                RunPipelineInput(
                    deployment_id=str(deployment_id),
                    timeout_minutes=self.settings.pipeline_timeout_minutes,
                ),
                id=pipeline_workflow_id(deployment_external_id),
                task_queue=route.task_queue,
                result_type=RunPipelineOutput,
            )
        except WorkflowAlreadyStartedError as e:
            raise ConflictError("Deployment has already been used") from e
        except WorkflowFailureError as e:
            logger.error(
                "Pipeline workflow failed", deployment_id=deployment_external_id, error=str(e)
            )
            return await self._record_failure(
                deployment_id, f"Pipeline workflow failed: {e.cause or e}"
            )
        except RPCError as e:
            logger.error(
                "Pipeline workflow unreachable", deployment_id=deployment_external_id, error=str(e)
            )
            return await self._record_failure(deployment_id, f"Pipeline workflow error: {e}")
        return _to_result(output)

    async def _record_failure(self, deployment_id: UUID, message: str) -> PipelineResult:
        async with self.session_factory() as session:
            return await self.pipeline_factory(session).fail_unfinished(deployment_id, message)


class InlinePipelineRunner:
    """Runs the pipeline in this process, in its own session."""

    def __init__(self, session_factory: SessionFactory, pipeline_factory: PipelineFactory):
        self.session_factory = session_factory
        self.pipeline_factory = pipeline_factory

    async def run(self, deployment_id: UUID, deployment_external_id: str) -> PipelineResult:
        async with self.session_factory() as session:
            return await self.pipeline_factory(session).run(deployment_id)
