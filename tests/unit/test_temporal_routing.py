"""Tests for Temporal routing and the pipeline runners."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import httpx
import pytest
from sqlmodel import select
from temporalio.client import WorkflowFailureError
from temporalio.exceptions import ApplicationError, WorkflowAlreadyStartedError
from temporalio.service import RPCError, RPCStatusCode

from src.cars.core.exceptions import ConflictError
from src.cars.models import DeploymentStatus, LogEntry
from src.cars.services import DeploymentPipeline
from src.cars.services.deployment_pipeline import FailureKind, PipelineResult
from src.cars.temporal.activities import RunPipelineInput, RunPipelineOutput
from src.cars.temporal.routing import QueueKind, TemporalRoute, route_for, task_queue_name
from src.cars.temporal.runner import (
    InlinePipelineRunner,
    TemporalPipelineRunner,
    pipeline_workflow_id,
)
from src.cars.temporal.worker import WORKLOADS, health_app, selected_workloads
from tests.factories import DeploymentFactory, ProjectFactory

pytestmark = pytest.mark.unit


def runner(client, settings, session_factory=None, pipeline_factory=None):
    return TemporalPipelineRunner(
        client, settings, session_factory or MagicMock(), pipeline_factory or MagicMock()
    )



class TestRouting:
    def test_task_queue_name(self):
        assert task_queue_name("cars", QueueKind.DEPLOY) == "cars.deploy"
        assert task_queue_name("cars", QueueKind.BILLING) == "cars.billing"

    def test_route_for(self):
        route = route_for(namespace="default", prefix="prod", kind=QueueKind.BILLING)
        assert route == TemporalRoute(namespace="default", task_queue="prod.billing")

    def test_workflow_id_is_one_per_deployment(self):
        assert pipeline_workflow_id("abc") == "deployment-abc"


class TestTemporalPipelineRunner:
    async def test_executes_on_deploy_queue(self, test_settings):
        client = MagicMock()
        client.execute_workflow = AsyncMock(
            return_value=RunPipelineOutput(
                ok=True,
                status="complete",
                message="Deployment completed successfully",
                frontend_url="https://frontend.abc.projects.example.com",
            )
        )
        deployment_id = uuid4()

        result = await runner(client, test_settings).run(deployment_id, "abc")

        assert result.ok
        assert result.status is DeploymentStatus.COMPLETE
        assert result.frontend_url == "https://frontend.abc.projects.example.com"
        args = client.execute_workflow.await_args
        assert args.args[1] == RunPipelineInput(
            deployment_id=str(deployment_id),
            timeout_minutes=test_settings.pipeline_timeout_minutes,
        )
        assert args.kwargs["id"] == "deployment-abc"
        assert args.kwargs["task_queue"] == f"{test_settings.temporal_queue_prefix}.deploy"

    async def test_failure_kind_survives_the_round_trip(self, test_settings):
        client = MagicMock()
        client.execute_workflow = AsyncMock(
            return_value=RunPipelineOutput(
                ok=False, status="failed", message="SchemaMismatch: bad", error_kind="input"
            )
        )

        result = await runner(client, test_settings).run(uuid4(), "abc")

        assert result.error_kind is FailureKind.INPUT
        assert result.status is DeploymentStatus.FAILED

    async def test_second_run_for_same_deployment_conflicts(self, test_settings):
        client = MagicMock()
        client.execute_workflow = AsyncMock(
            side_effect=WorkflowAlreadyStartedError("deployment-abc", "DeploymentPipelineWorkflow")
        )

        with pytest.raises(ConflictError):
            await runner(client, test_settings).run(uuid4(), "abc")


class TestTemporalPipelineFailures:
    @pytest.fixture
    def notifier(self) -> MagicMock:
        notifier = MagicMock()
        notifier.notify_admins = AsyncMock(return_value=True)
        return notifier

    @pytest.fixture
    def failing_runner(self, test_settings, session_factory, notifier):
        def make(error: Exception) -> TemporalPipelineRunner:
            client = MagicMock()
            client.execute_workflow = AsyncMock(side_effect=error)
            return runner(
                client,
                test_settings,
                session_factory,
                lambda session: DeploymentPipeline(
                    session, MagicMock(), MagicMock(), test_settings, notifier=notifier
                ),
            )

        return make

    async def seed(self, db_session, status: DeploymentStatus):
        project = ProjectFactory.build()
        deployment = DeploymentFactory.build(project_id=project.id, status=status.value)
        db_session.add(project)
        db_session.add(deployment)
        await db_session.commit()
        return deployment

    async def log_for(self, db_session, deployment) -> list[LogEntry]:
        result = await db_session.execute(
            select(LogEntry).where(LogEntry.deployment_id == deployment.id)
        )
        return list(result.scalars().all())

    async def test_workflow_failure_is_recorded(self, db_session, failing_runner, notifier):
        deployment = await self.seed(db_session, DeploymentStatus.IMAGES_BUILT)
        error = WorkflowFailureError(cause=ApplicationError("activity timed out"))

        result = await failing_runner(error).run(deployment.id, deployment.external_id)

        assert not result.ok
        assert result.status is DeploymentStatus.FAILED
        assert result.error_kind is FailureKind.INFRASTRUCTURE
        assert result.message == "Pipeline workflow failed: activity timed out"
        await db_session.refresh(deployment)
        assert deployment.status == DeploymentStatus.FAILED.value
        assert deployment.error_message == "Pipeline workflow failed: activity timed out"
        log = await self.log_for(db_session, deployment)
        assert [(e.level, e.message) for e in log] == [
            ("error", "Deployment failed: Pipeline workflow failed: activity timed out")
        ]
        notifier.notify_admins.assert_awaited_once()

    async def test_rpc_error_is_recorded(self, db_session, failing_runner, notifier):
        deployment = await self.seed(db_session, DeploymentStatus.UPLOADED)
        error = RPCError("connection lost", RPCStatusCode.UNAVAILABLE, b"")

        result = await failing_runner(error).run(deployment.id, deployment.external_id)

        assert result.status is DeploymentStatus.FAILED
        await db_session.refresh(deployment)
        assert deployment.status == DeploymentStatus.FAILED.value
        assert deployment.error_message.startswith("Pipeline workflow error:")
        notifier.notify_admins.assert_awaited_once()

    async def test_completed_deployment_is_not_overwritten(
        self, db_session, failing_runner, notifier
    ):
        deployment = await self.seed(db_session, DeploymentStatus.COMPLETE)
        error = WorkflowFailureError(cause=ApplicationError("result lost"))

        result = await failing_runner(error).run(deployment.id, deployment.external_id)

        assert result.ok
        assert result.status is DeploymentStatus.COMPLETE
        await db_session.refresh(deployment)
        assert deployment.status == DeploymentStatus.COMPLETE.value
        assert await self.log_for(db_session, deployment) == []
        notifier.notify_admins.assert_not_awaited()


class TestInlinePipelineRunner:
    async def test_runs_pipeline_in_own_session(self, session_factory):
        expected = PipelineResult(ok=True, status=DeploymentStatus.COMPLETE, message="done")
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=expected)
        sessions = []

        def factory(session):
            sessions.append(session)
            return pipeline

        deployment_id = uuid4()
        result = await InlinePipelineRunner(session_factory, factory).run(deployment_id, "abc")

        assert result is expected
        assert len(sessions) == 1
        pipeline.run.assert_awaited_once_with(deployment_id)


class TestWorkerWorkloads:
    def test_all_expands_to_every_workload(self):
        assert selected_workloads("all") == ["billing", "deploy"]
        assert selected_workloads("deploy") == ["deploy"]

    def test_billing_never_overlaps_itself(self):
        assert WORKLOADS["billing"].max_concurrent_activities == 1
        assert WORKLOADS["billing"].prepare is not None
        assert WORKLOADS["deploy"].prepare is None

    def test_workloads_poll_their_own_queue(self):
        assert {w.queue for w in WORKLOADS.values()} == {QueueKind.DEPLOY, QueueKind.BILLING}

    async def test_health_probe(self):
        app = health_app(["deploy"], ["cars.deploy"])
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://worker") as client:
            health = await client.get("/health")
            ready = await client.get("/ready")

        assert health.json()["task_queues"] == ["cars.deploy"]
        assert health.json()["workloads"] == ["deploy"]
        assert ready.json() == {"status": "ready"}
