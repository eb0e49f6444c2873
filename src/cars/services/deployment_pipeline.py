"""Deployment Pipeline Coordinator.

Drives one uploaded artifact through extraction, validation, image build,
manifest synthesis and rollout. Every transition writes a LogEntry and the
new Deployment.status in the same commit; any failure moves the deployment
to FAILED, notifies the project's admins and stops. Nothing is retried here.
"""

import asyncio
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.cars.core.config import Settings
from src.cars.core.logging import bind_project_context, get_logger
from src.cars.deploy.artifact import ArtifactError, discard_build_tree, extract_artifact
from src.cars.deploy.locking import project_deployment_lock
from src.cars.deploy.rollout import RolloutEngine, RolloutError
from src.cars.deploy.synthesizer import SynthesisContext, synthesize
from src.cars.deploy.validator import ValidationFailure, validate
from src.cars.infra.docker import BuildError, DockerImageBuilder, ImageBuilder, image_reference
from src.cars.models import Deployment, DeploymentStatus, LogLevel, Project
from src.cars.models.base import utc_now
from src.cars.repositories import (
    DeploymentRepository,
    LogEntryRepository,
    ProjectAdminRepository,
    ProjectRepository,
)
from src.cars.services.log_service import LogService
from src.cars.services.notification_service import NotificationService

logger = get_logger(__name__)

SUCCESS_MESSAGE = "Deployment completed successfully"

ProjectLock = Callable[[UUID], AbstractAsyncContextManager[None]]


class FailureKind(str, Enum):
    INPUT = "input"
    INFRASTRUCTURE = "infrastructure"


@dataclass(frozen=True)
class PipelineResult:
    ok: bool
    status: DeploymentStatus
    message: str
    frontend_url: str | None = None
    backend_url: str | None = None
    error_kind: FailureKind | None = None


class _Abandoned(Exception):
    """The deployment was marked failed elsewhere while this run was in progress."""


class _StageFailed(Exception):
    def __init__(self, kind: FailureKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class DeploymentPipeline:
    def __init__(
        self,
        session: AsyncSession,
        builder: ImageBuilder,
        rollout: RolloutEngine,
        settings: Settings,
        notifier: NotificationService | None = None,
        lock: ProjectLock | None = None,
        heartbeat: Callable[[str], None] | None = None,
    ):
        self.session = session
        self.builder = builder
        self.rollout = rollout
        self.settings = settings
        self.deployments = DeploymentRepository(session)
        self.projects = ProjectRepository(session)
        self.logs = LogService(LogEntryRepository(session))
        self.notifier = notifier
        self._lock = lock
        self._heartbeat = heartbeat

    def _project_lock(self, project_id: UUID) -> AbstractAsyncContextManager[None]:
        if self._lock is not None:
            return self._lock(project_id)
        return project_deployment_lock(self.session.bind, project_id)  # type: ignore[arg-type]

    async def _advance(
        self,
        deployment: Deployment,
        status: DeploymentStatus,
        *messages: str,
    ) -> None:
        await self.session.refresh(deployment, attribute_names=["status"])
        if deployment.status == DeploymentStatus.FAILED.value:
            raise _Abandoned()
        for message in messages:
            self.logs.record(deployment.project_id, message, deployment.id)
        deployment.status = status.value
        deployment.updated_at = utc_now()
        self.session.add(deployment)
        await self.session.commit()
        if self._heartbeat is not None:
            self._heartbeat(status.value)

    async def _fail(
        self,
        deployment: Deployment,
        project: Project,
        kind: FailureKind,
        message: str,
    ) -> PipelineResult:
        failed_at = deployment.status
        self.logs.record(
            deployment.project_id,
            f"Deployment failed: {message}",
            deployment.id,
            level=LogLevel.ERROR,
        )
        deployment.status = DeploymentStatus.FAILED.value
        deployment.error_message = message[:1000]
        deployment.updated_at = utc_now()
        self.session.add(deployment)
        await self.session.commit()

        if self.notifier is not None:
            await self.notifier.notify_admins(
                project.id,
                f"Deployment Failed for Project: {project.name}",
                f"Deployment {deployment.external_id} of project {project.name} "
                f"({project.external_id}) failed after stage '{failed_at}'.\n\n"
                f"Reason: {message}\n\n"
                "Fix the problem and upload a new artifact to retry.",
                email_type="deployment_failed",
            )
        return PipelineResult(
            ok=False,
            status=DeploymentStatus.FAILED,
            message=message,
            error_kind=kind,
        )

    async def run(self, deployment_id: UUID) -> PipelineResult:
        """Run the pipeline for a deployment whose artifact has been uploaded."""
        deployment = await self.deployments.get_by_id(deployment_id)
        if deployment is None:
            raise LookupError(f"Deployment {deployment_id} not found")
        project = await self.projects.get_by_id(deployment.project_id)
        if project is None:
            raise LookupError(f"Project {deployment.project_id} not found")

        bind_project_context(project.external_id, deployment.external_id)

        if deployment.status != DeploymentStatus.UPLOADED.value:
            return PipelineResult(
                ok=False,
                status=DeploymentStatus(deployment.status),
                message=(
                    f"Deployment is {deployment.status}, "
                    f"expected {DeploymentStatus.UPLOADED.value}"
                ),
                error_kind=FailureKind.INPUT,
            )

        release_id = deployment.external_id
        async with self._project_lock(project.id):
            try:
                return await self._run_stages(deployment, project)
            except _Abandoned:
                logger.warning("Deployment was marked failed while running, stopping")
                await self.session.rollback()
                await self.session.refresh(deployment)
                return PipelineResult(
                    ok=False,
                    status=DeploymentStatus.FAILED,
                    message=deployment.error_message or "Deployment failed",
                    error_kind=FailureKind.INFRASTRUCTURE,
                )
            except _StageFailed as e:
                return await self._fail(deployment, project, e.kind, e.message)
            except Exception as e:
                logger.exception("Unexpected pipeline error", error=str(e))
                await self.session.rollback()
                await self.session.refresh(deployment)
                await self.session.refresh(project)
                return await self._fail(
                    deployment, project, FailureKind.INFRASTRUCTURE, f"Unexpected error: {e}"
                )
            finally:
                await asyncio.to_thread(discard_build_tree, self.settings.build_dir, release_id)

    async def fail_unfinished(self, deployment_id: UUID, message: str) -> PipelineResult:
        """Record a failure that happened outside run(), e.g. a workflow timeout.

        Deployments that already reached a terminal status are left alone and
        their recorded outcome is returned.
        """
        deployment = await self.deployments.get_by_id(deployment_id)
        if deployment is None:
            raise LookupError(f"Deployment {deployment_id} not found")
        if deployment.status == DeploymentStatus.COMPLETE.value:
            return PipelineResult(
                ok=True, status=DeploymentStatus.COMPLETE, message=SUCCESS_MESSAGE
            )
        if deployment.status == DeploymentStatus.FAILED.value:
            return PipelineResult(
                ok=False,
                status=DeploymentStatus.FAILED,
                message=deployment.error_message or message,
                error_kind=FailureKind.INFRASTRUCTURE,
            )
        project = await self.projects.get_by_id(deployment.project_id)
        if project is None:
            raise LookupError(f"Project {deployment.project_id} not found")
        bind_project_context(project.external_id, deployment.external_id)
        return await self._fail(deployment, project, FailureKind.INFRASTRUCTURE, message)

    async def _run_stages(self, deployment: Deployment, project: Project) -> PipelineResult:
        # uploaded -> extracted
        try:
            tree = await asyncio.to_thread(
                extract_artifact,
                Path(deployment.artifact_path or ""),
                self.settings.build_dir,
                deployment.external_id,
            )
        except ArtifactError as e:
            raise _StageFailed(FailureKind.INPUT, str(e)) from e
        await self._advance(deployment, DeploymentStatus.EXTRACTED, f"Tarball extracted at {tree}")

        # extracted -> validated
        manifest = validate(tree, project)
        if isinstance(manifest, ValidationFailure):
            raise _StageFailed(FailureKind.INPUT, f"{manifest.code.value}: {manifest.message}")
        await self._advance(
            deployment,
            DeploymentStatus.VALIDATED,
            "Artifact validated, targets: " + ", ".join(t.value for t in manifest.targets),
        )

        # validated -> images_built
        image_refs = {}
        built_messages = []
        for target in manifest.targets:
            ref = image_reference(
                self.settings.registry_host, project.external_id, target, deployment.external_id
            )
            try:
                image_refs[target] = await self.builder.build_and_publish(
                    manifest.source_dir(target), target, ref
                )
            except BuildError as e:
                raise _StageFailed(FailureKind.INFRASTRUCTURE, str(e)) from e
            built_messages.append(
                f"{target.value.capitalize()} image built/pushed: {image_refs[target]}"
            )
        await self._advance(deployment, DeploymentStatus.IMAGES_BUILT, *built_messages)

        # images_built -> manifest_synthesized
        descriptor = synthesize(
            project, manifest, image_refs, SynthesisContext.from_settings(self.settings)
        )
        await self._advance(
            deployment,
            DeploymentStatus.MANIFEST_SYNTHESIZED,
            f"Helm chart generated for release {descriptor.release_name}",
        )

        # manifest_synthesized -> rolled_out
        try:
            result = await self.rollout.apply(descriptor, deployment.external_id)
        except RolloutError as e:
            raise _StageFailed(FailureKind.INFRASTRUCTURE, str(e)) from e
        await self._advance(
            deployment,
            DeploymentStatus.ROLLED_OUT,
            f"Helm release {descriptor.release_name} deployed"
            + ("" if result.changed else " (unchanged)"),
            f"Project {project.external_id}, release {deployment.external_id} "
            "rolled out successfully.",
        )

        # rolled_out -> complete
        frontend_url = f"https://{descriptor.frontend_host}" if descriptor.frontend_host else None
        backend_url = f"https://{descriptor.backend_host}" if descriptor.backend_host else None
        messages = []
        if frontend_url:
            messages.append(f"Frontend URL: {frontend_url}")
        if backend_url:
            messages.append(f"Backend URL: {backend_url}")
        messages.append(SUCCESS_MESSAGE)
        await self._advance(deployment, DeploymentStatus.COMPLETE, *messages)

        return PipelineResult(
            ok=True,
            status=DeploymentStatus.COMPLETE,
            message=SUCCESS_MESSAGE,
            frontend_url=frontend_url,
            backend_url=backend_url,
        )


def build_pipeline(
    session: AsyncSession,
    settings: Settings,
    heartbeat: Callable[[str], None] | None = None,
) -> DeploymentPipeline:
    """Wire a pipeline to the docker, helm and email adapters."""
    return DeploymentPipeline(
        session=session,
        builder=DockerImageBuilder(settings.docker_binary, settings.image_build_timeout_seconds),
        rollout=RolloutEngine.from_settings(settings),
        settings=settings,
        notifier=NotificationService(ProjectAdminRepository(session)),
        heartbeat=heartbeat,
    )
