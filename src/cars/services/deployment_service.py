"""Deployment slots and artifact upload."""

import asyncio
from typing import Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.cars.core.config import Settings
from src.cars.core.exceptions import (
    AuthenticationError,
    ConflictError,
    InfrastructureError,
    InputError,
    NotFoundError,
    PermissionDeniedError,
)
from src.cars.core.logging import bind_project_context, get_logger
from src.cars.core.security import SignatureService, generate_external_id
from src.cars.deploy.artifact import ArtifactError, artifact_path, store_artifact
from src.cars.models import Deployment, DeploymentStatus, LogLevel, Project, User
from src.cars.models.base import utc_now
from src.cars.repositories import DeploymentRepository, ProjectRepository
from src.cars.services.deployment_pipeline import PipelineResult
from src.cars.services.log_service import LogService

logger = get_logger(__name__)


class PipelineRunner(Protocol):
    async def run(self, deployment_id: UUID, deployment_external_id: str) -> PipelineResult: ...


class DeploymentService:
    def __init__(
        self,
        session: AsyncSession,
        deployment_repo: DeploymentRepository,
        project_repo: ProjectRepository,
        log_service: LogService,
        signer: SignatureService,
        settings: Settings,
    ):
        self.session = session
        self.deployment_repo = deployment_repo
        self.project_repo = project_repo
        self.log_service = log_service
        self.signer = signer
        self.settings = settings

    def upload_url(self, deployment: Deployment) -> str:
        """Signed, deployment-scoped upload URL."""
        signature = self.signer.sign(deployment.external_id, deployment.external_id)
        return f"{self.settings.public_base_url}/api/v1/upload/{deployment.external_id}/{signature}"

    async def create_slot(self, project: Project, creator: User) -> tuple[Deployment, str]:
        deployment = Deployment(
            external_id=generate_external_id(),
            project_id=project.id,
            created_by=creator.id,
        )
        self.deployment_repo.add(deployment)
        await self.session.flush()
        self.log_service.record(project.id, "Deployment started", deployment.id)
        await self.session.commit()
        await self.session.refresh(deployment)
        return deployment, self.upload_url(deployment)

    async def list_deployments(
        self, project: Project, cursor: str | None, limit: int
    ) -> tuple[list[Deployment], str | None, bool]:
        return await self.deployment_repo.list_by_project(project.id, cursor, limit)

    async def get_for_project(self, project: Project, deployment_external_id: str) -> Deployment:
        deployment = await self.deployment_repo.get_by_external_id(deployment_external_id)
        if deployment is None or deployment.project_id != project.id:
            raise NotFoundError("Deployment not found")
        return deployment

    async def authorize_upload(
        self, deployment_external_id: str, signature: str
    ) -> tuple[Deployment, Project]:
        """Gate an upload before its body is read.

        Raises:
            NotFoundError: unknown deployment
            AuthenticationError: signature does not match the deployment
            ConflictError: the deployment slot was already used
            PermissionDeniedError: project balance is not positive
        """
        deployment = await self.deployment_repo.get_by_external_id(deployment_external_id)
        if deployment is None:
            raise NotFoundError("Deployment not found")
        if not self.signer.verify(deployment.external_id, signature, deployment.external_id):
            raise AuthenticationError("Invalid signature")
        if deployment.status != DeploymentStatus.SLOT_ISSUED.value:
            raise ConflictError("Deployment has already been used")

        project = await self.project_repo.get_by_id(deployment.project_id)
        if project is None:
            raise NotFoundError("Project not found for the given deployment")
        bind_project_context(project.external_id, deployment.external_id)
        if project.balance <= 0:
            raise PermissionDeniedError("Insufficient balance", balance=project.balance)
        return deployment, project

    async def accept_upload(
        self,
        deployment_external_id: str,
        signature: str,
        data: bytes,
        runner: PipelineRunner,
    ) -> PipelineResult:
        """Authenticate an upload, claim the slot, store the artifact and run the pipeline.

        The slot is claimed before anything touches disk, so only the upload
        that won the claim ever writes the artifact; a rejected upload has no
        side effects.

        Raises:
            NotFoundError, AuthenticationError, ConflictError, PermissionDeniedError:
                see authorize_upload
            InputError: empty or oversized artifact
            InfrastructureError: the artifact could not be written
        """
        deployment, project = await self.authorize_upload(deployment_external_id, signature)

        if not data:
            raise InputError("No file uploaded")
        if len(data) > self.settings.max_artifact_bytes:
            raise InputError("Artifact too large")

        path = artifact_path(self.settings.artifact_dir, deployment.external_id)
        if not await self.deployment_repo.claim_slot(deployment.id, str(path)):
            await self.session.rollback()
            raise ConflictError("Deployment has already been used")
        await self.session.commit()

        try:
            await asyncio.to_thread(
                store_artifact, self.settings.artifact_dir, deployment.external_id, data
            )
        except (ArtifactError, OSError) as e:
            logger.error("Failed to store artifact", error=str(e))
            message = f"Failed to store artifact: {e}"
            await self._mark_failed(deployment, message)
            raise InfrastructureError(message) from e

        self.log_service.record(
            project.id, f"File uploaded successfully, saved to {path}", deployment.id
        )
        await self.session.commit()

        return await runner.run(deployment.id, deployment.external_id)

    async def _mark_failed(self, deployment: Deployment, message: str) -> None:
        self.log_service.record(
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
