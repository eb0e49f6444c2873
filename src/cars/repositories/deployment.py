"""Repository for Deployment entity."""

from typing import Any, cast
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.engine import CursorResult
from sqlmodel import select

from src.cars.models import Deployment, DeploymentStatus
from src.cars.models.base import utc_now
from src.cars.repositories.base import BaseRepository


class DeploymentRepository(BaseRepository[Deployment]):
    model = Deployment

    async def get_by_external_id(self, external_id: str) -> Deployment | None:
        result = await self.session.execute(
            select(Deployment).where(Deployment.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def list_by_project(
        self,
        project_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Deployment], str | None, bool]:
        query = select(Deployment).where(Deployment.project_id == project_id)
        return await self.paginate(
            query, cursor, limit, Deployment.created_at, Deployment.external_id
        )

    async def claim_slot(self, deployment_id: UUID, artifact_path: str) -> bool:
        """Atomically move a deployment out of SLOT_ISSUED.

        Returns False when another upload already claimed the slot, which is
        what makes a deployment id single use.
        """
        stmt = (
            update(Deployment)
            .where(
                Deployment.id == deployment_id,  # type: ignore[arg-type]
                Deployment.status == DeploymentStatus.SLOT_ISSUED.value,  # type: ignore[arg-type]
            )
            .values(
                status=DeploymentStatus.UPLOADED.value,
                artifact_path=artifact_path,
                updated_at=utc_now(),
            )
        )
        result = await self.session.execute(stmt)
        return (cast(CursorResult[Any], result).rowcount or 0) == 1
