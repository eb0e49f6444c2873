"""Repositories for Project and ProjectAdmin entities."""

from uuid import UUID

from sqlalchemy import func
from sqlmodel import select

from src.cars.models import Project, ProjectAdmin, User
from src.cars.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    model = Project

    async def get_by_external_id(self, external_id: str) -> Project | None:
        result = await self.session.execute(
            select(Project).where(Project.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, project_id: UUID) -> Project | None:
        """Load a project and hold a row lock until the transaction ends.

        Every balance read-then-write goes through here so billing ticks and
        credits for the same project are serialized.
        """
        result = await self.session.execute(
            select(Project)
            .where(Project.id == project_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_admin(self, user_id: UUID) -> list[Project]:
        """Projects the user administers, newest first."""
        result = await self.session.execute(
            select(Project)
            .join(ProjectAdmin, ProjectAdmin.project_id == Project.id)  # type: ignore[arg-type]
            .where(ProjectAdmin.user_id == user_id)
            .order_by(Project.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_ids(self) -> list[UUID]:
        """All project ids, used by the billing tick."""
        result = await self.session.execute(select(Project.id).order_by(Project.created_at))
        return list(result.scalars().all())


class ProjectAdminRepository(BaseRepository[ProjectAdmin]):
    model = ProjectAdmin

    async def get(self, project_id: UUID, user_id: UUID) -> ProjectAdmin | None:
        result = await self.session.execute(
            select(ProjectAdmin).where(
                ProjectAdmin.project_id == project_id,
                ProjectAdmin.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def is_admin(self, project_id: UUID, user_id: UUID) -> bool:
        return await self.get(project_id, user_id) is not None

    async def count(self, project_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(ProjectAdmin)
            .where(ProjectAdmin.project_id == project_id)
        )
        return int(result.scalar_one())

    async def list_with_users(self, project_id: UUID) -> list[tuple[ProjectAdmin, User]]:
        """Admins of a project joined with their identities, oldest first."""
        result = await self.session.execute(
            select(ProjectAdmin, User)
            .join(User, User.id == ProjectAdmin.user_id)  # type: ignore[arg-type]
            .where(ProjectAdmin.project_id == project_id)
            .order_by(ProjectAdmin.added_at)
        )
        return [(admin, user) for admin, user in result.all()]

    async def list_emails(self, project_id: UUID) -> list[str]:
        result = await self.session.execute(
            select(User.email)
            .join(ProjectAdmin, ProjectAdmin.user_id == User.id)  # type: ignore[arg-type]
            .where(ProjectAdmin.project_id == project_id)
        )
        return [email for email in result.scalars().all() if email]
