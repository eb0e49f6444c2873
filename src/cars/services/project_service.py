"""Project lifecycle and configuration."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.cars.core.exceptions import InputError
from src.cars.core.logging import get_logger
from src.cars.core.security import (
    generate_bearer_token,
    generate_external_id,
    generate_private_key,
    is_valid_private_key,
)
from src.cars.deploy.rollout import RolloutEngine
from src.cars.models import Network, Project, ProjectAdmin, User
from src.cars.repositories import ProjectAdminRepository, ProjectRepository
from src.cars.services.log_service import LogService
from src.cars.services.notification_service import NotificationService

logger = get_logger(__name__)

DEFAULT_PROJECT_NAME = "Unnamed Project"

ENGINE_SETTING_KEYS = (
    "requestLogging",
    "gaspSync",
    "syncConfiguration",
    "logTime",
    "logPrefix",
    "throwOnBroadcastFailure",
)


def default_engine_config() -> dict[str, Any]:
    return {
        "syncConfiguration": {},
        "logTime": False,
        "logPrefix": "[CARS OVERLAY ENGINE] ",
        "throwOnBroadcastFailure": False,
    }


class ProjectService:
    def __init__(
        self,
        session: AsyncSession,
        project_repo: ProjectRepository,
        admin_repo: ProjectAdminRepository,
        log_service: LogService,
        notifier: NotificationService,
    ):
        self.session = session
        self.project_repo = project_repo
        self.admin_repo = admin_repo
        self.log_service = log_service
        self.notifier = notifier

    async def create_project(
        self,
        creator: User,
        name: str | None = None,
        network: Network | str | None = None,
        private_key: str | None = None,
    ) -> Project:
        """Create a project with the creator as its first admin.

        Raises:
            InputError: If a supplied private key is not 64 lowercase hex chars
        """
        if private_key is not None and not is_valid_private_key(private_key):
            raise InputError("Invalid private key")

        project = Project(
            external_id=generate_external_id(),
            name=(name or "").strip() or DEFAULT_PROJECT_NAME,
            network=(
                Network.TESTNET.value
                if network in (Network.TESTNET, Network.TESTNET.value)
                else Network.MAINNET.value
            ),
            private_key=private_key or generate_private_key(),
            admin_bearer_token=generate_bearer_token(),
            engine_config=default_engine_config(),
        )
        self.project_repo.add(project)
        await self.session.flush()
        self.admin_repo.add(ProjectAdmin(project_id=project.id, user_id=creator.id))
        self.log_service.record(project.id, "Project created")
        await self.session.commit()
        await self.session.refresh(project)
        return project

    async def list_projects(self, user: User) -> list[Project]:
        return await self.project_repo.list_for_admin(user.id)

    async def update_engine_settings(self, project: Project, changes: dict[str, Any]) -> Project:
        """Merge the recognized engine settings into the stored config."""
        merged = dict(project.engine_config or {})
        for key in ENGINE_SETTING_KEYS:
            if key in changes and changes[key] is not None:
                merged[key] = changes[key]
        # Reassign so the JSON column is flagged dirty
        project.engine_config = merged
        self.session.add(project)
        self.log_service.record(project.id, "Engine settings updated")
        await self.session.commit()
        return project

    async def update_web_ui_config(self, project: Project, config: dict[str, Any]) -> Project:
        if not isinstance(config, dict):
            raise InputError("Invalid config - must be an object")
        project.web_ui_config = config
        self.session.add(project)
        self.log_service.record(project.id, "Web UI config updated")
        await self.session.commit()
        return project

    async def delete_project(self, project: Project, actor: User, rollout: RolloutEngine) -> None:
        """Tear down cluster resources, tell the admins, then delete every record."""
        recipients = await self.admin_repo.list_emails(project.id)

        torn_down = await rollout.teardown(project)
        if not torn_down:
            logger.warning("Cluster teardown incomplete", project_id=project.external_id)

        await self.notifier.notify(
            recipients,
            f"Project Deleted: {project.name}",
            f'Hello,\n\nProject "{project.name}" (ID: {project.external_id}) has been deleted.\n\n'
            f"Originated by: {actor.identity_key} ({actor.email})\n\nRegards,\nCARS System",
            email_type="project_deleted",
        )

        await self.project_repo.delete(project)
        await self.session.commit()
        logger.info("Project deleted", project_id=project.external_id)
