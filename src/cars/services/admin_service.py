"""Project admin membership."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.cars.core.exceptions import InputError, NotFoundError
from src.cars.models import Project, ProjectAdmin, User
from src.cars.repositories import ProjectAdminRepository, ProjectRepository, UserRepository
from src.cars.services.log_service import LogService
from src.cars.services.notification_service import NotificationService

ALREADY_ADMIN = "User is already an admin"
ADMIN_ADDED = "Admin added"
ADMIN_REMOVED = "Admin removed"


def _signature(actor: User) -> str:
    return f"Originated by: {actor.identity_key} ({actor.email})\n\nRegards,\nCARS System"


class AdminService:
    def __init__(
        self,
        session: AsyncSession,
        project_repo: ProjectRepository,
        admin_repo: ProjectAdminRepository,
        user_repo: UserRepository,
        log_service: LogService,
        notifier: NotificationService,
    ):
        self.session = session
        self.project_repo = project_repo
        self.admin_repo = admin_repo
        self.user_repo = user_repo
        self.log_service = log_service
        self.notifier = notifier

    async def _resolve_user(self, identity_key_or_email: str) -> User | None:
        user = await self.user_repo.get_by_identity_key(identity_key_or_email)
        if user is None and "@" in identity_key_or_email:
            user = await self.user_repo.get_by_email(identity_key_or_email)
        return user

    async def list_admins(self, project: Project) -> list[tuple[ProjectAdmin, User]]:
        return await self.admin_repo.list_with_users(project.id)

    async def add_admin(self, project: Project, identity_key_or_email: str, actor: User) -> str:
        target = await self._resolve_user(identity_key_or_email)
        if target is None:
            raise InputError("Target user not registered")

        if await self.admin_repo.is_admin(project.id, target.id):
            return ALREADY_ADMIN

        self.admin_repo.add(ProjectAdmin(project_id=project.id, user_id=target.id))
        self.log_service.record(project.id, f"Admin added: {target.identity_key}")
        await self.session.commit()

        await self.notifier.notify_admins(
            project.id,
            f"Admin Added to Project: {project.name}",
            f"Hello,\n\nUser {target.identity_key} ({target.email}) has been added as an admin "
            f'to project "{project.name}" (ID: {project.external_id}).\n\n{_signature(actor)}',
            email_type="admin_added",
        )
        if target.email:
            await self.notifier.notify(
                [target.email],
                f"You have been added as an admin to: {project.name}",
                f'Hello,\n\nYou have been added as an admin to project "{project.name}" '
                f"(ID: {project.external_id}).\n\n{_signature(actor)}",
                email_type="admin_welcome",
            )
        return ADMIN_ADDED

    async def remove_admin(self, project: Project, identity_key_or_email: str, actor: User) -> str:
        target = await self._resolve_user(identity_key_or_email)
        if target is None:
            raise InputError("Target user not registered")

        # Serialize removals per project so two requests can't drop the last two admins
        if await self.project_repo.get_for_update(project.id) is None:
            raise NotFoundError("Project not found")
        membership = await self.admin_repo.get(project.id, target.id)
        if membership is None:
            await self.session.rollback()
            raise InputError("User not an admin")
        if await self.admin_repo.count(project.id) <= 1:
            await self.session.rollback()
            raise InputError("Cannot remove last admin")

        await self.admin_repo.delete(membership)
        self.log_service.record(project.id, f"Admin removed: {target.identity_key}")
        await self.session.commit()

        await self.notifier.notify_admins(
            project.id,
            f"Admin Removed from Project: {project.name}",
            f"Hello,\n\nUser {target.identity_key} ({target.email}) has been removed as an admin "
            f'from project "{project.name}" (ID: {project.external_id}).\n\n{_signature(actor)}',
            email_type="admin_removed",
        )
        return ADMIN_REMOVED
