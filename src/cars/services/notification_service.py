"""Admin notifications on top of the best-effort email client."""

import asyncio
from uuid import UUID

from src.cars.core.logging import get_logger
from src.cars.core.notifications import send_email
from src.cars.repositories import ProjectAdminRepository

logger = get_logger(__name__)


class NotificationService:
    """notify(recipients, subject, body): never raises."""

    def __init__(self, admin_repo: ProjectAdminRepository):
        self.admin_repo = admin_repo

    async def notify(
        self, recipients: list[str], subject: str, body: str, email_type: str = "notice"
    ) -> bool:
        try:
            return await asyncio.to_thread(send_email, recipients, subject, body, email_type)
        except Exception as e:
            logger.error("Notification failed", email_type=email_type, error=str(e))
            return False

    async def notify_admins(
        self, project_id: UUID, subject: str, body: str, email_type: str = "notice"
    ) -> bool:
        """Send to every current admin of the project that has an email on file."""
        try:
            recipients = await self.admin_repo.list_emails(project_id)
        except Exception as e:
            logger.error("Could not load admin emails", project_id=str(project_id), error=str(e))
            return False
        return await self.notify(recipients, subject, body, email_type)
