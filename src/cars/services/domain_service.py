"""Custom domain verification via DNS TXT records."""

import re

from sqlalchemy.ext.asyncio import AsyncSession

from src.cars.core.exceptions import InputError
from src.cars.core.logging import get_logger
from src.cars.infra.dns import DnsLookupError, TxtResolver
from src.cars.models import DeployTarget, Project, User
from src.cars.services.log_service import LogService
from src.cars.services.notification_service import NotificationService

logger = get_logger(__name__)

DOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def verification_host(domain: str) -> str:
    return f"cars_project.{domain}"


def verification_value(project: Project, kind: DeployTarget) -> str:
    return f"cars-project-verification={project.external_id}:{kind.value}"


class DomainService:
    def __init__(
        self,
        session: AsyncSession,
        resolver: TxtResolver,
        log_service: LogService,
        notifier: NotificationService,
    ):
        self.session = session
        self.resolver = resolver
        self.log_service = log_service
        self.notifier = notifier

    async def set_custom_domain(
        self, project: Project, kind: DeployTarget, domain: str, actor: User
    ) -> str:
        """Verify the TXT record for domain and store it as the custom domain for kind.

        Raises:
            InputError: bad format, or the TXT record is missing (with instructions)
        """
        domain = domain.strip().lower()
        if not DOMAIN_PATTERN.match(domain):
            raise InputError(
                "Invalid domain format. Please provide a valid domain (e.g. example.com)"
            )

        host = verification_host(domain)
        expected = verification_value(project, kind)
        try:
            records = await self.resolver.resolve_txt(host)
        except DnsLookupError as e:
            logger.error("DNS lookup failed", host=host, error=str(e))
            raise InputError(
                "Failed to verify domain",
                instructions=(
                    "Please ensure that DNS is functioning and that you create a TXT record:"
                    f"\n\n  {host}\n\nWith the value:\n\n  {expected}\n\nThen try again."
                ),
            ) from e

        if expected not in records:
            raise InputError(
                "DNS verification failed",
                instructions=(
                    f"Please create a DNS TXT record at:\n\n  {host}\n\n"
                    f"With the exact value:\n\n  {expected}\n\n"
                    "Once this TXT record is in place, please try again."
                ),
            )

        if kind is DeployTarget.FRONTEND:
            project.frontend_custom_domain = domain
        else:
            project.backend_custom_domain = domain
        self.session.add(project)
        label = kind.value.capitalize()
        self.log_service.record(project.id, f"{label} custom domain set: {domain}")
        await self.session.commit()

        await self.notifier.notify_admins(
            project.id,
            f"Custom Domain Updated for Project: {project.name}",
            f'Hello,\n\nThe {kind.value} custom domain for project "{project.name}" '
            f"(ID: {project.external_id}) has been set to: {domain}\n\n"
            f"Originated by: {actor.identity_key} ({actor.email})\n\nRegards,\nCARS System",
            email_type="domain_changed",
        )
        return domain
