"""Project and deployment audit log."""

from collections.abc import Iterable
from uuid import UUID

from src.cars.core.logging import get_logger
from src.cars.models import LogEntry, LogLevel
from src.cars.repositories import LogEntryRepository

logger = get_logger(__name__)


def format_log(entries: Iterable[LogEntry]) -> str:
    """Render entries as `[timestamp] message` lines."""
    return "\n".join(f"[{entry.created_at.isoformat()}] {entry.message}" for entry in entries)


class LogService:
    """Appends LogEntry rows. Never commits: callers commit the log line
    together with the state change it describes.
    """

    def __init__(self, log_repo: LogEntryRepository):
        self.log_repo = log_repo

    def record(
        self,
        project_id: UUID,
        message: str,
        deployment_id: UUID | None = None,
        level: LogLevel = LogLevel.INFO,
    ) -> LogEntry:
        entry = LogEntry(
            project_id=project_id,
            deployment_id=deployment_id,
            level=level.value,
            message=message,
        )
        self.log_repo.add(entry)
        log = logger.error if level is LogLevel.ERROR else logger.info
        log(
            message,
            project_id=str(project_id),
            deployment_id=str(deployment_id) if deployment_id else None,
        )
        return entry

    async def project_log(self, project_id: UUID) -> str:
        return format_log(await self.log_repo.list_project_level(project_id))

    async def deployment_log(self, deployment_id: UUID) -> str:
        return format_log(await self.log_repo.list_for_deployment(deployment_id))
