"""Repositories for LogEntry and AccountingEntry (append-only)."""

from datetime import datetime
from uuid import UUID

from sqlmodel import select

from src.cars.models import AccountingEntry, LogEntry
from src.cars.repositories.base import BaseRepository


class LogEntryRepository(BaseRepository[LogEntry]):
    model = LogEntry

    async def list_project_level(self, project_id: UUID) -> list[LogEntry]:
        """Entries not tied to a deployment, oldest first."""
        result = await self.session.execute(
            select(LogEntry)
            .where(
                LogEntry.project_id == project_id,
                LogEntry.deployment_id.is_(None),  # type: ignore[union-attr]
            )
            .order_by(LogEntry.created_at, LogEntry.id)
        )
        return list(result.scalars().all())

    async def list_for_deployment(self, deployment_id: UUID) -> list[LogEntry]:
        result = await self.session.execute(
            select(LogEntry)
            .where(LogEntry.deployment_id == deployment_id)
            .order_by(LogEntry.created_at, LogEntry.id)
        )
        return list(result.scalars().all())


class AccountingEntryRepository(BaseRepository[AccountingEntry]):
    model = AccountingEntry

    async def list_filtered(
        self,
        project_id: UUID,
        entry_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AccountingEntry]:
        """Ledger lines for a project, newest first, with optional filters."""
        query = select(AccountingEntry).where(AccountingEntry.project_id == project_id)
        if entry_type:
            query = query.where(AccountingEntry.entry_type == entry_type)
        if start:
            query = query.where(AccountingEntry.created_at >= start)
        if end:
            query = query.where(AccountingEntry.created_at <= end)
        result = await self.session.execute(
            query.order_by(
                AccountingEntry.created_at.desc(),  # type: ignore[attr-defined]
                AccountingEntry.id.desc(),  # type: ignore[union-attr]
            )
        )
        return list(result.scalars().all())

    async def latest(self, project_id: UUID) -> AccountingEntry | None:
        result = await self.session.execute(
            select(AccountingEntry)
            .where(AccountingEntry.project_id == project_id)
            .order_by(AccountingEntry.id.desc())  # type: ignore[union-attr]
            .limit(1)
        )
        return result.scalar_one_or_none()
