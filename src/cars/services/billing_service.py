"""Metering and billing ledger.

All balance changes go through BillingService so that the AccountingEntry
and the new balance are written in one transaction while the project row is
locked. Alerts and access gating run after that commit; their failures are
logged and never undo a debit.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.cars.billing import (
    BILLING_THRESHOLDS,
    BillingRates,
    GatingChange,
    UsageSample,
    crossed_thresholds,
    gating_change,
    price_usage,
)
from src.cars.core.exceptions import InputError, NotFoundError
from src.cars.core.logging import bind_project_context, clear_request_context, get_logger
from src.cars.infra.prometheus import MetricsBackend
from src.cars.models import AccountingEntry, AccountingEntryType, LogLevel, Project
from src.cars.models.base import as_naive_utc
from src.cars.repositories import (
    AccountingEntryRepository,
    LogEntryRepository,
    ProjectAdminRepository,
    ProjectRepository,
)
from src.cars.services.log_service import LogService
from src.cars.services.notification_service import NotificationService

logger = get_logger(__name__)

PAYMENT_REASON = "Admin payment"


class IngressGate(Protocol):
    async def set_ingress_enabled(self, project: Project, enabled: bool) -> bool: ...


@dataclass(frozen=True)
class DebitOutcome:
    amount: int
    old_balance: int
    new_balance: int
    alerts: list[int] = field(default_factory=list)
    gating: GatingChange | None = None


@dataclass(frozen=True)
class CreditOutcome:
    amount: int
    old_balance: int
    new_balance: int
    ingress_reenabled: bool | None = None


class BillingService:
    def __init__(
        self,
        session: AsyncSession,
        project_repo: ProjectRepository,
        accounting_repo: AccountingEntryRepository,
        log_service: LogService,
        notifier: NotificationService,
        gate: IngressGate | None,
        rates: BillingRates,
        gating_enabled: bool = False,
        interval_minutes: int = 5,
    ):
        self.session = session
        self.project_repo = project_repo
        self.accounting_repo = accounting_repo
        self.log_service = log_service
        self.notifier = notifier
        self.gate = gate
        self.rates = rates
        self.gating_enabled = gating_enabled
        self.interval_minutes = interval_minutes

    async def _locked_project(self, project_id: UUID) -> Project:
        project = await self.project_repo.get_for_update(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    async def apply_usage(self, project_id: UUID, usage: UsageSample) -> DebitOutcome | None:
        """Price one interval of usage and debit it.

        Returns None when the interval costs nothing; no entry is written then.
        """
        cost = price_usage(usage, self.rates)
        if cost.total == 0:
            logger.debug("Zero cost interval", project_id=str(project_id))
            return None

        project = await self._locked_project(project_id)
        old_balance = project.balance
        new_balance = old_balance - cost.total
        project.balance = new_balance
        self.accounting_repo.add(
            AccountingEntry(
                project_id=project.id,
                entry_type=AccountingEntryType.DEBIT.value,
                amount=cost.total,
                balance_after=new_balance,
                details=cost.as_metadata(self.rates),
            )
        )
        self.log_service.record(
            project.id,
            f"Billed {cost.total} sat (CPU:{cost.cpu}, MEM:{cost.mem}, DISK:{cost.disk}, "
            f"NET:{cost.net}) for last {self.interval_minutes}m. New balance: {new_balance}",
        )
        await self.session.commit()

        alerts = await self._send_alerts(project, old_balance, new_balance)

        change = gating_change(old_balance, new_balance)
        if change is not None and self.gating_enabled:
            await self._apply_gating(project, change)

        return DebitOutcome(
            amount=cost.total,
            old_balance=old_balance,
            new_balance=new_balance,
            alerts=alerts,
            gating=change if self.gating_enabled else None,
        )

    async def _send_alerts(self, project: Project, old_balance: int, new_balance: int) -> list[int]:
        crossed = crossed_thresholds(old_balance, new_balance, BILLING_THRESHOLDS)
        for threshold in crossed:
            delivered = await self.notifier.notify_admins(
                project.id,
                f"Billing Alert for Project: {project.name}",
                f"The balance of project {project.name} ({project.external_id}) fell below "
                f"{threshold} sat.\n\nCurrent balance: {new_balance} sat.\n\n"
                "Top up the project to keep it online.",
                email_type="billing_alert",
            )
            outcome = "sent" if delivered else "could not be delivered"
            self.log_service.record(
                project.id,
                f"Balance alert {outcome} at threshold {threshold}. Balance: {new_balance}",
                level=LogLevel.INFO if delivered else LogLevel.ERROR,
            )
        if crossed:
            await self.session.commit()
        return crossed

    async def _apply_gating(self, project: Project, change: GatingChange) -> bool:
        enable = change is GatingChange.ENABLE
        ok = False
        try:
            ok = self.gate is not None and await self.gate.set_ingress_enabled(project, enable)
        except Exception as e:
            logger.error("Ingress toggle failed", project_id=project.external_id, error=str(e))

        if ok:
            project.ingress_enabled = enable
            self.session.add(project)
            message = (
                f"Ingress re-enabled after payment. Balance: {project.balance}"
                if enable
                else f"Ingress disabled due to negative balance. Balance: {project.balance}"
            )
            self.log_service.record(project.id, message)
        else:
            message = (
                "Unable to re-enable ingress after payment, project needs to be redeployed."
                if enable
                else "Unable to disable ingress for negative balance."
            )
            self.log_service.record(project.id, message, level=LogLevel.ERROR)
        await self.session.commit()
        return ok

    async def credit(
        self, project_id: UUID, amount: int, reason: str = PAYMENT_REASON
    ) -> CreditOutcome:
        """Add funds to a project and re-enable its ingress if that restores solvency."""
        if amount <= 0:
            raise InputError("Amount must be a positive integer")

        project = await self._locked_project(project_id)
        old_balance = project.balance
        new_balance = old_balance + amount
        project.balance = new_balance
        self.accounting_repo.add(
            AccountingEntry(
                project_id=project.id,
                entry_type=AccountingEntryType.CREDIT.value,
                amount=amount,
                balance_after=new_balance,
                details={"reason": reason},
            )
        )
        self.log_service.record(
            project.id, f"Balance increased by {amount}. New balance: {new_balance}"
        )
        await self.session.commit()

        reenabled = None
        if self.gating_enabled and gating_change(old_balance, new_balance) is GatingChange.ENABLE:
            reenabled = await self._apply_gating(project, GatingChange.ENABLE)

        return CreditOutcome(
            amount=amount,
            old_balance=old_balance,
            new_balance=new_balance,
            ingress_reenabled=reenabled,
        )

    async def history(
        self,
        project_id: UUID,
        entry_type: AccountingEntryType | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AccountingEntry]:
        """Entries newest first. Aware bounds are converted to naive UTC."""
        return await self.accounting_repo.list_filtered(
            project_id,
            entry_type=entry_type.value if entry_type else None,
            start=as_naive_utc(start) if start else None,
            end=as_naive_utc(end) if end else None,
        )


@dataclass
class BillingTickSummary:
    projects: int = 0
    billed: int = 0
    failed: int = 0
    charged: int = 0


SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class BillingTick:
    """One pass of the billing job over every project.

    Each project is billed in its own session; an error for one project is
    logged and counted, and the pass continues with the next.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        metrics: MetricsBackend,
        gate: IngressGate | None,
        rates: BillingRates,
        gating_enabled: bool = False,
        interval_minutes: int = 5,
    ):
        self.session_factory = session_factory
        self.metrics = metrics
        self.gate = gate
        self.rates = rates
        self.gating_enabled = gating_enabled
        self.interval_minutes = interval_minutes

    def _service(self, session: AsyncSession) -> BillingService:
        return BillingService(
            session=session,
            project_repo=ProjectRepository(session),
            accounting_repo=AccountingEntryRepository(session),
            log_service=LogService(LogEntryRepository(session)),
            notifier=NotificationService(ProjectAdminRepository(session)),
            gate=self.gate,
            rates=self.rates,
            gating_enabled=self.gating_enabled,
            interval_minutes=self.interval_minutes,
        )

    async def run(self) -> BillingTickSummary:
        async with self.session_factory() as session:
            project_ids = await ProjectRepository(session).list_ids()

        summary = BillingTickSummary(projects=len(project_ids))
        for project_id in project_ids:
            try:
                outcome = await self.bill_project(project_id)
            except Exception as e:
                summary.failed += 1
                logger.exception(
                    "Billing failed for project", project_id=str(project_id), error=str(e)
                )
                continue
            finally:
                clear_request_context()
            if outcome is not None:
                summary.billed += 1
                summary.charged += outcome.amount

        logger.info(
            "Billing tick complete",
            projects=summary.projects,
            billed=summary.billed,
            failed=summary.failed,
            charged=summary.charged,
        )
        return summary

    async def bill_project(self, project_id: UUID) -> DebitOutcome | None:
        async with self.session_factory() as session:
            project = await ProjectRepository(session).get_by_id(project_id)
            if project is None:
                # Deleted since the id list was read
                return None
            bind_project_context(project.external_id)
            usage = await self.metrics.usage_for_namespace(
                project.namespace, window=f"{self.interval_minutes}m"
            )
            return await self._service(session).apply_usage(project.id, usage)
