"""Tests for BillingService and the billing tick (SQLite-backed)."""

from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlmodel import select

from src.cars.billing import BYTES_PER_GB, BillingRates, GatingChange, UsageSample
from src.cars.core.exceptions import InputError
from src.cars.models import AccountingEntry, AccountingEntryType, LogEntry, Project
from src.cars.repositories import AccountingEntryRepository, LogEntryRepository, ProjectRepository
from src.cars.services import BillingService, BillingTick, LogService
from tests.factories import ProjectFactory

pytestmark = pytest.mark.unit

RATES = BillingRates(cpu_per_core=1000, mem_per_gb=500, disk_per_gb=100, net_per_gb=200)


@pytest.fixture
def notifier() -> MagicMock:
    notifier = MagicMock()
    notifier.notify_admins = AsyncMock(return_value=True)
    notifier.notify = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def gate() -> MagicMock:
    gate = MagicMock()
    gate.set_ingress_enabled = AsyncMock(return_value=True)
    return gate


def make_service(session, notifier, gate, gating_enabled: bool = False) -> BillingService:
    return BillingService(
        session=session,
        project_repo=ProjectRepository(session),
        accounting_repo=AccountingEntryRepository(session),
        log_service=LogService(LogEntryRepository(session)),
        notifier=notifier,
        gate=gate,
        rates=RATES,
        gating_enabled=gating_enabled,
    )


async def save(session, project: Project) -> Project:
    session.add(project)
    await session.commit()
    return project


async def entries(session, project: Project) -> list[AccountingEntry]:
    result = await session.execute(
        select(AccountingEntry)
        .where(AccountingEntry.project_id == project.id)
        .order_by(AccountingEntry.id)
    )
    return list(result.scalars().all())


async def log_messages(session, project: Project) -> list[str]:
    result = await session.execute(
        select(LogEntry).where(LogEntry.project_id == project.id).order_by(LogEntry.id)
    )
    return [entry.message for entry in result.scalars().all()]


class TestApplyUsage:
    async def test_debit_writes_entry_and_balance(self, db_session, notifier, gate):
        """0.5 cores and 1 GiB for one interval costs 1000."""
        project = await save(db_session, ProjectFactory.build(balance=1_000_500))
        service = make_service(db_session, notifier, gate)

        outcome = await service.apply_usage(
            project.id, UsageSample(cpu_cores=0.5, memory_bytes=BYTES_PER_GB)
        )

        assert outcome.amount == 1000
        assert outcome.new_balance == 999_500
        assert outcome.alerts == [1_000_000]
        ledger = await entries(db_session, project)
        assert len(ledger) == 1
        assert ledger[0].entry_type == AccountingEntryType.DEBIT.value
        assert ledger[0].amount == 1000
        assert ledger[0].balance_after == 999_500
        assert ledger[0].details["cpuCost"] == 500
        assert ledger[0].details["memCost"] == 500

    async def test_alert_sent_once_per_crossing(self, db_session, notifier, gate):
        project = await save(db_session, ProjectFactory.build(balance=1_000_500))
        service = make_service(db_session, notifier, gate)

        await service.apply_usage(project.id, UsageSample(cpu_cores=0.5, memory_bytes=BYTES_PER_GB))
        await service.apply_usage(project.id, UsageSample(cpu_cores=0.1))

        notifier.notify_admins.assert_awaited_once()
        subject = notifier.notify_admins.await_args.args[1]
        assert subject == f"Billing Alert for Project: {project.name}"
        messages = await log_messages(db_session, project)
        assert "Balance alert sent at threshold 1000000. Balance: 999500" in messages

    async def test_undelivered_alert_is_logged_as_such(self, db_session, notifier, gate):
        notifier.notify_admins.return_value = False
        project = await save(db_session, ProjectFactory.build(balance=1_000_500))
        service = make_service(db_session, notifier, gate)

        outcome = await service.apply_usage(project.id, UsageSample(cpu_cores=1))

        assert outcome.alerts == [1_000_000]
        result = await db_session.execute(
            select(LogEntry).where(LogEntry.project_id == project.id)
        )
        alert_entries = [e for e in result.scalars().all() if "Balance alert" in e.message]
        assert [e.message for e in alert_entries] == [
            "Balance alert could not be delivered at threshold 1000000. Balance: 999500"
        ]
        assert alert_entries[0].level == "error"

    async def test_zero_cost_writes_nothing(self, db_session, notifier, gate):
        project = await save(db_session, ProjectFactory.build(balance=10))
        service = make_service(db_session, notifier, gate)

        outcome = await service.apply_usage(project.id, UsageSample())

        assert outcome is None
        assert await entries(db_session, project) == []
        assert await log_messages(db_session, project) == []
        await db_session.refresh(project)
        assert project.balance == 10

    async def test_balance_after_tracks_every_entry(self, db_session, notifier, gate):
        project = await save(db_session, ProjectFactory.build(balance=5_000))
        service = make_service(db_session, notifier, gate)

        await service.apply_usage(project.id, UsageSample(cpu_cores=1))
        await service.credit(project.id, 2_500)
        await service.apply_usage(project.id, UsageSample(cpu_cores=3))

        ledger = await entries(db_session, project)
        running = 5_000
        for entry in ledger:
            running += entry.amount if entry.entry_type == "credit" else -entry.amount
            assert entry.balance_after == running
        await db_session.refresh(project)
        assert project.balance == running == 3_500

    async def test_negative_balance_disables_ingress_when_gating(self, db_session, notifier, gate):
        project = await save(db_session, ProjectFactory.build(balance=100))
        service = make_service(db_session, notifier, gate, gating_enabled=True)

        outcome = await service.apply_usage(project.id, UsageSample(cpu_cores=1))

        assert outcome.gating is GatingChange.DISABLE
        gate.set_ingress_enabled.assert_awaited_once()
        assert gate.set_ingress_enabled.await_args.args[1] is False
        await db_session.refresh(project)
        assert project.ingress_enabled is False
        assert "Ingress disabled due to negative balance. Balance: -900" in await log_messages(
            db_session, project
        )

    async def test_gating_off_leaves_ingress_alone(self, db_session, notifier, gate):
        project = await save(db_session, ProjectFactory.build(balance=100))
        service = make_service(db_session, notifier, gate, gating_enabled=False)

        outcome = await service.apply_usage(project.id, UsageSample(cpu_cores=1))

        assert outcome.new_balance == -900
        assert outcome.gating is None
        gate.set_ingress_enabled.assert_not_awaited()

    async def test_failed_toggle_keeps_debit(self, db_session, notifier, gate):
        gate.set_ingress_enabled.side_effect = RuntimeError("cluster down")
        project = await save(db_session, ProjectFactory.build(balance=100))
        service = make_service(db_session, notifier, gate, gating_enabled=True)

        await service.apply_usage(project.id, UsageSample(cpu_cores=1))

        await db_session.refresh(project)
        assert project.balance == -900
        assert project.ingress_enabled is True
        assert "Unable to disable ingress for negative balance." in await log_messages(
            db_session, project
        )


class TestCredit:
    async def test_payment_restores_ingress(self, db_session, notifier, gate):
        """Credit of 1500 on a -500 balance re-enables a gated project."""
        project = await save(
            db_session, ProjectFactory.build(balance=-500, ingress_enabled=False)
        )
        service = make_service(db_session, notifier, gate, gating_enabled=True)

        outcome = await service.credit(project.id, 1_500)

        assert outcome.new_balance == 1_000
        assert outcome.ingress_reenabled is True
        gate.set_ingress_enabled.assert_awaited_once()
        assert gate.set_ingress_enabled.await_args.args[1] is True
        ledger = await entries(db_session, project)
        assert ledger[-1].entry_type == "credit"
        assert ledger[-1].details == {"reason": "Admin payment"}
        messages = await log_messages(db_session, project)
        assert "Balance increased by 1500. New balance: 1000" in messages
        assert "Ingress re-enabled after payment. Balance: 1000" in messages

    async def test_positive_to_positive_does_not_toggle(self, db_session, notifier, gate):
        project = await save(db_session, ProjectFactory.build(balance=10))
        service = make_service(db_session, notifier, gate, gating_enabled=True)

        outcome = await service.credit(project.id, 5)

        assert outcome.ingress_reenabled is None
        gate.set_ingress_enabled.assert_not_awaited()

    @pytest.mark.parametrize("amount", [0, -5])
    async def test_non_positive_amount_rejected(self, db_session, notifier, gate, amount):
        project = await save(db_session, ProjectFactory.build(balance=10))
        service = make_service(db_session, notifier, gate)

        with pytest.raises(InputError, match="positive integer"):
            await service.credit(project.id, amount)

        assert await entries(db_session, project) == []

    async def test_history_filters_by_type(self, db_session, notifier, gate):
        project = await save(db_session, ProjectFactory.build(balance=10_000))
        service = make_service(db_session, notifier, gate)
        await service.apply_usage(project.id, UsageSample(cpu_cores=1))
        await service.credit(project.id, 50)

        credits = await service.history(project.id, entry_type=AccountingEntryType.CREDIT)
        everything = await service.history(project.id)

        assert [e.entry_type for e in credits] == ["credit"]
        assert len(everything) == 2

    @pytest.fixture
    async def dated_ledger(self, db_session):
        project = await save(db_session, ProjectFactory.build(balance=300))
        for hour, balance in ((9, 100), (11, 200), (13, 300)):
            db_session.add(
                AccountingEntry(
                    project_id=project.id,
                    entry_type=AccountingEntryType.CREDIT.value,
                    amount=100,
                    balance_after=balance,
                    details={"reason": "Admin payment"},
                    created_at=datetime(2026, 1, 1, hour),
                )
            )
        await db_session.commit()
        return project

    async def test_history_naive_bounds(self, db_session, notifier, gate, dated_ledger):
        service = make_service(db_session, notifier, gate)

        window = await service.history(
            dated_ledger.id, start=datetime(2026, 1, 1, 10), end=datetime(2026, 1, 1, 12)
        )

        assert [e.balance_after for e in window] == [200]

    async def test_history_aware_bounds_are_read_as_utc(
        self, db_session, notifier, gate, dated_ledger
    ):
        """12:00+02:00 is 10:00 UTC, so the 11:00 and 13:00 entries match."""
        service = make_service(db_session, notifier, gate)
        plus_two = timezone(timedelta(hours=2))

        since = await service.history(
            dated_ledger.id, start=datetime(2026, 1, 1, 12, tzinfo=plus_two)
        )
        until = await service.history(
            dated_ledger.id, end=datetime(2026, 1, 1, 10, tzinfo=UTC)
        )

        assert [e.balance_after for e in since] == [300, 200]
        assert [e.balance_after for e in until] == [100]

    async def test_history_passes_naive_bounds_to_the_store(self, db_session, notifier, gate):
        service = make_service(db_session, notifier, gate)
        service.accounting_repo = MagicMock()
        service.accounting_repo.list_filtered = AsyncMock(return_value=[])

        await service.history(uuid4(), start=datetime(2026, 1, 1, tzinfo=UTC))

        start = service.accounting_repo.list_filtered.await_args.kwargs["start"]
        assert start == datetime(2026, 1, 1)
        assert start.tzinfo is None


class TestBillingTick:
    async def test_one_failure_does_not_stop_the_pass(self, db_session, session_factory, gate):
        healthy = await save(db_session, ProjectFactory.build(balance=10_000))
        broken = await save(db_session, ProjectFactory.build(balance=10_000))

        async def usage_for_namespace(namespace: str, window: str = "5m") -> UsageSample:
            if namespace == broken.namespace:
                raise RuntimeError("prometheus exploded")
            return UsageSample(cpu_cores=1)

        metrics = MagicMock()
        metrics.usage_for_namespace = AsyncMock(side_effect=usage_for_namespace)
        tick = BillingTick(session_factory, metrics, gate, RATES)

        summary = await tick.run()

        assert summary.projects == 2
        assert summary.billed == 1
        assert summary.failed == 1
        assert summary.charged == 1000
        async with session_factory() as session:
            refreshed = await ProjectRepository(session).get_by_id(healthy.id)
            untouched = await ProjectRepository(session).get_by_id(broken.id)
        assert refreshed.balance == 9_000
        assert untouched.balance == 10_000

    async def test_window_follows_interval(self, db_session, session_factory, gate):
        await save(db_session, ProjectFactory.build())
        metrics = MagicMock()
        metrics.usage_for_namespace = AsyncMock(return_value=UsageSample())
        tick = BillingTick(session_factory, metrics, gate, RATES, interval_minutes=10)

        summary = await tick.run()

        assert summary.billed == 0
        assert metrics.usage_for_namespace.await_args.kwargs["window"] == "10m"
