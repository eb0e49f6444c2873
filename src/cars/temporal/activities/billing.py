"""Billing tick activity."""

from dataclasses import dataclass

from temporalio import activity

from src.cars.billing import BillingRates
from src.cars.core.config import get_settings
from src.cars.core.db import get_session
from src.cars.deploy.rollout import RolloutEngine
from src.cars.infra.prometheus import PrometheusMetricsBackend
from src.cars.services.billing_service import BillingTick


@dataclass
class BillAllProjectsOutput:
    projects: int
    billed: int
    failed: int
    charged: int


@activity.defn
async def bill_all_projects() -> BillAllProjectsOutput:
    """Price the last interval for every project and debit it."""
    settings = get_settings()
    tick = BillingTick(
        session_factory=get_session,
        metrics=PrometheusMetricsBackend(
            settings.prometheus_url, timeout=settings.prometheus_timeout_seconds
        ),
        gate=RolloutEngine.from_settings(settings),
        rates=BillingRates.from_settings(settings),
        gating_enabled=settings.access_gating_enabled,
        interval_minutes=settings.billing_interval_minutes,
    )
    summary = await tick.run()
    activity.logger.info(
        f"Billing tick: {summary.billed}/{summary.projects} billed, "
        f"{summary.failed} failed, {summary.charged} charged"
    )
    return BillAllProjectsOutput(
        projects=summary.projects,
        billed=summary.billed,
        failed=summary.failed,
        charged=summary.charged,
    )
