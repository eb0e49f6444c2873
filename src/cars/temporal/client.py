"""Temporal Client - For starting workflows from the API."""

from temporalio.client import Client, WorkflowExecutionStatus
from temporalio.service import RPCError

from src.cars.core.config import get_settings
from src.cars.core.logging import get_logger
from src.cars.temporal.routing import QueueKind, route_for
from src.cars.temporal.workflows import BillingTickWorkflow

logger = get_logger(__name__)

BILLING_WORKFLOW_ID = "billing-tick"

_client: Client | None = None


async def get_temporal_client() -> Client:
    """Get or create Temporal client."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = await Client.connect(
            settings.temporal_host, namespace=settings.temporal_namespace
        )
    return _client


async def close_temporal_client() -> None:
    """Close the Temporal client. Call during shutdown."""
    global _client
    if _client is not None:
        await _client.service_client.close()  # type: ignore[attr-defined]
        _client = None


async def ensure_billing_schedule(client: Client) -> None:
    """Start the cron billing workflow unless it is already running."""
    settings = get_settings()
    handle = client.get_workflow_handle(BILLING_WORKFLOW_ID)
    try:
        description = await handle.describe()
        if description.status == WorkflowExecutionStatus.RUNNING:
            return
    except RPCError:
        pass  # Not started yet

    route = route_for(
        namespace=settings.temporal_namespace,
        prefix=settings.temporal_queue_prefix,
        kind=QueueKind.BILLING,
    )
    await client.start_workflow(
        BillingTickWorkflow.run,
        id=BILLING_WORKFLOW_ID,
        task_queue=route.task_queue,
        cron_schedule=f"*/{settings.billing_interval_minutes} * * * *",
    )
    logger.info("Billing schedule started", task_queue=route.task_queue)
