"""
Temporal worker process for deployment pipelines and the billing tick.

Run with:
    python -m src.cars.temporal.worker                    # Both workloads
    python -m src.cars.temporal.worker --workload deploy  # Deployment pipelines only
    python -m src.cars.temporal.worker --workload billing # Billing tick only
"""

import argparse
import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.worker import Worker

from src.cars.core.config import get_settings
from src.cars.core.db import dispose_engine
from src.cars.core.logging import get_logger, setup_logging
from src.cars.temporal.activities import bill_all_projects, run_deployment_pipeline
from src.cars.temporal.client import ensure_billing_schedule
from src.cars.temporal.routing import QueueKind, task_queue_name
from src.cars.temporal.workflows import BillingTickWorkflow, DeploymentPipelineWorkflow

logger = get_logger(__name__)

WORKER_HEALTH_PORT = 8001


@dataclass(frozen=True)
class Workload:
    queue: QueueKind
    workflows: list[type]
    activities: list[Callable[..., Awaitable[object]]]
    max_concurrent_activities: int
    max_concurrent_workflow_tasks: int
    # Runs once against the client before polling starts
    prepare: Callable[[Client], Awaitable[None]] | None = field(default=None)


# Image builds take minutes, so only a handful of pipelines run at once.
# Billing must never overlap itself.
WORKLOADS: dict[str, Workload] = {
    "deploy": Workload(
        queue=QueueKind.DEPLOY,
        workflows=[DeploymentPipelineWorkflow],
        activities=[run_deployment_pipeline],
        max_concurrent_activities=10,
        max_concurrent_workflow_tasks=20,
    ),
    "billing": Workload(
        queue=QueueKind.BILLING,
        workflows=[BillingTickWorkflow],
        activities=[bill_all_projects],
        max_concurrent_activities=1,
        max_concurrent_workflow_tasks=5,
        prepare=ensure_billing_schedule,
    ),
}


def selected_workloads(name: str) -> list[str]:
    """'all' expands to every workload, in a stable order."""
    return sorted(WORKLOADS) if name == "all" else [name]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="CARS Temporal worker")
    parser.add_argument(
        "--workload",
        choices=[*sorted(WORKLOADS), "all"],
        default="all",
        help="Worker workload type (default: all)",
    )
    return parser.parse_args()


def build_worker(client: Client, workload: Workload, queue_prefix: str) -> Worker:
    return Worker(
        client,
        task_queue=task_queue_name(queue_prefix, workload.queue),
        workflows=workload.workflows,
        activities=workload.activities,
        max_concurrent_activities=workload.max_concurrent_activities,
        max_concurrent_workflow_tasks=workload.max_concurrent_workflow_tasks,
    )


async def run_workload(client: Client, name: str) -> None:
    workload = WORKLOADS[name]
    if workload.prepare is not None:
        await workload.prepare(client)
    worker = build_worker(client, workload, get_settings().temporal_queue_prefix)
    logger.info("Worker polling", workload=name, task_queue=worker.task_queue)
    await worker.run()


def health_app(workloads: list[str], task_queues: list[str]) -> FastAPI:
    """Liveness and readiness probes for the worker pod."""
    app = FastAPI(title="CARS Worker Health")

    @app.get("/health")
    async def health() -> dict[str, str | list[str]]:
        return {
            "status": "healthy",
            "service": "cars-worker",
            "workloads": workloads,
            "task_queues": task_queues,
        }

    @app.get("/ready")
    async def ready() -> dict[str, str]:
        return {"status": "ready"}

    return app


async def serve_health(app: FastAPI, port: int = WORKER_HEALTH_PORT) -> None:
    config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="warning")
    await uvicorn.Server(config).serve()


async def main() -> None:
    args = parse_args()
    settings = get_settings()
    setup_logging(settings.debug)

    names = selected_workloads(args.workload)
    task_queues = [
        task_queue_name(settings.temporal_queue_prefix, WORKLOADS[name].queue) for name in names
    ]
    logger.info("Starting worker", workloads=names, task_queues=task_queues)

    client = await Client.connect(settings.temporal_host, namespace=settings.temporal_namespace)

    try:
        await asyncio.gather(
            serve_health(health_app(names, task_queues)),
            *(run_workload(client, name) for name in names),
        )
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
