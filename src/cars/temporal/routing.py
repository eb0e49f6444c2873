from dataclasses import dataclass
from enum import StrEnum


class QueueKind(StrEnum):
    """Workload types for queue routing."""

    DEPLOY = "deploy"  # Deployment pipelines: long builds and rollouts
    BILLING = "billing"  # The periodic billing tick


@dataclass(frozen=True)
class TemporalRoute:
    """Routing result for workflow execution."""

    namespace: str
    task_queue: str


def task_queue_name(prefix: str, kind: QueueKind) -> str:
    """Generate task queue name: {prefix}.{kind}"""
    return f"{prefix}.{kind}"


def route_for(*, namespace: str, prefix: str, kind: QueueKind) -> TemporalRoute:
    return TemporalRoute(namespace=namespace, task_queue=task_queue_name(prefix, kind))
