"""Orchestration Cluster API backed by the helm and kubectl CLIs.

Every call returns a ClusterResponse whose outcome is already classified,
so the rollout engine never inspects tool output itself.
"""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from src.cars.core.logging import get_logger
from src.cars.infra.process import EXIT_NOT_FOUND, EXIT_TIMEOUT, CommandResult, run_command

logger = get_logger(__name__)

_UNREACHABLE_MARKERS = (
    "kubernetes cluster unreachable",
    "connection refused",
    "no such host",
    "i/o timeout",
    "tls handshake timeout",
    "unable to connect to the server",
    "the server is currently unable to handle the request",
)
_UNHEALTHY_MARKERS = (
    "timed out waiting for the condition",
    "context deadline exceeded",
    "release failed, and has been rolled back",
    "rollback",
    "exceeded its progress deadline",
)
_NOT_FOUND_MARKERS = ("release: not found", "not found")


class ClusterOutcome(str, Enum):
    OK = "ok"
    REJECTED = "rejected"  # apply refused, nothing changed
    UNHEALTHY = "unhealthy"  # accepted, workload never became healthy
    UNREACHABLE = "unreachable"  # API server could not be reached
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ClusterResponse:
    outcome: ClusterOutcome
    detail: str = ""
    body: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is ClusterOutcome.OK


def classify(result: CommandResult) -> ClusterResponse:
    if result.ok:
        return ClusterResponse(ClusterOutcome.OK, body=result.stdout)
    text = f"{result.stderr}\n{result.stdout}".lower()
    detail = result.tail()
    if result.returncode == EXIT_NOT_FOUND and not result.stdout:
        # Missing binary means we cannot talk to the cluster at all
        return ClusterResponse(ClusterOutcome.UNREACHABLE, detail)
    if any(marker in text for marker in _UNREACHABLE_MARKERS):
        return ClusterResponse(ClusterOutcome.UNREACHABLE, detail)
    if result.returncode == EXIT_TIMEOUT or any(marker in text for marker in _UNHEALTHY_MARKERS):
        return ClusterResponse(ClusterOutcome.UNHEALTHY, detail)
    if any(marker in text for marker in _NOT_FOUND_MARKERS):
        return ClusterResponse(ClusterOutcome.NOT_FOUND, detail)
    return ClusterResponse(ClusterOutcome.REJECTED, detail)


class ClusterClient(Protocol):
    async def get_manifest(self, namespace: str, release: str) -> ClusterResponse: ...

    async def upgrade_install(
        self, namespace: str, release: str, chart_dir: Path, timeout_seconds: int
    ) -> ClusterResponse: ...

    async def wait_healthy(
        self, namespace: str, deployment: str, timeout_seconds: int
    ) -> ClusterResponse: ...

    async def set_ingress_class(
        self, namespace: str, ingress: str, ingress_class: str
    ) -> ClusterResponse: ...

    async def uninstall(self, namespace: str, release: str) -> ClusterResponse: ...

    async def delete_namespace(self, namespace: str) -> ClusterResponse: ...


class HelmClusterClient:
    """Namespace-scoped atomic apply via `helm upgrade --install --atomic --wait`."""

    def __init__(self, helm_binary: str = "helm", kubectl_binary: str = "kubectl"):
        self.helm = helm_binary
        self.kubectl = kubectl_binary

    async def get_manifest(self, namespace: str, release: str) -> ClusterResponse:
        result = await run_command(self.helm, "get", "manifest", release, "-n", namespace)
        return classify(result)

    async def upgrade_install(
        self, namespace: str, release: str, chart_dir: Path, timeout_seconds: int
    ) -> ClusterResponse:
        result = await run_command(
            self.helm,
            "upgrade",
            "--install",
            release,
            str(chart_dir),
            "--namespace",
            namespace,
            "--create-namespace",
            "--atomic",
            "--wait",
            "--timeout",
            f"{timeout_seconds}s",
            # helm enforces --timeout itself; the extra margin covers the rollback
            timeout=timeout_seconds * 2 + 60,
        )
        response = classify(result)
        logger.info(
            "helm upgrade finished",
            namespace=namespace,
            release=release,
            outcome=response.outcome.value,
        )
        return response

    async def wait_healthy(
        self, namespace: str, deployment: str, timeout_seconds: int
    ) -> ClusterResponse:
        result = await run_command(
            self.kubectl,
            "rollout",
            "status",
            f"deployment/{deployment}",
            "-n",
            namespace,
            f"--timeout={timeout_seconds}s",
            timeout=timeout_seconds + 30,
        )
        return classify(result)

    async def set_ingress_class(
        self, namespace: str, ingress: str, ingress_class: str
    ) -> ClusterResponse:
        patch = json.dumps({"spec": {"ingressClassName": ingress_class}})
        result = await run_command(
            self.kubectl,
            "patch",
            "ingress",
            ingress,
            "-n",
            namespace,
            "--type",
            "merge",
            "-p",
            patch,
        )
        return classify(result)

    async def uninstall(self, namespace: str, release: str) -> ClusterResponse:
        return classify(await run_command(self.helm, "uninstall", release, "-n", namespace))

    async def delete_namespace(self, namespace: str) -> ClusterResponse:
        return classify(
            await run_command(
                self.kubectl, "delete", "namespace", namespace, "--ignore-not-found=true"
            )
        )
