"""Rollout Engine: atomic, idempotent application of a descriptor."""

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from src.cars.core.config import Settings
from src.cars.core.logging import get_logger
from src.cars.deploy.synthesizer import DeploymentDescriptor
from src.cars.infra.helm import ClusterClient, ClusterOutcome, ClusterResponse, HelmClusterClient
from src.cars.models import Project

logger = get_logger(__name__)

CHART_NAME = "cars-project"
CHART_VERSION = "0.1.0"
DESCRIPTOR_FILE = "files/descriptor.yaml"
# The only template: the pre-rendered descriptor, inserted verbatim
TEMPLATE = '{{ .Files.Get "files/descriptor.yaml" }}\n'


class RolloutError(Exception):
    """Base for structured rollout failures."""

    reason = "rollout failed"

    def __init__(self, detail: str):
        super().__init__(f"{self.reason}: {detail}" if detail else self.reason)
        self.detail = detail


class RolloutRejected(RolloutError):
    """The cluster refused the change; nothing was applied."""

    reason = "apply rejected"


class HealthCheckFailed(RolloutError):
    """The change was accepted but never became healthy and was reverted."""

    reason = "health check failed"


class ClusterUnreachable(RolloutError):
    """The cluster could not be reached, even after retries."""

    reason = "cluster unreachable"


@dataclass(frozen=True)
class RolloutResult:
    namespace: str
    release_name: str
    changed: bool
    attempts: int = 1


def parse_documents(text: str) -> list[dict[str, Any]]:
    """Load a multi-document YAML stream, dropping empty documents."""
    return [doc for doc in yaml.safe_load_all(text) if doc]


class RolloutEngine:
    """Applies descriptors through a ClusterClient with bounded retries."""

    def __init__(
        self,
        cluster: ClusterClient,
        work_dir: str | Path,
        timeout_seconds: int = 300,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        ingress_class: str = "nginx",
        suspended_ingress_class: str = "cars-suspended",
    ):
        self.cluster = cluster
        self.work_dir = Path(work_dir)
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.ingress_class = ingress_class
        self.suspended_ingress_class = suspended_ingress_class

    @classmethod
    def from_settings(cls, settings: Settings) -> "RolloutEngine":
        return cls(
            cluster=HelmClusterClient(settings.helm_binary, settings.kubectl_binary),
            work_dir=settings.build_dir,
            timeout_seconds=settings.rollout_timeout_seconds,
            max_attempts=settings.rollout_max_attempts,
            backoff_seconds=settings.rollout_retry_backoff_seconds,
            ingress_class=settings.ingress_class,
            suspended_ingress_class=settings.suspended_ingress_class,
        )

    async def _call(self, label: str, fn, *args: Any) -> tuple[ClusterResponse, int]:
        """Invoke a cluster operation, retrying only while it is unreachable."""
        attempt = 0
        while True:
            attempt += 1
            response: ClusterResponse = await fn(*args)
            if response.outcome is not ClusterOutcome.UNREACHABLE:
                return response, attempt
            if attempt >= self.max_attempts:
                logger.error("Cluster unreachable, giving up", operation=label, attempts=attempt)
                raise ClusterUnreachable(response.detail)
            delay = self.backoff_seconds * (2 ** (attempt - 1))
            logger.warning(
                "Cluster unreachable, retrying",
                operation=label,
                attempt=attempt,
                delay=delay,
            )
            await asyncio.sleep(delay)

    def write_chart(self, descriptor: DeploymentDescriptor, release_id: str) -> Path:
        """Materialize a chart whose single template is the rendered descriptor."""
        chart_dir = self.work_dir / f"chart_{release_id}"
        if chart_dir.exists():
            shutil.rmtree(chart_dir)
        (chart_dir / "templates").mkdir(parents=True)
        (chart_dir / "files").mkdir()
        (chart_dir / "Chart.yaml").write_text(
            yaml.safe_dump(
                {
                    "apiVersion": "v2",
                    "name": CHART_NAME,
                    "version": CHART_VERSION,
                    "appVersion": release_id,
                    "type": "application",
                },
                sort_keys=True,
            )
        )
        (chart_dir / DESCRIPTOR_FILE).write_text(descriptor.rendered)
        (chart_dir / "templates" / "manifest.yaml").write_text(TEMPLATE)
        return chart_dir

    async def is_current(self, descriptor: DeploymentDescriptor) -> bool:
        """True when the deployed release already matches the descriptor."""
        response, _ = await self._call(
            "get_manifest", self.cluster.get_manifest, descriptor.namespace, descriptor.release_name
        )
        if not response.ok:
            return False
        try:
            deployed = parse_documents(response.body)
        except yaml.YAMLError:
            return False
        return deployed == list(descriptor.documents)

    async def _confirm_health(self, descriptor: DeploymentDescriptor) -> int:
        response, attempts = await self._call(
            "wait_healthy",
            self.cluster.wait_healthy,
            descriptor.namespace,
            descriptor.workload_name,
            self.timeout_seconds,
        )
        if not response.ok:
            raise HealthCheckFailed(response.detail)
        return attempts

    async def apply(self, descriptor: DeploymentDescriptor, release_id: str) -> RolloutResult:
        """Apply descriptor atomically and block until the workload is healthy.

        Raises:
            RolloutRejected: the cluster refused the descriptor
            HealthCheckFailed: the release was reverted to its previous state
            ClusterUnreachable: retries exhausted
        """
        log = logger.bind(namespace=descriptor.namespace, release=descriptor.release_name)

        if await self.is_current(descriptor):
            log.info("Descriptor already deployed, confirming health")
            attempts = await self._confirm_health(descriptor)
            return RolloutResult(
                namespace=descriptor.namespace,
                release_name=descriptor.release_name,
                changed=False,
                attempts=attempts,
            )

        chart_dir = self.write_chart(descriptor, release_id)
        try:
            response, attempts = await self._call(
                "upgrade_install",
                self.cluster.upgrade_install,
                descriptor.namespace,
                descriptor.release_name,
                chart_dir,
                self.timeout_seconds,
            )
        finally:
            shutil.rmtree(chart_dir, ignore_errors=True)
        if response.outcome is ClusterOutcome.UNHEALTHY:
            log.error("Release unhealthy, reverted", detail=response.detail)
            raise HealthCheckFailed(response.detail)
        if not response.ok:
            log.error("Release rejected", outcome=response.outcome.value, detail=response.detail)
            raise RolloutRejected(response.detail)

        await self._confirm_health(descriptor)
        log.info("Release rolled out", release_id=release_id)
        return RolloutResult(
            namespace=descriptor.namespace,
            release_name=descriptor.release_name,
            changed=True,
            attempts=attempts,
        )

    async def set_ingress_enabled(self, project: Project, enabled: bool) -> bool:
        """Reversible reachability toggle: swap the ingress class in place.

        Returns True when the cluster now reflects the requested state. A
        project that was never deployed has no ingress; the flag stored on the
        project is applied at its next rollout.
        """
        target_class = self.ingress_class if enabled else self.suspended_ingress_class
        try:
            response, _ = await self._call(
                "set_ingress_class",
                self.cluster.set_ingress_class,
                project.namespace,
                f"{project.release_name}-ingress",
                target_class,
            )
        except ClusterUnreachable:
            return False
        if response.outcome is ClusterOutcome.NOT_FOUND:
            logger.info("No ingress deployed yet", namespace=project.namespace, enabled=enabled)
            return True
        return response.ok

    async def teardown(self, project: Project) -> bool:
        """Uninstall the release and delete the namespace. Best effort."""
        uninstall = await self.cluster.uninstall(project.namespace, project.release_name)
        if not uninstall.ok and uninstall.outcome is not ClusterOutcome.NOT_FOUND:
            logger.warning(
                "Helm uninstall failed",
                namespace=project.namespace,
                detail=uninstall.detail,
            )
        namespace = await self.cluster.delete_namespace(project.namespace)
        if not namespace.ok:
            logger.warning(
                "Namespace delete failed",
                namespace=project.namespace,
                detail=namespace.detail,
            )
        return uninstall.ok and namespace.ok
