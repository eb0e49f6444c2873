"""Tests for the rollout engine and cluster outcome classification."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from src.cars.deploy.rollout import (
    TEMPLATE,
    ClusterUnreachable,
    HealthCheckFailed,
    RolloutEngine,
    RolloutRejected,
)
from src.cars.deploy.synthesizer import SynthesisContext, synthesize
from src.cars.deploy.validator import ValidatedManifest
from src.cars.infra.helm import ClusterOutcome, ClusterResponse, classify
from src.cars.infra.process import EXIT_NOT_FOUND, EXIT_TIMEOUT, CommandResult, run_command
from src.cars.models import DeployTarget
from tests.factories import ProjectFactory

pytestmark = pytest.mark.unit

OK = ClusterResponse(ClusterOutcome.OK)
NOT_FOUND = ClusterResponse(ClusterOutcome.NOT_FOUND, "release: not found")
UNREACHABLE = ClusterResponse(ClusterOutcome.UNREACHABLE, "connection refused")


@pytest.fixture
def project():
    return ProjectFactory.build()


@pytest.fixture
def descriptor(project):
    context = SynthesisContext(
        base_domain="projects.example.com",
        cluster_issuer="letsencrypt-production",
        ingress_class="nginx",
        suspended_ingress_class="cars-suspended",
        arc_api_keys={},
    )
    manifest = ValidatedManifest(
        targets=(DeployTarget.FRONTEND,), network="mainnet", source_root=Path("/tmp")
    )
    return synthesize(
        project, manifest, {DeployTarget.FRONTEND: "registry:5000/p/frontend:1"}, context
    )


@pytest.fixture
def cluster() -> MagicMock:
    cluster = MagicMock()
    cluster.get_manifest = AsyncMock(return_value=NOT_FOUND)
    cluster.upgrade_install = AsyncMock(return_value=OK)
    cluster.wait_healthy = AsyncMock(return_value=OK)
    cluster.set_ingress_class = AsyncMock(return_value=OK)
    cluster.uninstall = AsyncMock(return_value=OK)
    cluster.delete_namespace = AsyncMock(return_value=OK)
    return cluster


@pytest.fixture
def engine(cluster, tmp_path) -> RolloutEngine:
    return RolloutEngine(cluster, tmp_path, timeout_seconds=30, max_attempts=3, backoff_seconds=0)


class TestApply:
    async def test_first_rollout_installs_chart(self, engine, cluster, descriptor, tmp_path):
        seen: dict[str, str] = {}

        async def upgrade_install(namespace, release, chart_dir, timeout):
            seen["template"] = (chart_dir / "templates" / "manifest.yaml").read_text()
            seen["descriptor"] = (chart_dir / "files" / "descriptor.yaml").read_text()
            seen["chart"] = (chart_dir / "Chart.yaml").read_text()
            return OK

        cluster.upgrade_install.side_effect = upgrade_install

        result = await engine.apply(descriptor, "release1")

        assert result.changed
        cluster.upgrade_install.assert_awaited_once()
        namespace, release, chart_dir, timeout = cluster.upgrade_install.await_args.args
        assert (namespace, release, timeout) == (descriptor.namespace, descriptor.release_name, 30)
        assert chart_dir == tmp_path / "chart_release1"
        assert seen["template"] == TEMPLATE
        assert seen["descriptor"] == descriptor.rendered
        assert yaml.safe_load(seen["chart"])["appVersion"] == "release1"
        cluster.wait_healthy.assert_awaited_once_with(
            descriptor.namespace, descriptor.workload_name, 30
        )

    async def test_chart_removed_after_install(self, engine, descriptor, tmp_path):
        await engine.apply(descriptor, "release1")

        assert not (tmp_path / "chart_release1").exists()

    async def test_chart_removed_when_install_rejected(self, engine, cluster, descriptor, tmp_path):
        cluster.upgrade_install.return_value = ClusterResponse(
            ClusterOutcome.REJECTED, "invalid manifest"
        )

        with pytest.raises(RolloutRejected):
            await engine.apply(descriptor, "release1")

        assert not (tmp_path / "chart_release1").exists()

    async def test_reapplying_same_descriptor_is_a_no_op(self, engine, cluster, descriptor):
        cluster.get_manifest.return_value = ClusterResponse(
            ClusterOutcome.OK, body=descriptor.rendered
        )

        result = await engine.apply(descriptor, "release2")

        assert not result.changed
        cluster.upgrade_install.assert_not_awaited()
        cluster.wait_healthy.assert_awaited_once()

    async def test_changed_descriptor_is_applied(self, engine, cluster, descriptor):
        cluster.get_manifest.return_value = ClusterResponse(
            ClusterOutcome.OK, body="apiVersion: v1\nkind: Namespace\n"
        )

        result = await engine.apply(descriptor, "release3")

        assert result.changed
        cluster.upgrade_install.assert_awaited_once()

    async def test_unhealthy_release_raises_health_check_failed(self, engine, cluster, descriptor):
        cluster.upgrade_install.return_value = ClusterResponse(
            ClusterOutcome.UNHEALTHY, "release failed, and has been rolled back"
        )

        with pytest.raises(HealthCheckFailed, match="rolled back"):
            await engine.apply(descriptor, "release4")

    async def test_rejected_release(self, engine, cluster, descriptor):
        cluster.upgrade_install.return_value = ClusterResponse(
            ClusterOutcome.REJECTED, "admission webhook denied the request"
        )

        with pytest.raises(RolloutRejected):
            await engine.apply(descriptor, "release5")
        cluster.wait_healthy.assert_not_awaited()

    async def test_unhealthy_after_install(self, engine, cluster, descriptor):
        cluster.wait_healthy.return_value = ClusterResponse(
            ClusterOutcome.UNHEALTHY, "exceeded its progress deadline"
        )

        with pytest.raises(HealthCheckFailed):
            await engine.apply(descriptor, "release6")

    async def test_unreachable_cluster_is_retried(self, engine, cluster, descriptor):
        cluster.upgrade_install.side_effect = [UNREACHABLE, UNREACHABLE, OK]

        result = await engine.apply(descriptor, "release7")

        assert result.attempts == 3
        assert cluster.upgrade_install.await_count == 3

    async def test_retries_are_bounded(self, engine, cluster, descriptor):
        cluster.upgrade_install.return_value = UNREACHABLE

        with pytest.raises(ClusterUnreachable):
            await engine.apply(descriptor, "release8")
        assert cluster.upgrade_install.await_count == 3

    async def test_rejection_is_not_retried(self, engine, cluster, descriptor):
        cluster.upgrade_install.return_value = ClusterResponse(ClusterOutcome.REJECTED, "bad")

        with pytest.raises(RolloutRejected):
            await engine.apply(descriptor, "release9")
        assert cluster.upgrade_install.await_count == 1


class TestIngressToggle:
    async def test_disable_swaps_to_suspended_class(self, engine, cluster, project):
        assert await engine.set_ingress_enabled(project, False)

        cluster.set_ingress_class.assert_awaited_once_with(
            project.namespace, f"{project.release_name}-ingress", "cars-suspended"
        )

    async def test_enable_restores_class(self, engine, cluster, project):
        assert await engine.set_ingress_enabled(project, True)
        assert cluster.set_ingress_class.await_args.args[2] == "nginx"

    async def test_never_deployed_counts_as_applied(self, engine, cluster, project):
        cluster.set_ingress_class.return_value = NOT_FOUND
        assert await engine.set_ingress_enabled(project, False)

    async def test_unreachable_reports_failure(self, engine, cluster, project):
        cluster.set_ingress_class.return_value = UNREACHABLE
        assert not await engine.set_ingress_enabled(project, False)


class TestTeardown:
    async def test_teardown(self, engine, cluster, project):
        assert await engine.teardown(project)
        cluster.uninstall.assert_awaited_once_with(project.namespace, project.release_name)
        cluster.delete_namespace.assert_awaited_once_with(project.namespace)

    async def test_teardown_continues_after_failed_uninstall(self, engine, cluster, project):
        cluster.uninstall.return_value = ClusterResponse(ClusterOutcome.REJECTED, "boom")

        assert not await engine.teardown(project)
        cluster.delete_namespace.assert_awaited_once()


def result(returncode: int, stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(args=("helm",), returncode=returncode, stdout=stdout, stderr=stderr)


class TestClassify:
    @pytest.mark.parametrize(
        "command_result, outcome",
        [
            (result(0, stdout="manifest"), ClusterOutcome.OK),
            (result(EXIT_NOT_FOUND, stderr="No such file"), ClusterOutcome.UNREACHABLE),
            (
                result(1, stderr="Error: Kubernetes cluster unreachable: dial tcp"),
                ClusterOutcome.UNREACHABLE,
            ),
            (result(EXIT_TIMEOUT, stderr="helm timed out"), ClusterOutcome.UNHEALTHY),
            (
                result(1, stderr="Error: UPGRADE FAILED: release failed, and has been rolled back"),
                ClusterOutcome.UNHEALTHY,
            ),
            (result(1, stderr="Error: release: not found"), ClusterOutcome.NOT_FOUND),
            (result(1, stderr="Error: YAML parse error"), ClusterOutcome.REJECTED),
        ],
    )
    def test_outcomes(self, command_result, outcome):
        assert classify(command_result).outcome is outcome

    def test_ok_keeps_body(self):
        assert classify(result(0, stdout="kind: Service")).body == "kind: Service"


class TestRunCommand:
    async def test_missing_binary(self):
        command_result = await run_command("cars-no-such-binary-on-path", "--version")

        assert command_result.returncode == EXIT_NOT_FOUND
        assert classify(command_result).outcome is ClusterOutcome.UNREACHABLE
