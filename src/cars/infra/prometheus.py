"""Metrics Backend: instant queries against the Prometheus HTTP API."""

from typing import Any, Protocol

import httpx

from src.cars.billing.pricing import UsageSample
from src.cars.core.logging import get_logger

logger = get_logger(__name__)


class MetricsBackendError(Exception):
    """The metrics backend was unreachable or answered with an error."""


class MetricsBackend(Protocol):
    async def usage_for_namespace(self, namespace: str, window: str = "5m") -> UsageSample: ...


def usage_queries(namespace: str, window: str = "5m") -> dict[str, str]:
    """PromQL expressions for the four billed dimensions of one namespace."""
    selector = f'namespace="{namespace}", image!=""'
    return {
        "cpu": f"sum(rate(container_cpu_usage_seconds_total{{{selector}}}[{window}]))",
        "memory": f"avg_over_time(container_memory_working_set_bytes{{{selector}}}[{window}])",
        "network": (
            f"sum(increase(container_network_receive_bytes_total{{{selector}}}[{window}]) "
            f"+ increase(container_network_transmit_bytes_total{{{selector}}}[{window}]))"
        ),
        "disk": (
            f'avg_over_time(kubelet_volume_stats_used_bytes{{namespace="{namespace}"}}'
            f"[{window}])"
        ),
    }


def _first_scalar(payload: dict[str, Any]) -> float:
    if payload.get("status") != "success":
        raise MetricsBackendError(f"Prometheus query failed: {payload}")
    result = payload.get("data", {}).get("result", [])
    if not result:
        return 0.0
    try:
        value = float(result[0]["value"][1])
    except (KeyError, IndexError, TypeError, ValueError):
        return 0.0
    # NaN compares unequal to itself
    return value if value == value else 0.0


class PrometheusMetricsBackend:
    def __init__(
        self, base_url: str, timeout: float = 15.0, client: httpx.AsyncClient | None = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def query_scalar(self, expression: str) -> float:
        """First sample of an instant vector; an empty result is 0."""
        url = f"{self.base_url}/api/v1/query"
        try:
            if self._client is not None:
                resp = await self._client.get(url, params={"query": expression})
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(url, params={"query": expression})
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise MetricsBackendError(f"Prometheus unreachable: {e}") from e
        return _first_scalar(payload)

    async def usage_for_namespace(self, namespace: str, window: str = "5m") -> UsageSample:
        queries = usage_queries(namespace, window)
        cpu = await self.query_scalar(queries["cpu"])
        memory = await self.query_scalar(queries["memory"])
        network = await self.query_scalar(queries["network"])
        try:
            disk = await self.query_scalar(queries["disk"])
        except MetricsBackendError as e:
            # Namespaces without volumes may have no kubelet series at all
            logger.debug("Disk usage query failed, billing zero", namespace=namespace, error=str(e))
            disk = 0.0
        return UsageSample(
            cpu_cores=cpu,
            memory_bytes=memory,
            disk_bytes=disk,
            network_bytes=network,
        )
