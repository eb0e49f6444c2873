"""Tests for the Prometheus metrics backend."""

import httpx
import pytest

from src.cars.billing.pricing import UsageSample
from src.cars.infra.prometheus import (
    MetricsBackendError,
    PrometheusMetricsBackend,
    _first_scalar,
    usage_queries,
)

pytestmark = pytest.mark.unit


def vector(value: str) -> dict:
    return {
        "status": "success",
        "data": {"resultType": "vector", "result": [{"metric": {}, "value": [1700000000, value]}]},
    }


EMPTY = {"status": "success", "data": {"resultType": "vector", "result": []}}


class TestFirstScalar:
    def test_value(self):
        assert _first_scalar(vector("0.25")) == 0.25

    def test_empty_result_is_zero(self):
        assert _first_scalar(EMPTY) == 0.0

    def test_nan_is_zero(self):
        assert _first_scalar(vector("NaN")) == 0.0

    def test_error_status(self):
        with pytest.raises(MetricsBackendError):
            _first_scalar({"status": "error", "error": "parse error"})


def test_queries_are_scoped_to_namespace():
    queries = usage_queries("cars-project-abc", "10m")

    assert set(queries) == {"cpu", "memory", "network", "disk"}
    for expression in queries.values():
        assert 'namespace="cars-project-abc"' in expression
        assert "[10m]" in expression


class TestUsageForNamespace:
    async def test_collects_all_dimensions(self):
        answers = {"cpu": "0.5", "memory": "1073741824", "network": "2048", "disk": "4096"}

        def handler(request: httpx.Request) -> httpx.Response:
            query = request.url.params["query"]
            assert request.url.path == "/api/v1/query"
            if "cpu_usage" in query:
                return httpx.Response(200, json=vector(answers["cpu"]))
            if "memory_working_set" in query:
                return httpx.Response(200, json=vector(answers["memory"]))
            if "network" in query:
                return httpx.Response(200, json=vector(answers["network"]))
            return httpx.Response(200, json=vector(answers["disk"]))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = PrometheusMetricsBackend("http://prometheus.test:9090/", client=client)
            sample = await backend.usage_for_namespace("cars-project-abc")

        assert sample == UsageSample(
            cpu_cores=0.5, memory_bytes=1073741824, disk_bytes=4096, network_bytes=2048
        )

    async def test_missing_disk_series_bills_zero(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if "kubelet_volume" in request.url.params["query"]:
                return httpx.Response(200, json={"status": "error", "error": "bad"})
            return httpx.Response(200, json=EMPTY)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = PrometheusMetricsBackend("http://prometheus.test:9090", client=client)
            sample = await backend.usage_for_namespace("cars-project-abc")

        assert sample.disk_bytes == 0.0

    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = PrometheusMetricsBackend("http://prometheus.test:9090", client=client)
            with pytest.raises(MetricsBackendError, match="unreachable"):
                await backend.usage_for_namespace("cars-project-abc")
