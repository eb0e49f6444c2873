"""Adapters for external collaborators (image builder, cluster, metrics, DNS)."""

from src.cars.infra.dns import DnsLookupError, DohTxtResolver, TxtResolver
from src.cars.infra.docker import BuildError, DockerImageBuilder, ImageBuilder, image_reference
from src.cars.infra.helm import (
    ClusterClient,
    ClusterOutcome,
    ClusterResponse,
    HelmClusterClient,
)
from src.cars.infra.process import CommandResult, run_command
from src.cars.infra.project_backend import ProjectBackendClient, ProjectBackendError
from src.cars.infra.prometheus import (
    MetricsBackend,
    MetricsBackendError,
    PrometheusMetricsBackend,
    usage_queries,
)

__all__ = [
    "BuildError",
    "ClusterClient",
    "ClusterOutcome",
    "ClusterResponse",
    "CommandResult",
    "DnsLookupError",
    "DockerImageBuilder",
    "DohTxtResolver",
    "HelmClusterClient",
    "ImageBuilder",
    "MetricsBackend",
    "MetricsBackendError",
    "ProjectBackendClient",
    "ProjectBackendError",
    "PrometheusMetricsBackend",
    "TxtResolver",
    "image_reference",
    "run_command",
    "usage_queries",
]
