"""Deployment components: artifact handling, validation, synthesis, rollout."""

from src.cars.deploy.artifact import ArtifactError, extract_artifact, store_artifact
from src.cars.deploy.rollout import (
    ClusterUnreachable,
    HealthCheckFailed,
    RolloutEngine,
    RolloutError,
    RolloutRejected,
    RolloutResult,
)
from src.cars.deploy.synthesizer import DeploymentDescriptor, SynthesisContext, synthesize
from src.cars.deploy.validator import (
    ValidatedManifest,
    ValidationErrorCode,
    ValidationFailure,
    validate,
)

__all__ = [
    "ArtifactError",
    "ClusterUnreachable",
    "DeploymentDescriptor",
    "HealthCheckFailed",
    "RolloutEngine",
    "RolloutError",
    "RolloutRejected",
    "RolloutResult",
    "SynthesisContext",
    "ValidatedManifest",
    "ValidationErrorCode",
    "ValidationFailure",
    "extract_artifact",
    "store_artifact",
    "synthesize",
    "validate",
]
