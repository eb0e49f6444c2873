"""Artifact Validator.

Checks the manifest of an extracted artifact tree against the project it is
being deployed to. Failures are returned as values, never raised, so the
pipeline can log and answer without crashing.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from src.cars.models import Project
from src.cars.models.enums import DeployTarget, Network

MANIFEST_FILENAME = "deployment-info.json"
MANIFEST_SCHEMA = "bsv-app"
PROVIDER_TAG = "CARS"
SUPPORTED_CONTRACT_LANGUAGE = "sCrypt"

_NETWORK_ALIASES = {
    "mainnet": Network.MAINNET.value,
    "main": Network.MAINNET.value,
    "testnet": Network.TESTNET.value,
    "test": Network.TESTNET.value,
}


class ValidationErrorCode(str, Enum):
    MISSING_MANIFEST = "MissingManifest"
    SCHEMA_MISMATCH = "SchemaMismatch"
    NO_MATCHING_CONFIG = "NoMatchingConfig"
    NETWORK_MISMATCH = "NetworkMismatch"
    NO_DEPLOY_TARGETS = "NoDeployTargets"
    UNKNOWN_DEPLOY_TARGET = "UnknownDeployTarget"
    MISSING_TARGET_SOURCE = "MissingTargetSource"
    UNSUPPORTED_CONTRACT_LANGUAGE = "UnsupportedContractLanguage"


@dataclass(frozen=True)
class ValidationFailure:
    code: ValidationErrorCode
    message: str


@dataclass(frozen=True)
class ValidatedManifest:
    """What the rest of the pipeline needs from a manifest that passed validation."""

    targets: tuple[DeployTarget, ...]
    network: str
    source_root: Path
    contracts_language: str | None = None
    config: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def frontend(self) -> bool:
        return DeployTarget.FRONTEND in self.targets

    @property
    def backend(self) -> bool:
        return DeployTarget.BACKEND in self.targets

    def source_dir(self, target: DeployTarget) -> Path:
        return self.source_root / target.value


def _fail(code: ValidationErrorCode, message: str) -> ValidationFailure:
    return ValidationFailure(code=code, message=message)


def _load_manifest(tree: Path) -> dict[str, Any] | ValidationFailure:
    path = tree / MANIFEST_FILENAME
    if not path.is_file():
        return _fail(
            ValidationErrorCode.MISSING_MANIFEST,
            f"{MANIFEST_FILENAME} not found in artifact.",
        )
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        return _fail(
            ValidationErrorCode.MISSING_MANIFEST, f"{MANIFEST_FILENAME} is not valid JSON: {e}"
        )
    if not isinstance(data, dict):
        return _fail(
            ValidationErrorCode.MISSING_MANIFEST, f"{MANIFEST_FILENAME} must be a JSON object."
        )
    return data


def _select_config(manifest: dict[str, Any], project_external_id: str) -> dict[str, Any] | None:
    configs = manifest.get("configs")
    if not isinstance(configs, list):
        return None
    for config in configs:
        if (
            isinstance(config, dict)
            and config.get("provider") == PROVIDER_TAG
            and config.get("projectID") == project_external_id
        ):
            return config
    return None


def _parse_targets(raw: Any) -> tuple[DeployTarget, ...] | ValidationFailure:
    if not isinstance(raw, list) or not raw:
        return _fail(
            ValidationErrorCode.NO_DEPLOY_TARGETS, "No deploy targets declared in CARS config."
        )
    known = {t.value: t for t in DeployTarget}
    unknown = sorted({str(t) for t in raw if t not in known})
    if unknown:
        return _fail(
            ValidationErrorCode.UNKNOWN_DEPLOY_TARGET,
            f"Unknown deploy target(s): {', '.join(unknown)}",
        )
    requested = {known[t] for t in raw}
    # Stable order regardless of how the manifest lists them
    return tuple(t for t in DeployTarget if t in requested)


def validate(tree: Path, project: Project) -> ValidatedManifest | ValidationFailure:
    """Validate an extracted artifact tree for a project.

    Args:
        tree: Root of the extracted artifact
        project: Target project; its external id is matched against `projectID`
            and its network against the config block

    Returns:
        ValidatedManifest on success, ValidationFailure otherwise
    """
    project_network = project.network
    manifest = _load_manifest(tree)
    if isinstance(manifest, ValidationFailure):
        return manifest

    if manifest.get("schema") != MANIFEST_SCHEMA:
        return _fail(
            ValidationErrorCode.SCHEMA_MISMATCH,
            f"Invalid schema in {MANIFEST_FILENAME}: expected '{MANIFEST_SCHEMA}', "
            f"got '{manifest.get('schema')}'",
        )

    config = _select_config(manifest, project.external_id)
    if config is None:
        return _fail(
            ValidationErrorCode.NO_MATCHING_CONFIG,
            f"No matching {PROVIDER_TAG} config or projectID in {MANIFEST_FILENAME}",
        )

    declared_network = _NETWORK_ALIASES.get(str(config.get("network", "")), config.get("network"))
    if declared_network != project_network:
        return _fail(
            ValidationErrorCode.NETWORK_MISMATCH,
            f"Network mismatch: Project is on {project_network} but deployment config "
            f"specifies {config.get('network')}",
        )

    targets = _parse_targets(config.get("deploy"))
    if isinstance(targets, ValidationFailure):
        return targets

    for target in targets:
        if not (tree / target.value).is_dir():
            return _fail(
                ValidationErrorCode.MISSING_TARGET_SOURCE,
                f"{target.value.capitalize()} directory not found "
                f"but {target.value} deployment requested.",
            )
    if DeployTarget.BACKEND in targets and not (tree / "backend" / "package.json").is_file():
        return _fail(
            ValidationErrorCode.MISSING_TARGET_SOURCE,
            "Backend directory does not contain a package.json file.",
        )

    language = None
    contracts = manifest.get("contracts")
    if DeployTarget.BACKEND in targets and isinstance(contracts, dict):
        language = contracts.get("language") or None
        if language is not None and language != SUPPORTED_CONTRACT_LANGUAGE:
            return _fail(
                ValidationErrorCode.UNSUPPORTED_CONTRACT_LANGUAGE,
                f"BSV Contract language not supported: {language}",
            )

    return ValidatedManifest(
        targets=targets,
        network=project_network,
        source_root=tree,
        contracts_language=language,
        config=config,
    )
