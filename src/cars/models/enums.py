"""Shared enums for models."""

from enum import Enum


class Network(str, Enum):
    """Blockchain network a project is funded and deployed on."""

    MAINNET = "mainnet"
    TESTNET = "testnet"


class DeployTarget(str, Enum):
    """Buildable parts of an uploaded artifact."""

    FRONTEND = "frontend"
    BACKEND = "backend"


class DeploymentStatus(str, Enum):
    """Pipeline stage of a deployment attempt.

    Stages advance strictly in declaration order; FAILED is absorbing and
    reachable from any non-terminal stage.
    """

    SLOT_ISSUED = "slot_issued"
    UPLOADED = "uploaded"
    EXTRACTED = "extracted"
    VALIDATED = "validated"
    IMAGES_BUILT = "images_built"
    MANIFEST_SYNTHESIZED = "manifest_synthesized"
    ROLLED_OUT = "rolled_out"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentStatus.COMPLETE, DeploymentStatus.FAILED)


DEPLOYMENT_STAGE_ORDER: tuple[DeploymentStatus, ...] = (
    DeploymentStatus.SLOT_ISSUED,
    DeploymentStatus.UPLOADED,
    DeploymentStatus.EXTRACTED,
    DeploymentStatus.VALIDATED,
    DeploymentStatus.IMAGES_BUILT,
    DeploymentStatus.MANIFEST_SYNTHESIZED,
    DeploymentStatus.ROLLED_OUT,
    DeploymentStatus.COMPLETE,
)


class AccountingEntryType(str, Enum):
    """Direction of a ledger line."""

    CREDIT = "credit"
    DEBIT = "debit"


class LogLevel(str, Enum):
    INFO = "info"
    ERROR = "error"
