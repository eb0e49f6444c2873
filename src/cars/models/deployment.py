"""Deployment attempt model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.cars.models.base import utc_now
from src.cars.models.enums import DeploymentStatus


class Deployment(SQLModel, table=True):
    """One artifact-upload-to-rollout attempt.

    `status` mirrors the last LogEntry written by the pipeline; the log
    remains the audit trail.
    """

    __tablename__ = "deployments"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    external_id: str = Field(max_length=32, unique=True, index=True)
    project_id: UUID = Field(foreign_key="projects.id", index=True, ondelete="CASCADE")
    created_by: UUID | None = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    artifact_path: str | None = Field(default=None, max_length=500)
    status: str = Field(default=DeploymentStatus.SLOT_ISSUED.value, max_length=32)
    error_message: str | None = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
