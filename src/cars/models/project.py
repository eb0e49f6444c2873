"""Project and admin membership models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlmodel import Column, Field, SQLModel, UniqueConstraint

from src.cars.models.base import JSONType, utc_now
from src.cars.models.enums import Network


class Project(SQLModel, table=True):
    """A billable tenant owning one isolated namespace on the cluster.

    `balance` is the single source of truth for access gating and is only
    mutated together with an AccountingEntry (see BillingService).
    """

    __tablename__ = "projects"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    external_id: str = Field(max_length=32, unique=True, index=True)
    name: str = Field(max_length=200, default="Unnamed Project")
    network: str = Field(default=Network.MAINNET.value, max_length=16)
    private_key: str = Field(max_length=64)
    balance: int = Field(default=0, sa_column=Column(sa.BigInteger(), nullable=False))
    engine_config: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONType, nullable=False),
    )
    web_ui_config: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSONType, nullable=True),
    )
    frontend_custom_domain: str | None = Field(default=None, max_length=255)
    backend_custom_domain: str | None = Field(default=None, max_length=255)
    admin_bearer_token: str = Field(max_length=64)
    ingress_enabled: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def namespace(self) -> str:
        """Cluster namespace that isolates this project's workloads."""
        return f"cars-project-{self.external_id}"

    @property
    def release_name(self) -> str:
        """Helm release name (kept short enough for derived resource names)."""
        return f"cars-project-{self.external_id[:24]}"


class ProjectAdmin(SQLModel, table=True):
    """Grants an identity management rights over a project."""

    __tablename__ = "project_admins"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_admin"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", index=True, ondelete="CASCADE")
    user_id: UUID = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    added_at: datetime = Field(default_factory=utc_now)
