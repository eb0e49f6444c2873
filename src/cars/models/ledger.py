"""Append-only records: project/deployment log and the accounting ledger."""

from datetime import datetime
from typing import Any
from uuid import UUID

import sqlalchemy as sa
from sqlmodel import Column, Field, Index, SQLModel

from src.cars.models.base import JSONType, utc_now
from src.cars.models.enums import LogLevel


class LogEntry(SQLModel, table=True):
    """Audit line for a project; deployment_id is None for project-level events."""

    __tablename__ = "log_entries"
    __table_args__ = (
        Index("ix_log_entries_project_created", "project_id", "created_at"),
        Index("ix_log_entries_deployment_created", "deployment_id", "created_at"),
    )

    id: int | None = Field(default=None, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE")
    deployment_id: UUID | None = Field(
        default=None, foreign_key="deployments.id", ondelete="CASCADE"
    )
    level: str = Field(default=LogLevel.INFO.value, max_length=10)
    message: str = Field(sa_column=Column(sa.Text(), nullable=False))
    created_at: datetime = Field(default_factory=utc_now)


class AccountingEntry(SQLModel, table=True):
    """Ledger line. balance_after equals the project balance right after this entry."""

    __tablename__ = "accounting_entries"
    __table_args__ = (
        Index("ix_accounting_entries_project_created", "project_id", "created_at"),
        sa.CheckConstraint("amount >= 0", name="ck_accounting_entries_amount_non_negative"),
        sa.CheckConstraint(
            "entry_type IN ('credit', 'debit')", name="ck_accounting_entries_entry_type"
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE")
    deployment_id: UUID | None = Field(
        default=None, foreign_key="deployments.id", ondelete="SET NULL"
    )
    entry_type: str = Field(max_length=10)
    amount: int = Field(sa_column=Column(sa.BigInteger(), nullable=False))
    balance_after: int = Field(sa_column=Column(sa.BigInteger(), nullable=False))
    details: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSONType, nullable=False),
    )
    created_at: datetime = Field(default_factory=utc_now)
