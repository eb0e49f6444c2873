"""Registered identity model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from src.cars.models.base import utc_now


class User(SQLModel, table=True):
    """An identity (compressed public key, hex) with a contact email."""

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    identity_key: str = Field(max_length=66, unique=True, index=True)
    email: str = Field(max_length=255, index=True)
    created_at: datetime = Field(default_factory=utc_now)
