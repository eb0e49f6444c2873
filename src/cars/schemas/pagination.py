"""Keyset pagination for history listings."""

import base64
import binascii
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import Field

from src.cars.schemas.base import CamelModel

T = TypeVar("T")

_SEPARATOR = "|"


class PaginatedResponse(CamelModel, Generic[T]):
    """One page of a newest-first listing.

    `next_cursor` is opaque; clients pass it back unchanged.
    """

    items: list[T]
    next_cursor: str | None = Field(
        default=None,
        description="Cursor for the next (older) page. None on the last page.",
    )
    has_more: bool = False


def encode_cursor(created_at: datetime, key: str) -> str:
    """Position after the row with this (created_at, key)."""
    raw = f"{created_at.isoformat()}{_SEPARATOR}{key}"
    return base64.urlsafe_b64encode(raw.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    """Inverse of encode_cursor.

    Raises:
        ValueError: If the cursor was not produced by encode_cursor
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        created_at, key = raw.split(_SEPARATOR, 1)
        return datetime.fromisoformat(created_at), key
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise ValueError("Invalid cursor") from e
