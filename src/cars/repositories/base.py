"""Base repository with common CRUD operations."""

from typing import Any, Generic, TypeVar

from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from src.cars.core.exceptions import InputError
from src.cars.schemas.pagination import decode_cursor, encode_cursor


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    should be done in the service layer.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: Any) -> ModelType | None:
        """Get a record by its primary key."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def delete(self, entity: ModelType) -> None:
        """Mark entity for deletion (no commit)."""
        await self.session.delete(entity)

    async def paginate(
        self,
        query: Any,  # SelectOfScalar or Select - SQLModel/SQLAlchemy query
        cursor: str | None,
        limit: int,
        time_field: Any,
        key_field: Any,
    ) -> tuple[list[ModelType], str | None, bool]:
        """Keyset pagination, newest first.

        Rows are ordered by (time_field, key_field) descending; the key breaks
        ties between rows created in the same instant.

        Args:
            query: The base query to paginate
            cursor: Cursor from the previous page, if any
            limit: Maximum number of items to return
            time_field: Timestamp column to order by
            key_field: Unique string column used as tie breaker

        Returns:
            Tuple of (items, next_cursor, has_more)

        Raises:
            InputError: If the cursor is malformed
        """
        if cursor:
            try:
                after, key = decode_cursor(cursor)
            except ValueError as e:
                raise InputError("Invalid cursor") from e
            query = query.where(
                or_(time_field < after, and_(time_field == after, key_field < key))
            )

        query = query.order_by(time_field.desc(), key_field.desc()).limit(limit + 1)
        result = await self.session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > limit
        items = items[:limit]

        next_cursor = None
        if has_more:
            last = items[-1]
            next_cursor = encode_cursor(getattr(last, time_field.key), getattr(last, key_field.key))
        return items, next_cursor, has_more
