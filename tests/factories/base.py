"""Base factory configuration for polyfactory."""

from datetime import UTC, datetime

from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory


def utc_now() -> datetime:
    """Generate current UTC time (naive, like the models store it)."""
    return datetime.now(UTC).replace(tzinfo=None)


class BaseFactory(SQLAlchemyFactory):
    """Base factory with common configuration for all models.

    Every column is declared explicitly on the concrete factories; relationships
    and foreign keys are always set by the test.
    """

    __is_base_factory__ = True
    __set_relationships__ = False
    __set_foreign_keys__ = False
