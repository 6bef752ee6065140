"""Base factory configuration for polyfactory."""

from datetime import UTC, datetime
from uuid import uuid4

from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory


def utc_now() -> datetime:
    """Generate current UTC time (naive for PostgreSQL compatibility)."""
    return datetime.now(UTC).replace(tzinfo=None)


def short_hex() -> str:
    return uuid4().hex[-8:]


class BaseFactory(SQLAlchemyFactory):
    """Base factory with common configuration for all models.

    Every column is declared explicitly in the concrete factories, so JSONB
    documents get realistic shapes instead of generated noise.
    """

    __is_base_factory__ = True
    __set_relationships__ = False
    __set_foreign_keys__ = False  # We set FK values explicitly
