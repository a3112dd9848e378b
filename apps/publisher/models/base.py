"""SQLAlchemy declarative bases and shared column types."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    """Base class for tenant database models (articles, pages, settings)."""

    pass


class ConfigBase(DeclarativeBase):
    """Base class for the tenant configuration database (connections)."""

    pass


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetime on every backend.

    Naive values are taken as UTC on write; values read back without tzinfo (SQLite) get UTC attached.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
