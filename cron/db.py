"""Cron DB sessions. Reuses apps.publisher.db session helpers."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.orm import Session

from apps.publisher.db import get_db, tenant_session


@contextmanager
def get_session(db_url: str | None = None) -> Generator[Session, None, None]:
    """Tenant-scoped session when db_url is given, else the ambient single-tenant session."""
    if db_url:
        with tenant_session(db_url) as session:
            yield session
    else:
        with get_db() as session:
            yield session
