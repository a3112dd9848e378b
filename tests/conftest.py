"""Pytest fixtures for root-level tests (schema, cron entry point, cross-cutting guards)."""

import os

import pytest

# ENV=test also for runs limited to tests/
os.environ.setdefault("ENV", "test")
os.environ.setdefault("PYTEST_RUNNING", "1")

from tests._db_bootstrap import postgres_reachable


def _db_available_for_tests() -> bool:
    """True if DATABASE_TEST_URL is set and Postgres is reachable (short timeout)."""
    return postgres_reachable(os.environ.get("DATABASE_TEST_URL"))


# Marker for Postgres tests: skip if DATABASE_TEST_URL not set or Postgres not reachable
requires_db = pytest.mark.skipif(
    not _db_available_for_tests(),
    reason="DATABASE_TEST_URL not set or Postgres not reachable",
)
