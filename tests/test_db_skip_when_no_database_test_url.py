"""Regression: requires_db tests are skipped when DATABASE_TEST_URL is missing."""


def test_requires_db_skipped_when_database_test_url_missing(monkeypatch) -> None:
    """When DATABASE_TEST_URL is unset, _db_available_for_tests returns False -> requires_db skips."""
    monkeypatch.delenv("DATABASE_TEST_URL", raising=False)

    from tests.conftest import _db_available_for_tests

    assert _db_available_for_tests() is False


def test_sqlite_url_is_never_treated_as_postgres() -> None:
    from tests._db_bootstrap import postgres_reachable

    assert postgres_reachable("sqlite:///tmp.db") is False
