"""Pytest fixtures for publisher tests. Tenant databases are SQLite files under tmp_path."""

import os
from collections.abc import Callable
from datetime import datetime, timezone

import pytest

os.environ.setdefault("ENV", "test")

from apps.publisher.db import ensure_config_tables, ensure_tables, make_engine, tenant_session
from apps.publisher.models import Article, PublishedPage, Setting, StatusCode
from apps.publisher.models.setting import CDN_GROUP

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_tenant_db(tmp_path) -> Callable[[str], str]:
    """Factory: create an empty tenant database file and return its URL."""

    def _make(name: str = "tenant") -> str:
        url = f"sqlite:///{tmp_path / (name + '.db')}"
        engine = make_engine(url)
        try:
            ensure_tables(bind=engine)
        finally:
            engine.dispose()
        return url

    return _make


@pytest.fixture
def make_config_db(tmp_path) -> Callable[[], str]:
    def _make() -> str:
        url = f"sqlite:///{tmp_path / 'config.db'}"
        engine = make_engine(url)
        try:
            ensure_config_tables(engine)
        finally:
            engine.dispose()
        return url

    return _make


@pytest.fixture
def tenant_db_url(make_tenant_db) -> str:
    return make_tenant_db("tenant")


@pytest.fixture
def session(tenant_db_url):
    with tenant_session(tenant_db_url) as s:
        yield s


@pytest.fixture
def make_article() -> Callable[..., Article]:
    """Factory for article revisions. url_path defaults to item-<number>."""

    def _make(
        number: int,
        version: int,
        published: datetime | None,
        *,
        url_path: str | None = None,
        status: StatusCode = StatusCode.ACTIVE,
        title: str | None = None,
        user_id: str | None = None,
    ) -> Article:
        return Article(
            article_number=number,
            version_number=version,
            status_code=int(status),
            url_path=url_path or f"item-{number}",
            title=title or f"Item {number} v{version}",
            content=f"<p>item {number} version {version}</p>",
            published=published,
            user_id=user_id,
        )

    return _make


@pytest.fixture
def make_redirect() -> Callable[..., PublishedPage]:
    def _make(number: int, url_path: str, target: str) -> PublishedPage:
        return PublishedPage(
            article_number=number,
            version_number=1,
            status_code=int(StatusCode.REDIRECT),
            url_path=url_path,
            title="redirect",
            redirect_target=target,
        )

    return _make


@pytest.fixture
def make_cdn_setting() -> Callable[[str, str], Setting]:
    def _make(name: str, value: str) -> Setting:
        return Setting(group=CDN_GROUP, name=name, value=value)

    return _make
