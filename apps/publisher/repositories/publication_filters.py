"""Reusable WHERE clauses and selects for publication queries. All live-version queries MUST use these.

Provides:
  - live_version_where(now): published is set, not in the future, row not deleted
  - select_live_versions(item_number, now): versions of one item, newest published first
  - non_redirect_page_where(item_number): snapshot rows owned by the reconciler
"""

from datetime import datetime

from sqlalchemy import ColumnElement, Select, and_, select

from apps.publisher.models.article import Article, StatusCode
from apps.publisher.models.published_page import PublishedPage
from apps.publisher.models.setting import CDN_GROUP, Setting


def live_version_where(now: datetime) -> ColumnElement[bool]:
    """published IS NOT NULL AND published <= now AND status_code != Deleted."""
    return and_(
        Article.published.is_not(None),
        Article.published <= now,
        Article.status_code != int(StatusCode.DELETED),
    )


def select_live_versions(item_number: int, now: datetime) -> Select[tuple[Article]]:
    """Live versions of one article, most recently published first. Ties broken by version number."""
    return (
        select(Article)
        .where(Article.article_number == item_number)
        .where(live_version_where(now))
        .order_by(Article.published.desc(), Article.version_number.desc())
    )


def non_redirect_page_where(item_number: int) -> ColumnElement[bool]:
    """Snapshot rows for item_number that are not redirects. Redirect rows are never touched."""
    return and_(
        PublishedPage.article_number == item_number,
        PublishedPage.status_code != int(StatusCode.REDIRECT),
    )


def select_cdn_settings() -> Select[tuple[Setting]]:
    """CDN provider setting rows in configuration order."""
    return select(Setting).where(Setting.group == CDN_GROUP).order_by(Setting.id)
