"""Repository layer. The ONLY place allowed to run DB reads/writes (session.execute, session.scalars, get_db).

PublicationStore is the persistence contract the reconciler depends on; SqlPublicationStore implements
it over one SQLAlchemy Session bound to one tenant database. Callers never share a store across tenants.
"""

import logging
from collections import Counter
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from apps.publisher.models.article import Article
from apps.publisher.models.connection import Connection
from apps.publisher.models.published_page import PublishedPage
from apps.publisher.repositories.publication_filters import (
    live_version_where,
    non_redirect_page_where,
    select_cdn_settings,
    select_live_versions,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class PublicationStore(Protocol):
    """Persistence operations used by reconciliation and dispatch."""

    def query_items_with_multiple_published_versions(self, now: datetime) -> list[int]:
        """Item numbers with two or more live versions at now."""
        ...

    def load_versions(self, item_number: int, now: datetime) -> list[Article]:
        """Live versions of item_number, newest published first."""
        ...

    def get_snapshot_paths(self, item_number: int) -> list[str]:
        """url_path of current non-redirect snapshots for item_number."""
        ...

    def delete_non_redirect_snapshot(self, item_number: int) -> int:
        """Remove non-redirect snapshots for item_number. Returns rows deleted."""
        ...

    def upsert_snapshot(self, snapshot: PublishedPage) -> None:
        ...

    def save_changes(self) -> None:
        ...

    def discard_changes(self) -> None:
        ...

    def load_cdn_settings(self) -> list[str]:
        """Raw JSON value of each CDN setting row."""
        ...


class SqlPublicationStore:
    """PublicationStore over a SQLAlchemy Session (relational or document-backed dialect).

    server_side_grouping=False fetches live item numbers and groups them in memory, for backends
    that cannot GROUP BY ... HAVING in one query.
    """

    def __init__(self, session: Session, *, server_side_grouping: bool = True) -> None:
        self._session = session
        self._server_side_grouping = server_side_grouping

    @property
    def session(self) -> Session:
        return self._session

    def query_items_with_multiple_published_versions(self, now: datetime) -> list[int]:
        if self._server_side_grouping:
            stmt = (
                select(Article.article_number)
                .where(live_version_where(now))
                .group_by(Article.article_number)
                .having(func.count(Article.id) >= 2)
                .order_by(Article.article_number)
            )
            return [row[0] for row in self._session.execute(stmt).all()]

        stmt = select(Article.article_number).where(live_version_where(now))
        counts = Counter(row[0] for row in self._session.execute(stmt).all())
        return sorted(n for n, c in counts.items() if c >= 2)

    def load_versions(self, item_number: int, now: datetime) -> list[Article]:
        return list(self._session.scalars(select_live_versions(item_number, now)).all())

    def get_snapshot_paths(self, item_number: int) -> list[str]:
        stmt = select(PublishedPage.url_path).where(non_redirect_page_where(item_number))
        return [row[0] for row in self._session.execute(stmt).all()]

    def delete_non_redirect_snapshot(self, item_number: int) -> int:
        result = self._session.execute(
            delete(PublishedPage)
            .where(non_redirect_page_where(item_number))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def upsert_snapshot(self, snapshot: PublishedPage) -> None:
        self._session.merge(snapshot)

    def save_changes(self) -> None:
        self._session.commit()

    def discard_changes(self) -> None:
        self._session.rollback()

    def load_cdn_settings(self) -> list[str]:
        return [row.value for row in self._session.scalars(select_cdn_settings()).all()]


def add_articles(session: Session, articles: Sequence[Article]) -> None:
    """Insert article revisions and commit. Used by seed scripts and tests."""
    session.add_all(list(articles))
    session.commit()


def list_connections(session: Session) -> list[Connection]:
    """All tenant connection rows from the configuration database."""
    return list(session.scalars(select(Connection).order_by(Connection.id)).all())
