"""
Version reconciliation: pick the single live revision of an article and materialize it as a page.

For one article number at instant now:
  1. load live versions (published <= now, not deleted), newest first
  2. fewer than two => nothing to do (one live row is already canonical)
  3. newest is active; older live versions are unpublished and committed first
  4. non-redirect pages for the article are replaced by a snapshot of the active version, committed
  5. the purge paths that changed are returned

Versions scheduled in the future are never loaded, so never touched. Re-running on a reconciled
article finds a single live version and returns None without writing.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from apps.publisher.models.article import Article
from apps.publisher.models.published_page import PublishedPage
from apps.publisher.services.repo import PublicationStore

logger = logging.getLogger(__name__)

ROOT_PATH = "root"


@dataclass
class ReconcileOutcome:
    """Result of activating one article version."""

    item_number: int
    active_id: str
    active_version: int
    url_path: str
    title: str
    published: datetime | None
    unpublished_versions: list[int] = field(default_factory=list)
    changed_urls: list[str] = field(default_factory=list)


def parent_url_path(url_path: str) -> str:
    """Path with its last '/'-segment removed. 'root' and single-segment paths have no parent."""
    if "/" not in url_path:
        return ""
    return url_path[: url_path.rindex("/")]


def purge_path(url_path: str) -> str:
    """CDN path for a page: 'root' is the site home '/', anything else is '/<path>'."""
    if url_path.strip().lower() == ROOT_PATH:
        return "/"
    return "/" + url_path.strip().lstrip("/")


def snapshot_from_article(article: Article, author_info: str = "") -> PublishedPage:
    """Copy render fields of the active revision into a new page row."""
    return PublishedPage(
        id=str(uuid.uuid4()),
        article_number=article.article_number,
        version_number=article.version_number,
        status_code=article.status_code,
        url_path=article.url_path,
        parent_url_path=parent_url_path(article.url_path),
        title=article.title,
        content=article.content,
        banner_image=article.banner_image or "",
        introduction=article.introduction or "",
        category=article.category or "",
        header_javascript=article.header_javascript,
        footer_javascript=article.footer_javascript,
        article_type=article.article_type,
        author_info=author_info,
        redirect_target=article.redirect_target or "",
        published=article.published,
        expires=article.expires,
        updated=article.updated,
    )


def reconcile_item(
    store: PublicationStore,
    item_number: int,
    now: datetime,
    *,
    author_lookup: Callable[[str | None], str] | None = None,
) -> ReconcileOutcome | None:
    """
    Reconcile one article number. Returns None when there is nothing to do.
    Persistence errors propagate; the caller rolls back and moves on to the next article.
    """
    versions = store.load_versions(item_number, now)
    if len(versions) < 2:
        return None

    active = versions[0]
    if active is None or active.published is None:
        logger.debug("item=%s all versions scheduled in the future", item_number)
        return None

    logger.info(
        "item=%s activating version=%s published=%s",
        item_number,
        active.version_number,
        active.published.isoformat(),
    )

    # equal timestamps: the higher version number wins and the other is superseded too
    superseded = [
        v for v in versions[1:] if v.id != active.id and v.published is not None and v.published <= active.published
    ]
    for old in superseded:
        logger.info(
            "item=%s unpublishing version=%s was_published=%s",
            item_number,
            old.version_number,
            old.published.isoformat() if old.published else None,
        )
        old.published = None
    if superseded:
        store.save_changes()

    previous_paths = store.get_snapshot_paths(item_number)
    store.delete_non_redirect_snapshot(item_number)
    author_info = author_lookup(active.user_id) if author_lookup else ""
    store.upsert_snapshot(snapshot_from_article(active, author_info or ""))
    store.save_changes()

    changed = [purge_path(active.url_path)]
    for path in previous_paths:
        p = purge_path(path)
        if p not in changed:
            changed.append(p)

    return ReconcileOutcome(
        item_number=item_number,
        active_id=active.id,
        active_version=active.version_number,
        url_path=active.url_path,
        title=active.title,
        published=active.published,
        unpublished_versions=[v.version_number for v in superseded],
        changed_urls=changed,
    )
