"""
Scheduled publication pass across tenants.

One pass: enumerate tenants (one in single-tenant mode), then for each tenant, sequentially:
open a fresh tenant-scoped session, reconcile every article with two or more live versions,
release the session, and dispatch one CDN purge with the union of changed URLs.

A failure in one article is rolled back and recorded; a failure in one tenant is recorded and the
next tenant still runs. The pass never raises for tenant or article errors.
"""

import logging
import threading
from collections.abc import Callable, Generator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from apps.publisher.db import tenant_session
from apps.publisher.models.base import utc_now
from apps.publisher.services.cdn_base import DEFAULT_TIMEOUT_SECONDS, PurgeResult
from apps.publisher.services.cdn_dispatch import CdnDispatcher, dispatcher_for_store
from apps.publisher.services.notify import LoggingPublicationNotifier, PublicationEvent, PublicationNotifier
from apps.publisher.services.reconcile import ReconcileOutcome, reconcile_item
from apps.publisher.services.repo import PublicationStore, SqlPublicationStore
from apps.publisher.services.tenant_resolver import TenantConnection, TenantResolver

logger = logging.getLogger(__name__)

DispatcherFactory = Callable[[PublicationStore, TenantConnection], CdnDispatcher]
SessionFactory = Callable[[str], AbstractContextManager[Session]]


class TenantLock:
    """In-process, non-blocking mutual exclusion per tenant domain."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, domain: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(domain.lower(), threading.Lock())

    @contextmanager
    def hold(self, domain: str) -> Generator[bool, None, None]:
        """Yield True when the lock was acquired, False when another pass holds it."""
        lock = self._lock_for(domain)
        acquired = lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()


@dataclass
class TenantReport:
    domain: str
    outcomes: list[ReconcileOutcome] = field(default_factory=list)
    failed_items: list[int] = field(default_factory=list)
    purge_results: list[PurgeResult] = field(default_factory=list)
    error: str | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def changed_urls(self) -> list[str]:
        """Deduplicated union of changed URLs, in activation order."""
        return list(dict.fromkeys(u for o in self.outcomes for u in o.changed_urls))


@dataclass
class PassReport:
    now: datetime
    tenants: list[TenantReport] = field(default_factory=list)
    cancelled: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and all(t.ok for t in self.tenants)

    @property
    def failed_domains(self) -> list[str]:
        return [t.domain for t in self.tenants if not t.ok]


class PublicationScheduler:
    """Runs publication passes. Holds no state between passes beyond its collaborators."""

    def __init__(
        self,
        resolver: TenantResolver,
        *,
        multi_tenant: bool = False,
        dispatcher_factory: DispatcherFactory | None = None,
        notifier: PublicationNotifier | None = None,
        session_factory: SessionFactory = tenant_session,
        server_side_grouping: bool = True,
        purge_concurrency: int = 4,
        cdn_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        tenant_lock: TenantLock | None = None,
        author_lookup: Callable[[str | None], str] | None = None,
    ) -> None:
        self.resolver = resolver
        self.multi_tenant = multi_tenant
        self.notifier = notifier or LoggingPublicationNotifier()
        self.session_factory = session_factory
        self.server_side_grouping = server_side_grouping
        self.purge_concurrency = purge_concurrency
        self.cdn_timeout = cdn_timeout
        self.tenant_lock = tenant_lock
        self.author_lookup = author_lookup
        self.dispatcher_factory = dispatcher_factory or self._default_dispatcher

    def _default_dispatcher(self, store: PublicationStore, conn: TenantConnection) -> CdnDispatcher:
        return dispatcher_for_store(
            store,
            conn.website_url or None,
            timeout=self.cdn_timeout,
            max_workers=self.purge_concurrency,
        )

    def close(self) -> None:
        """Release the notifier's resources. Call once the scheduler is no longer used."""
        self.notifier.close()

    def run_pass(self, now: datetime | None = None, stop_event: threading.Event | None = None) -> PassReport:
        now = now or utc_now()
        report = PassReport(now=now)
        try:
            domains = self.resolver.list_active_tenant_domains()
        except Exception as e:
            logger.exception("tenant listing failed")
            report.error = str(e) or e.__class__.__name__
            return report
        if not self.multi_tenant:
            domains = domains[:1]

        logger.info("pass start now=%s tenants=%d multi_tenant=%s", now.isoformat(), len(domains), self.multi_tenant)
        for domain in domains:
            if stop_event is not None and stop_event.is_set():
                logger.info("pass cancelled before tenant=%s", domain)
                report.cancelled = True
                break
            report.tenants.append(self.run_tenant(domain, now))

        logger.info(
            "pass done tenants=%d failed=%d activated=%d",
            len(report.tenants),
            len(report.failed_domains),
            sum(len(t.outcomes) for t in report.tenants),
        )
        return report

    def run_tenant(self, domain: str, now: datetime) -> TenantReport:
        report = TenantReport(domain=domain)
        if self.tenant_lock is None:
            self._run_tenant(domain, now, report)
            return report
        with self.tenant_lock.hold(domain) as acquired:
            if not acquired:
                logger.warning("tenant=%s skipped: another pass holds the tenant lock", domain)
                report.skipped = True
                return report
            self._run_tenant(domain, now, report)
        return report

    def _run_tenant(self, domain: str, now: datetime, report: TenantReport) -> None:
        try:
            conn = self.resolver.resolve_connection(domain)
            dispatcher: CdnDispatcher | None = None
            with self.session_factory(conn.db_conn) as session:
                store = SqlPublicationStore(session, server_side_grouping=self.server_side_grouping)
                self._reconcile_tenant(store, conn, now, report)
                if report.changed_urls:
                    dispatcher = self.dispatcher_factory(store, conn)
            # snapshot writes are committed and the session released before any purge goes out
            if dispatcher is not None:
                with dispatcher:
                    report.purge_results = dispatcher.purge(report.changed_urls)
                failed = [r for r in report.purge_results if not r.is_success]
                logger.info(
                    "tenant=%s purged urls=%d results=%d failed=%d",
                    domain,
                    len(report.changed_urls),
                    len(report.purge_results),
                    len(failed),
                )
        except Exception as e:
            logger.exception("tenant=%s pass failed", domain)
            report.error = str(e) or e.__class__.__name__

    def _reconcile_tenant(
        self, store: PublicationStore, conn: TenantConnection, now: datetime, report: TenantReport
    ) -> None:
        items = store.query_items_with_multiple_published_versions(now)
        logger.info("tenant=%s candidates=%d", conn.domain, len(items))
        for item_number in items:
            try:
                outcome = reconcile_item(store, item_number, now, author_lookup=self.author_lookup)
            except Exception:
                logger.exception("tenant=%s item=%s reconcile failed", conn.domain, item_number)
                store.discard_changes()
                report.failed_items.append(item_number)
                continue
            if outcome is None:
                continue
            report.outcomes.append(outcome)
            self._notify(conn, outcome)

    def _notify(self, conn: TenantConnection, outcome: ReconcileOutcome) -> None:
        event = PublicationEvent(
            domain=conn.domain,
            item_number=outcome.item_number,
            version_number=outcome.active_version,
            title=outcome.title,
            url_path=outcome.url_path,
            published=outcome.published,
            recipient=conn.owner_email,
        )
        try:
            self.notifier.notify(event)
        except Exception:
            logger.exception("tenant=%s item=%s notification failed", conn.domain, outcome.item_number)
