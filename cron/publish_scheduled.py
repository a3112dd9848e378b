#!/usr/bin/env python3
"""Scheduled publication pass: activate due article versions per tenant and purge the CDNs.

Run by the external job runner (cron, k8s CronJob, ...) every few minutes. Exit code 0 when
every tenant completed, 1 when any tenant failed. Tenant failures never crash the process.
"""

import signal
import sys
import threading
from pathlib import Path

# Project root on path for apps.publisher imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from cron.config import Config, config
from cron.db import get_session
from cron.logging import get_logger

logger = get_logger("publish_scheduled")


def build_resolver(cfg: Config):
    from apps.publisher.services.tenant_resolver import (
        ConfigDbTenantResolver,
        RestrictedTenantResolver,
        single_tenant_resolver,
    )

    if cfg.MULTI_TENANT:
        if not cfg.CONFIG_DATABASE_URL:
            raise ValueError("MULTI_TENANT requires CONFIG_DATABASE_URL")
        return RestrictedTenantResolver(ConfigDbTenantResolver(cfg.CONFIG_DATABASE_URL), cfg.TENANTS)
    return single_tenant_resolver(cfg.DATABASE_URL, cfg.PUBLISHER_URL)


def build_notifier(cfg: Config):
    from apps.publisher.services.notify import LoggingPublicationNotifier, WebhookPublicationNotifier

    if cfg.NOTIFY_WEBHOOK_URL:
        return WebhookPublicationNotifier(cfg.NOTIFY_WEBHOOK_URL, timeout=cfg.NOTIFY_TIMEOUT_SECONDS)
    return LoggingPublicationNotifier()


def build_scheduler(cfg: Config):
    from apps.publisher.services.scheduler import PublicationScheduler, TenantLock

    return PublicationScheduler(
        build_resolver(cfg),
        multi_tenant=cfg.MULTI_TENANT,
        notifier=build_notifier(cfg),
        session_factory=get_session,
        server_side_grouping=not cfg.DOCUMENT_STORE_GROUPING,
        purge_concurrency=cfg.PURGE_CONCURRENCY,
        cdn_timeout=cfg.CDN_TIMEOUT_SECONDS,
        tenant_lock=TenantLock(),
    )


def _install_stop_handler(stop_event: threading.Event) -> None:
    def _stop(signum, _frame) -> None:
        logger.warning("signal=%s received, finishing current tenant", signum)
        stop_event.set()

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, _stop)


def main(cfg: Config | None = None, stop_event: threading.Event | None = None) -> int:
    cfg = cfg or config
    stop_event = stop_event or threading.Event()
    _install_stop_handler(stop_event)

    logger.info("publish_scheduled start multi_tenant=%s git_sha=%s", cfg.MULTI_TENANT, cfg.GIT_SHA or "-")
    try:
        scheduler = build_scheduler(cfg)
    except ValueError as e:
        logger.error("publish_scheduled misconfigured: %s", e)
        return 1

    try:
        report = scheduler.run_pass(stop_event=stop_event)
    finally:
        scheduler.close()
    for tenant in report.tenants:
        logger.info(
            "tenant=%s activated=%d failed_items=%s purges=%d error=%s skipped=%s",
            tenant.domain,
            len(tenant.outcomes),
            tenant.failed_items or "-",
            len(tenant.purge_results),
            tenant.error or "-",
            tenant.skipped,
        )
    logger.info("publish_scheduled done ok=%s cancelled=%s", report.ok, report.cancelled)
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
