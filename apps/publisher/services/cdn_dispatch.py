"""
Fan a purge out to every CDN configured for one tenant.

Providers are independent: a provider that fails (bad config, transport error, unexpected
exception) yields failed PurgeResults and the others still run. Results follow configuration order.
"""

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor

import requests
from pydantic import ValidationError

from apps.publisher.schemas.cdn import (
    AzureCdnConfig,
    CdnProvider,
    CdnSetting,
    CloudflareCdnConfig,
    CloudFrontCdnConfig,
    FastlyCdnConfig,
    SucuriCdnConfig,
)
from apps.publisher.services.cdn_azure import AzureCdnDriver
from apps.publisher.services.cdn_base import DEFAULT_TIMEOUT_SECONDS, CdnDriver, PurgeResult
from apps.publisher.services.cdn_cloudflare import CloudflareDriver
from apps.publisher.services.cdn_cloudfront import CloudFrontDriver
from apps.publisher.services.cdn_fastly import FastlyDriver
from apps.publisher.services.cdn_sucuri import SucuriDriver
from apps.publisher.services.config_validation import CdnConfigError
from apps.publisher.services.repo import PublicationStore

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], requests.Session]


def build_driver(
    setting: CdnSetting,
    *,
    site_url: str | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    session_factory: SessionFactory | None = None,
) -> CdnDriver | None:
    """Driver for one setting, or None for the 'None' kind. Raises CdnConfigError on bad config."""
    kind = setting.provider
    if kind == CdnProvider.NONE:
        return None
    session_factory = session_factory or requests.Session
    try:
        payload = setting.payload()
        if kind in (CdnProvider.AZURE_CDN, CdnProvider.AZURE_FRONT_DOOR):
            config = AzureCdnConfig.model_validate(payload)
            config.is_front_door = kind == CdnProvider.AZURE_FRONT_DOOR
            return AzureCdnDriver(config, session=session_factory(), timeout=timeout)
        if kind == CdnProvider.CLOUDFLARE:
            return CloudflareDriver(
                CloudflareCdnConfig.model_validate(payload),
                site_url=site_url,
                session=session_factory(),
                timeout=timeout,
            )
        if kind == CdnProvider.CLOUDFRONT:
            return CloudFrontDriver(
                CloudFrontCdnConfig.model_validate(payload), session=session_factory(), timeout=timeout
            )
        if kind == CdnProvider.FASTLY:
            return FastlyDriver(FastlyCdnConfig.model_validate(payload), session=session_factory(), timeout=timeout)
        if kind == CdnProvider.SUCURI:
            return SucuriDriver(SucuriCdnConfig.model_validate(payload), session=session_factory(), timeout=timeout)
    except ValidationError as e:
        raise CdnConfigError(f"{kind.value} configuration is invalid: {e}") from e
    raise CdnConfigError(f"no driver for provider {kind.value}")


class _BrokenProvider:
    """Stands in for a provider whose configuration could not be loaded."""

    def __init__(self, provider_name: str, error: Exception) -> None:
        self.provider_name = provider_name
        self.error = error

    def purge(self, urls: list[str]) -> list[PurgeResult]:
        return [PurgeResult.failure(self.provider_name, "Configuration Error", str(self.error), 400)]

    def purge_all(self) -> list[PurgeResult]:
        return self.purge([])


class CdnDispatcher:
    """Purges every configured provider for one tenant.

    The dispatcher owns the HTTP sessions it opens for its drivers; use it as a context manager
    (or call close()) so their connection pools are released after the purge.
    """

    def __init__(
        self,
        settings: Iterable[CdnSetting],
        *,
        site_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = 4,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.site_url = site_url
        self.max_workers = max(1, max_workers)
        self.kinds: list[CdnProvider] = []
        self.drivers: list[CdnDriver] = []
        self._sessions: list[requests.Session] = []
        make_session = session_factory or requests.Session

        def tracked_session() -> requests.Session:
            session = make_session()
            self._sessions.append(session)
            return session

        for setting in settings:
            try:
                driver = build_driver(setting, site_url=site_url, timeout=timeout, session_factory=tracked_session)
            except CdnConfigError as e:
                logger.warning("provider=%s configuration error: %s", setting.provider.value, e)
                driver = _BrokenProvider(setting.provider.value, e)
            if driver is None:
                continue
            self.kinds.append(setting.provider)
            self.drivers.append(driver)

    def close(self) -> None:
        sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "CdnDispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def is_configured(self, kind: CdnProvider | None = None) -> bool:
        if kind is None:
            return bool(self.drivers)
        return kind in self.kinds

    def purge(self, urls: list[str]) -> list[PurgeResult]:
        unique = list(dict.fromkeys(u for u in urls if u))
        return self._run(lambda d: d.purge(list(unique)))

    def purge_all(self) -> list[PurgeResult]:
        return self._run(lambda d: d.purge_all())

    def _run(self, call: Callable[[CdnDriver], list[PurgeResult]]) -> list[PurgeResult]:
        if not self.drivers:
            return []

        def guarded(driver: CdnDriver) -> list[PurgeResult]:
            try:
                return call(driver)
            except Exception as e:
                logger.exception("provider=%s purge raised", driver.provider_name)
                return [PurgeResult.failure(driver.provider_name, "Unexpected Error", str(e), 500)]

        if self.max_workers == 1 or len(self.drivers) == 1:
            batches = [guarded(d) for d in self.drivers]
        else:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(self.drivers))) as pool:
                batches = list(pool.map(guarded, self.drivers))
        results = [r for batch in batches for r in batch]
        failed = sum(1 for r in results if not r.is_success)
        logger.info("providers=%d results=%d failed=%d", len(self.drivers), len(results), failed)
        return results


def load_cdn_settings(raw_values: Iterable[str]) -> list[CdnSetting]:
    """Parse stored setting rows. Unreadable rows are logged and skipped."""
    settings: list[CdnSetting] = []
    for raw in raw_values:
        try:
            settings.append(CdnSetting.from_json(raw))
        except CdnConfigError as e:
            logger.warning("skipping CDN setting: %s", e)
    return settings


def dispatcher_for_store(
    store: PublicationStore,
    site_url: str | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_workers: int = 4,
    session_factory: SessionFactory | None = None,
) -> CdnDispatcher:
    """Dispatcher over the CDN settings stored in the tenant's own database."""
    return CdnDispatcher(
        load_cdn_settings(store.load_cdn_settings()),
        site_url=site_url,
        timeout=timeout,
        max_workers=max_workers,
        session_factory=session_factory,
    )
