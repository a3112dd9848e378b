"""Sucuri firewall cache clearing."""

import logging
from datetime import timedelta

import requests

from apps.publisher.schemas.cdn import SucuriCdnConfig
from apps.publisher.services.cdn_base import DEFAULT_TIMEOUT_SECONDS, PurgeResult, flush_estimate, request_failure
from apps.publisher.services.config_validation import require_filled

logger = logging.getLogger(__name__)

API_URL = "https://waf.sucuri.net/api"
MAX_FILES = 20
FLUSH_DELAY = timedelta(minutes=2)


class SucuriDriver:
    provider_name = "Sucuri"

    def __init__(
        self,
        config: SucuriCdnConfig,
        *,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        require_filled(config, ("api_key", "api_secret"), self.provider_name)
        self.config = config
        self._session = session or requests.Session()
        self._timeout = timeout

    def purge(self, urls: list[str]) -> list[PurgeResult]:
        paths = [u.strip() for u in urls if u and u.strip()]
        if not paths or len(paths) > MAX_FILES or paths[0] == "/":
            return [self._clear(None)]
        return [self._clear(p) for p in paths]

    def purge_all(self) -> list[PurgeResult]:
        return [self._clear(None)]

    def _clear(self, path: str | None) -> PurgeResult:
        params = {"k": self.config.api_key, "s": self.config.api_secret, "a": "clearcache"}
        if path:
            params["file"] = path
        try:
            resp = self._session.get(API_URL, params=params, timeout=self._timeout)
        except requests.RequestException as e:
            logger.warning("provider=%s clearcache failed: %s", self.provider_name, e)
            return request_failure(self.provider_name, e)
        if resp.ok:
            return PurgeResult(
                provider_name=self.provider_name,
                is_success=True,
                status_code=resp.status_code,
                reason=resp.reason or "OK",
                message=f"Cleared {path}" if path else "Cleared all cache",
                estimated_flush_at=flush_estimate(FLUSH_DELAY),
            )
        return PurgeResult.failure(
            self.provider_name, resp.reason or "Clear Failed", f"Sucuri clearcache failed: {resp.reason}", resp.status_code
        )
