"""Fastly purge: one PURGE request per distinct URL, or a service-wide purge_all."""

import logging
import uuid
from datetime import timedelta

import requests

from apps.publisher.schemas.cdn import FastlyCdnConfig
from apps.publisher.services.cdn_base import DEFAULT_TIMEOUT_SECONDS, PurgeResult, flush_estimate, request_failure
from apps.publisher.services.config_validation import require_filled

logger = logging.getLogger(__name__)

API_BASE = "https://api.fastly.com"
FLUSH_DELAY = timedelta(seconds=5)


def _json(resp: requests.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class FastlyDriver:
    provider_name = "Fastly"

    def __init__(
        self,
        config: FastlyCdnConfig,
        *,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        require_filled(config, ("service_id", "api_token", "domain"), self.provider_name)
        self.config = config
        self._session = session or requests.Session()
        self._timeout = timeout

    def purge_target(self, path: str) -> str:
        domain = self.config.domain.strip().rstrip("/")
        if "://" in domain:
            domain = domain.split("://", 1)[1]
        path = path.strip()
        if not path.startswith("/"):
            path = "/" + path
        return f"https://{domain}{path}"

    def purge(self, urls: list[str]) -> list[PurgeResult]:
        seen: list[str] = []
        for u in urls:
            if u and u.strip() and u.strip() not in seen:
                seen.append(u.strip())
        return [self._purge_one(u) for u in seen]

    def _purge_one(self, url: str) -> PurgeResult:
        headers = {"Fastly-Key": self.config.api_token}
        if self.config.soft_purge:
            headers["Fastly-Soft-Purge"] = "1"
        target = self.purge_target(url)
        try:
            resp = self._session.request("PURGE", target, headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            logger.warning("provider=%s url=%s purge failed: %s", self.provider_name, target, e)
            return request_failure(self.provider_name, e)
        if resp.ok:
            return PurgeResult(
                provider_name=self.provider_name,
                is_success=True,
                status_code=resp.status_code,
                operation_id=str(_json(resp).get("id") or ""),
                client_request_id=str(uuid.uuid4()),
                reason=resp.reason or "OK",
                message=f"Successfully purged: {url}",
                estimated_flush_at=flush_estimate(FLUSH_DELAY),
            )
        return PurgeResult.failure(
            self.provider_name, resp.reason or "Purge Failed", f"Failed to purge {url}: {resp.reason}", resp.status_code
        )

    def purge_all(self) -> list[PurgeResult]:
        url = f"{API_BASE}/service/{self.config.service_id}/purge_all"
        try:
            resp = self._session.post(
                url,
                headers={"Fastly-Key": self.config.api_token, "Accept": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning("provider=%s purge_all failed: %s", self.provider_name, e)
            return [request_failure(self.provider_name, e)]
        if resp.ok:
            status = _json(resp).get("status", "")
            return [
                PurgeResult(
                    provider_name=self.provider_name,
                    is_success=True,
                    status_code=resp.status_code,
                    reason=resp.reason or "OK",
                    message=f"Successfully purged all content (status: {status})",
                    estimated_flush_at=flush_estimate(FLUSH_DELAY),
                )
            ]
        return [
            PurgeResult.failure(
                self.provider_name, resp.reason or "Purge Failed", f"Failed to purge all: {resp.reason}", resp.status_code
            )
        ]
