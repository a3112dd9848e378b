"""Cloudflare zone cache purge."""

import logging
from datetime import timedelta

import requests

from apps.publisher.schemas.cdn import CloudflareCdnConfig
from apps.publisher.services.cdn_base import DEFAULT_TIMEOUT_SECONDS, PurgeResult, flush_estimate, request_failure
from apps.publisher.services.config_validation import require_filled

logger = logging.getLogger(__name__)

API_BASE = "https://api.cloudflare.com/client/v4"
FLUSH_DELAY = timedelta(seconds=30)


def is_purge_everything(urls: list[str]) -> bool:
    paths = [u.strip() for u in urls if u and u.strip()]
    return not paths or any(p == "/" or p.lower() == "root" for p in paths)


def absolute_urls(urls: list[str], site_url: str | None) -> list[str]:
    """Cloudflare purges by full URL; relative paths are resolved against the site URL when known."""
    out: list[str] = []
    base = (site_url or "").rstrip("/")
    for u in urls:
        u = u.strip()
        if not u:
            continue
        if "://" in u or not base:
            out.append(u)
        else:
            out.append(f"{base}/{u.lstrip('/')}")
    return out


def _json(resp: requests.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _error_text(err) -> str:
    if isinstance(err, dict):
        return str(err.get("message", err))
    return str(err)


class CloudflareDriver:
    provider_name = "Cloudflare"

    def __init__(
        self,
        config: CloudflareCdnConfig,
        *,
        site_url: str | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        require_filled(config, ("api_token", "zone_id"), self.provider_name)
        self.config = config
        self.site_url = site_url
        self._session = session or requests.Session()
        self._timeout = timeout

    def purge(self, urls: list[str]) -> list[PurgeResult]:
        if is_purge_everything(urls):
            return self._send({"purge_everything": True})
        return self._send({"files": absolute_urls(urls, self.site_url)})

    def purge_all(self) -> list[PurgeResult]:
        return self._send({"purge_everything": True})

    def _send(self, body: dict) -> list[PurgeResult]:
        url = f"{API_BASE}/zones/{self.config.zone_id}/purge_cache"
        try:
            resp = self._session.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {self.config.api_token}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning("provider=%s purge request failed: %s", self.provider_name, e)
            return [request_failure(self.provider_name, e)]

        data = _json(resp)
        success = bool(data.get("success")) and resp.ok
        raw_errors = data.get("errors")
        errors = "; ".join(_error_text(err) for err in raw_errors if err) if isinstance(raw_errors, list) else ""
        result = data.get("result")
        operation = str(result.get("id", "")) if isinstance(result, dict) else ""
        if success:
            logger.info("provider=%s purge accepted id=%s", self.provider_name, operation)
            return [
                PurgeResult(
                    provider_name=self.provider_name,
                    is_success=True,
                    status_code=resp.status_code,
                    operation_id=operation,
                    reason="OK",
                    message="Purge everything" if body.get("purge_everything") else f"Purged {len(body['files'])} file(s)",
                    estimated_flush_at=flush_estimate(FLUSH_DELAY),
                )
            ]
        return [
            PurgeResult.failure(
                self.provider_name,
                resp.reason or "Purge Failed",
                errors or f"Cloudflare purge failed with status {resp.status_code}",
                resp.status_code if resp.status_code >= 400 else 500,
            )
        ]
