"""Azure CDN and Azure Front Door purge through the Resource Manager REST API.

A client-credentials token is fetched once per driver and reused until shortly before it expires.
"""

import logging
import time
import uuid
from datetime import timedelta

import requests

from apps.publisher.schemas.cdn import AzureCdnConfig
from apps.publisher.services.cdn_base import (
    DEFAULT_TIMEOUT_SECONDS,
    PurgeResult,
    flush_estimate,
    request_failure,
    response_body,
)
from apps.publisher.services.config_validation import require_filled

logger = logging.getLogger(__name__)

ARM_BASE = "https://management.azure.com"
ARM_SCOPE = "https://management.azure.com/.default"
TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
CDN_API_VERSION = "2024-02-01"
MAX_PATHS = 100
WILDCARD = "/*"
FLUSH_DELAY = timedelta(minutes=10)


def content_paths(urls: list[str]) -> list[str]:
    """Purge paths for ARM. Large or root-level requests collapse to a single wildcard."""
    paths = [u.strip() for u in urls if u and u.strip()]
    if not paths or len(paths) > MAX_PATHS:
        return [WILDCARD]
    if any(p in ("/", WILDCARD) or p.lower() == "root" for p in paths):
        return [WILDCARD]
    return ["/" + p.lstrip("/") if not p.startswith("/") else p for p in paths]


class AzureCdnDriver:
    """Purges an Azure CDN endpoint, or an Azure Front Door (Standard/Premium) endpoint."""

    def __init__(
        self,
        config: AzureCdnConfig,
        *,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        require_filled(
            config,
            ("subscription_id", "resource_group", "profile_name", "endpoint_name", "tenant_id", "client_id", "client_secret"),
            "Azure",
        )
        self.config = config
        self.provider_name = "Azure Front Door" if config.is_front_door else "Azure CDN"
        self._session = session or requests.Session()
        self._timeout = timeout
        self._token: str | None = None
        self._token_expires_at = 0.0

    def purge_url(self) -> str:
        c = self.config
        endpoints = "afdEndpoints" if c.is_front_door else "endpoints"
        return (
            f"{ARM_BASE}/subscriptions/{c.subscription_id}/resourceGroups/{c.resource_group}"
            f"/providers/Microsoft.Cdn/profiles/{c.profile_name}/{endpoints}/{c.endpoint_name}"
            f"/purge?api-version={CDN_API_VERSION}"
        )

    def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        resp = self._session.post(
            TOKEN_URL.format(tenant=self.config.tenant_id),
            data={
                "grant_type": "client_credentials",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "scope": ARM_SCOPE,
            },
            timeout=self._timeout,
        )
        resp.raise_for_status()
        body = resp.json()
        if not isinstance(body, dict) or not isinstance(body.get("access_token"), str):
            raise ValueError("token response carries no access_token")
        self._token = body["access_token"]
        self._token_expires_at = time.monotonic() + max(int(body.get("expires_in", 3600)) - 60, 0)
        return self._token

    def purge(self, urls: list[str]) -> list[PurgeResult]:
        paths = content_paths(urls)
        try:
            token = self._access_token()
            resp = self._session.post(
                self.purge_url(),
                json={"contentPaths": paths},
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning("provider=%s purge request failed: %s", self.provider_name, e)
            return [request_failure(self.provider_name, e)]
        except (KeyError, TypeError, ValueError) as e:
            return [PurgeResult.failure(self.provider_name, "Token Error", f"unexpected token response: {e}", 401)]

        if resp.status_code in (200, 202):
            operation = resp.headers.get("Azure-AsyncOperation") or resp.headers.get("Location") or ""
            logger.info("provider=%s paths=%d accepted operation=%s", self.provider_name, len(paths), operation)
            return [
                PurgeResult(
                    provider_name=self.provider_name,
                    is_success=True,
                    status_code=resp.status_code,
                    operation_id=operation,
                    client_request_id=resp.headers.get("x-ms-request-id") or str(uuid.uuid4()),
                    reason="Accepted",
                    message=f"Purge accepted for {len(paths)} path(s)",
                    estimated_flush_at=flush_estimate(FLUSH_DELAY),
                )
            ]
        return [
            PurgeResult.failure(
                self.provider_name,
                resp.reason or "Purge Failed",
                f"{self.provider_name} purge failed: {response_body(resp)}",
                resp.status_code,
            )
        ]

    def purge_all(self) -> list[PurgeResult]:
        return self.purge([WILDCARD])
