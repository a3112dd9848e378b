"""Common CDN driver contract and result type.

Drivers never raise for transport or provider errors: every purge call returns PurgeResult values
so one failing provider cannot hide the others.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol, runtime_checkable

import requests

DEFAULT_TIMEOUT_SECONDS = 10.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PurgeResult:
    """Outcome of one provider request."""

    provider_name: str
    is_success: bool
    status_code: int
    operation_id: str = ""
    client_request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    reason: str = ""
    message: str = ""
    estimated_flush_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def failure(cls, provider_name: str, reason: str, message: str = "", status_code: int = 500) -> "PurgeResult":
        return cls(
            provider_name=provider_name,
            is_success=False,
            status_code=status_code,
            reason=reason,
            message=message or reason,
        )

    def to_dict(self) -> dict:
        return {
            "provider_name": self.provider_name,
            "is_success": self.is_success,
            "status_code": self.status_code,
            "operation_id": self.operation_id,
            "client_request_id": self.client_request_id,
            "reason": self.reason,
            "message": self.message,
            "estimated_flush_at": self.estimated_flush_at,
        }


@runtime_checkable
class CdnDriver(Protocol):
    """One configured provider."""

    provider_name: str

    def purge(self, urls: list[str]) -> list[PurgeResult]:
        """Invalidate the given paths/URLs. Never raises for provider errors."""
        ...

    def purge_all(self) -> list[PurgeResult]:
        """Invalidate everything the provider caches for this site."""
        ...


def flush_estimate(delay: timedelta) -> datetime:
    return _utcnow() + delay


def request_failure(provider_name: str, exc: requests.RequestException) -> PurgeResult:
    """Map a requests exception to a failed result. Timeouts are 408."""
    if isinstance(exc, requests.Timeout):
        return PurgeResult.failure(provider_name, "Request Timeout", f"{provider_name} request timed out: {exc}", 408)
    status = 500
    if exc.response is not None:
        status = exc.response.status_code
    return PurgeResult.failure(provider_name, "HTTP Request Failed", f"{provider_name} request failed: {exc}", status)


def response_body(resp: requests.Response, limit: int = 2000) -> str:
    try:
        text = resp.text or ""
    except (UnicodeDecodeError, ValueError):
        return ""
    return text[:limit]
