"""Tenant domain choke point. Every tenant lookup must go through require_domain."""

from urllib.parse import urlparse


class DomainRequiredError(ValueError):
    """Raised when a tenant domain is None or empty."""

    pass


class TenantNotFoundError(LookupError):
    """Raised when no connection is configured for a tenant domain."""

    pass


def normalize_domain(value: str) -> str:
    """Accept a bare host or a full URL; return the lower-cased host."""
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme and parsed.netloc:
        return (parsed.hostname or "").lower()
    return value.lower()


def require_domain(domain: str | None) -> str:
    """
    Validate a tenant domain and return it normalized. Raises DomainRequiredError if missing/empty.
    Call before resolving any tenant connection.
    """
    if not domain or not str(domain).strip():
        raise DomainRequiredError("tenant domain is required and must be non-empty")
    normalized = normalize_domain(str(domain))
    if not normalized:
        raise DomainRequiredError(f"tenant domain {domain!r} has no host")
    return normalized


__all__ = ["DomainRequiredError", "TenantNotFoundError", "normalize_domain", "require_domain"]
