"""Auth middleware: inject the tenant domain from the Authorization header only.
Tenant comes from "Bearer tenant:<domain>" (or "tenant=<domain>"). Query params, body and other
headers never select a tenant. /health is exempt."""

import re

from starlette.requests import Request
from starlette.responses import JSONResponse

from apps.publisher.services.tenant_guard import DomainRequiredError, require_domain

# "Bearer tenant:a.example.com" or "Bearer tenant=a.example.com"
BEARER_TENANT_PATTERN = re.compile(r"^Bearer\s+tenant[:=](.+)$", re.IGNORECASE)

EXEMPT_PATHS = frozenset({"/health"})


def parse_tenant_domain(auth_header: str | None) -> str | None:
    """Normalized tenant domain from the header, or None when absent or malformed."""
    if not auth_header:
        return None
    m = BEARER_TENANT_PATTERN.match(auth_header.strip())
    if not m:
        return None
    try:
        return require_domain(m.group(1))
    except DomainRequiredError:
        return None


async def auth_middleware(request: Request, call_next):
    if request.url.path.rstrip("/") in EXEMPT_PATHS:
        return await call_next(request)

    domain = parse_tenant_domain(request.headers.get("Authorization"))
    if not domain:
        return JSONResponse(
            status_code=401,
            content={"detail": "Missing or invalid tenant. Use Authorization: Bearer tenant:<domain>"},
        )
    request.state.tenant_domain = domain
    return await call_next(request)
