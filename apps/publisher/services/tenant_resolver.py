"""
Tenant resolution for the scheduled pass and the purge API.

ConfigDbTenantResolver reads the connections table of the tenant configuration database.
StaticTenantResolver holds a fixed mapping (single-tenant mode and tests).
"""

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sqlalchemy.orm import Session

from apps.publisher.db import make_engine
from apps.publisher.services.repo import list_connections
from apps.publisher.services.tenant_guard import TenantNotFoundError, normalize_domain, require_domain

logger = logging.getLogger(__name__)

SINGLE_TENANT_DOMAIN = "localhost"


@dataclass(frozen=True)
class TenantConnection:
    """Connection details for one tenant. Immutable for the duration of a pass."""

    domain: str
    db_conn: str
    storage_conn: str = ""
    website_url: str = ""
    owner_email: str | None = None


@runtime_checkable
class TenantResolver(Protocol):
    def list_active_tenant_domains(self) -> list[str]:
        """Primary domain of every active tenant."""
        ...

    def resolve_connection(self, domain: str) -> TenantConnection:
        """Connection for domain. Raises TenantNotFoundError when unknown."""
        ...


class StaticTenantResolver:
    """Resolver over an in-process list of connections."""

    def __init__(self, connections: list[TenantConnection]) -> None:
        self._by_domain: dict[str, TenantConnection] = {}
        for conn in connections:
            self._by_domain.setdefault(require_domain(conn.domain), conn)

    def list_active_tenant_domains(self) -> list[str]:
        return list(self._by_domain)

    def resolve_connection(self, domain: str) -> TenantConnection:
        domain = require_domain(domain)
        try:
            return self._by_domain[domain]
        except KeyError:
            raise TenantNotFoundError(f"no connection configured for domain {domain}") from None


def single_tenant_resolver(db_url: str, website_url: str = "") -> StaticTenantResolver:
    """Resolver for single-tenant mode: one ambient database under the 'localhost' domain."""
    return StaticTenantResolver(
        [TenantConnection(domain=SINGLE_TENANT_DOMAIN, db_conn=db_url, website_url=website_url)]
    )


class ConfigDbTenantResolver:
    """
    Reads tenants from the configuration database on every call (no process-wide cache).
    The first domain listed on a connection row is that tenant's primary domain.
    """

    def __init__(self, config_db_url: str) -> None:
        self._config_db_url = config_db_url

    def _load(self) -> list[tuple[list[str], TenantConnection]]:
        engine = make_engine(self._config_db_url)
        try:
            with Session(bind=engine) as session:
                rows = list_connections(session)
                out: list[tuple[list[str], TenantConnection]] = []
                for row in rows:
                    domains = [normalize_domain(d) for d in (row.domain_names or []) if d and str(d).strip()]
                    if not domains:
                        logger.warning("connection=%s has no domain names, skipped", row.id)
                        continue
                    out.append(
                        (
                            domains,
                            TenantConnection(
                                domain=domains[0],
                                db_conn=row.db_conn,
                                storage_conn=row.storage_conn or "",
                                website_url=row.website_url or "",
                                owner_email=row.owner_email,
                            ),
                        )
                    )
                return out
        finally:
            engine.dispose()

    def list_active_tenant_domains(self) -> list[str]:
        """Primary domains sorted by name, so passes and single-tenant mode see a stable order."""
        return sorted({conn.domain for _, conn in self._load()})

    def resolve_connection(self, domain: str) -> TenantConnection:
        domain = require_domain(domain)
        for domains, conn in self._load():
            if domain in domains:
                return conn
        raise TenantNotFoundError(f"no connection configured for domain {domain}")


class RestrictedTenantResolver:
    """Limits another resolver to an allow-list of domains (TENANTS env). Empty list allows all."""

    def __init__(self, inner: TenantResolver, allowed: list[str]) -> None:
        self._inner = inner
        self._allowed = {normalize_domain(d) for d in allowed if d and d.strip()}

    def list_active_tenant_domains(self) -> list[str]:
        domains = self._inner.list_active_tenant_domains()
        if not self._allowed:
            return domains
        return [d for d in domains if d in self._allowed]

    def resolve_connection(self, domain: str) -> TenantConnection:
        domain = require_domain(domain)
        if self._allowed and domain not in self._allowed:
            raise TenantNotFoundError(f"domain {domain} is not enabled for this runner")
        return self._inner.resolve_connection(domain)
