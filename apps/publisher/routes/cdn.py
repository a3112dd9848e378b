"""Manual CDN purge for the caller's tenant. Tenant from auth middleware only."""

import logging
import os

from fastapi import APIRouter, Body

from apps.publisher.db import tenant_session
from apps.publisher.schemas.cdn import ProviderInfo, ProvidersResponse, PurgeRequest, PurgeResultOut
from apps.publisher.services.cdn_dispatch import CdnDispatcher, dispatcher_for_store
from apps.publisher.services.repo import SqlPublicationStore
from apps.publisher.services.tenant_context import TenantConnectionDep
from apps.publisher.services.tenant_resolver import TenantConnection

logger = logging.getLogger(__name__)

router = APIRouter()


def _timeout() -> float:
    try:
        return float(os.getenv("CDN_TIMEOUT_SECONDS", "10"))
    except ValueError:
        return 10.0


def _dispatcher(conn: TenantConnection) -> CdnDispatcher:
    with tenant_session(conn.db_conn) as session:
        return dispatcher_for_store(SqlPublicationStore(session), conn.website_url or None, timeout=_timeout())


@router.get("/providers", response_model=ProvidersResponse)
def list_providers(conn: TenantConnectionDep) -> ProvidersResponse:
    """Configured CDN providers for the tenant (kind and display name, no credentials)."""
    with _dispatcher(conn) as dispatcher:
        return ProvidersResponse(
            domain=conn.domain,
            providers=[
                ProviderInfo(provider=kind.value, provider_name=driver.provider_name)
                for kind, driver in zip(dispatcher.kinds, dispatcher.drivers)
            ],
        )


@router.post("/purge", response_model=list[PurgeResultOut])
def purge(conn: TenantConnectionDep, body: PurgeRequest | None = Body(None)) -> list[PurgeResultOut]:
    """Purge the given paths on every configured provider. No paths purges everything."""
    paths = body.paths if body else []
    with _dispatcher(conn) as dispatcher:
        results = dispatcher.purge(paths) if paths else dispatcher.purge_all()
    logger.info("tenant=%s manual purge paths=%d results=%d", conn.domain, len(paths), len(results))
    return [PurgeResultOut(**r.to_dict()) for r in results]
