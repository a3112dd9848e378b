"""Health check endpoint. No auth required."""

import os
from datetime import datetime, timezone

from fastapi import APIRouter

from apps.publisher.schemas.health import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        ok=True,
        version=os.getenv("GIT_SHA", "dev").strip() or "dev",
        time=datetime.now(timezone.utc).isoformat(),
        multi_tenant=os.getenv("MULTI_TENANT", "").strip().lower() in ("1", "true", "yes", "on"),
    )
