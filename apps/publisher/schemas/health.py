"""Health check response schemas."""

from pydantic import BaseModel, ConfigDict


class HealthResponse(BaseModel):
    """Health check response. version is GIT_SHA or 'dev'."""

    model_config = ConfigDict(extra="forbid")

    ok: bool
    version: str
    time: str
    multi_tenant: bool = False
