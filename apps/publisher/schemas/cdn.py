"""CDN provider settings and per-provider configuration payloads.

Settings are stored as JSON in the settings table (group 'CDN'):
    {"CdnProvider": "Cloudflare", "Value": "{\"ApiToken\": \"...\", \"ZoneId\": \"...\"}"}
Provider payload keys are PascalCase as written by the configuration UI; snake_case is accepted too.
"""

import enum
import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_pascal

from apps.publisher.services.config_validation import CdnConfigError, require_all_or_none


class CdnProvider(str, enum.Enum):
    """Provider kind. Dispatch branches on this value only."""

    AZURE_FRONT_DOOR = "AzureFrontDoor"
    AZURE_CDN = "AzureCDN"
    CLOUDFLARE = "Cloudflare"
    SUCURI = "Sucuri"
    NONE = "None"
    CLOUDFRONT = "CloudFront"
    FASTLY = "Fastly"

    @classmethod
    def parse(cls, raw: Any) -> "CdnProvider":
        """Accept the enum name/value case-insensitively, or its ordinal as stored by older editors."""
        if isinstance(raw, CdnProvider):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            members = list(cls)
            if 0 <= raw < len(members):
                return members[raw]
            raise CdnConfigError(f"unknown CDN provider ordinal {raw}")
        text = str(raw or "").strip().lower().replace("_", "")
        for member in cls:
            if text in (member.value.lower(), member.name.lower().replace("_", "")):
                return member
        raise CdnConfigError(f"unknown CDN provider {raw!r}")


class _ProviderConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_pascal)


class AzureCdnConfig(_ProviderConfig):
    """Azure CDN / Front Door endpoint plus service principal used to call ARM."""

    is_front_door: bool = False
    subscription_id: str = ""
    resource_group: str = ""
    profile_name: str = ""
    endpoint_name: str = ""
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""

    @model_validator(mode="after")
    def _groups_complete(self) -> "AzureCdnConfig":
        require_all_or_none(
            self,
            ("endpoint_name", "profile_name", "resource_group", "subscription_id"),
            "AzureCDN or Front Door settings are not complete.",
        )
        require_all_or_none(
            self,
            ("tenant_id", "client_id", "client_secret"),
            "Azure service principal settings are not complete.",
        )
        return self


class CloudflareCdnConfig(_ProviderConfig):
    api_token: str = ""
    zone_id: str = ""

    @model_validator(mode="after")
    def _groups_complete(self) -> "CloudflareCdnConfig":
        require_all_or_none(self, ("api_token", "zone_id"), "Cloudflare settings are not complete.")
        return self


class CloudFrontCdnConfig(_ProviderConfig):
    access_key_id: str = ""
    secret_access_key: str = ""
    distribution_id: str = ""
    region: str = "us-east-1"

    @model_validator(mode="after")
    def _groups_complete(self) -> "CloudFrontCdnConfig":
        require_all_or_none(
            self,
            ("access_key_id", "secret_access_key", "distribution_id"),
            "CloudFront settings are not complete.",
        )
        return self


class FastlyCdnConfig(_ProviderConfig):
    service_id: str = ""
    api_token: str = ""
    domain: str = ""
    soft_purge: bool = False

    @model_validator(mode="after")
    def _groups_complete(self) -> "FastlyCdnConfig":
        require_all_or_none(self, ("service_id", "api_token", "domain"), "Fastly settings are not complete.")
        return self


class SucuriCdnConfig(_ProviderConfig):
    api_key: str = ""
    api_secret: str = ""

    @model_validator(mode="after")
    def _groups_complete(self) -> "SucuriCdnConfig":
        require_all_or_none(self, ("api_key", "api_secret"), "Sucuri CDN/Firewall settings are not complete.")
        return self


class CdnSetting(BaseModel):
    """One configured provider: its kind plus the opaque provider JSON."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    provider: CdnProvider = Field(default=CdnProvider.NONE, alias="CdnProvider")
    value: str = Field(default="", alias="Value")

    @field_validator("provider", mode="before")
    @classmethod
    def _parse_provider(cls, v: Any) -> CdnProvider:
        return CdnProvider.parse(v)

    @field_validator("value", mode="before")
    @classmethod
    def _value_as_text(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, dict):
            return json.dumps(v)
        return str(v)

    @classmethod
    def from_json(cls, raw: str) -> "CdnSetting":
        try:
            return cls.model_validate(json.loads(raw))
        except (ValueError, TypeError) as e:
            if isinstance(e, CdnConfigError):
                raise
            raise CdnConfigError(f"invalid CDN setting JSON: {e}") from e

    def payload(self) -> dict[str, Any]:
        """Provider JSON as a dict ({} when empty)."""
        if not self.value.strip():
            return {}
        try:
            data = json.loads(self.value)
        except ValueError as e:
            raise CdnConfigError(f"invalid {self.provider.value} configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise CdnConfigError(f"{self.provider.value} configuration must be a JSON object")
        return data


class PurgeRequest(BaseModel):
    """Body for POST /cdn/purge. Empty paths purge everything."""

    model_config = ConfigDict(extra="forbid")

    paths: list[str] = Field(default_factory=list)


class PurgeResultOut(BaseModel):
    """One provider result as returned by the API."""

    model_config = ConfigDict(extra="forbid")

    provider_name: str
    is_success: bool
    status_code: int
    operation_id: str = ""
    client_request_id: str = ""
    reason: str = ""
    message: str = ""
    estimated_flush_at: datetime


class ProviderInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    provider: str
    provider_name: str


class ProvidersResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    domain: str
    providers: list[ProviderInfo] = Field(default_factory=list)
