"""Repository layer: publication query helpers."""

from apps.publisher.repositories.publication_filters import (
    live_version_where,
    non_redirect_page_where,
    select_cdn_settings,
    select_live_versions,
)

__all__ = [
    "live_version_where",
    "non_redirect_page_where",
    "select_cdn_settings",
    "select_live_versions",
]
