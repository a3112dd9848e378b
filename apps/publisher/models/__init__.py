"""SQLAlchemy models. Each tenant owns a separate database; no tenant_id column is needed."""

from apps.publisher.models.article import Article, StatusCode
from apps.publisher.models.base import Base, ConfigBase, UTCDateTime
from apps.publisher.models.connection import Connection
from apps.publisher.models.published_page import PublishedPage
from apps.publisher.models.setting import CDN_GROUP, Setting

__all__ = [
    "Article",
    "Base",
    "CDN_GROUP",
    "ConfigBase",
    "Connection",
    "PublishedPage",
    "Setting",
    "StatusCode",
    "UTCDateTime",
]
