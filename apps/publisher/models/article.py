"""articles model. One row per saved revision of a content item."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apps.publisher.models.base import Base, UTCDateTime, utc_now


class StatusCode(enum.IntEnum):
    """Row status shared by articles and pages."""

    ACTIVE = 0
    DRAFT = 1
    DELETED = 2
    REDIRECT = 3


class Article(Base):
    __tablename__ = "articles"
    __table_args__ = (
        Index("ix_articles_number_published", "article_number", "published"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    article_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status_code: Mapped[int] = mapped_column(Integer, nullable=False, default=int(StatusCode.ACTIVE))
    url_path: Mapped[str] = mapped_column(String(1999), nullable=False)
    title: Mapped[str] = mapped_column(String(254), nullable=False, default="")
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    banner_image: Mapped[str] = mapped_column(Text, nullable=False, default="")
    introduction: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    header_javascript: Mapped[str | None] = mapped_column(Text, nullable=True)
    footer_javascript: Mapped[str | None] = mapped_column(Text, nullable=True)
    article_type: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0)
    redirect_target: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # null = not live; otherwise live (or scheduled) from this instant
    published: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    expires: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    updated: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
