"""settings model. Tenant key/value configuration grouped by name (CDN providers use group 'CDN')."""

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apps.publisher.models.base import Base

CDN_GROUP = "CDN"


class Setting(Base):
    __tablename__ = "settings"
    __table_args__ = (Index("ix_settings_group_name", "group", "name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
