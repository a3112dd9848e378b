"""connections model. Lives in the tenant configuration database, one row per tenant."""

import uuid

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from apps.publisher.models.base import ConfigBase


class Connection(ConfigBase):
    __tablename__ = "connections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # first entry is the tenant's primary domain
    domain_names: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    db_conn: Mapped[str] = mapped_column(Text, nullable=False)
    storage_conn: Mapped[str] = mapped_column(Text, nullable=False, default="")
    website_url: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    owner_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    customer: Mapped[str | None] = mapped_column(String(255), nullable=True)
