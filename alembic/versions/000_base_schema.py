"""Base tenant schema: articles (revisions), pages (published snapshots and redirects), settings.

The connections table lives in the separate tenant configuration database and is not managed here.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "000_base"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1) articles: one row per saved revision
    op.create_table(
        "articles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("article_number", sa.Integer(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("status_code", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("url_path", sa.String(1999), nullable=False),
        sa.Column("title", sa.String(254), nullable=False, server_default=""),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("banner_image", sa.Text(), nullable=False, server_default=""),
        sa.Column("introduction", sa.String(512), nullable=False, server_default=""),
        sa.Column("category", sa.String(64), nullable=False, server_default=""),
        sa.Column("header_javascript", sa.Text(), nullable=True),
        sa.Column("footer_javascript", sa.Text(), nullable=True),
        sa.Column("article_type", sa.Integer(), nullable=True),
        sa.Column("redirect_target", sa.String(256), nullable=False, server_default=""),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("published", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_articles_article_number", "articles", ["article_number"], if_not_exists=True)
    op.create_index(
        "ix_articles_number_published", "articles", ["article_number", "published"], if_not_exists=True
    )

    # 2) pages: owned by the publication pass, except redirect rows
    op.create_table(
        "pages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("article_number", sa.Integer(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("status_code", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("url_path", sa.String(1999), nullable=False),
        sa.Column("parent_url_path", sa.String(1999), nullable=False, server_default=""),
        sa.Column("title", sa.String(254), nullable=False, server_default=""),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("banner_image", sa.Text(), nullable=False, server_default=""),
        sa.Column("introduction", sa.String(512), nullable=False, server_default=""),
        sa.Column("category", sa.String(64), nullable=False, server_default=""),
        sa.Column("header_javascript", sa.Text(), nullable=True),
        sa.Column("footer_javascript", sa.Text(), nullable=True),
        sa.Column("article_type", sa.Integer(), nullable=True),
        sa.Column("author_info", sa.Text(), nullable=False, server_default=""),
        sa.Column("redirect_target", sa.String(256), nullable=False, server_default=""),
        sa.Column("published", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_pages_article_number", "pages", ["article_number"], if_not_exists=True)
    op.create_index("ix_pages_url_path", "pages", ["url_path"], if_not_exists=True)

    # 3) settings: CDN providers live under group 'CDN'
    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("group", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("value", sa.Text(), nullable=False, server_default=""),
        sa.Column("description", sa.String(512), nullable=False, server_default=""),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_settings_group_name", "settings", ["group", "name"], if_not_exists=True)


def downgrade() -> None:
    op.drop_index("ix_settings_group_name", table_name="settings", if_exists=True)
    op.drop_table("settings")
    op.drop_index("ix_pages_url_path", table_name="pages", if_exists=True)
    op.drop_index("ix_pages_article_number", table_name="pages", if_exists=True)
    op.drop_table("pages")
    op.drop_index("ix_articles_number_published", table_name="articles", if_exists=True)
    op.drop_index("ix_articles_article_number", table_name="articles", if_exists=True)
    op.drop_table("articles")
