"""Journal entries and media assets."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261017_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "journal_entry",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("title", sa.String(length=256), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "media_asset",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "journal_entry_id",
            sa.String(length=64),
            sa.ForeignKey("journal_entry.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="processed"),
        sa.Column("url", sa.String(length=512), nullable=False),
        sa.Column("thumbnail_url", sa.String(length=512)),
        sa.Column("original_filename", sa.String(length=256)),
        sa.Column("caption", sa.Text()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("taken_at", sa.DateTime()),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index(
        "ix_media_asset_journal_entry_id", "media_asset", ["journal_entry_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_media_asset_journal_entry_id", table_name="media_asset")
    op.drop_table("media_asset")
    op.drop_table("journal_entry")
