"""001 create catalog_records

Revision ID: 001_catalog_records
Revises:
Create Date: 2026-10-19

Creates the catalog_records table. The unique index on external_asset_id is
the only concurrency control repairs rely on: at most one row per remote asset.
"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_catalog_records"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

sync_status_enum = postgresql.ENUM(
    "manual",
    "auto_repaired",
    "orphaned",
    name="catalogsyncstatus",
    create_type=False,
)


def upgrade() -> None:
    """Create catalogsyncstatus enum and catalog_records table."""
    sync_status_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "catalog_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("external_asset_id", sa.String(64), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sync_status", sync_status_enum, nullable=False, server_default="manual"),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_catalog_records_external_asset_id",
        "catalog_records",
        ["external_asset_id"],
        unique=True,
    )
    op.create_index("ix_catalog_records_sync_status", "catalog_records", ["sync_status"])


def downgrade() -> None:
    """Drop catalog_records table and its enum."""
    op.drop_index("ix_catalog_records_sync_status", table_name="catalog_records")
    op.drop_index("ix_catalog_records_external_asset_id", table_name="catalog_records")
    op.drop_table("catalog_records")
    sync_status_enum.drop(op.get_bind(), checkfirst=True)
