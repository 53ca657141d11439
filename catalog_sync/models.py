"""SQLAlchemy 2.0 ORM models.

This module contains the SQLAlchemy model for the internal video catalog.
All models use the Mapped[type] annotation pattern required by SQLAlchemy 2.0.

Provenance Pattern:
    The `metadata` column holds one typed provenance variant (see
    catalog_sync.schemas.provenance). It is only written through
    CatalogRecord.apply_provenance(), which also sets the sync_status the
    variant implies, so a row can never claim to be auto-repaired while
    carrying orphan provenance.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from catalog_sync.schemas.provenance import (
    AutoRepairedFrom,
    ManualEntry,
    OrphanedBecause,
    parse_provenance,
)


def utcnow() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class SyncStatus(enum.Enum):
    """Provenance/health of a catalog row.

    Values:
        manual: Authored through the content-management flow
        auto_repaired: Created by a repair from remote metadata
        orphaned: Remote asset no longer exists; row unpublished and kept for audit
    """

    MANUAL = "manual"
    AUTO_REPAIRED = "auto_repaired"
    ORPHANED = "orphaned"


PROVENANCE_SYNC_STATUS: dict[type, SyncStatus] = {
    ManualEntry: SyncStatus.MANUAL,
    AutoRepairedFrom: SyncStatus.AUTO_REPAIRED,
    OrphanedBecause: SyncStatus.ORPHANED,
}


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class CatalogRecord(Base):
    """Internal system-of-record row for a playable video.

    Attributes:
        id: Internal UUID primary key (distinct from the remote asset id).
        external_asset_id: Remote asset id. Unique constraint: at most one row
            per remote asset. Nullable for rows not backed by a remote asset.
        title: Presentation title.
        description: Optional long description.
        duration_seconds: Media duration in seconds.
        thumbnail_url: Poster image URL copied from the remote asset.
        is_published: Whether the rest of the application may show the video.
        sync_status: manual / auto_repaired / orphaned.
        provenance_data: Raw provenance JSON (column name "metadata").
        last_synced_at: Last time a repair touched this row.
        created_at: Row creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC, auto-updated).

    Indexes:
        - ix_catalog_records_external_asset_id (unique): uniqueness + lookup
        - ix_catalog_records_sync_status: orphan/repair queries
    """

    __tablename__ = "catalog_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    external_asset_id: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    duration_seconds: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
    )
    thumbnail_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    sync_status: Mapped[SyncStatus] = mapped_column(
        Enum(
            SyncStatus,
            native_enum=True,
            name="catalogsyncstatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        default=SyncStatus.MANUAL,
        index=True,
    )
    # "metadata" is reserved on declarative classes, so the attribute is renamed
    provenance_data: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    @property
    def provenance(self) -> ManualEntry | AutoRepairedFrom | OrphanedBecause:
        """Typed view of the metadata column."""
        return parse_provenance(self.provenance_data)

    def apply_provenance(
        self, provenance: ManualEntry | AutoRepairedFrom | OrphanedBecause
    ) -> None:
        """Set provenance and the sync_status it implies.

        Orphan provenance also unpublishes the row.
        """
        self.provenance_data = provenance.model_dump(mode="json")
        self.sync_status = PROVENANCE_SYNC_STATUS[type(provenance)]
        if isinstance(provenance, OrphanedBecause):
            self.is_published = False

    def __repr__(self) -> str:
        return (
            f"<CatalogRecord(id={self.id!s}, external_asset_id={self.external_asset_id!r}, "
            f"title={self.title!r}, sync_status={self.sync_status.value if self.sync_status else None!r}, "
            f"is_published={self.is_published})>"
        )
