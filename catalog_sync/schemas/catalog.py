"""Pydantic schemas for catalog writes.

Schema Naming Convention:
    - CatalogRecordCreate: insert payload (CatalogStore.insert)
    - CatalogRecordUpdate: partial patch (CatalogStore.update)

sync_status is never set directly: it follows from the provenance variant
(see CatalogRecord.apply_provenance).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from catalog_sync.schemas.provenance import ManualEntry, Provenance


class CatalogRecordCreate(BaseModel):
    """Payload for inserting a catalog row.

    external_asset_id is unique across the catalog; inserting a second row for
    the same asset raises CatalogConflictError.
    """

    model_config = ConfigDict(from_attributes=True)

    external_asset_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=64,
        description="Remote asset id backing this row (unique)",
    )
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    duration_seconds: float | None = Field(default=None, ge=0)
    thumbnail_url: str | None = None
    is_published: bool = False
    provenance: Provenance = Field(default_factory=ManualEntry)
    last_synced_at: datetime | None = None


class CatalogRecordUpdate(BaseModel):
    """Partial update for a catalog row. Only fields explicitly set are written."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    duration_seconds: float | None = Field(default=None, ge=0)
    thumbnail_url: str | None = None
    is_published: bool | None = None
    provenance: Provenance | None = None
    last_synced_at: datetime | None = None
