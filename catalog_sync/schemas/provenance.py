"""Typed provenance stored in CatalogRecord.metadata.

Each catalog row records how it came to be in its current shape. Instead of an
untyped JSON bag the metadata column holds exactly one of these variants,
discriminated by `kind`:

    manual_entry        - authored through the normal content flow
    auto_repaired_from  - created by RepairExecutor from a remote asset
    orphaned_because    - marked orphaned after its remote asset disappeared

Each variant implies one SyncStatus (see PROVENANCE_SYNC_STATUS in models.py).
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from catalog_sync.constants import REPAIRED_FROM_REMOTE


class ManualEntry(BaseModel):
    """Row authored by the content-management flow."""

    kind: Literal["manual_entry"] = "manual_entry"
    note: str | None = None


class AutoRepairedFrom(BaseModel):
    """Row created from remote metadata during a repair.

    Attributes:
        repaired_at: When the repair inserted the row (UTC)
        repaired_from: Name of the remote service the snapshot came from
        source_snapshot: Remote fields at repair time (RemoteAsset.snapshot())
    """

    kind: Literal["auto_repaired_from"] = "auto_repaired_from"
    repaired_at: datetime
    repaired_from: str = REPAIRED_FROM_REMOTE
    source_snapshot: dict[str, Any] = Field(default_factory=dict)


class OrphanedBecause(BaseModel):
    """Row whose remote asset no longer resolves.

    Attributes:
        reason: Why the row was orphaned (e.g. "missing_from_remote")
        detected_at: When the orphan was handled (UTC)
        previous_status: sync_status value before the row was orphaned
    """

    kind: Literal["orphaned_because"] = "orphaned_because"
    reason: str
    detected_at: datetime
    previous_status: str | None = None


Provenance = Annotated[
    Union[ManualEntry, AutoRepairedFrom, OrphanedBecause],
    Field(discriminator="kind"),
]

provenance_adapter: TypeAdapter[Provenance] = TypeAdapter(Provenance)


def parse_provenance(raw: dict[str, Any] | None) -> ManualEntry | AutoRepairedFrom | OrphanedBecause:
    """Parse stored metadata into a provenance variant.

    Rows without metadata (legacy or hand-inserted) read as ManualEntry.
    """
    if not raw:
        return ManualEntry()
    return provenance_adapter.validate_python(raw)
