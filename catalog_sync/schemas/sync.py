"""Pydantic schemas for reconciliation and repair results.

These are the data contracts returned upward to the HTTP/CLI layer. Every bulk
operation returns an explicit per-item result list plus counts, so callers
never have to infer success from the absence of an exception.
"""

import enum
import uuid
from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from catalog_sync.schemas.remote_asset import ProcessingState


class SyncIssueKind(enum.Enum):
    """Discrepancy classes found by reconciliation."""

    MISSING_IN_CATALOG = "missing_in_catalog"
    MISSING_IN_REMOTE = "missing_in_remote"
    DATA_MISMATCH = "data_mismatch"


class SyncIssue(BaseModel):
    """One discrepancy between the remote service and the catalog.

    Attributes:
        external_asset_id: Remote asset id the issue concerns
        kind: Issue class
        details: Human-readable field differences / notes
        actionable: False for remote assets that are still processing (expected
            to be missing from the catalog) or that failed processing
        remote_state: Remote processing state, when the asset exists remotely
        catalog_record_id: Catalog row id, when a row exists
    """

    external_asset_id: str
    kind: SyncIssueKind
    details: list[str] = Field(default_factory=list)
    actionable: bool = True
    remote_state: ProcessingState | None = None
    catalog_record_id: uuid.UUID | None = None


class RepairAction(enum.Enum):
    """Outcome of one repair step."""

    CREATED = "created"
    UPDATED = "updated"  # existing row refreshed from remote metadata
    ALREADY_SYNCED = "already_synced"
    MARKED_ORPHANED = "marked_orphaned"
    REMOVED = "removed"
    UNCHANGED = "unchanged"  # idempotent no-op (already handled or already current)
    FAILED = "failed"


class OrphanMode(enum.Enum):
    """How HandleOrphans treats a catalog row whose remote asset is gone."""

    REMOVE = "remove"
    MARK_ORPHANED = "mark_orphaned"


class RepairResult(BaseModel):
    """Per-id repair outcome."""

    external_asset_id: str
    action: RepairAction
    error: str | None = None
    catalog_record_id: uuid.UUID | None = None

    @property
    def succeeded(self) -> bool:
        return self.action is not RepairAction.FAILED


class RepairSummary(BaseModel):
    """Aggregate of a repair batch."""

    total: int = 0
    created: int = 0
    already_synced: int = 0
    updated: int = 0
    orphans_handled: int = 0
    unchanged: int = 0
    failed: int = 0
    results: list[RepairResult] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[RepairResult]) -> "RepairSummary":
        def count(*actions: RepairAction) -> int:
            return sum(1 for r in results if r.action in actions)

        return cls(
            total=len(results),
            created=count(RepairAction.CREATED),
            already_synced=count(RepairAction.ALREADY_SYNCED),
            updated=count(RepairAction.UPDATED),
            orphans_handled=count(RepairAction.MARKED_ORPHANED, RepairAction.REMOVED),
            unchanged=count(RepairAction.UNCHANGED),
            failed=count(RepairAction.FAILED),
            results=results,
        )


class SyncReport(BaseModel):
    """Result of one reconciliation pass.

    Counts are derived from the id lists so they can never disagree with them.
    `complete` is False when a listing stopped early; ids absent from a
    partially listed side are then left unclassified and `errors` says why.
    """

    total_remote: int
    total_catalog: int
    missing_in_catalog: list[str] = Field(default_factory=list)
    missing_in_remote: list[str] = Field(default_factory=list)
    common: list[str] = Field(default_factory=list)
    issues: list[SyncIssue] = Field(default_factory=list)
    repairs: list[RepairResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    complete: bool = True
    checked_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def missing_in_catalog_count(self) -> int:
        return len(self.missing_in_catalog)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def missing_in_remote_count(self) -> int:
        return len(self.missing_in_remote)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def in_sync_count(self) -> int:
        """Ids present on both sides with no field mismatch."""
        mismatched = {
            i.external_asset_id for i in self.issues if i.kind is SyncIssueKind.DATA_MISMATCH
        }
        return sum(1 for asset_id in self.common if asset_id not in mismatched)

    @property
    def is_synced(self) -> bool:
        return self.complete and not self.missing_in_catalog and not self.missing_in_remote

    def issue_for(self, external_asset_id: str) -> SyncIssue | None:
        """Return the (first) issue recorded for an id, if any."""
        for issue in self.issues:
            if issue.external_asset_id == external_asset_id:
                return issue
        return None
