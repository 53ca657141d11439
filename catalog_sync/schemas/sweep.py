"""Pydantic schemas for stuck-upload analysis and sweeping."""

from datetime import datetime

from pydantic import BaseModel, Field

from catalog_sync.schemas.remote_asset import ProcessingState


class CleanupCandidate(BaseModel):
    """A remote asset stuck in pending_upload past the age threshold."""

    id: str
    display_name: str
    age_hours: float
    created_at: datetime
    state: ProcessingState = ProcessingState.PENDING_UPLOAD
    size_bytes: int | None = None


class StuckAnalysis(BaseModel):
    """Read-only view of remote processing states and stuck uploads.

    Attributes:
        total_assets: Remote assets seen
        counts_by_state: Asset count per ProcessingState value
        ready / pending_upload / processing / error: convenience counts
        stuck_count: Number of cleanup candidates
        candidates: Stuck uploads, oldest first
        max_age_hours: Threshold used
        complete: False when the remote listing stopped early
        errors: Listing failure annotations
    """

    total_assets: int
    counts_by_state: dict[str, int] = Field(default_factory=dict)
    ready: int = 0
    pending_upload: int = 0
    processing: int = 0
    error: int = 0
    stuck_count: int = 0
    candidates: list[CleanupCandidate] = Field(default_factory=list)
    max_age_hours: float
    complete: bool = True
    errors: list[str] = Field(default_factory=list)


class SweepItemResult(BaseModel):
    """Per-id outcome of a stuck-asset delete."""

    id: str
    display_name: str
    success: bool
    error: str | None = None


class SweepResult(BaseModel):
    """Result of a sweep. In dry-run mode nothing was deleted and results is empty."""

    dry_run: bool
    max_age_hours: float
    total_stuck: int
    deleted: int = 0
    failed: int = 0
    candidates: list[CleanupCandidate] = Field(default_factory=list)
    results: list[SweepItemResult] = Field(default_factory=list)
    analysis: StuckAnalysis | None = None
