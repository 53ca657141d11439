"""Pydantic data contracts for the catalog sync engine."""

from catalog_sync.schemas.catalog import CatalogRecordCreate, CatalogRecordUpdate
from catalog_sync.schemas.provenance import (
    AutoRepairedFrom,
    ManualEntry,
    OrphanedBecause,
    Provenance,
)
from catalog_sync.schemas.remote_asset import ProcessingState, RemoteAsset
from catalog_sync.schemas.sweep import (
    CleanupCandidate,
    StuckAnalysis,
    SweepItemResult,
    SweepResult,
)
from catalog_sync.schemas.sync import (
    OrphanMode,
    RepairAction,
    RepairResult,
    RepairSummary,
    SyncIssue,
    SyncIssueKind,
    SyncReport,
)
from catalog_sync.schemas.verify import (
    VerifyCompleted,
    VerifyFailed,
    VerifyProcessing,
    VerifyResult,
    VerifyTimedOut,
)

__all__ = [
    "AutoRepairedFrom",
    "CatalogRecordCreate",
    "CatalogRecordUpdate",
    "CleanupCandidate",
    "ManualEntry",
    "OrphanMode",
    "OrphanedBecause",
    "ProcessingState",
    "Provenance",
    "RemoteAsset",
    "RepairAction",
    "RepairResult",
    "RepairSummary",
    "StuckAnalysis",
    "SweepItemResult",
    "SweepResult",
    "SyncIssue",
    "SyncIssueKind",
    "SyncReport",
    "VerifyCompleted",
    "VerifyFailed",
    "VerifyProcessing",
    "VerifyResult",
    "VerifyTimedOut",
]
