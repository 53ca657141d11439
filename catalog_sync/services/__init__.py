"""Business logic services for catalog reconciliation."""

from catalog_sync.services.catalog_sync import CatalogSyncService, reconciliation_loop
from catalog_sync.services.reconciliation import ReconciliationEngine
from catalog_sync.services.repair import RepairExecutor
from catalog_sync.services.stuck_sweeper import StuckAssetSweeper
from catalog_sync.services.upload_verifier import UploadVerifier

__all__ = [
    "CatalogSyncService",
    "ReconciliationEngine",
    "RepairExecutor",
    "StuckAssetSweeper",
    "UploadVerifier",
    "reconciliation_loop",
]
