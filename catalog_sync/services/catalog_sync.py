"""Catalog sync service - upward operations and the scheduled reconciliation loop.

CatalogSyncService is the single entry point an HTTP handler, CLI or worker
uses. It wires the four engines over one RemoteAssetSource and one
CatalogStore and returns pydantic results that serialize with
model_dump(mode="json").

Architecture Compliance:
- Every operation is an independent, stateless coroutine
- No DB session is held across remote calls (see SqlCatalogStore)
- Structured logging with correlation IDs
"""

import asyncio
import uuid
from collections.abc import Iterable

import structlog

from catalog_sync.catalog_store import SqlCatalogStore
from catalog_sync.clients.stream import StreamClient
from catalog_sync.config import (
    get_reconcile_auto_create,
    get_reconcile_interval_seconds,
    get_stuck_max_age_hours,
    get_verify_timeout_seconds,
)
from catalog_sync.exceptions import CatalogStoreError, RemoteAccessDeniedError, RemoteSourceError
from catalog_sync.ports import CatalogStore, RemoteAssetSource
from catalog_sync.schemas.remote_asset import RemoteAsset
from catalog_sync.schemas.sweep import StuckAnalysis, SweepResult
from catalog_sync.schemas.sync import OrphanMode, RepairSummary, SyncIssue, SyncReport
from catalog_sync.schemas.verify import VerifyResult
from catalog_sync.services.reconciliation import ReconciliationEngine
from catalog_sync.services.repair import RepairExecutor
from catalog_sync.services.stuck_sweeper import StuckAssetSweeper
from catalog_sync.services.upload_verifier import ProgressCallback, UploadVerifier
from catalog_sync.utils.backoff import Clock, SystemClock

log = structlog.get_logger()

# Pause after a failed scheduled pass before trying again
LOOP_ERROR_BACKOFF_SECONDS = 30


class CatalogSyncService:
    """Facade over the verifier, reconciliation, repair and sweep engines.

    Args:
        source: Remote asset source
        store: Catalog store
        clock: Shared clock for verifier polling and sweep spacing
    """

    def __init__(
        self,
        source: RemoteAssetSource,
        store: CatalogStore,
        clock: Clock | None = None,
        page_size: int | None = None,
    ):
        self.source = source
        self.store = store
        clock = clock or SystemClock()
        self.repair = RepairExecutor(source, store)
        self.verifier = UploadVerifier(source, clock=clock)
        self.reconciler = ReconciliationEngine(source, store, repair=self.repair, page_size=page_size)
        self.sweeper = StuckAssetSweeper(source, clock=clock, page_size=page_size)

    @classmethod
    def from_config(cls) -> "CatalogSyncService":
        """Build the service over the Stream client and the configured database.

        Raises:
            ConfigurationError: If Stream credentials or DATABASE_URL are missing
        """
        return cls(StreamClient.from_config(), SqlCatalogStore.from_default())

    async def verify_upload(
        self,
        asset_id: str,
        timeout_seconds: float | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> VerifyResult:
        """Wait for a freshly uploaded asset to become ready or fail."""
        if timeout_seconds is None:
            timeout_seconds = get_verify_timeout_seconds()
        return await self.verifier.verify(asset_id, timeout_seconds, on_progress=on_progress)

    async def get_upload_status(self, asset_id: str) -> RemoteAsset:
        """Current remote state of an asset without waiting."""
        return await self.verifier.peek(asset_id)

    async def get_sync_status(self) -> SyncReport:
        """Read-only reconciliation report."""
        return await self.reconciler.reconcile(auto_create=False)

    async def run_sync(self, auto_create: bool = True) -> SyncReport:
        """Reconciliation pass that creates rows for ready assets missing from the catalog."""
        return await self.reconciler.reconcile(auto_create=auto_create)

    async def check_asset_sync(self, asset_id: str) -> SyncIssue | None:
        """Classify one asset id; None means it is in sync."""
        return await self.reconciler.reconcile_one(asset_id)

    async def repair_assets(self, asset_ids: Iterable[str], auto_fix: bool = False) -> RepairSummary:
        results = await self.repair.repair_missing(asset_ids, auto_fix=auto_fix)
        return RepairSummary.from_results(results)

    async def refresh_assets(self, asset_ids: Iterable[str]) -> RepairSummary:
        """Refresh existing rows (typically DataMismatch ids) from remote metadata."""
        results = await self.repair.refresh_existing(asset_ids)
        return RepairSummary.from_results(results)

    async def handle_orphaned_records(
        self, asset_ids: Iterable[str], mode: OrphanMode = OrphanMode.MARK_ORPHANED
    ) -> RepairSummary:
        results = await self.repair.handle_orphans(asset_ids, mode)
        return RepairSummary.from_results(results)

    async def analyze_stuck_uploads(self, max_age_hours: float | None = None) -> StuckAnalysis:
        if max_age_hours is None:
            max_age_hours = get_stuck_max_age_hours()
        return await self.sweeper.analyze(max_age_hours)

    async def sweep_stuck_uploads(
        self, max_age_hours: float | None = None, dry_run: bool = True
    ) -> SweepResult:
        """Delete stuck uploads. Dry run unless dry_run=False is passed."""
        if max_age_hours is None:
            max_age_hours = get_stuck_max_age_hours()
        return await self.sweeper.sweep(max_age_hours, dry_run=dry_run)


async def reconciliation_loop(
    service: CatalogSyncService,
    interval_seconds: int | None = None,
    auto_create: bool | None = None,
) -> None:
    """Background task: run a reconciliation pass every interval.

    Remote and catalog outages are logged and retried after a short pause;
    access-denied errors are logged the same way since credentials may be
    rotated without a restart. The loop ends when the task is cancelled.

    Args:
        service: CatalogSyncService shared across iterations
        interval_seconds: Seconds between passes (RECONCILE_INTERVAL_SECONDS)
        auto_create: Create missing ready rows (RECONCILE_AUTO_CREATE)
    """
    if interval_seconds is None:
        interval_seconds = get_reconcile_interval_seconds()
    if auto_create is None:
        auto_create = get_reconcile_auto_create()

    log.info(
        "reconciliation_loop_started",
        interval_seconds=interval_seconds,
        auto_create=auto_create,
    )

    while True:
        try:
            await service.reconciler.reconcile(auto_create=auto_create)
            await asyncio.sleep(interval_seconds)

        except asyncio.CancelledError:
            log.info("reconciliation_loop_cancelled")
            break
        except RemoteAccessDeniedError as e:
            log.error(
                "reconciliation_loop_access_denied",
                correlation_id=str(uuid.uuid4()),
                error=str(e),
                status_code=e.status_code,
            )
            await asyncio.sleep(LOOP_ERROR_BACKOFF_SECONDS)
        except (RemoteSourceError, CatalogStoreError, OSError, TimeoutError) as e:
            log.error(
                "reconciliation_loop_error",
                correlation_id=str(uuid.uuid4()),
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            await asyncio.sleep(LOOP_ERROR_BACKOFF_SECONDS)
