"""Reconciliation engine - bulk comparison of the remote service and the catalog.

One pass:
1. List every remote asset and every catalog row with an external id
2. Set difference in both directions
3. Field comparison for ids present on both sides (title, duration)
4. Optionally create rows for missing ids whose asset is ready to stream
5. Return a SyncReport

The two listings are not transactionally linked, so a report is a best-effort
snapshot. Classification of a single id (reconcile_one) goes through the same
helpers as the bulk pass, so both always agree.
"""

import uuid

import structlog

from catalog_sync.config import get_stream_page_size
from catalog_sync.exceptions import AssetNotFoundError
from catalog_sync.models import CatalogRecord, SyncStatus, utcnow
from catalog_sync.ports import CatalogStore, RemoteAssetSource
from catalog_sync.schemas.remote_asset import ProcessingState, RemoteAsset
from catalog_sync.schemas.sync import SyncIssue, SyncIssueKind, SyncReport
from catalog_sync.services.remote_listing import collect_catalog_records, collect_remote_assets
from catalog_sync.services.repair import RepairExecutor, catalog_title_for

log = structlog.get_logger()


def compare_fields(asset: RemoteAsset, record: CatalogRecord) -> list[str]:
    """Differences between a remote asset and its catalog row.

    Title is compared against the same "Video <id>" fallback repairs use;
    durations are compared in whole seconds and skipped while unknown remotely.
    """
    details: list[str] = []

    expected_title = catalog_title_for(asset)
    if record.title != expected_title:
        details.append(f"title: catalog={record.title!r} remote={expected_title!r}")

    if asset.duration_seconds is not None:
        remote_duration = round(asset.duration_seconds)
        catalog_duration = (
            round(record.duration_seconds) if record.duration_seconds is not None else None
        )
        if catalog_duration != remote_duration:
            details.append(f"duration: catalog={catalog_duration} remote={remote_duration}")

    return details


def missing_in_catalog_issue(asset: RemoteAsset) -> SyncIssue:
    """Issue for a remote asset with no catalog row.

    Only playable assets are actionable; the rest are still processing or failed.
    """
    if asset.is_playable:
        details = ["ready in remote, no catalog record"]
    elif asset.processing_state is ProcessingState.ERROR:
        details = [f"processing failed in remote: {asset.error_reason or 'unknown reason'}"]
    else:
        details = [f"still processing in remote ({asset.processing_state.value})"]

    return SyncIssue(
        external_asset_id=asset.id,
        kind=SyncIssueKind.MISSING_IN_CATALOG,
        details=details,
        actionable=asset.is_playable,
        remote_state=asset.processing_state,
    )


def missing_in_remote_issue(record: CatalogRecord) -> SyncIssue:
    """Issue for a catalog row whose remote asset is gone."""
    already_orphaned = record.sync_status is SyncStatus.ORPHANED
    details = ["catalog record has no remote asset"]
    if already_orphaned:
        details.append("already marked orphaned")
    return SyncIssue(
        external_asset_id=record.external_asset_id or "",
        kind=SyncIssueKind.MISSING_IN_REMOTE,
        details=details,
        actionable=not already_orphaned,
        catalog_record_id=record.id,
    )


def data_mismatch_issue(asset: RemoteAsset, record: CatalogRecord) -> SyncIssue | None:
    details = compare_fields(asset, record)
    if not details:
        return None
    return SyncIssue(
        external_asset_id=asset.id,
        kind=SyncIssueKind.DATA_MISMATCH,
        details=details,
        remote_state=asset.processing_state,
        catalog_record_id=record.id,
    )


class ReconciliationEngine:
    """Compares the remote asset list with the catalog and reports drift.

    Args:
        source: Remote asset source
        store: Catalog store
        repair: Executor used for auto-create; built from source/store if omitted
        page_size: Listing page size for both sides
    """

    def __init__(
        self,
        source: RemoteAssetSource,
        store: CatalogStore,
        repair: RepairExecutor | None = None,
        page_size: int | None = None,
    ):
        self.source = source
        self.store = store
        self.repair = repair or RepairExecutor(source, store)
        self.page_size = page_size or get_stream_page_size()

    async def reconcile(self, auto_create: bool = False) -> SyncReport:
        """Run one reconciliation pass.

        Args:
            auto_create: Create catalog rows for missing ids that are ready to stream

        Returns:
            SyncReport; `complete` is False when a listing stopped early

        Raises:
            RemoteSourceError: If the first remote page cannot be read
            CatalogStoreError: If the first catalog page cannot be read
        """
        correlation_id = str(uuid.uuid4())
        log.info("reconcile_started", correlation_id=correlation_id, auto_create=auto_create)

        remote = await collect_remote_assets(self.source, self.page_size)
        catalog = await collect_catalog_records(self.store, self.page_size)

        remote_by_id = {asset.id: asset for asset in remote.items}
        catalog_by_id = {
            record.external_asset_id: record
            for record in catalog.items
            if record.external_asset_id
        }

        report = SyncReport(
            total_remote=len(remote_by_id),
            total_catalog=len(catalog_by_id),
            complete=remote.complete and catalog.complete,
            errors=[*remote.errors, *catalog.errors],
            checked_at=utcnow(),
        )

        # An id absent from a partial listing may simply be on an unread page
        if catalog.complete:
            for asset_id, asset in remote_by_id.items():
                if asset_id not in catalog_by_id:
                    report.missing_in_catalog.append(asset_id)
                    report.issues.append(missing_in_catalog_issue(asset))

        if remote.complete:
            for asset_id, record in catalog_by_id.items():
                if asset_id not in remote_by_id:
                    report.missing_in_remote.append(asset_id)
                    report.issues.append(missing_in_remote_issue(record))

        for asset_id, asset in remote_by_id.items():
            record = catalog_by_id.get(asset_id)
            if record is None:
                continue
            report.common.append(asset_id)
            issue = data_mismatch_issue(asset, record)
            if issue is not None:
                report.issues.append(issue)

        if auto_create:
            ready_ids = [
                asset_id for asset_id in report.missing_in_catalog if remote_by_id[asset_id].is_playable
            ]
            if ready_ids:
                report.repairs = await self.repair.repair_missing(ready_ids, auto_fix=True)
                report.errors.extend(
                    f"{r.external_asset_id}: {r.error}" for r in report.repairs if not r.succeeded
                )

        log.info(
            "reconcile_completed",
            correlation_id=correlation_id,
            total_remote=report.total_remote,
            total_catalog=report.total_catalog,
            missing_in_catalog=report.missing_in_catalog_count,
            missing_in_remote=report.missing_in_remote_count,
            in_sync=report.in_sync_count,
            repaired=len(report.repairs),
            complete=report.complete,
        )
        return report

    async def reconcile_one(self, external_asset_id: str) -> SyncIssue | None:
        """Classify a single id the same way the bulk pass would.

        Returns:
            The issue for this id, or None when it is in sync

        Raises:
            ValueError: If the id is empty
            AssetNotFoundError: If the id exists on neither side
        """
        asset_id = (external_asset_id or "").strip()
        if not asset_id:
            raise ValueError("external_asset_id is required")

        record = await self.store.find_by_external_id(asset_id)
        try:
            asset: RemoteAsset | None = await self.source.get_asset(asset_id)
        except AssetNotFoundError:
            asset = None

        if asset is None:
            if record is None:
                raise AssetNotFoundError(asset_id)
            return missing_in_remote_issue(record)
        if record is None:
            return missing_in_catalog_issue(asset)
        return data_mismatch_issue(asset, record)
