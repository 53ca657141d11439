"""Repair executor - corrective catalog writes for explicit lists of asset ids.

Repairs take a caller-supplied id list rather than "the whole catalog", which
keeps the blast radius of every run explicit. Each id gets its own
RepairResult; a failure on one id never aborts the batch. Non-retriable
request errors (RemoteRequestError) and payloads that fail validation are
per-item problems and are reported as FAILED for that id.

Architecture Compliance:
- The existence check (find_by_external_id) and the insert-with-conflict-as-
  success path live ONLY here, so the one-row-per-asset invariant has a
  single owner
- Catalog writes are single-record short transactions (see SqlCatalogStore)
- Access-denied errors from the remote source propagate: every other id would
  fail the same way
"""

import uuid
from collections.abc import Iterable

import structlog
from pydantic import ValidationError

from catalog_sync.constants import (
    ORPHAN_REASON_MISSING_FROM_REMOTE,
    REASON_AUTO_FIX_DISABLED,
    REASON_NOT_FOUND_IN_CATALOG,
    REASON_NOT_FOUND_IN_REMOTE,
    REASON_STILL_PRESENT_IN_REMOTE,
    REPAIRED_FROM_REMOTE,
    UNTITLED_ASSET_TITLE,
)
from catalog_sync.exceptions import (
    AssetNotFoundError,
    CatalogConflictError,
    CatalogStoreError,
    RemoteAccessDeniedError,
    RemoteSourceError,
)
from catalog_sync.models import CatalogRecord, SyncStatus, utcnow
from catalog_sync.ports import CatalogStore, RemoteAssetSource
from catalog_sync.schemas.catalog import CatalogRecordCreate, CatalogRecordUpdate
from catalog_sync.schemas.provenance import AutoRepairedFrom, OrphanedBecause
from catalog_sync.schemas.remote_asset import RemoteAsset
from catalog_sync.schemas.sync import OrphanMode, RepairAction, RepairResult

log = structlog.get_logger()


def catalog_title_for(asset: RemoteAsset) -> str:
    """Title a repaired row gets: the remote display name or "Video <id>"."""
    title = (asset.display_name or "").strip()
    if not title:
        title = UNTITLED_ASSET_TITLE.format(asset_id=asset.id)
    return title[:255]


def normalize_ids(ids: Iterable[str]) -> list[str]:
    """Strip, drop blanks and de-duplicate while preserving first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in ids:
        asset_id = (raw or "").strip()
        if asset_id and asset_id not in seen:
            seen.add(asset_id)
            result.append(asset_id)
    return result


def build_repair_record(asset: RemoteAsset) -> CatalogRecordCreate:
    """Catalog insert payload built from remote metadata."""
    now = utcnow()
    description = asset.meta.get("description")
    return CatalogRecordCreate(
        external_asset_id=asset.id,
        title=catalog_title_for(asset),
        description=description if isinstance(description, str) else None,
        duration_seconds=asset.duration_seconds,
        thumbnail_url=asset.thumbnail_url,
        is_published=asset.is_playable,
        provenance=AutoRepairedFrom(
            repaired_at=now,
            repaired_from=REPAIRED_FROM_REMOTE,
            source_snapshot=asset.snapshot(),
        ),
        last_synced_at=now,
    )


def build_refresh_patch(asset: RemoteAsset, record: CatalogRecord) -> CatalogRecordUpdate | None:
    """Patch bringing a row's presentation fields in line with the remote asset.

    Only fields the remote side actually knows and that differ are included;
    None means the row is already current. Publication and provenance are
    never touched here.
    """
    changes: dict[str, object] = {}

    title = catalog_title_for(asset)
    if record.title != title:
        changes["title"] = title

    description = asset.meta.get("description")
    if isinstance(description, str) and record.description != description:
        changes["description"] = description

    if asset.duration_seconds is not None and (
        record.duration_seconds is None
        or round(record.duration_seconds) != round(asset.duration_seconds)
    ):
        changes["duration_seconds"] = asset.duration_seconds

    if asset.thumbnail_url and record.thumbnail_url != asset.thumbnail_url:
        changes["thumbnail_url"] = asset.thumbnail_url

    if not changes:
        return None
    return CatalogRecordUpdate(**changes, last_synced_at=utcnow())


class RepairExecutor:
    """Creates missing catalog rows, refreshes stale ones and handles orphans.

    Args:
        source: Remote asset source (read-only here)
        store: Catalog store receiving the writes
    """

    def __init__(self, source: RemoteAssetSource, store: CatalogStore):
        self.source = source
        self.store = store

    async def repair_missing(self, ids: Iterable[str], auto_fix: bool) -> list[RepairResult]:
        """Create catalog rows for remote assets that have none.

        Args:
            ids: Remote asset ids to repair
            auto_fix: When False nothing is written; ids that would be created
                are reported as failed with "auto-fix disabled"

        Returns:
            One RepairResult per distinct id, in request order

        Raises:
            RemoteAccessDeniedError: If the remote source rejects our credentials
        """
        correlation_id = str(uuid.uuid4())
        asset_ids = normalize_ids(ids)
        log.info(
            "repair_missing_started",
            correlation_id=correlation_id,
            count=len(asset_ids),
            auto_fix=auto_fix,
        )

        results: list[RepairResult] = []
        for asset_id in asset_ids:
            result = await self._repair_one(asset_id, auto_fix, correlation_id)
            results.append(result)

        log.info(
            "repair_missing_completed",
            correlation_id=correlation_id,
            total=len(results),
            created=sum(1 for r in results if r.action is RepairAction.CREATED),
            failed=sum(1 for r in results if r.action is RepairAction.FAILED),
        )
        return results

    async def _repair_one(self, asset_id: str, auto_fix: bool, correlation_id: str) -> RepairResult:
        try:
            existing = await self.store.find_by_external_id(asset_id)
            if existing is not None:
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.ALREADY_SYNCED,
                    catalog_record_id=existing.id,
                )

            # No DB session is held across this call
            try:
                asset = await self.source.get_asset(asset_id)
            except AssetNotFoundError:
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.FAILED,
                    error=REASON_NOT_FOUND_IN_REMOTE,
                )

            if not auto_fix:
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.FAILED,
                    error=REASON_AUTO_FIX_DISABLED,
                )

            try:
                payload = build_repair_record(asset)
            except ValidationError as e:
                log.warning(
                    "repair_payload_invalid",
                    correlation_id=correlation_id,
                    asset_id=asset_id,
                    error=str(e),
                )
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.FAILED,
                    error=f"invalid catalog payload: {e.error_count()} validation error(s)",
                )

            try:
                record = await self.store.insert(payload)
            except CatalogConflictError:
                log.info(
                    "repair_conflict_already_synced",
                    correlation_id=correlation_id,
                    asset_id=asset_id,
                )
                return RepairResult(external_asset_id=asset_id, action=RepairAction.ALREADY_SYNCED)

            log.info(
                "catalog_record_repaired",
                correlation_id=correlation_id,
                asset_id=asset_id,
                record_id=str(record.id),
                is_published=record.is_published,
            )
            return RepairResult(
                external_asset_id=asset_id,
                action=RepairAction.CREATED,
                catalog_record_id=record.id,
            )

        except RemoteAccessDeniedError:
            raise
        except (RemoteSourceError, CatalogStoreError) as e:
            log.error(
                "repair_missing_item_failed",
                correlation_id=correlation_id,
                asset_id=asset_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return RepairResult(external_asset_id=asset_id, action=RepairAction.FAILED, error=str(e))

    async def refresh_existing(self, ids: Iterable[str]) -> list[RepairResult]:
        """Copy remote title, description, duration and thumbnail onto existing rows.

        Intended for ids a reconciliation pass reported as DataMismatch. Rows
        already matching the remote asset report UNCHANGED.

        Raises:
            RemoteAccessDeniedError: If the remote source rejects our credentials
        """
        correlation_id = str(uuid.uuid4())
        asset_ids = normalize_ids(ids)
        log.info("refresh_existing_started", correlation_id=correlation_id, count=len(asset_ids))

        results: list[RepairResult] = []
        for asset_id in asset_ids:
            results.append(await self._refresh_one(asset_id, correlation_id))

        log.info(
            "refresh_existing_completed",
            correlation_id=correlation_id,
            total=len(results),
            updated=sum(1 for r in results if r.action is RepairAction.UPDATED),
            failed=sum(1 for r in results if r.action is RepairAction.FAILED),
        )
        return results

    async def _refresh_one(self, asset_id: str, correlation_id: str) -> RepairResult:
        try:
            record = await self.store.find_by_external_id(asset_id)
            if record is None:
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.FAILED,
                    error=REASON_NOT_FOUND_IN_CATALOG,
                )

            try:
                asset = await self.source.get_asset(asset_id)
            except AssetNotFoundError:
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.FAILED,
                    error=REASON_NOT_FOUND_IN_REMOTE,
                    catalog_record_id=record.id,
                )

            try:
                patch = build_refresh_patch(asset, record)
            except ValidationError as e:
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.FAILED,
                    error=f"invalid catalog payload: {e.error_count()} validation error(s)",
                    catalog_record_id=record.id,
                )
            if patch is None:
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.UNCHANGED,
                    catalog_record_id=record.id,
                )

            await self.store.update(record.id, patch)
            log.info(
                "catalog_record_refreshed",
                correlation_id=correlation_id,
                asset_id=asset_id,
                record_id=str(record.id),
                fields=sorted(patch.model_fields_set - {"last_synced_at"}),
            )
            return RepairResult(
                external_asset_id=asset_id,
                action=RepairAction.UPDATED,
                catalog_record_id=record.id,
            )

        except RemoteAccessDeniedError:
            raise
        except (RemoteSourceError, CatalogStoreError) as e:
            log.error(
                "refresh_existing_item_failed",
                correlation_id=correlation_id,
                asset_id=asset_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return RepairResult(external_asset_id=asset_id, action=RepairAction.FAILED, error=str(e))

    async def handle_orphans(
        self, ids: Iterable[str], mode: OrphanMode = OrphanMode.MARK_ORPHANED
    ) -> list[RepairResult]:
        """Remove or mark catalog rows whose remote asset no longer exists.

        Both modes are idempotent: an already-removed or already-orphaned row
        reports UNCHANGED. A row whose asset still resolves remotely is left
        alone and reported as failed.

        Raises:
            RemoteAccessDeniedError: If the remote source rejects our credentials
        """
        correlation_id = str(uuid.uuid4())
        asset_ids = normalize_ids(ids)
        log.info(
            "handle_orphans_started",
            correlation_id=correlation_id,
            count=len(asset_ids),
            mode=mode.value,
        )

        results: list[RepairResult] = []
        for asset_id in asset_ids:
            results.append(await self._handle_orphan(asset_id, mode, correlation_id))

        log.info(
            "handle_orphans_completed",
            correlation_id=correlation_id,
            total=len(results),
            failed=sum(1 for r in results if r.action is RepairAction.FAILED),
        )
        return results

    async def _handle_orphan(self, asset_id: str, mode: OrphanMode, correlation_id: str) -> RepairResult:
        try:
            record = await self.store.find_by_external_id(asset_id)
            if record is None:
                if mode is OrphanMode.REMOVE:
                    return RepairResult(external_asset_id=asset_id, action=RepairAction.UNCHANGED)
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.FAILED,
                    error=REASON_NOT_FOUND_IN_CATALOG,
                )

            if mode is OrphanMode.MARK_ORPHANED and record.sync_status is SyncStatus.ORPHANED:
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.UNCHANGED,
                    catalog_record_id=record.id,
                )

            try:
                await self.source.get_asset(asset_id)
            except AssetNotFoundError:
                pass
            else:
                return RepairResult(
                    external_asset_id=asset_id,
                    action=RepairAction.FAILED,
                    error=REASON_STILL_PRESENT_IN_REMOTE,
                    catalog_record_id=record.id,
                )

            if mode is OrphanMode.REMOVE:
                deleted = await self.store.delete(record.id)
                action = RepairAction.REMOVED if deleted else RepairAction.UNCHANGED
                log.info(
                    "orphan_removed",
                    correlation_id=correlation_id,
                    asset_id=asset_id,
                    record_id=str(record.id),
                    deleted=deleted,
                )
                return RepairResult(external_asset_id=asset_id, action=action, catalog_record_id=record.id)

            await self.store.update(
                record.id,
                CatalogRecordUpdate(
                    is_published=False,
                    provenance=OrphanedBecause(
                        reason=ORPHAN_REASON_MISSING_FROM_REMOTE,
                        detected_at=utcnow(),
                        previous_status=record.sync_status.value,
                    ),
                ),
            )
            log.info(
                "orphan_marked",
                correlation_id=correlation_id,
                asset_id=asset_id,
                record_id=str(record.id),
                previous_status=record.sync_status.value,
            )
            return RepairResult(
                external_asset_id=asset_id,
                action=RepairAction.MARKED_ORPHANED,
                catalog_record_id=record.id,
            )

        except RemoteAccessDeniedError:
            raise
        except (RemoteSourceError, CatalogStoreError) as e:
            log.error(
                "handle_orphan_item_failed",
                correlation_id=correlation_id,
                asset_id=asset_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return RepairResult(external_asset_id=asset_id, action=RepairAction.FAILED, error=str(e))
