"""Stuck upload sweeper - finds and removes abandoned pending uploads.

An asset that sits in pending_upload long after its creation was almost always
an interrupted upload. Such assets never transcode and only pollute
reconciliation, so the sweeper can delete them from the remote service.

Safety rules:
- analyze() is a pure read
- sweep() is a dry run unless dry_run=False is passed explicitly
- Deletes are sequential with a fixed spacing to stay under the remote rate limit
- A failed delete is recorded and the sweep moves on
"""

import uuid
from collections import Counter
from collections.abc import Callable
from datetime import datetime

import structlog

from catalog_sync.config import get_stream_page_size, get_sweep_delete_delay_seconds
from catalog_sync.exceptions import RemoteAccessDeniedError, RemoteSourceError
from catalog_sync.models import utcnow
from catalog_sync.ports import RemoteAssetSource
from catalog_sync.schemas.remote_asset import TRANSCODING_STATES, ProcessingState, RemoteAsset
from catalog_sync.schemas.sweep import CleanupCandidate, StuckAnalysis, SweepItemResult, SweepResult
from catalog_sync.services.remote_listing import collect_remote_assets
from catalog_sync.services.repair import catalog_title_for
from catalog_sync.utils.backoff import Clock, SystemClock

log = structlog.get_logger()


def age_hours(asset: RemoteAsset, now: datetime) -> float:
    return (now - asset.created_at).total_seconds() / 3600


def is_stuck(asset: RemoteAsset, now: datetime, max_age_hours: float) -> bool:
    """pending_upload and strictly older than the threshold."""
    return (
        asset.processing_state is ProcessingState.PENDING_UPLOAD
        and age_hours(asset, now) > max_age_hours
    )


class StuckAssetSweeper:
    """Analyzes remote processing states and deletes stuck uploads.

    Args:
        source: Remote asset source
        clock: Provides the sleep between deletes
        now: Wall-clock source used for asset ages
        delete_delay_seconds: Spacing between consecutive deletes
        page_size: Listing page size
    """

    def __init__(
        self,
        source: RemoteAssetSource,
        clock: Clock | None = None,
        now: Callable[[], datetime] = utcnow,
        delete_delay_seconds: float | None = None,
        page_size: int | None = None,
    ):
        self.source = source
        self.clock = clock or SystemClock()
        self.now = now
        self.delete_delay_seconds = (
            get_sweep_delete_delay_seconds() if delete_delay_seconds is None else delete_delay_seconds
        )
        self.page_size = page_size or get_stream_page_size()

    async def analyze(self, max_age_hours: float = 1.0) -> StuckAnalysis:
        """Count assets per state and list stuck uploads, oldest first.

        Raises:
            ValueError: If max_age_hours is not positive
            RemoteSourceError: If the first remote page cannot be read
        """
        if max_age_hours <= 0:
            raise ValueError(f"max_age_hours must be positive, got {max_age_hours}")

        listing = await collect_remote_assets(self.source, self.page_size)
        now = self.now()

        counts = Counter(asset.processing_state for asset in listing.items)
        stuck = sorted(
            (asset for asset in listing.items if is_stuck(asset, now, max_age_hours)),
            key=lambda asset: asset.created_at,
        )
        candidates = [
            CleanupCandidate(
                id=asset.id,
                display_name=catalog_title_for(asset),
                age_hours=round(age_hours(asset, now), 2),
                created_at=asset.created_at,
                state=asset.processing_state,
                size_bytes=asset.size_bytes,
            )
            for asset in stuck
        ]

        return StuckAnalysis(
            total_assets=len(listing.items),
            counts_by_state={state.value: counts.get(state, 0) for state in ProcessingState},
            ready=counts.get(ProcessingState.READY, 0),
            pending_upload=counts.get(ProcessingState.PENDING_UPLOAD, 0),
            processing=sum(counts.get(state, 0) for state in TRANSCODING_STATES),
            error=counts.get(ProcessingState.ERROR, 0),
            stuck_count=len(candidates),
            candidates=candidates,
            max_age_hours=max_age_hours,
            complete=listing.complete,
            errors=listing.errors,
        )

    async def sweep(self, max_age_hours: float = 1.0, dry_run: bool = True) -> SweepResult:
        """Delete stuck uploads (or only report them when dry_run).

        Raises:
            ValueError: If max_age_hours is not positive
            RemoteSourceError: If the first remote page cannot be read
            RemoteAccessDeniedError: If a delete is rejected for lack of permission
        """
        correlation_id = str(uuid.uuid4())
        analysis = await self.analyze(max_age_hours)
        candidates = analysis.candidates

        log.info(
            "stuck_sweep_started",
            correlation_id=correlation_id,
            dry_run=dry_run,
            max_age_hours=max_age_hours,
            total_stuck=len(candidates),
        )

        if dry_run or not candidates:
            return SweepResult(
                dry_run=dry_run,
                max_age_hours=max_age_hours,
                total_stuck=len(candidates),
                candidates=candidates,
                analysis=analysis,
            )

        results: list[SweepItemResult] = []
        for index, candidate in enumerate(candidates):
            if index > 0:
                await self.clock.sleep(self.delete_delay_seconds)
            try:
                await self.source.delete_asset(candidate.id)
            except RemoteAccessDeniedError:
                raise
            except RemoteSourceError as e:
                log.warning(
                    "stuck_asset_delete_failed",
                    correlation_id=correlation_id,
                    asset_id=candidate.id,
                    error=str(e),
                )
                results.append(
                    SweepItemResult(
                        id=candidate.id,
                        display_name=candidate.display_name,
                        success=False,
                        error=str(e),
                    )
                )
                continue

            results.append(
                SweepItemResult(id=candidate.id, display_name=candidate.display_name, success=True)
            )

        deleted = sum(1 for r in results if r.success)
        log.info(
            "stuck_sweep_completed",
            correlation_id=correlation_id,
            total_stuck=len(candidates),
            deleted=deleted,
            failed=len(results) - deleted,
        )
        return SweepResult(
            dry_run=False,
            max_age_hours=max_age_hours,
            total_stuck=len(candidates),
            deleted=deleted,
            failed=len(results) - deleted,
            candidates=candidates,
            results=results,
            analysis=analysis,
        )
