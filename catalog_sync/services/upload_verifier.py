"""Upload verifier - waits for a freshly uploaded asset to reach a terminal state.

The remote service transcodes uploads asynchronously and offers no push
channel, so the verifier polls with a bounded backoff until the asset is
ready, failed, or the time budget runs out.

Polling rules:
- Non-terminal state: wait BackoffPolicy.next_delay(attempt) (1.1s → 5s cap)
- Not found: the upload may not be visible yet, wait 3s and keep polling
- Other lookup failure: wait 1s and keep polling
- Access denied: propagate immediately, polling cannot succeed
- No wait ever exceeds the remaining budget
- Every 10th poll a VerifyProcessing snapshot is emitted

Usage:
    verifier = UploadVerifier(stream_client)
    result = await verifier.verify(uid, timeout_seconds=300)
"""

import uuid
from collections.abc import AsyncIterator, Awaitable, Callable

import structlog

from catalog_sync.constants import (
    VERIFY_LOOKUP_ERROR_DELAY_SECONDS,
    VERIFY_NOT_VISIBLE_DELAY_SECONDS,
    VERIFY_PROGRESS_EVERY_N_POLLS,
)
from catalog_sync.exceptions import AssetNotFoundError, RemoteAccessDeniedError, RemoteSourceError
from catalog_sync.ports import RemoteAssetSource
from catalog_sync.schemas.remote_asset import ProcessingState, RemoteAsset
from catalog_sync.schemas.verify import (
    VerifyCompleted,
    VerifyFailed,
    VerifyProcessing,
    VerifyResult,
    VerifyTimedOut,
)
from catalog_sync.utils.backoff import BackoffPolicy, Clock, LinearBackoff, SystemClock

log = structlog.get_logger()

ProgressCallback = Callable[[VerifyProcessing], Awaitable[None] | None]


def estimate_completion_seconds(percent_complete: float | None) -> int | None:
    """Rough remaining-time guess used in progress snapshots."""
    if percent_complete is None:
        return None
    return max(0, round((100 - percent_complete) / 10))


class UploadVerifier:
    """Polls one remote asset until it is ready, failed, or the budget elapses.

    Args:
        source: Remote asset source to poll
        backoff: Delay policy between non-terminal polls
        clock: Time source; tests inject a fake clock to avoid real sleeps
        progress_every: Emit a progress snapshot every Nth poll
    """

    def __init__(
        self,
        source: RemoteAssetSource,
        backoff: BackoffPolicy | None = None,
        clock: Clock | None = None,
        progress_every: int = VERIFY_PROGRESS_EVERY_N_POLLS,
        not_visible_delay: float = VERIFY_NOT_VISIBLE_DELAY_SECONDS,
        lookup_error_delay: float = VERIFY_LOOKUP_ERROR_DELAY_SECONDS,
    ):
        self.source = source
        self.backoff = backoff or LinearBackoff()
        self.clock = clock or SystemClock()
        self.progress_every = max(1, progress_every)
        self.not_visible_delay = not_visible_delay
        self.lookup_error_delay = lookup_error_delay

    async def peek(self, asset_id: str) -> RemoteAsset:
        """Single non-waiting status read.

        Raises:
            ValueError: If asset_id is empty
            AssetNotFoundError: If the asset does not resolve
        """
        if not asset_id or not asset_id.strip():
            raise ValueError("asset_id is required")
        return await self.source.get_asset(asset_id)

    async def verify(
        self,
        asset_id: str,
        timeout_seconds: float = 300,
        on_progress: ProgressCallback | None = None,
    ) -> VerifyResult:
        """Wait for the asset to finish processing and return the final result.

        Args:
            asset_id: Remote asset id returned by the upload
            timeout_seconds: Total polling budget
            on_progress: Optional callback (sync or async) for progress snapshots

        Returns:
            VerifyCompleted, VerifyFailed or VerifyTimedOut

        Raises:
            ValueError: On empty id or non-positive timeout
            RemoteAccessDeniedError: If the source rejects our credentials
        """
        final: VerifyResult | None = None
        async for result in self.watch(asset_id, timeout_seconds):
            if isinstance(result, VerifyProcessing):
                if on_progress is not None:
                    outcome = on_progress(result)
                    if outcome is not None:
                        await outcome
                continue
            final = result
        if final is None:
            raise RuntimeError(f"Upload watch for {asset_id} ended without a result")
        return final

    async def watch(self, asset_id: str, timeout_seconds: float = 300) -> AsyncIterator[VerifyResult]:
        """Yield progress snapshots, then exactly one final result."""
        if not asset_id or not asset_id.strip():
            raise ValueError("asset_id is required")
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")

        correlation_id = str(uuid.uuid4())
        start = self.clock.now()
        deadline = start + timeout_seconds
        attempts = 0
        last_asset: RemoteAsset | None = None

        log.info(
            "upload_verify_started",
            correlation_id=correlation_id,
            asset_id=asset_id,
            timeout_seconds=timeout_seconds,
        )

        while self.clock.now() < deadline:
            attempts += 1
            try:
                asset = await self.source.get_asset(asset_id)
            except RemoteAccessDeniedError:
                raise
            except AssetNotFoundError:
                delay = self.not_visible_delay
                log.debug(
                    "upload_not_yet_visible",
                    correlation_id=correlation_id,
                    asset_id=asset_id,
                    attempt=attempts,
                )
            except RemoteSourceError as e:
                delay = self.lookup_error_delay
                log.warning(
                    "upload_verify_lookup_failed",
                    correlation_id=correlation_id,
                    asset_id=asset_id,
                    attempt=attempts,
                    error=str(e),
                )
            else:
                last_asset = asset
                elapsed = self.clock.now() - start

                if asset.is_playable:
                    log.info(
                        "upload_verify_completed",
                        correlation_id=correlation_id,
                        asset_id=asset_id,
                        attempts=attempts,
                        elapsed_seconds=round(elapsed, 2),
                    )
                    yield VerifyCompleted(
                        asset_id=asset_id, attempts=attempts, elapsed_seconds=elapsed, asset=asset
                    )
                    return

                if asset.processing_state is ProcessingState.ERROR:
                    log.warning(
                        "upload_verify_failed",
                        correlation_id=correlation_id,
                        asset_id=asset_id,
                        error_reason=asset.error_reason,
                        error_code=asset.error_code,
                    )
                    yield VerifyFailed(
                        asset_id=asset_id,
                        attempts=attempts,
                        elapsed_seconds=elapsed,
                        error_reason=asset.error_reason or "Processing failed",
                        error_code=asset.error_code,
                        asset=asset,
                    )
                    return

                if attempts % self.progress_every == 0:
                    yield VerifyProcessing(
                        asset_id=asset_id,
                        attempts=attempts,
                        elapsed_seconds=elapsed,
                        state=asset.processing_state,
                        percent_complete=asset.percent_complete,
                        ready_to_stream=asset.ready_to_stream,
                        estimated_completion_seconds=estimate_completion_seconds(
                            asset.percent_complete
                        ),
                    )
                delay = self.backoff.next_delay(attempts)

            remaining = deadline - self.clock.now()
            if remaining <= 0:
                break
            await self.clock.sleep(min(delay, remaining))

        # Budget spent: one last read so the caller learns where the asset got stuck
        attempts += 1
        error: str | None = None
        try:
            last_asset = await self.source.get_asset(asset_id)
        except RemoteAccessDeniedError:
            raise
        except RemoteSourceError as e:
            error = str(e)

        elapsed = self.clock.now() - start
        log.warning(
            "upload_verify_timeout",
            correlation_id=correlation_id,
            asset_id=asset_id,
            attempts=attempts,
            last_known_state=last_asset.processing_state.value if last_asset else None,
        )
        yield VerifyTimedOut(
            asset_id=asset_id,
            attempts=attempts,
            elapsed_seconds=elapsed,
            message=f"Upload verification timed out after {timeout_seconds}s",
            last_known_state=last_asset.processing_state if last_asset else None,
            asset=last_asset,
            error=error,
        )
