"""Pydantic schemas for upload verification results.

VerifyResult is a discriminated union on `status`:
    completed  - asset is ready and streamable
    failed     - asset reached the error state
    processing - intermediate progress snapshot (every Nth poll)
    timeout    - budget elapsed before a terminal state was observed
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from catalog_sync.schemas.remote_asset import ProcessingState, RemoteAsset


class _VerifyBase(BaseModel):
    asset_id: str
    attempts: int
    elapsed_seconds: float


class VerifyCompleted(_VerifyBase):
    status: Literal["completed"] = "completed"
    asset: RemoteAsset


class VerifyFailed(_VerifyBase):
    status: Literal["failed"] = "failed"
    error_reason: str
    error_code: str | None = None
    asset: RemoteAsset


class VerifyProcessing(_VerifyBase):
    status: Literal["processing"] = "processing"
    state: ProcessingState
    percent_complete: float | None = None
    ready_to_stream: bool = False
    # Rough guess: 10% per second of remaining work, None while progress unknown
    estimated_completion_seconds: int | None = None


class VerifyTimedOut(_VerifyBase):
    status: Literal["timeout"] = "timeout"
    message: str
    last_known_state: ProcessingState | None = None
    asset: RemoteAsset | None = None
    error: str | None = None


VerifyResult = Annotated[
    Union[VerifyCompleted, VerifyFailed, VerifyProcessing, VerifyTimedOut],
    Field(discriminator="status"),
]
