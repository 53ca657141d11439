"""Pydantic schemas for assets held by the remote media-processing service.

RemoteAsset is the service-agnostic view of one uploaded video. The Stream
client builds it from Cloudflare Stream payloads via
RemoteAsset.from_stream_payload(); tests and other sources build it directly.

Processing lifecycle:
    pending_upload → {queued | downloading | in_progress}* → {ready | error}

Terminal states:
    ready (playable once ready_to_stream is true), error
"""

import enum
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog_sync.constants import STREAM_TO_INTERNAL_STATE


class ProcessingState(enum.Enum):
    """Processing state of a remote asset."""

    PENDING_UPLOAD = "pending_upload"
    QUEUED = "queued"
    DOWNLOADING = "downloading"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    ERROR = "error"


TERMINAL_STATES = frozenset({ProcessingState.READY, ProcessingState.ERROR})

# Non-terminal states the verifier keeps polling through
PROCESSING_STATES = frozenset(
    {
        ProcessingState.PENDING_UPLOAD,
        ProcessingState.QUEUED,
        ProcessingState.DOWNLOADING,
        ProcessingState.IN_PROGRESS,
    }
)

# States counted as "processing" in stuck-upload analysis
TRANSCODING_STATES = frozenset(
    {ProcessingState.QUEUED, ProcessingState.DOWNLOADING, ProcessingState.IN_PROGRESS}
)


def parse_stream_state(raw_state: str | None) -> ProcessingState:
    """Map a Cloudflare Stream status.state string to ProcessingState.

    Args:
        raw_state: Value of status.state from the Stream API

    Returns:
        ProcessingState enum member

    Raises:
        ValueError: If the state is missing or unknown
    """
    if not raw_state or raw_state.lower() not in STREAM_TO_INTERNAL_STATE:
        raise ValueError(f"Unknown Stream processing state: {raw_state!r}")
    return ProcessingState(STREAM_TO_INTERNAL_STATE[raw_state.lower()])


def parse_stream_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_percent(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        percent = float(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, min(100.0, percent))


class RemoteAsset(BaseModel):
    """A video known to the remote processing service.

    Attributes:
        id: Opaque identifier assigned by the service at upload time
        processing_state: Current processing state
        ready_to_stream: True only when ready and playback manifests exist
        percent_complete: 0-100 progress, meaningful only in non-terminal states
        created_at: Upload creation timestamp set by the service
        duration_seconds: Media duration, None while unknown
        display_name: meta.name from the service
        error_reason: Human-readable failure reason (error state only)
        error_code: Machine-readable failure code (error state only)
        size_bytes: Uploaded size, when known
        thumbnail_url: Thumbnail URL, when known
        preview_url: Preview/watch URL, when known
        meta: Raw metadata bag as reported by the service
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    processing_state: ProcessingState
    ready_to_stream: bool = False
    percent_complete: float | None = Field(default=None, ge=0, le=100)
    created_at: datetime
    duration_seconds: float | None = None
    display_name: str | None = None
    error_reason: str | None = None
    error_code: str | None = None
    size_bytes: int | None = None
    thumbnail_url: str | None = None
    preview_url: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at")
    @classmethod
    def _created_at_as_utc(cls, value: datetime) -> datetime:
        """Naive timestamps are taken as UTC so age arithmetic never mixes kinds."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def is_terminal(self) -> bool:
        return self.processing_state in TERMINAL_STATES

    @property
    def is_playable(self) -> bool:
        """Ready and streamable - the only assets allowed into the catalog."""
        return self.processing_state is ProcessingState.READY and self.ready_to_stream

    @classmethod
    def from_stream_payload(cls, payload: dict[str, Any]) -> "RemoteAsset":
        """Build a RemoteAsset from a Cloudflare Stream video object.

        Args:
            payload: One element of the Stream API `result` (list or get)

        Returns:
            RemoteAsset instance

        Raises:
            ValueError: If uid or status.state is missing/unknown
        """
        uid = payload.get("uid")
        if not uid:
            raise ValueError("Stream payload is missing uid")

        status = payload.get("status") or {}
        meta = payload.get("meta") or {}
        state = parse_stream_state(status.get("state"))

        duration = payload.get("duration")
        # Stream reports -1 until the duration is known
        if duration is not None and duration < 0:
            duration = None

        created_at = parse_stream_timestamp(payload.get("created")) or datetime.now(timezone.utc)

        return cls(
            id=uid,
            processing_state=state,
            ready_to_stream=bool(payload.get("readyToStream", False)),
            percent_complete=_parse_percent(status.get("pctComplete")),
            created_at=created_at,
            duration_seconds=duration,
            display_name=meta.get("name") or None,
            error_reason=status.get("errorReasonText") or None,
            error_code=status.get("errorReasonCode") or None,
            size_bytes=payload.get("size"),
            thumbnail_url=payload.get("thumbnail") or None,
            preview_url=payload.get("preview") or None,
            meta=meta,
        )

    def snapshot(self) -> dict[str, Any]:
        """Source fields recorded as repair provenance."""
        return {
            "display_name": self.display_name,
            "processing_state": self.processing_state.value,
            "ready_to_stream": self.ready_to_stream,
            "duration_seconds": self.duration_seconds,
            "created_at": self.created_at.isoformat(),
            "meta": self.meta,
            "thumbnail_url": self.thumbnail_url,
            "preview_url": self.preview_url,
        }
