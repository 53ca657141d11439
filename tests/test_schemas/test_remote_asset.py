"""Tests for RemoteAsset parsing and the provenance variants.

Tests cover:
- Stream state mapping (all six states, unknown states rejected)
- Payload edge cases (unknown duration, missing name, progress clamping)
- Playable vs terminal classification
- created_at normalized to UTC (naive values taken as UTC)
- Provenance discriminated union parsing
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from catalog_sync.schemas.provenance import (
    AutoRepairedFrom,
    ManualEntry,
    OrphanedBecause,
    parse_provenance,
)
from catalog_sync.schemas.remote_asset import ProcessingState, RemoteAsset, parse_stream_state
from tests.support.factories import create_asset, create_stream_payload


class TestParseStreamState:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("pendingupload", ProcessingState.PENDING_UPLOAD),
            ("queued", ProcessingState.QUEUED),
            ("downloading", ProcessingState.DOWNLOADING),
            ("inprogress", ProcessingState.IN_PROGRESS),
            ("ready", ProcessingState.READY),
            ("error", ProcessingState.ERROR),
            ("Ready", ProcessingState.READY),
        ],
    )
    def test_known_states(self, raw, expected):
        assert parse_stream_state(raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "archived"])
    def test_unknown_states_rejected(self, raw):
        with pytest.raises(ValueError):
            parse_stream_state(raw)


class TestFromStreamPayload:
    def test_ready_payload(self):
        asset = RemoteAsset.from_stream_payload(create_stream_payload(uid="v1"))

        assert asset.id == "v1"
        assert asset.is_playable
        assert asset.duration_seconds == 42.5
        assert asset.display_name == "Demo"
        assert asset.created_at == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert asset.size_bytes == 4190963

    def test_ready_without_manifest_is_not_playable(self):
        asset = RemoteAsset.from_stream_payload(create_stream_payload(ready_to_stream=False))

        assert asset.is_terminal
        assert not asset.is_playable

    def test_unknown_duration_and_missing_name(self):
        payload = create_stream_payload(state="pendingupload", ready_to_stream=False, name=None)
        payload["duration"] = -1

        asset = RemoteAsset.from_stream_payload(payload)

        assert asset.duration_seconds is None
        assert asset.display_name is None
        assert not asset.is_terminal

    def test_progress_is_clamped(self):
        payload = create_stream_payload(state="inprogress", ready_to_stream=False, pct_complete="120")

        assert RemoteAsset.from_stream_payload(payload).percent_complete == 100.0

    def test_missing_uid_rejected(self):
        payload = create_stream_payload()
        del payload["uid"]

        with pytest.raises(ValueError, match="uid"):
            RemoteAsset.from_stream_payload(payload)

    def test_snapshot_contains_source_fields(self):
        asset = create_asset("v1", display_name="Launch")

        snapshot = asset.snapshot()

        assert snapshot["display_name"] == "Launch"
        assert snapshot["processing_state"] == "ready"
        assert snapshot["ready_to_stream"] is True

    def test_asset_is_immutable(self):
        asset = create_asset("v1")

        with pytest.raises(ValidationError):
            asset.display_name = "changed"

    def test_naive_created_at_is_taken_as_utc(self):
        asset = create_asset("v1", created_at=datetime(2026, 3, 1, 9, 0))

        assert asset.created_at == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert asset.created_at.tzinfo is timezone.utc

    def test_offset_created_at_is_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        asset = create_asset("v1", created_at=datetime(2026, 3, 1, 11, 0, tzinfo=plus_two))

        assert asset.created_at == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert asset.created_at.utcoffset() == timedelta(0)


class TestParseProvenance:
    def test_empty_metadata_is_manual(self):
        assert isinstance(parse_provenance(None), ManualEntry)
        assert isinstance(parse_provenance({}), ManualEntry)

    def test_discriminates_by_kind(self):
        repaired = parse_provenance(
            {"kind": "auto_repaired_from", "repaired_at": "2026-03-01T12:00:00+00:00"}
        )
        orphaned = parse_provenance(
            {"kind": "orphaned_because", "reason": "missing_from_remote", "detected_at": "2026-03-01T12:00:00Z"}
        )

        assert isinstance(repaired, AutoRepairedFrom)
        assert repaired.repaired_from == "cloudflare_stream"
        assert isinstance(orphaned, OrphanedBecause)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            parse_provenance({"kind": "imported"})
