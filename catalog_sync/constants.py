"""Project-wide constants and mappings.

This module contains the state mapping table between Cloudflare Stream
`status.state` values and the internal ProcessingState enum values, plus the
defaults shared by the verifier, reconciliation and sweep services.
"""

# Cloudflare Stream status.state → ProcessingState value
STREAM_TO_INTERNAL_STATE: dict[str, str] = {
    "pendingupload": "pending_upload",
    "queued": "queued",
    "downloading": "downloading",
    "inprogress": "in_progress",
    "ready": "ready",
    "error": "error",
}

# Verifier emits a Processing snapshot every Nth poll
VERIFY_PROGRESS_EVERY_N_POLLS = 10

# Verifier waits after lookup failures
VERIFY_NOT_VISIBLE_DELAY_SECONDS = 3.0
VERIFY_LOOKUP_ERROR_DELAY_SECONDS = 1.0

# Fallback catalog title for assets uploaded without a name
UNTITLED_ASSET_TITLE = "Video {asset_id}"

# Provenance labels written into catalog metadata
REPAIRED_FROM_REMOTE = "cloudflare_stream"
ORPHAN_REASON_MISSING_FROM_REMOTE = "missing_from_remote"

# Failure reasons reported in RepairResult.error
REASON_NOT_FOUND_IN_REMOTE = "not found in remote"
REASON_AUTO_FIX_DISABLED = "auto-fix disabled"
REASON_NOT_FOUND_IN_CATALOG = "not found in catalog"
REASON_STILL_PRESENT_IN_REMOTE = "still present in remote"
