"""Video ingestion verification and catalog reconciliation engine.

This package keeps the internal video catalog consistent with the assets held
by Cloudflare Stream: it verifies fresh uploads, reconciles the two sides,
repairs drift and sweeps abandoned uploads.
"""

from catalog_sync.database import async_session_factory
from catalog_sync.models import Base, CatalogRecord, SyncStatus

__all__ = [
    "Base",
    "CatalogRecord",
    "SyncStatus",
    "async_session_factory",
]
