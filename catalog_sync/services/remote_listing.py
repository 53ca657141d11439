"""Paginated collection of remote assets and catalog rows.

Both reconciliation and the stuck-upload sweeper need "everything" from a
paginated port. A failure on the first page means nothing is known and is
raised to the caller; a failure on a later page keeps what was read, stops
pagination and reports the listing as incomplete. A remote page that adds no
new ids while asking for more is reported the same way.
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog

from catalog_sync.exceptions import CatalogStoreError, RemoteAccessDeniedError, RemoteSourceError
from catalog_sync.models import CatalogRecord
from catalog_sync.ports import CatalogStore, PageParams, RemoteAssetSource
from catalog_sync.schemas.remote_asset import RemoteAsset

log = structlog.get_logger()

T = TypeVar("T")


@dataclass
class Listing(Generic[T]):
    """Items read from a paginated port.

    Attributes:
        items: Everything read before pagination ended
        complete: False when a page after the first failed or pagination stalled
        errors: One annotation per failed page
        pages: Pages successfully read
    """

    items: list[T] = field(default_factory=list)
    complete: bool = True
    errors: list[str] = field(default_factory=list)
    pages: int = 0


async def collect_remote_assets(
    source: RemoteAssetSource, page_size: int = 100
) -> Listing[RemoteAsset]:
    """Read every remote asset.

    Raises:
        RemoteSourceError: If the first page cannot be read, or on access denied
    """
    listing: Listing[RemoteAsset] = Listing()
    seen: set[str] = set()
    cursor: str | None = None

    while True:
        try:
            page = await source.list_assets(PageParams(limit=page_size, cursor=cursor))
        except RemoteAccessDeniedError:
            raise
        except RemoteSourceError as e:
            if listing.pages == 0:
                raise
            listing.complete = False
            listing.errors.append(f"remote listing stopped after page {listing.pages}: {e}")
            log.warning("remote_listing_incomplete", pages=listing.pages, error=str(e))
            break

        listing.pages += 1
        added = 0
        for asset in page.assets:
            # Inclusive cursors re-read videos sharing the boundary timestamp
            if asset.id not in seen:
                seen.add(asset.id)
                listing.items.append(asset)
                added += 1

        if not page.next_cursor:
            break
        if page.next_cursor == cursor or added == 0:
            # A full page of one timestamp pins the cursor; the rest is unknown
            listing.complete = False
            listing.errors.append(f"remote listing made no progress at cursor {page.next_cursor}")
            log.warning("remote_listing_stalled", pages=listing.pages, cursor=page.next_cursor)
            break
        cursor = page.next_cursor

    return listing


async def collect_catalog_records(
    store: CatalogStore, page_size: int = 100
) -> Listing[CatalogRecord]:
    """Read every catalog row that carries an external asset id.

    Raises:
        CatalogStoreError: If the first page cannot be read
    """
    listing: Listing[CatalogRecord] = Listing()
    cursor: str | None = None

    while True:
        try:
            page = await store.list_with_external_id(PageParams(limit=page_size, cursor=cursor))
        except CatalogStoreError as e:
            if listing.pages == 0:
                raise
            listing.complete = False
            listing.errors.append(f"catalog listing stopped after page {listing.pages}: {e}")
            log.warning("catalog_listing_incomplete", pages=listing.pages, error=str(e))
            break

        listing.pages += 1
        listing.items.extend(page.records)

        if not page.next_cursor or page.next_cursor == cursor:
            break
        cursor = page.next_cursor

    return listing
