"""Collaborator ports consumed by the sync services.

RemoteAssetSource is the read/delete view of the external media-processing
service; CatalogStore is the CRUD view of the internal catalog. Services only
talk to these interfaces, so tests can swap in fakes and deployments can swap
backends without touching reconciliation logic.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from catalog_sync.models import CatalogRecord
from catalog_sync.schemas.catalog import CatalogRecordCreate, CatalogRecordUpdate
from catalog_sync.schemas.remote_asset import RemoteAsset


@dataclass(frozen=True)
class PageParams:
    """Cursor pagination request.

    Attributes:
        limit: Maximum items per page
        cursor: Opaque continuation token from the previous page, None for the first
    """

    limit: int = 100
    cursor: str | None = None


@dataclass
class RemotePage:
    """One page of remote assets. next_cursor is None on the last page."""

    assets: list[RemoteAsset] = field(default_factory=list)
    next_cursor: str | None = None


@dataclass
class CatalogPage:
    """One page of catalog rows. next_cursor is None on the last page."""

    records: list[CatalogRecord] = field(default_factory=list)
    next_cursor: str | None = None


class RemoteAssetSource(ABC):
    """Read/delete view of assets held by the remote processing service."""

    @abstractmethod
    async def list_assets(self, params: PageParams) -> RemotePage:
        """Return one page of assets."""

    @abstractmethod
    async def get_asset(self, asset_id: str) -> RemoteAsset:
        """Return one asset.

        Raises:
            AssetNotFoundError: The id does not resolve (yet)
            RemoteSourceError: Any other lookup failure
        """

    @abstractmethod
    async def delete_asset(self, asset_id: str) -> None:
        """Delete one asset.

        Raises:
            AssetNotFoundError: The id does not resolve
            RemoteSourceError: The delete failed
        """


class CatalogStore(ABC):
    """CRUD view of the internal catalog. Every write is a single-record operation."""

    @abstractmethod
    async def find_by_external_id(self, external_asset_id: str) -> CatalogRecord | None:
        """Return the row for a remote asset id, or None."""

    @abstractmethod
    async def insert(self, record: CatalogRecordCreate) -> CatalogRecord:
        """Insert a row.

        Raises:
            CatalogConflictError: A row for record.external_asset_id already exists
        """

    @abstractmethod
    async def update(self, record_id: uuid.UUID, patch: CatalogRecordUpdate) -> CatalogRecord:
        """Apply a partial update.

        Raises:
            CatalogRecordNotFoundError: No row with that id
        """

    @abstractmethod
    async def delete(self, record_id: uuid.UUID) -> bool:
        """Delete a row. Returns False when it was already gone."""

    @abstractmethod
    async def list_with_external_id(self, params: PageParams) -> CatalogPage:
        """Return one page of rows whose external_asset_id is set."""
