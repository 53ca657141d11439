"""SQLAlchemy-backed CatalogStore.

Architecture Compliance:
- Short transactions ONLY: every method opens its own session, performs one
  single-record operation (or one page read) and closes it
- NEVER hold a DB connection while the caller talks to the remote service
- Uniqueness of external_asset_id is enforced by the database; a violation is
  surfaced as CatalogConflictError so repairs can treat it as "already synced"
"""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_sync.exceptions import (
    CatalogConflictError,
    CatalogRecordNotFoundError,
    CatalogStoreError,
    CatalogUnavailableError,
    ConfigurationError,
)
from catalog_sync.models import CatalogRecord
from catalog_sync.ports import CatalogPage, CatalogStore, PageParams
from catalog_sync.schemas.catalog import CatalogRecordCreate, CatalogRecordUpdate

log = structlog.get_logger()


class SqlCatalogStore(CatalogStore):
    """CatalogStore over the catalog_records table.

    Args:
        session_factory: async_sessionmaker with expire_on_commit=False, so
            returned rows stay readable after their session closes
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @classmethod
    def from_default(cls) -> "SqlCatalogStore":
        """Build a store over the process-wide session factory.

        Raises:
            ConfigurationError: If DATABASE_URL is not configured
        """
        from catalog_sync.database import async_session_factory

        if async_session_factory is None:
            raise ConfigurationError("Database not configured. Set DATABASE_URL.")
        return cls(async_session_factory)

    async def find_by_external_id(self, external_asset_id: str) -> CatalogRecord | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(CatalogRecord).where(
                        CatalogRecord.external_asset_id == external_asset_id
                    )
                )
                return result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            raise CatalogUnavailableError(f"Catalog lookup failed: {e}") from e

    async def insert(self, record: CatalogRecordCreate) -> CatalogRecord:
        row = CatalogRecord(
            external_asset_id=record.external_asset_id,
            title=record.title,
            description=record.description,
            duration_seconds=record.duration_seconds,
            thumbnail_url=record.thumbnail_url,
            is_published=record.is_published,
            last_synced_at=record.last_synced_at,
        )
        row.apply_provenance(record.provenance)
        if record.is_published and row.is_published is False:
            log.warning(
                "catalog_insert_unpublished_by_provenance",
                external_asset_id=record.external_asset_id,
            )

        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
        except IntegrityError as e:
            if record.external_asset_id:
                raise CatalogConflictError(record.external_asset_id) from e
            raise CatalogStoreError(f"Catalog insert rejected: {e.orig}") from e
        except (SQLAlchemyError, OSError) as e:
            raise CatalogUnavailableError(f"Catalog insert failed: {e}") from e

        log.info(
            "catalog_record_inserted",
            record_id=str(row.id),
            external_asset_id=row.external_asset_id,
            sync_status=row.sync_status.value,
        )
        return row

    async def update(self, record_id: uuid.UUID, patch: CatalogRecordUpdate) -> CatalogRecord:
        fields = patch.model_fields_set
        try:
            async with self._session_factory() as session, session.begin():
                row = await session.get(CatalogRecord, record_id)
                if row is None:
                    raise CatalogRecordNotFoundError(record_id)

                for name in (
                    "title",
                    "description",
                    "duration_seconds",
                    "thumbnail_url",
                    "is_published",
                    "last_synced_at",
                ):
                    if name in fields:
                        setattr(row, name, getattr(patch, name))
                # Applied last: orphan provenance forces is_published=False
                if "provenance" in fields and patch.provenance is not None:
                    row.apply_provenance(patch.provenance)
        except CatalogStoreError:
            raise
        except (SQLAlchemyError, OSError) as e:
            raise CatalogUnavailableError(f"Catalog update failed: {e}") from e

        return row

    async def delete(self, record_id: uuid.UUID) -> bool:
        try:
            async with self._session_factory() as session, session.begin():
                row = await session.get(CatalogRecord, record_id)
                if row is None:
                    return False
                await session.delete(row)
        except (SQLAlchemyError, OSError) as e:
            raise CatalogUnavailableError(f"Catalog delete failed: {e}") from e

        log.info("catalog_record_deleted", record_id=str(record_id))
        return True

    async def list_with_external_id(self, params: PageParams) -> CatalogPage:
        """Keyset-paginated read ordered by id; the cursor is the last id seen."""
        query = (
            select(CatalogRecord)
            .where(CatalogRecord.external_asset_id.isnot(None))
            .order_by(CatalogRecord.id)
            .limit(params.limit)
        )
        if params.cursor:
            query = query.where(CatalogRecord.id > uuid.UUID(params.cursor))

        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                records = list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            raise CatalogUnavailableError(f"Catalog listing failed: {e}") from e

        next_cursor = str(records[-1].id) if len(records) == params.limit else None
        return CatalogPage(records=records, next_cursor=next_cursor)
