"""Shared exceptions for the catalog sync package.

This module contains exception classes used across the remote asset client,
the catalog store and the reconciliation services, so that services never
depend on transport-specific error types (httpx, SQLAlchemy).

Hierarchy:
    ConfigurationError
    RemoteSourceError
        AssetNotFoundError          - asset id does not resolve (404)
        RemoteAccessDeniedError     - 401/403, propagated, never retried
        RemoteRequestError          - other non-retriable 4xx
        RemoteUnavailableError      - transient failures after retries
    CatalogStoreError
        CatalogConflictError        - unique external_asset_id violated
        CatalogRecordNotFoundError  - record id does not exist
        CatalogUnavailableError     - database unreachable / operational error
"""


class ConfigurationError(Exception):
    """Raised when required configuration is missing.

    This error indicates a configuration problem that prevents a collaborator
    from being built (e.g., CLOUDFLARE_STREAM_API_TOKEN not set).
    """

    pass


class RemoteSourceError(Exception):
    """Base class for failures talking to the remote media-processing service."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AssetNotFoundError(RemoteSourceError):
    """Raised when an asset id does not resolve in the remote service.

    Right after an upload is created the asset may not have propagated to the
    service's read replicas yet, so callers watching a freshly submitted id
    treat this as "not yet visible" rather than as a hard failure.

    Attributes:
        asset_id: The remote asset id that was looked up.
    """

    def __init__(self, asset_id: str, status_code: int | None = 404):
        self.asset_id = asset_id
        super().__init__(f"Remote asset not found: {asset_id}", status_code)


class RemoteAccessDeniedError(RemoteSourceError):
    """Raised on 401/403 responses. Never retried; propagated to the caller."""

    pass


class RemoteRequestError(RemoteSourceError):
    """Raised on non-retriable client errors other than 401/403/404."""

    pass


class RemoteUnavailableError(RemoteSourceError):
    """Raised when transient failures (429, 5xx, timeouts) persist after retries.

    Attributes:
        retry_count: Number of attempts made before giving up.
    """

    def __init__(self, message: str, retry_count: int, status_code: int | None = None):
        self.retry_count = retry_count
        super().__init__(f"{message} (retries: {retry_count})", status_code)


class CatalogStoreError(Exception):
    """Base class for catalog store failures."""

    pass


class CatalogConflictError(CatalogStoreError):
    """Raised when an insert violates the unique external_asset_id constraint.

    Repair treats this as success-equivalent: another writer already created
    the row for this asset.

    Attributes:
        external_asset_id: The remote asset id whose row already exists.
    """

    def __init__(self, external_asset_id: str):
        self.external_asset_id = external_asset_id
        super().__init__(f"Catalog record already exists for asset {external_asset_id}")


class CatalogRecordNotFoundError(CatalogStoreError):
    """Raised when updating or deleting a catalog record id that does not exist."""

    def __init__(self, record_id: object):
        self.record_id = record_id
        super().__init__(f"Catalog record not found: {record_id}")


class CatalogUnavailableError(CatalogStoreError):
    """Raised when the catalog database cannot be reached or the write fails."""

    pass
