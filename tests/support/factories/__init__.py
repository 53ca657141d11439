# Data factories for test data generation

from tests.support.factories.asset_factory import (
    create_asset,
    create_stream_payload,
    create_stuck_upload,
)
from tests.support.factories.catalog_factory import create_catalog_record

__all__ = [
    # Remote asset factories
    "create_asset",
    "create_stream_payload",
    "create_stuck_upload",
    # Catalog factories
    "create_catalog_record",
]
