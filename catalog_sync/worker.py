"""Worker process entry point for scheduled catalog reconciliation.

Runs reconciliation_loop until SIGTERM/SIGINT, then closes the Stream client
and disposes the database engine.

Architecture Pattern:
    - Separate Process: runs independently of any HTTP surface
    - Short Transactions: catalog writes never span a remote call
    - Graceful Shutdown: a signal cancels the loop task; the pass in flight is
      abandoned at its next await and no catalog write is left half-done

Usage:
    python -m catalog_sync.worker
"""

import asyncio
import signal
import sys

from catalog_sync.exceptions import ConfigurationError
from catalog_sync.services.catalog_sync import CatalogSyncService, reconciliation_loop
from catalog_sync.utils.logging import configure_logging, get_logger

log = get_logger(__name__)

# Set once a shutdown signal arrives
shutdown_requested = False


def request_shutdown(signum: int, task: asyncio.Task) -> None:
    """Signal handler: flag shutdown and cancel the reconciliation task."""
    global shutdown_requested
    log.info(
        "shutdown_signal_received",
        signal=signum,
        signal_name=signal.Signals(signum).name,
    )
    shutdown_requested = True
    task.cancel()


async def run_worker(service: CatalogSyncService) -> None:
    """Run the reconciliation loop until a shutdown signal cancels it."""
    loop = asyncio.get_running_loop()
    task = asyncio.create_task(reconciliation_loop(service))

    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, request_shutdown, signum, task)

    try:
        await task
    except asyncio.CancelledError:
        if not shutdown_requested:
            raise
    finally:
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(signum)
        await shutdown_worker(service)


async def shutdown_worker(service: CatalogSyncService) -> None:
    """Close the remote client and the database engine."""
    from catalog_sync.database import engine

    close = getattr(service.source, "close", None)
    if close is not None:
        await close()
        log.info("stream_client_closed")

    if engine is not None:
        await engine.dispose()
        log.info("sqlalchemy_engine_closed")


def main() -> None:
    """Worker process entry point.

    Exit Codes:
        0: Successful shutdown (signal received)
        1: Fatal error (configuration invalid)
    """
    configure_logging()

    try:
        service = CatalogSyncService.from_config()
    except ConfigurationError as e:
        log.error("configuration_load_failed", error=str(e))
        sys.exit(1)

    try:
        asyncio.run(run_worker(service))
    except KeyboardInterrupt:
        log.info("worker_interrupted_by_user")

    log.info("worker_exited_successfully")


if __name__ == "__main__":
    main()
