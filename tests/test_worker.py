"""Tests for worker process entry point.

This test module covers:
- Signal handler flags shutdown and cancels the reconciliation task
- run_worker returns cleanly after a shutdown signal
- Unexpected cancellation still propagates
- Resource cleanup on shutdown (Stream client, SQLAlchemy engine)
- Configuration failure exits with code 1
"""

import asyncio
import signal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from catalog_sync import worker
from catalog_sync.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def reset_shutdown_flag():
    worker.shutdown_requested = False
    yield
    worker.shutdown_requested = False


class TestSignalHandling:
    """Tests for graceful shutdown signal handling."""

    def test_request_shutdown_sets_flag_and_cancels_task(self):
        """Test SIGTERM handler sets shutdown_requested and cancels the loop task."""
        task = MagicMock()

        worker.request_shutdown(signal.SIGTERM, task)

        assert worker.shutdown_requested is True
        task.cancel.assert_called_once_with()


class TestRunWorker:
    """Tests for the worker run loop and shutdown sequence."""

    @pytest.mark.asyncio
    async def test_shutdown_signal_stops_loop_cleanly(self):
        """Test run_worker returns without error once shutdown is requested."""
        service = MagicMock()

        async def loop_until_signalled(svc):
            # GIVEN: The loop is running when SIGTERM arrives
            worker.request_shutdown(signal.SIGTERM, asyncio.current_task())
            await asyncio.Event().wait()

        with (
            patch.object(worker, "reconciliation_loop", side_effect=loop_until_signalled),
            patch.object(worker, "shutdown_worker", new_callable=AsyncMock) as mock_shutdown,
        ):
            # WHEN: Running the worker
            await worker.run_worker(service)

        # THEN: Cleanup ran exactly once
        mock_shutdown.assert_awaited_once_with(service)

    @pytest.mark.asyncio
    async def test_unexpected_cancellation_propagates(self):
        """Test cancellation without a shutdown signal is re-raised after cleanup."""
        service = MagicMock()

        async def cancelled_loop(svc):
            asyncio.current_task().cancel()
            await asyncio.Event().wait()

        with (
            patch.object(worker, "reconciliation_loop", side_effect=cancelled_loop),
            patch.object(worker, "shutdown_worker", new_callable=AsyncMock) as mock_shutdown,
        ):
            with pytest.raises(asyncio.CancelledError):
                await worker.run_worker(service)

        mock_shutdown.assert_awaited_once_with(service)


class TestShutdownWorker:
    """Tests for resource cleanup on shutdown."""

    @pytest.mark.asyncio
    async def test_closes_client_and_disposes_engine(self, monkeypatch):
        service = MagicMock()
        service.source.close = AsyncMock()
        mock_engine = MagicMock()
        mock_engine.dispose = AsyncMock()
        monkeypatch.setattr("catalog_sync.database.engine", mock_engine)

        await worker.shutdown_worker(service)

        service.source.close.assert_awaited_once()
        mock_engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skips_missing_resources(self, monkeypatch):
        """Test sources without close() and an absent engine are tolerated."""
        service = MagicMock()
        service.source = object()
        monkeypatch.setattr("catalog_sync.database.engine", None)

        await worker.shutdown_worker(service)


class TestMain:
    """Tests for the process entry point."""

    def test_configuration_failure_exits_with_code_1(self):
        with (
            patch.object(worker, "configure_logging"),
            patch.object(
                worker.CatalogSyncService,
                "from_config",
                side_effect=ConfigurationError("CLOUDFLARE_STREAM_API_TOKEN environment variable is required"),
            ),
        ):
            with pytest.raises(SystemExit) as exc_info:
                worker.main()

        assert exc_info.value.code == 1

    def test_runs_worker_with_configured_service(self):
        service = MagicMock()

        with (
            patch.object(worker, "configure_logging"),
            patch.object(worker.CatalogSyncService, "from_config", return_value=service),
            patch.object(worker, "run_worker", new_callable=AsyncMock) as mock_run,
        ):
            worker.main()

        mock_run.assert_awaited_once_with(service)
