"""
Tests for the Cloudflare Stream client.

Tests cover:
- Client configuration (base URL, rate limiter, auth header)
- Payload parsing into RemoteAsset (state mapping, unknown duration, progress)
- Pagination cursor handling, including videos sharing a boundary timestamp
- Retry logic for 429, 5xx errors and timeouts
- Non-retriable error classification (401, 403, 404, other 4xx)
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio
from tenacity import wait_none

from catalog_sync.clients.stream import StreamClient, inclusive_cursor
from catalog_sync.exceptions import (
    AssetNotFoundError,
    ConfigurationError,
    RemoteAccessDeniedError,
    RemoteRequestError,
    RemoteUnavailableError,
)
from catalog_sync.ports import PageParams
from catalog_sync.schemas.remote_asset import ProcessingState
from catalog_sync.services.remote_listing import collect_remote_assets
from tests.support.factories import create_stream_payload


def stream_response(status_code: int = 200, result=None, **kwargs) -> httpx.Response:
    body = {"success": status_code < 400, "errors": [], "messages": [], "result": result}
    return httpx.Response(status_code, json=body, **kwargs)


@pytest_asyncio.fixture
async def client():
    stream_client = StreamClient("acc123", "token-abc", retry_wait=wait_none())
    yield stream_client
    await stream_client.close()


@pytest.mark.asyncio
async def test_stream_client_initialization(client):
    assert client.base_url == "https://api.cloudflare.com/client/v4/accounts/acc123/stream"
    assert client.rate_limiter.max_rate == 4
    assert client.rate_limiter.time_period == 1
    assert client._get_headers()["Authorization"] == "Bearer token-abc"
    assert isinstance(client.client, httpx.AsyncClient)


@pytest.mark.asyncio
async def test_from_config_requires_credentials(monkeypatch):
    monkeypatch.delenv("CLOUDFLARE_ACCOUNT_ID", raising=False)
    monkeypatch.setenv("CLOUDFLARE_STREAM_API_TOKEN", "token")

    with pytest.raises(ConfigurationError, match="CLOUDFLARE_ACCOUNT_ID"):
        StreamClient.from_config()


@pytest.mark.asyncio
async def test_from_config_reads_environment(monkeypatch):
    monkeypatch.setenv("CLOUDFLARE_ACCOUNT_ID", "acc999")
    monkeypatch.setenv("CLOUDFLARE_STREAM_API_TOKEN", "secret")
    monkeypatch.setenv("STREAM_RATE_LIMIT_PER_SECOND", "2")

    async with StreamClient.from_config() as stream_client:
        assert stream_client.base_url.endswith("/accounts/acc999/stream")
        assert stream_client.rate_limiter.max_rate == 2


@pytest.mark.asyncio
async def test_get_asset_parses_payload(client):
    payload = create_stream_payload(uid="v1", state="inprogress", ready_to_stream=False, pct_complete="37.5")
    payload["duration"] = -1

    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=stream_response(result=payload)
    ) as mock_request:
        asset = await client.get_asset("v1")

    assert asset.id == "v1"
    assert asset.processing_state is ProcessingState.IN_PROGRESS
    assert asset.percent_complete == 37.5
    assert asset.duration_seconds is None
    assert asset.display_name == "Demo"
    args, kwargs = mock_request.call_args
    assert args == ("GET", "https://api.cloudflare.com/client/v4/accounts/acc123/stream/v1")


@pytest.mark.asyncio
async def test_get_asset_error_state(client):
    payload = create_stream_payload(uid="v1", state="error", ready_to_stream=False)

    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=stream_response(result=payload)
    ):
        asset = await client.get_asset("v1")

    assert asset.processing_state is ProcessingState.ERROR
    assert asset.error_code == "ERR_NON_VIDEO"
    assert asset.is_terminal


@pytest.mark.asyncio
async def test_get_asset_404_raises_not_found(client):
    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=stream_response(404)
    ):
        with pytest.raises(AssetNotFoundError) as exc_info:
            await client.get_asset("missing")

    assert exc_info.value.asset_id == "missing"
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403])
async def test_auth_errors_fail_fast(client, status_code):
    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=stream_response(status_code)
    ) as mock_request:
        with pytest.raises(RemoteAccessDeniedError):
            await client.get_asset("v1")

    assert mock_request.await_count == 1


@pytest.mark.asyncio
async def test_bad_request_not_retried(client):
    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=stream_response(400)
    ) as mock_request:
        with pytest.raises(RemoteRequestError):
            await client.list_assets(PageParams())

    assert mock_request.await_count == 1


@pytest.mark.asyncio
async def test_5xx_then_success_is_retried(client):
    payload = create_stream_payload(uid="v1")
    responses = [stream_response(503), stream_response(502), stream_response(result=payload)]

    with patch.object(
        client.client, "request", new_callable=AsyncMock, side_effect=responses
    ) as mock_request:
        asset = await client.get_asset("v1")

    assert asset.id == "v1"
    assert mock_request.await_count == 3


@pytest.mark.asyncio
async def test_429_honors_retry_after(client):
    payload = create_stream_payload(uid="v1")
    responses = [
        stream_response(429, headers={"Retry-After": "2"}),
        stream_response(result=payload),
    ]

    with (
        patch.object(client.client, "request", new_callable=AsyncMock, side_effect=responses),
        patch("catalog_sync.clients.stream.asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
    ):
        asset = await client.get_asset("v1")

    assert asset.id == "v1"
    mock_sleep.assert_any_await(2.0)


@pytest.mark.asyncio
async def test_persistent_timeouts_raise_unavailable(client):
    with patch.object(
        client.client,
        "request",
        new_callable=AsyncMock,
        side_effect=httpx.ConnectTimeout("timed out"),
    ) as mock_request:
        with pytest.raises(RemoteUnavailableError) as exc_info:
            await client.get_asset("v1")

    assert mock_request.await_count == 3
    assert exc_info.value.retry_count == 3


@pytest.mark.asyncio
async def test_list_assets_paginates_by_created_cursor(client):
    page = [
        create_stream_payload(uid="a", created="2026-03-01T10:00:00Z"),
        create_stream_payload(uid="b", created="2026-03-01T11:00:00Z"),
    ]

    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=stream_response(result=page)
    ) as mock_request:
        result = await client.list_assets(PageParams(limit=2, cursor="2026-03-01T09:00:00Z"))

    assert [a.id for a in result.assets] == ["a", "b"]
    assert result.next_cursor == "2026-03-01T10:59:59.999999Z"
    params = mock_request.call_args.kwargs["params"]
    assert params == {"asc": "true", "limit": 2, "after": "2026-03-01T09:00:00Z"}


def test_inclusive_cursor_steps_back_one_microsecond():
    assert inclusive_cursor("2026-03-01T11:00:00Z") == "2026-03-01T10:59:59.999999Z"
    assert inclusive_cursor("2026-03-01T12:00:00.000250+01:00") == "2026-03-01T11:00:00.000249Z"


def test_inclusive_cursor_rejects_unparseable_timestamp():
    with pytest.raises(RemoteRequestError, match="unparseable"):
        inclusive_cursor("yesterday")


@pytest.mark.asyncio
async def test_listing_keeps_videos_sharing_the_page_boundary_timestamp(client):
    """[P1] A video created in the same instant as the last one on a page is still listed."""
    # GIVEN: c and d share 11:00 and the page boundary falls between them
    first = [
        create_stream_payload(uid="a", created="2026-03-01T10:00:00Z"),
        create_stream_payload(uid="b", created="2026-03-01T10:30:00Z"),
        create_stream_payload(uid="c", created="2026-03-01T11:00:00Z"),
    ]
    second = [
        create_stream_payload(uid="c", created="2026-03-01T11:00:00Z"),
        create_stream_payload(uid="d", created="2026-03-01T11:00:00Z"),
        create_stream_payload(uid="e", created="2026-03-01T12:00:00Z"),
    ]
    third = [create_stream_payload(uid="e", created="2026-03-01T12:00:00Z")]

    # WHEN: the whole library is collected three at a time
    with patch.object(
        client.client,
        "request",
        new_callable=AsyncMock,
        side_effect=[stream_response(result=p) for p in (first, second, third)],
    ) as mock_request:
        listing = await collect_remote_assets(client, page_size=3)

    # THEN: every video appears once and the listing is complete
    assert [a.id for a in listing.items] == ["a", "b", "c", "d", "e"]
    assert listing.complete
    afters = [call.kwargs["params"].get("after") for call in mock_request.call_args_list]
    assert afters == [None, "2026-03-01T10:59:59.999999Z", "2026-03-01T11:59:59.999999Z"]


@pytest.mark.asyncio
async def test_list_assets_last_page_has_no_cursor(client):
    page = [create_stream_payload(uid="a")]

    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=stream_response(result=page)
    ):
        result = await client.list_assets(PageParams(limit=100))

    assert result.next_cursor is None


@pytest.mark.asyncio
async def test_list_assets_skips_unparseable_items(client):
    page = [create_stream_payload(uid="a"), create_stream_payload(uid="b", state="mystery")]

    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=stream_response(result=page)
    ):
        result = await client.list_assets(PageParams(limit=100))

    assert [a.id for a in result.assets] == ["a"]


@pytest.mark.asyncio
async def test_delete_asset_accepts_empty_body(client):
    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=httpx.Response(200)
    ) as mock_request:
        await client.delete_asset("v1")

    assert mock_request.call_args.args[0] == "DELETE"


@pytest.mark.asyncio
async def test_error_envelope_raises_request_error(client):
    body = {"success": False, "errors": [{"code": 10005, "message": "bad"}], "result": None}

    with patch.object(
        client.client, "request", new_callable=AsyncMock, return_value=httpx.Response(200, json=body)
    ):
        with pytest.raises(RemoteRequestError, match="10005"):
            await client.get_asset("v1")
