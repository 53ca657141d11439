"""Cloudflare Stream API client with client-side rate limiting.

This module provides a rate-limited, retry-enabled RemoteAssetSource backed by
the Cloudflare Stream REST API. It implements:
- Global request rate limit via AsyncLimiter (Cloudflare allows 1200 req / 5 min)
- Automatic retry with exponential backoff for transient errors (429, 5xx, timeouts)
- Error classification into the shared RemoteSourceError hierarchy
- Cursor pagination over the account's video library (oldest first)

Usage:
    async with StreamClient(account_id, api_token) as client:
        asset = await client.get_asset(uid)
"""

import asyncio
from datetime import timedelta, timezone
from typing import Any

import httpx
import structlog
from aiolimiter import AsyncLimiter
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from catalog_sync.config import (
    DEFAULT_STREAM_API_BASE_URL,
    DEFAULT_STREAM_RATE_LIMIT,
    get_cloudflare_account_id,
    get_stream_api_base_url,
    get_stream_api_token,
    get_stream_rate_limit,
)
from catalog_sync.exceptions import (
    AssetNotFoundError,
    RemoteAccessDeniedError,
    RemoteRequestError,
    RemoteUnavailableError,
)
from catalog_sync.ports import PageParams, RemoteAssetSource, RemotePage
from catalog_sync.schemas.remote_asset import RemoteAsset, parse_stream_timestamp

log = structlog.get_logger()

RETRIABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def inclusive_cursor(created: str | None) -> str:
    """Cursor that resumes at, not after, the given `created` timestamp.

    Stream's `after` filter is strict, so the cursor sits one microsecond
    before the boundary video. Siblings sharing that timestamp are read again
    on the next page and dropped by id when the listing is collected.

    Raises:
        RemoteRequestError: If the timestamp cannot be parsed
    """
    parsed = parse_stream_timestamp(created)
    if parsed is None:
        raise RemoteRequestError(f"Cannot paginate past unparseable created timestamp {created!r}")
    boundary = parsed.astimezone(timezone.utc) - timedelta(microseconds=1)
    return boundary.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class _TransientStreamError(Exception):
    """Internal marker for failures tenacity should retry."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class StreamClient(RemoteAssetSource):
    """Cloudflare Stream API client.

    Args:
        account_id: Cloudflare account id owning the Stream library
        api_token: API token with Stream:Edit permission
        base_url: API root, without trailing slash
        rate_limit: Maximum requests per second
        max_attempts: Attempts per request before RemoteUnavailableError
        retry_wait: tenacity wait strategy between attempts
        timeout: httpx request timeout in seconds
    """

    def __init__(
        self,
        account_id: str,
        api_token: str,
        base_url: str = DEFAULT_STREAM_API_BASE_URL,
        rate_limit: int = DEFAULT_STREAM_RATE_LIMIT,
        max_attempts: int = 3,
        retry_wait: wait_base | None = None,
        timeout: float = 30.0,
    ):
        self.account_id = account_id
        self.api_token = api_token
        self.base_url = f"{base_url.rstrip('/')}/accounts/{account_id}/stream"
        self.client = httpx.AsyncClient(timeout=timeout)
        self.rate_limiter = AsyncLimiter(max_rate=rate_limit, time_period=1)
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)

    @classmethod
    def from_config(cls) -> "StreamClient":
        """Build a client from environment configuration.

        Raises:
            ConfigurationError: If the account id or API token is missing
        """
        return cls(
            account_id=get_cloudflare_account_id(),
            api_token=get_stream_api_token(),
            base_url=get_stream_api_base_url(),
            rate_limit=get_stream_rate_limit(),
        )

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    async def list_assets(self, params: PageParams) -> RemotePage:
        """Return one page of videos, oldest first.

        The next cursor is inclusive of the last video's `created` timestamp,
        so consecutive pages overlap on videos that share it.
        """
        query: dict[str, Any] = {"asc": "true", "limit": params.limit}
        if params.cursor:
            query["after"] = params.cursor

        body = await self._request("GET", "", params=query)
        raw_items = body.get("result") or []

        assets: list[RemoteAsset] = []
        for item in raw_items:
            try:
                assets.append(RemoteAsset.from_stream_payload(item))
            except (ValueError, ValidationError) as e:
                log.warning(
                    "stream_asset_skipped",
                    uid=item.get("uid") if isinstance(item, dict) else None,
                    error=str(e),
                )

        next_cursor = None
        if len(raw_items) >= params.limit and raw_items:
            last = raw_items[-1]
            next_cursor = inclusive_cursor(last.get("created") if isinstance(last, dict) else None)

        return RemotePage(assets=assets, next_cursor=next_cursor)

    async def get_asset(self, asset_id: str) -> RemoteAsset:
        body = await self._request("GET", f"/{asset_id}", asset_id=asset_id)
        try:
            return RemoteAsset.from_stream_payload(body.get("result") or {})
        except (ValueError, ValidationError) as e:
            raise RemoteRequestError(f"Malformed Stream payload for {asset_id}: {e}") from e

    async def delete_asset(self, asset_id: str) -> None:
        await self._request("DELETE", f"/{asset_id}", asset_id=asset_id)
        log.info("stream_asset_deleted", uid=asset_id)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        asset_id: str | None = None,
    ) -> dict[str, Any]:
        """Send one request with rate limiting and retry.

        Raises:
            AssetNotFoundError: 404 on a single-asset path
            RemoteAccessDeniedError: 401/403 (never retried)
            RemoteRequestError: Other non-retriable 4xx or error envelopes
            RemoteUnavailableError: Transient failures after max_attempts
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(_TransientStreamError),
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            before_sleep=lambda retry_state: log.warning(
                "stream_request_retry",
                method=method,
                path=path,
                attempt=retry_state.attempt_number,
                wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
            ),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._send_once(method, path, params, asset_id)
        except RetryError as e:
            last = e.last_attempt.exception()
            status_code = getattr(last, "status_code", None)
            log.error(
                "stream_request_exhausted",
                method=method,
                path=path,
                attempts=self.max_attempts,
                status_code=status_code,
                error=str(last),
            )
            raise RemoteUnavailableError(
                f"Stream API unavailable: {last}", self.max_attempts, status_code
            ) from last
        raise RemoteUnavailableError("Stream API unavailable", self.max_attempts)

    async def _send_once(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None,
        asset_id: str | None,
    ) -> dict[str, Any]:
        async with self.rate_limiter:
            try:
                response = await self.client.request(
                    method,
                    f"{self.base_url}{path}",
                    headers=self._get_headers(),
                    params=params,
                )
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                raise _TransientStreamError(f"{type(e).__name__}: {e}") from e

        status = response.status_code
        if status == 429:
            await self._handle_retry_after(response)
        if status in RETRIABLE_STATUS_CODES:
            raise _TransientStreamError(f"HTTP {status}", status)
        if status in (401, 403):
            raise RemoteAccessDeniedError(f"Stream API access denied: {status}", status)
        if status == 404 and asset_id is not None:
            raise AssetNotFoundError(asset_id, status)
        if status >= 400:
            raise RemoteRequestError(
                f"Stream API rejected {method} {path or '/'}: {status} {response.text[:200]}",
                status,
            )

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteRequestError(f"Stream API returned invalid JSON: {e}", status) from e

        if isinstance(body, dict) and body.get("success") is False:
            raise RemoteRequestError(f"Stream API error: {body.get('errors')}", status)
        return body if isinstance(body, dict) else {}

    async def _handle_retry_after(self, response: httpx.Response) -> None:
        """Honor the Retry-After header on 429 responses."""
        if "Retry-After" in response.headers:
            try:
                retry_after = float(response.headers["Retry-After"])
            except ValueError:
                return
            await asyncio.sleep(min(retry_after, 60.0))

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "StreamClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
