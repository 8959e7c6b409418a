"""
LP Market - Fetch Layer

Every outbound vendor request goes through Fetcher. Per attempt it enforces a
hard deadline (settings.FETCH_TIMEOUT_SECONDS) and fails immediately with
FetchTimeoutError when it is exceeded. Connection-level failures and 5xx
responses are retried settings.FETCH_MAX_RETRIES times with exponential
backoff (1s, 2s, ...), after which NetworkError is raised.

Automated-traffic rejection (403/429, or a captcha interstitial) raises
BlockedError straight away: it is never retried, because retrying a throttled
vendor only digs the hole deeper.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from lpmarket.config import settings
from lpmarket.scraper.anti_detect import AntiDetect

logger = structlog.get_logger(__name__)

BLOCKING_STATUS_CODES = frozenset({403, 429})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class FetchError(Exception):
    """Base class for fetch layer failures."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class NetworkError(FetchError):
    """Transient failures persisted through every retry."""


class FetchTimeoutError(FetchError, TimeoutError):
    """A single attempt exceeded the fetch deadline."""


class BlockedError(FetchError):
    """The vendor rejected the request as automated traffic."""


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


class Fetcher:
    """
    Async HTTP fetcher shared by all vendor adapters of one aggregation.

    Usage:
        async with Fetcher() as fetcher:
            html = await fetcher.fetch("https://www.yes24.com/Product/Search", params={"query": "..."})
            data = await fetcher.fetch_json("https://openapi.naver.com/v1/search/shop.json", ...)
    """

    def __init__(
        self,
        timeout: float | None = None,
        max_retries: int | None = None,
        base_backoff: float | None = None,
        anti_detect: AntiDetect | None = None,
    ):
        self._timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS
        self._max_retries = max_retries if max_retries is not None else settings.FETCH_MAX_RETRIES
        self._base_backoff = (
            base_backoff if base_backoff is not None else settings.FETCH_BACKOFF_BASE_SECONDS
        )
        self._anti_detect = anti_detect or AntiDetect()
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Fetcher:
        self._client = httpx.AsyncClient(
            follow_redirects=True,
            timeout=self._timeout,
            proxy=self._anti_detect.get_proxy_url(),
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """GET with deadline, retry and block detection."""
        assert self._client is not None, "Fetcher not initialized. Use 'async with'."

        request_headers = self._anti_detect.build_headers(headers)
        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                response = await asyncio.wait_for(
                    self._client.get(url, params=params, headers=request_headers),
                    timeout=self._timeout,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                logger.warning(
                    "fetch_timeout",
                    url=url,
                    attempt=attempt + 1,
                    timeout_seconds=self._timeout,
                )
                raise FetchTimeoutError(
                    f"Request exceeded {self._timeout}s deadline", url=url
                ) from e
            except httpx.TransportError as e:
                last_error = e
                logger.warning(
                    "fetch_transport_error",
                    url=url,
                    error=str(e),
                    attempt=attempt + 1,
                )
                await self._backoff(attempt)
                continue

            status = response.status_code

            if status in BLOCKING_STATUS_CODES:
                logger.warning("fetch_blocked", url=url, status_code=status)
                raise BlockedError(f"Blocked with HTTP {status}", url=url, status_code=status)

            if status >= 500:
                if self._anti_detect.looks_blocked(response.text, status):
                    logger.warning("fetch_blocked", url=url, status_code=status, reason="block_page")
                    raise BlockedError(
                        f"Block page with HTTP {status}", url=url, status_code=status
                    )
                last_error = FetchError(f"HTTP {status}", url=url, status_code=status)
                logger.warning(
                    "fetch_server_error",
                    url=url,
                    status_code=status,
                    attempt=attempt + 1,
                )
                await self._backoff(attempt)
                continue

            if status >= 400:
                logger.info("fetch_client_error", url=url, status_code=status)
                raise FetchError(f"HTTP {status}", url=url, status_code=status)

            if self._anti_detect.looks_blocked(response.text, status):
                logger.warning("fetch_blocked", url=url, status_code=status, reason="block_page")
                raise BlockedError("Block page served", url=url, status_code=status)

            return response

        logger.error(
            "fetch_retries_exhausted",
            url=url,
            attempts=self._max_retries + 1,
            error=str(last_error),
        )
        raise NetworkError(
            f"Request failed after {self._max_retries + 1} attempts", url=url
        ) from last_error

    async def _backoff(self, attempt: int) -> None:
        """Sleep before the next attempt; no sleep after the final one."""
        if attempt >= self._max_retries:
            return
        wait_time = self._base_backoff * (2 ** attempt)
        await asyncio.sleep(wait_time)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def fetch(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        """Fetch a document and return its text."""
        response = await self._request(url, params=params, headers=headers)
        return response.text

    async def fetch_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Fetch a structured API response.

        Raises:
            FetchError: If the body is not valid JSON.
        """
        merged = {"Accept": "application/json"}
        if headers:
            merged.update(headers)
        response = await self._request(url, params=params, headers=merged)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError("Response is not valid JSON", url=url) from e
