"""Async HTTP client for web search APIs with rate limiting."""

import asyncio
import logging
import time
from typing import Any

import httpx

from ..errors import WebSearchError
from ..settings import MAX_RETRIES, RETRY_BACKOFF_FACTOR, SEARCH_REQUESTS_PER_SECOND

logger = logging.getLogger(__name__)


class RateLimiter:
    """Minimum-interval rate limiter."""

    def __init__(self, requests_per_second: float):
        self.requests_per_second = requests_per_second
        self.min_interval = 1.0 / requests_per_second
        self.last_request_time = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until we can make another request."""
        async with self._lock:
            now = time.monotonic()
            time_since_last = now - self.last_request_time
            if time_since_last < self.min_interval:
                await asyncio.sleep(self.min_interval - time_since_last)
            self.last_request_time = time.monotonic()


class WebSearchClient:
    """Async JSON client for a bearer-token search API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        requests_per_second: float = SEARCH_REQUESTS_PER_SECOND,
        timeout: float = 30.0,
        max_retries: int = MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.max_retries = max_retries
        self.timeout = timeout
        self.rate_limiter = RateLimiter(requests_per_second)
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "WebSearchClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a request with rate limiting and exponential backoff retry."""
        last_exception: Exception | None = None
        last_response: httpx.Response | None = None

        for attempt in range(self.max_retries):
            await self.rate_limiter.acquire()
            logger.debug(f"Request attempt {attempt + 1}/{self.max_retries}: {method} {url}")

            try:
                response = await self.client.request(method, url, **kwargs)
                last_response = response
                logger.debug(f"Response status: {response.status_code}")

                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", 0))
                    backoff = max(retry_after, RETRY_BACKOFF_FACTOR ** (attempt + 1))
                    logger.warning(f"Rate limited (429), waiting {backoff}s (attempt {attempt + 1})")
                    await asyncio.sleep(backoff)
                    continue

                if response.status_code in (500, 502, 503, 504):
                    backoff = RETRY_BACKOFF_FACTOR ** attempt
                    logger.warning(f"Server error ({response.status_code}), backoff {backoff}s")
                    await asyncio.sleep(backoff)
                    continue

                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                logger.error(f"HTTP error: {e.response.status_code} - {e.response.text[:200]}")
                raise WebSearchError(
                    f"Search request failed with status {e.response.status_code}: "
                    f"{e.response.text[:200]}"
                ) from e

            except (httpx.ConnectError, httpx.ReadTimeout) as e:
                last_exception = e
                backoff = RETRY_BACKOFF_FACTOR ** attempt
                logger.warning(f"Connection error: {e}, backoff {backoff}s")
                await asyncio.sleep(backoff)
                continue

        logger.error(f"Request failed after {self.max_retries} retries")
        if last_exception:
            raise WebSearchError(f"Search request failed: {last_exception}") from last_exception
        if last_response is not None:
            raise WebSearchError(
                f"Search request failed with status {last_response.status_code}: "
                f"{last_response.text[:200]}"
            )
        raise WebSearchError("Search request failed after all retries")

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make a POST request."""
        return await self._request_with_retry("POST", url, **kwargs)
