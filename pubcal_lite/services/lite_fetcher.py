"""HTTP client for downloading publisher ICS calendars - pubcal_lite."""

import asyncio
import logging
import random
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from ..core.exceptions import (
    LiteICSFetchError,
    LiteICSHTTPError,
    LiteICSNetworkError,
    LiteICSTimeoutError,
)

logger = logging.getLogger(__name__)

# Backoff calculation constants
MAX_BACKOFF_SECONDS = 30.0
JITTER_MIN_FACTOR = 0.1
JITTER_MAX_FACTOR = 0.3

ICS_REQUEST_HEADERS = {
    "Accept": "text/calendar, text/plain, */*",
    "User-Agent": "pubcal-lite/ICS-fetcher",
}


def is_fetchable_url(url: str) -> bool:
    """Return True for http(s) URLs that name a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


class LiteICSFetcher:
    """Async HTTP client for downloading ICS calendar files."""

    def __init__(self, settings: Any, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize ICS fetcher.

        Args:
            settings: Config (or any object) providing request_timeout, max_retries
                and retry_backoff_factor
            client: Optional externally owned HTTP client; it is never closed here
        """
        self.settings = settings
        self.client: Optional[httpx.AsyncClient] = client
        self._owns_client = client is None

        logger.debug("Lite ICS fetcher initialized (external client: %s)", not self._owns_client)

    async def __aenter__(self) -> "LiteICSFetcher":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self.client is not None and self._owns_client:
            if not self.client.is_closed:
                await self.client.aclose()
                logger.debug("Closed HTTP client")
            self.client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None or self.client.is_closed:
            request_timeout = float(getattr(self.settings, "request_timeout", 10))
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(request_timeout),
                follow_redirects=True,
                headers=ICS_REQUEST_HEADERS,
            )
            self._owns_client = True
        return self.client

    async def fetch_ics(self, url: str) -> str:
        """Download ICS text from ``url``.

        Args:
            url: http(s) URL of the calendar

        Returns:
            Response body as text

        Raises:
            LiteICSFetchError: URL is not an http(s) URL with a hostname
            LiteICSHTTPError: Server answered with an error status (not retried)
            LiteICSTimeoutError: Every attempt timed out
            LiteICSNetworkError: Every attempt failed with a network error
        """
        if not is_fetchable_url(url):
            logger.error("Refusing to fetch non-HTTP(S) calendar URL: %s", url)
            raise LiteICSFetchError(f"Unsupported calendar URL: {url}")

        client = self._ensure_client()
        logger.debug("Fetching ICS from %s", url)

        try:
            response = await self._make_request_with_retry(client, url)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("HTTP error fetching ICS from %s: %s", url, status)
            raise LiteICSHTTPError(
                f"HTTP {status}: {e.response.reason_phrase}", status_code=status
            ) from e
        except httpx.TimeoutException as e:
            logger.error("Timeout fetching ICS from %s", url)
            raise LiteICSTimeoutError(f"Request timeout fetching {url}") from e
        except httpx.TransportError as e:
            logger.error("Network error fetching ICS from %s: %s", url, e)
            raise LiteICSNetworkError(f"Network error: {e}") from e

        return response.text

    def _calculate_backoff(self, attempt: int, backoff_factor: float) -> float:
        """Exponential backoff with jitter, capped at MAX_BACKOFF_SECONDS."""
        base_backoff = min(backoff_factor**attempt, MAX_BACKOFF_SECONDS)
        jitter = random.uniform(JITTER_MIN_FACTOR, JITTER_MAX_FACTOR) * base_backoff  # nosec B311 - jitter not cryptographic
        return base_backoff + jitter

    async def _make_request_with_retry(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        """GET with retries for timeouts and network errors; HTTP status errors are raised at once."""
        max_retries = int(getattr(self.settings, "max_retries", 2))
        backoff_factor = float(getattr(self.settings, "retry_backoff_factor", 1.5))

        attempt = 0
        while True:
            try:
                response = await client.get(url)
                response.raise_for_status()
                logger.debug(
                    "Successfully fetched ICS from %s (attempt %d) - %d bytes",
                    url,
                    attempt + 1,
                    len(response.content),
                )
                return response

            except (httpx.TimeoutException, httpx.TransportError) as e:
                if attempt >= max_retries:
                    logger.warning("All %d attempts failed for %s", attempt + 1, url)
                    raise

                backoff_time = self._calculate_backoff(attempt, backoff_factor)
                logger.warning(
                    "Request failed (attempt %s/%s), retrying in %.1fs: %s",
                    attempt + 1,
                    max_retries + 1,
                    backoff_time,
                    e,
                )
                await asyncio.sleep(backoff_time)
                attempt += 1
