"""HTTP page fetcher for submitted URLs."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

import httpx

from contentflow.core.config import DEFAULT_USER_AGENT
from contentflow.exceptions import FetchError

logger = logging.getLogger(__name__)


class PageFetcher:
    """Retrieve raw HTML for a URL with a bounded timeout.

    Sends a desktop-browser User-Agent so fewer sites answer with an
    anti-bot page. There is no retry at this layer.

    Usage:
        fetcher = PageFetcher()
        html = await fetcher.fetch("https://example.com/post")
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._transport = transport

    async def fetch(self, url: str) -> str:
        """Fetch HTML content from a URL.

        Args:
            url: Absolute http(s) URL.

        Returns:
            Response body decoded as text.

        Raises:
            FetchError: On a non-http(s) URL, timeout, network failure or
                non-2xx status.
        """
        if urlparse(url).scheme not in ("http", "https"):
            raise FetchError("Invalid URL protocol", url)

        logger.info("Fetching %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    url,
                    headers={"User-Agent": self.user_agent},
                )
                response.raise_for_status()
                html = response.text
        except httpx.TimeoutException as e:
            raise FetchError(
                f"Request timed out after {self.timeout_seconds:g}s", url, e
            ) from e
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"HTTP error {e.response.status_code}: {e.response.reason_phrase}",
                url,
                e,
            ) from e
        except httpx.RequestError as e:
            raise FetchError(f"Request failed: {e}", url, e) from e

        logger.info("Fetched %s (%d chars)", url, len(html))
        return html
