"""
Firecrawl API Client

JS-rendering content renderer used as the rich fetch path.

Firecrawl handles:
- JavaScript rendering
- Anti-bot bypass
- Clean markdown output alongside raw html

API: https://firecrawl.dev
Pricing: ~$0.001/page
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from aeo_engine.errors import ProviderCallFailed, ProviderUnavailable
from .base import ContentRenderer, PageContent

logger = logging.getLogger(__name__)


class FirecrawlError(ProviderCallFailed):
    """Custom exception for Firecrawl API errors."""

    def __init__(self, message: str, status_code: int = None, response: dict = None):
        super().__init__(message, provider="firecrawl", status_code=status_code, response=response)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 1
    initial_delay: float = 1.0
    max_delay: float = 5.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)


class FirecrawlClient(ContentRenderer):
    """
    Async client for Firecrawl API.

    Usage:
        client = FirecrawlClient(api_key="your_api_key")

        page = await client.fetch("https://example.com")
        # page.markdown, page.html, page.metadata["title"]

        await client.close()
    """

    name = "firecrawl"
    BASE_URL = "https://api.firecrawl.dev/v1"

    def __init__(
        self,
        api_key: Optional[str],
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 15.0,
        enabled: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Firecrawl client.

        Args:
            api_key: Firecrawl API key. Without one the client reports unavailable.
            retry_config: Retry configuration (optional)
            timeout: Request timeout in seconds
            enabled: Feature switch (FIRECRAWL_ENABLED)
            transport: Custom httpx transport (tests)
        """
        self.api_key = api_key
        self.enabled = enabled
        self.retry_config = retry_config or RetryConfig()

        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Bearer {api_key or ''}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        self._closed = False

    def is_available(self) -> bool:
        return self.enabled and bool(self.api_key) and not self._closed

    async def fetch(self, url: str) -> PageContent:
        """Render a URL with JavaScript and return markdown, html and metadata."""
        if not self.is_available():
            raise ProviderUnavailable(self.name)

        result = await self.scrape_url(
            url,
            formats=["markdown", "html"],
            only_main_content=True,
            wait_for=2000,
        )

        if not isinstance(result, dict):
            raise FirecrawlError("Unexpected response shape")
        if not result.get("success"):
            raise FirecrawlError(
                f"Scrape failed: {result.get('error', 'unknown error')}",
                response=result,
            )

        data = result.get("data") or {}
        metadata = data.get("metadata") or {}
        return PageContent(
            url=url,
            markdown=data.get("markdown") or "",
            html=data.get("html") or "",
            metadata={
                "title": metadata.get("title") or "",
                "description": metadata.get("description") or "",
                "language": metadata.get("language"),
                "source_url": metadata.get("sourceURL") or url,
                "status_code": metadata.get("statusCode"),
            },
            renderer=self.name,
        )

    async def scrape_url(
        self,
        url: str,
        formats: List[str] = None,
        only_main_content: bool = True,
        wait_for: int = None,
    ) -> Dict[str, Any]:
        """
        Scrape a single URL.

        Args:
            url: URL to scrape
            formats: Output formats (markdown, html, rawHtml, links, screenshot)
            only_main_content: Extract only main content (no nav/footer)
            wait_for: Wait time in ms for JS rendering

        Returns:
            {
                "success": bool,
                "data": {
                    "markdown": "...",
                    "html": "...",
                    "metadata": {"title": "...", "description": "...", "sourceURL": "..."}
                }
            }
        """
        if self._closed:
            raise FirecrawlError("Client has been closed")

        payload = {
            "url": url,
            "formats": formats or ["markdown"],
            "onlyMainContent": only_main_content,
        }
        if wait_for:
            payload["waitFor"] = wait_for

        return await self._request_with_retry("/scrape", payload)

    async def _request_with_retry(
        self,
        endpoint: str,
        payload: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Make request with retry logic."""
        config = self.retry_config
        last_exception = None

        for attempt in range(config.max_retries + 1):
            try:
                response = await self._client.post(endpoint, json=payload)

                if response.status_code >= 400:
                    try:
                        error_data = response.json() if response.content else {}
                    except ValueError:
                        error_data = {}

                    if response.status_code in config.retryable_status_codes:
                        last_exception = FirecrawlError(
                            f"API error: {response.status_code}",
                            status_code=response.status_code,
                            response=error_data,
                        )
                        # Will retry
                    else:
                        raise FirecrawlError(
                            f"API error: {error_data.get('error', response.status_code)}",
                            status_code=response.status_code,
                            response=error_data,
                        )
                else:
                    try:
                        return response.json()
                    except ValueError:
                        raise FirecrawlError(
                            "Invalid JSON response",
                            status_code=response.status_code,
                        )

            except httpx.TimeoutException as e:
                last_exception = FirecrawlError(f"Request timed out: {e}")
            except httpx.RequestError as e:
                last_exception = FirecrawlError(f"Request failed: {e}")

            if attempt < config.max_retries:
                delay = min(
                    config.initial_delay * (config.exponential_base**attempt),
                    config.max_delay,
                )
                logger.warning(
                    f"Firecrawl request failed, retrying in {delay:.1f}s "
                    f"(attempt {attempt + 1}/{config.max_retries + 1})"
                )
                await asyncio.sleep(delay)

        raise last_exception

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
