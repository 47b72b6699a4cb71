"""
Provider Configuration

Builds the concrete capability providers from Settings and manages their
lifecycle. Providers are created lazily on first access; unconfigured ones
are still returned and simply report `is_available() == False`.

Environment variables (all optional):
- ANTHROPIC_API_KEY, CLAUDE_MODEL: text completion
- FIRECRAWL_API_KEY, FIRECRAWL_ENABLED: JS-rendering fetches
- DATAFORSEO_LOGIN, DATAFORSEO_PASSWORD: keyword intelligence
- PAGESPEED_API_KEY, PAGESPEED_ENABLED: performance audits
"""

import logging
from typing import List, Optional

from aeo_engine.analyzer.client import ClaudeClient
from aeo_engine.collector.client import DataForSEOClient
from aeo_engine.context.domain_validator import DomainValidator
from aeo_engine.utils.config import Settings, get_settings
from .base import CapabilityProvider
from .content import ContentFetcher
from .firecrawl import FirecrawlClient
from .http_fetch import HttpContentRenderer
from .pagespeed import PageSpeedClient

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Factory and manager for capability providers.

    Usage:
        registry = ProviderRegistry()

        if registry.claude.is_available():
            text = await registry.claude.complete("...")

        # Cleanup
        await registry.close()
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Args:
            settings: Application settings (defaults to get_settings())
        """
        self.settings = settings or get_settings()
        self._claude: Optional[ClaudeClient] = None
        self._firecrawl: Optional[FirecrawlClient] = None
        self._http: Optional[HttpContentRenderer] = None
        self._dataforseo: Optional[DataForSEOClient] = None
        self._pagespeed: Optional[PageSpeedClient] = None
        self._validator: Optional[DomainValidator] = None
        self._fetcher: Optional[ContentFetcher] = None

    @property
    def claude(self) -> ClaudeClient:
        """Get or create the Claude client."""
        if self._claude is None:
            self._claude = ClaudeClient(
                api_key=self.settings.ANTHROPIC_API_KEY,
                model=self.settings.CLAUDE_MODEL,
                timeout=self.settings.AI_TIMEOUT,
            )
            logger.info("Initialized Claude client")
        return self._claude

    @property
    def firecrawl(self) -> FirecrawlClient:
        """Get or create the Firecrawl client."""
        if self._firecrawl is None:
            self._firecrawl = FirecrawlClient(
                api_key=self.settings.FIRECRAWL_API_KEY,
                timeout=self.settings.FETCH_TIMEOUT,
                enabled=self.settings.FIRECRAWL_ENABLED,
            )
            logger.info("Initialized Firecrawl client")
        return self._firecrawl

    @property
    def http(self) -> HttpContentRenderer:
        """Get or create the plain HTTP renderer."""
        if self._http is None:
            self._http = HttpContentRenderer(timeout=self.settings.FETCH_TIMEOUT)
        return self._http

    @property
    def dataforseo(self) -> DataForSEOClient:
        """Get or create the DataForSEO client."""
        if self._dataforseo is None:
            self._dataforseo = DataForSEOClient(
                login=self.settings.DATAFORSEO_LOGIN,
                password=self.settings.DATAFORSEO_PASSWORD,
                timeout=self.settings.API_TIMEOUT,
                location_code=self.settings.DATAFORSEO_LOCATION_CODE,
                language_code=self.settings.DATAFORSEO_LANGUAGE_CODE,
            )
            logger.info("Initialized DataForSEO client")
        return self._dataforseo

    @property
    def pagespeed(self) -> PageSpeedClient:
        """Get or create the PageSpeed client."""
        if self._pagespeed is None:
            self._pagespeed = PageSpeedClient(
                api_key=self.settings.PAGESPEED_API_KEY,
                timeout=self.settings.PAGESPEED_TIMEOUT,
                enabled=self.settings.PAGESPEED_ENABLED,
            )
            logger.info("Initialized PageSpeed client")
        return self._pagespeed

    @property
    def validator(self) -> DomainValidator:
        """Get or create the domain validator."""
        if self._validator is None:
            self._validator = DomainValidator(
                timeout=self.settings.VALIDATION_TIMEOUT,
                concurrency=self.settings.VALIDATION_CONCURRENCY,
            )
        return self._validator

    @property
    def content_fetcher(self) -> ContentFetcher:
        """Rich-then-plain content fetcher."""
        if self._fetcher is None:
            self._fetcher = ContentFetcher(
                rich=self.firecrawl,
                plain=self.http,
                timeout=self.settings.FETCH_TIMEOUT,
            )
        return self._fetcher

    def log_status(self):
        """Log which providers are available."""
        providers: List[CapabilityProvider] = [self.claude, self.firecrawl, self.dataforseo, self.pagespeed]
        logger.info(
            "Provider status: " + ", ".join(
                f"{p.name}={'enabled' if p.is_available() else 'disabled'}" for p in providers
            )
        )

    async def close(self):
        """Close all created providers."""
        for attr in ("_claude", "_firecrawl", "_http", "_dataforseo", "_pagespeed", "_validator"):
            provider = getattr(self, attr)
            if provider is not None:
                await provider.close()
                setattr(self, attr, None)
        self._fetcher = None

        logger.info("Closed capability providers")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
