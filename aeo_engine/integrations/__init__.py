"""
External API Integrations

Capability interfaces and the clients that implement them:
- Base: TextCompletion, ContentRenderer, KeywordIntelligence, PerformanceAudit
- Firecrawl: JS-rendering scraping (rich fetch path)
- HTTP: plain GET fallback renderer
- PageSpeed: Lighthouse performance audits
- Content: rich-then-plain fetcher and on-page element extraction

ProviderRegistry lives in `aeo_engine.integrations.config`.
"""

from .base import (
    PageContent,
    CapabilityProvider,
    TextCompletion,
    ContentRenderer,
    KeywordIntelligence,
    PerformanceAudit,
)
from .firecrawl import FirecrawlClient, FirecrawlError
from .http_fetch import HttpContentRenderer
from .pagespeed import PageSpeedClient, PageSpeedError, parse_lighthouse
from .content import (
    ContentFetcher,
    SeoElements,
    extract_seo_elements,
    extract_relevant_content,
)

__all__ = [
    # Interfaces
    "PageContent",
    "CapabilityProvider",
    "TextCompletion",
    "ContentRenderer",
    "KeywordIntelligence",
    "PerformanceAudit",
    # Firecrawl
    "FirecrawlClient",
    "FirecrawlError",
    # HTTP
    "HttpContentRenderer",
    # PageSpeed
    "PageSpeedClient",
    "PageSpeedError",
    "parse_lighthouse",
    # Content
    "ContentFetcher",
    "SeoElements",
    "extract_seo_elements",
    "extract_relevant_content",
]
