"""
Capability Interfaces

The engine talks to external services only through these narrow interfaces.
Every provider exposes `is_available()`; callers treat an unavailable provider
as "skip this contribution", never as an error.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class PageContent:
    """Rendered page content in the shape every ContentRenderer returns."""
    url: str
    markdown: str = ""
    html: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    renderer: str = "unknown"

    @property
    def title(self) -> str:
        return self.metadata.get("title") or ""

    @property
    def description(self) -> str:
        return self.metadata.get("description") or ""


class CapabilityProvider(ABC):
    """Base class for all capability providers."""

    name: str = "provider"

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the provider is configured and enabled."""

    async def close(self):
        """Release network resources. No-op by default."""


class TextCompletion(CapabilityProvider):
    """Free-text AI completion."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 2000,
    ) -> str:
        """
        Complete a prompt.

        Raises:
            ProviderUnavailable: Provider not configured
            ProviderCallFailed: The call failed or timed out
        """


class ContentRenderer(CapabilityProvider):
    """Fetches a page and returns markdown, html and metadata."""

    @abstractmethod
    async def fetch(self, url: str) -> PageContent:
        """
        Fetch and render a URL.

        Raises:
            ProviderUnavailable: Provider not configured
            ProviderCallFailed: The fetch failed or timed out
        """


class KeywordIntelligence(CapabilityProvider):
    """Search-data provider: overlap competitors, keyword gaps, organic SERPs."""

    @abstractmethod
    async def organic_competitors(self, domain: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Domains sharing the most organic keywords: [{domain, overlap_count, traffic_estimate, keyword_count}]."""

    @abstractmethod
    async def keyword_gap(self, domain_a: str, domain_b: str) -> Dict[str, Any]:
        """Keyword gap between two domains."""

    @abstractmethod
    async def search_organic(self, query: str) -> List[Dict[str, Any]]:
        """Organic search results: [{domain, title, description}]."""


class PerformanceAudit(CapabilityProvider):
    """Page performance audits (Lighthouse-style)."""

    @abstractmethod
    async def analyze(self, url: str) -> Dict[str, Any]:
        """Audit a URL: {scores, core_web_vitals, opportunities}."""
