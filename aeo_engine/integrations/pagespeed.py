"""
Google PageSpeed Insights Client

Performance-audit provider. Runs Lighthouse through the PageSpeed Insights v5
API and returns category scores (0-100), Core Web Vitals and the largest
improvement opportunities.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from aeo_engine.errors import ProviderCallFailed, ProviderUnavailable
from .base import PerformanceAudit

logger = logging.getLogger(__name__)


class PageSpeedError(ProviderCallFailed):
    """PageSpeed Insights API error."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message, provider="pagespeed", status_code=status_code)


CATEGORIES = ("performance", "accessibility", "best-practices", "seo")

# Lighthouse audit id -> metric key
METRIC_AUDITS = {
    "lcp": "largest-contentful-paint",
    "fid": "max-potential-fid",
    "cls": "cumulative-layout-shift",
    "fcp": "first-contentful-paint",
    "ttfb": "server-response-time",
    "si": "speed-index",
    "tti": "interactive",
}


def parse_lighthouse(lighthouse: Dict[str, Any], max_items: int = 5) -> Dict[str, Any]:
    """Convert a raw lighthouseResult into {scores, core_web_vitals, opportunities}."""
    categories = lighthouse.get("categories") or {}

    def category_score(key: str) -> int:
        return round(((categories.get(key) or {}).get("score") or 0) * 100)

    scores = {
        "performance": category_score("performance"),
        "accessibility": category_score("accessibility"),
        "best_practices": category_score("best-practices"),
        "seo": category_score("seo"),
    }

    audits = lighthouse.get("audits") or {}
    core_web_vitals = {
        key: (audits.get(audit_id) or {}).get("numericValue") or 0
        for key, audit_id in METRIC_AUDITS.items()
    }

    opportunities: List[Dict[str, Any]] = []
    for audit_id, audit in audits.items():
        details = audit.get("details") or {}
        score = audit.get("score")
        if details.get("type") == "opportunity" and score is not None and score < 1:
            opportunities.append({
                "id": audit.get("id", audit_id),
                "title": audit.get("title", ""),
                "description": audit.get("description", ""),
                "savings_ms": details.get("overallSavingsMs") or 0,
            })
    opportunities.sort(key=lambda o: o["savings_ms"], reverse=True)

    return {
        "scores": scores,
        "core_web_vitals": core_web_vitals,
        "opportunities": opportunities[:max_items],
    }


class PageSpeedClient(PerformanceAudit):
    """
    Async client for the PageSpeed Insights API.

    Usage:
        client = PageSpeedClient(api_key="...")
        audit = await client.analyze("https://example.com")
        audit["scores"]["performance"]  # 0-100
    """

    name = "pagespeed"
    API_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 60.0,
        strategy: str = "mobile",
        enabled: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.strategy = strategy
        self.enabled = enabled
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport)

    def is_available(self) -> bool:
        return self.enabled and bool(self.api_key)

    async def analyze(self, url: str) -> Dict[str, Any]:
        """
        Audit a URL.

        Raises:
            ProviderUnavailable: No API key configured
            PageSpeedError: API error or missing Lighthouse result
        """
        if not self.is_available():
            raise ProviderUnavailable(self.name)

        params = [
            ("url", url),
            ("key", self.api_key),
            ("strategy", self.strategy),
        ] + [("category", category) for category in CATEGORIES]

        logger.info(f"PageSpeed audit for {url} ({self.strategy})")

        try:
            response = await self._client.get(self.API_URL, params=params)
        except httpx.TimeoutException as e:
            raise PageSpeedError(f"Request timed out: {e}")
        except httpx.RequestError as e:
            raise PageSpeedError(f"Request failed: {e}")

        if response.status_code != 200:
            raise PageSpeedError(f"API error: {response.status_code}", status_code=response.status_code)

        try:
            body = response.json()
        except ValueError:
            raise PageSpeedError("Invalid JSON response", status_code=response.status_code)

        lighthouse = body.get("lighthouseResult") if isinstance(body, dict) else None
        if not lighthouse:
            raise PageSpeedError("No Lighthouse result in response")

        audit = parse_lighthouse(lighthouse)
        logger.info(f"PageSpeed complete for {url}: performance {audit['scores']['performance']}")
        return audit

    async def close(self):
        await self._client.aclose()
