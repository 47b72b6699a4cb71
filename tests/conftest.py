"""
Pytest Configuration and Shared Fixtures

Provides stub providers, sample pages and a mock-transport domain validator
for all test modules.
"""

import pytest
from typing import Any, Dict, Iterable, List, Optional

import httpx

from aeo_engine.context.domain_validator import DomainValidator
from aeo_engine.context.models import BusinessLocation, BusinessProfile, TargetMarket
from aeo_engine.errors import ProviderCallFailed, ProviderUnavailable
from aeo_engine.integrations.base import (
    ContentRenderer,
    KeywordIntelligence,
    PageContent,
    PerformanceAudit,
    TextCompletion,
)


# ============================================================================
# Stub Providers
# ============================================================================

class StubTextCompletion(TextCompletion):
    """TextCompletion returning canned responses in order, or raising."""

    name = "anthropic"

    def __init__(self, responses: Optional[List[str]] = None, available: bool = True, error: Exception = None):
        self.responses = list(responses or [])
        self.available = available
        self.error = error
        self.prompts: List[str] = []

    def is_available(self) -> bool:
        return self.available

    async def complete(self, prompt: str, system: Optional[str] = None, max_tokens: int = 2000) -> str:
        if not self.available:
            raise ProviderUnavailable(self.name)
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if not self.responses:
            return ""
        return self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]


class StubKeywords(KeywordIntelligence):
    """KeywordIntelligence with fixed results and call counters."""

    name = "dataforseo"

    def __init__(
        self,
        organic: Optional[List[Dict[str, Any]]] = None,
        serp: Optional[List[Dict[str, Any]]] = None,
        gap: Optional[Dict[str, Any]] = None,
        available: bool = True,
        error: Exception = None,
    ):
        self.organic = organic or []
        self.serp = serp or []
        self.gap = gap or {}
        self.available = available
        self.error = error
        self.calls: List[str] = []

    def is_available(self) -> bool:
        return self.available

    async def organic_competitors(self, domain: str, limit: int = 20) -> List[Dict[str, Any]]:
        self.calls.append("organic_competitors")
        if self.error is not None:
            raise self.error
        return list(self.organic)

    async def keyword_gap(self, domain_a: str, domain_b: str) -> Dict[str, Any]:
        self.calls.append("keyword_gap")
        if self.error is not None:
            raise self.error
        return dict(self.gap)

    async def search_organic(self, query: str) -> List[Dict[str, Any]]:
        self.calls.append("search_organic")
        if self.error is not None:
            raise self.error
        return list(self.serp)


class StubRenderer(ContentRenderer):
    """ContentRenderer serving pages by host; unknown hosts fail."""

    def __init__(self, pages: Dict[str, PageContent], name: str = "http", available: bool = True):
        self.pages = pages
        self.name = name
        self.available = available
        self.fetched: List[str] = []

    def is_available(self) -> bool:
        return self.available

    async def fetch(self, url: str) -> PageContent:
        self.fetched.append(url)
        host = httpx.URL(url).host
        if host not in self.pages:
            raise ProviderCallFailed(f"Fetch failed for {url}", provider=self.name)
        page = self.pages[host]
        return PageContent(
            url=url,
            markdown=page.markdown,
            html=page.html,
            metadata=dict(page.metadata),
            renderer=self.name,
        )


class StubPerformance(PerformanceAudit):
    """PerformanceAudit returning one fixed audit for every URL."""

    name = "pagespeed"

    def __init__(self, audit: Optional[Dict[str, Any]] = None, available: bool = True):
        self.audit = audit
        self.available = available

    def is_available(self) -> bool:
        return self.available

    async def analyze(self, url: str) -> Dict[str, Any]:
        if self.audit is None:
            raise ProviderCallFailed("Audit failed", provider=self.name)
        return dict(self.audit)


# ============================================================================
# Helpers
# ============================================================================

def make_validator(live_hosts: Iterable[str] = (), status_code: int = 200) -> DomainValidator:
    """DomainValidator whose checks succeed only for `live_hosts` ("*" for all)."""
    live = set(live_hosts)

    def handler(request: httpx.Request) -> httpx.Response:
        if "*" in live or request.url.host in live:
            return httpx.Response(status_code)
        return httpx.Response(404)

    return DomainValidator(transport=httpx.MockTransport(handler))


SAMPLE_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>Acme HVAC | Heating and Air Conditioning in Charleston, SC</title>
  <meta name="description" content="Acme HVAC offers furnace repair, AC installation and heat pump service across Charleston. Call today for a free quote.">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <script type="application/ld+json">{"@type": "LocalBusiness", "name": "Acme HVAC"}</script>
</head>
<body>
  <h1>Heating and Cooling Experts in Charleston</h1>
  <p>Call (843) 555-0100 to book your service. Licensed and insured since 1998 with 500+ five-star reviews.</p>
  <h2>What does an AC tune-up include?</h2>
  <ul><li>Refrigerant check</li><li>Coil cleaning</li><li>Thermostat calibration</li></ul>
  <h2>Our Services</h2>
  <img src="/img/van.jpg" alt="Acme HVAC service van">
  <img src="/img/team.jpg">
  <a href="/services">Services</a>
  <a href="/contact">Contact us</a>
  <a href="https://facebook.com/acmehvac">Facebook</a>
</body>
</html>"""


SAMPLE_MARKDOWN = """# Heating and Cooling Experts in Charleston

Call (843) 555-0100 to book your service. Licensed and insured since 1998 with 500+ five-star reviews.

## What does an AC tune-up include?

- Refrigerant check
- Coil cleaning
- Thermostat calibration

## Our Services

Furnace repair, AC installation and heat pump service for your home.

## FAQ

### How often should you service your furnace?

Once a year, before the heating season starts.
"""


def make_page(url: str = "https://acme-hvac.com", renderer: str = "http") -> PageContent:
    return PageContent(
        url=url,
        markdown=SAMPLE_MARKDOWN,
        html=SAMPLE_HTML,
        metadata={
            "title": "Acme HVAC | Heating and Air Conditioning in Charleston, SC",
            "description": "Acme HVAC offers furnace repair, AC installation and heat pump service across Charleston.",
            "source_url": url,
        },
        renderer=renderer,
    )


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def sample_page() -> PageContent:
    """A realistic local-service homepage."""
    return make_page()


@pytest.fixture
def hvac_profile() -> BusinessProfile:
    """Profile of a local HVAC company in South Carolina."""
    return BusinessProfile(
        name="Acme HVAC",
        industry="HVAC",
        niche="Residential heating and cooling",
        primary_services=["HVAC repair", "AC installation"],
        target_market=TargetMarket.LOCAL,
        location=BusinessLocation(city="Charleston", state="SC", country="US"),
        keywords=["hvac repair charleston"],
    )


@pytest.fixture
def unlocated_profile() -> BusinessProfile:
    """Heuristic profile with no location and a generic industry."""
    return BusinessProfile(
        name="Acme Hvac",
        industry="General Business",
        primary_services=["Services"],
        keywords=["acme-hvac"],
    )


@pytest.fixture
def lighthouse_audit() -> Dict[str, Any]:
    """Parsed Lighthouse audit in the PerformanceAudit shape."""
    return {
        "scores": {"performance": 82, "accessibility": 91, "best_practices": 88, "seo": 95},
        "core_web_vitals": {"lcp": 2100, "fid": 80, "cls": 0.05, "fcp": 1200, "ttfb": 300, "si": 2500, "tti": 3200},
        "opportunities": [],
    }
