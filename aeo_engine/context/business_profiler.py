"""
Business Profiler

Extracts a structured BusinessProfile from a homepage:
- Claude reads a condensed digest of the page and returns JSON
- When AI is unavailable or its answer is unusable, a deterministic heuristic
  builds a minimal profile from the page title and domain

The profile drives industry classification and every competitor tier.
"""

import html as html_lib
import json
import logging
import re
from typing import Any, Dict, Optional, TYPE_CHECKING

from aeo_engine.errors import ProviderCallFailed, ProviderUnavailable
from aeo_engine.integrations.base import PageContent
from aeo_engine.integrations.content import extract_relevant_content
from aeo_engine.utils.domain_filter import normalize_domain, strip_tld
from .models import BusinessProfile, BusinessType, TargetMarket

if TYPE_CHECKING:
    from aeo_engine.integrations.base import TextCompletion
    from aeo_engine.persistence.costs import CostLedger

logger = logging.getLogger(__name__)


# =============================================================================
# PROMPTS
# =============================================================================


PROFILE_SYSTEM_PROMPT = """You are a business analyst. You read website content and describe the business behind it precisely. Answer with JSON only."""


PROFILE_USER_PROMPT = """Analyze this website and describe the business.

## Website: {domain}

{content}

---

Return a JSON object:
```json
{{
    "businessName": "Company name",
    "industry": "Industry (e.g. HVAC, Plumbing, SaaS)",
    "niche": "Specific niche",
    "primaryServices": ["service1", "service2"],
    "targetMarket": "local|regional|national",
    "location": {{"city": "...", "state": "...", "country": "...", "serviceArea": "..."}},
    "businessType": "B2B|B2C|both",
    "keywords": ["keyword1", "keyword2"],
    "competitorSearchQueries": ["query that would find competitors"]
}}
```

Use null for location fields you cannot determine."""


class BusinessProfiler:
    """
    Builds a BusinessProfile from page content.

    Uses AI when a text-completion provider is available, with a heuristic
    fallback that never fails.
    """

    def __init__(self, text_completion: Optional["TextCompletion"] = None):
        self.text_completion = text_completion

    async def profile(
        self,
        domain: str,
        page: Optional[PageContent] = None,
        ledger: Optional["CostLedger"] = None,
    ) -> BusinessProfile:
        """
        Profile the business behind a domain.

        Args:
            domain: Subject domain or URL
            page: Fetched homepage (None when the fetch failed)
            ledger: Cost ledger for the run (optional)

        Returns:
            BusinessProfile (heuristic when AI is unavailable or fails)
        """
        host = normalize_domain(domain)
        logger.info(f"Profiling business for: {host}")

        content = extract_relevant_content(page.html) if page and page.html else ""
        if not content and page and page.markdown:
            content = page.markdown[:3000]

        if content and self.text_completion and self.text_completion.is_available():
            ai_profile = await self._profile_with_ai(host, content, ledger)
            if ai_profile:
                logger.info(
                    f"AI profile for {host}: {ai_profile.name} ({ai_profile.industry}, "
                    f"{ai_profile.target_market.value})"
                )
                return ai_profile

        profile = self._heuristic_profile(host, page)
        logger.info(f"Heuristic profile for {host}: {profile.name}")
        return profile

    async def _profile_with_ai(
        self,
        domain: str,
        content: str,
        ledger: Optional["CostLedger"],
    ) -> Optional[BusinessProfile]:
        """Ask the AI for a JSON profile. Returns None on any failure."""
        try:
            response = await self.text_completion.complete(
                PROFILE_USER_PROMPT.format(domain=domain, content=content),
                system=PROFILE_SYSTEM_PROMPT,
                max_tokens=1500,
            )
        except ProviderUnavailable:
            return None
        except ProviderCallFailed as e:
            logger.warning(f"AI business profiling failed for {domain}: {e}")
            return None

        if ledger is not None:
            ledger.record("anthropic", "business_profile")

        data = parse_json_object(response)
        if not data:
            logger.warning(f"AI business profile for {domain} was not valid JSON")
            return None

        return BusinessProfile.from_dict(data)

    def _heuristic_profile(self, domain: str, page: Optional[PageContent]) -> BusinessProfile:
        """Fallback profile: name from the title, keywords from the domain."""
        title = ""
        if page:
            title = page.title or ""
        name = business_name_from_title(title) or strip_tld(domain).replace("-", " ").title() or domain

        return BusinessProfile(
            name=name,
            industry="General Business",
            niche="Unknown",
            primary_services=["Services"],
            target_market=TargetMarket.UNKNOWN,
            location=None,
            business_type=BusinessType.UNKNOWN,
            keywords=[strip_tld(domain)] if strip_tld(domain) else [],
        )


def business_name_from_title(title: Optional[str]) -> str:
    """First segment of a page title, split on | and - ("Acme HVAC | Charleston" -> "Acme HVAC")."""
    if not title:
        return ""
    first = re.split(r"\s[|\-–]\s|\|", html_lib.unescape(title))[0]
    return first.strip()


def parse_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Extract the first JSON object from a model response."""
    if not text:
        return None
    json_match = re.search(r"\{[\s\S]*\}", text)
    if not json_match:
        return None
    try:
        data = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        logger.debug(f"JSON object parse failed: {e}")
        return None
    return data if isinstance(data, dict) else None
