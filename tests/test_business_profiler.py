"""
Tests for BusinessProfiler and its parsing helpers
"""

import json

import pytest

from aeo_engine.context.business_profiler import (
    BusinessProfiler,
    business_name_from_title,
    parse_json_object,
)
from aeo_engine.context.models import BusinessProfile, BusinessType, TargetMarket
from aeo_engine.errors import ProviderCallFailed
from aeo_engine.integrations.base import PageContent
from aeo_engine.persistence.costs import CostLedger

from conftest import StubTextCompletion


AI_PROFILE = {
    "businessName": "Acme Heating & Air",
    "industry": "HVAC",
    "niche": "Residential heating and cooling",
    "primaryServices": ["AC repair", "Furnace installation"],
    "targetMarket": "Local",
    "location": {"city": "Charleston", "state": "SC", "country": "US", "serviceArea": "Lowcountry"},
    "businessType": "b2c",
    "keywords": ["ac repair charleston", ""],
    "competitorSearchQueries": ["hvac companies charleston sc"],
}


class TestAIProfile:
    """Test AI-backed profiling."""

    @pytest.mark.asyncio
    async def test_parses_json_profile(self, sample_page):
        ai = StubTextCompletion([f"Here is the profile:\n```json\n{json.dumps(AI_PROFILE)}\n```"])
        ledger = CostLedger()

        profile = await BusinessProfiler(ai).profile("https://www.acme-hvac.com/", sample_page, ledger)

        assert profile.name == "Acme Heating & Air"
        assert profile.industry == "HVAC"
        assert profile.primary_services == ["AC repair", "Furnace installation"]
        assert profile.target_market == TargetMarket.LOCAL
        assert profile.business_type == BusinessType.B2C
        assert profile.location.service_area == "Lowcountry"
        assert profile.location_text == "Charleston, SC"
        assert profile.keywords == ["ac repair charleston"]
        assert profile.search_queries == ["hvac companies charleston sc"]
        assert [(e.provider, e.operation) for e in ledger.entries] == [("anthropic", "business_profile")]

    @pytest.mark.asyncio
    async def test_prompt_carries_page_digest(self, sample_page):
        ai = StubTextCompletion([json.dumps(AI_PROFILE)])

        await BusinessProfiler(ai).profile("acme-hvac.com", sample_page)

        prompt = ai.prompts[0]
        assert "## Website: acme-hvac.com" in prompt
        assert "Title: Acme HVAC" in prompt
        assert "Headings: Heating and Cooling Experts in Charleston" in prompt

    @pytest.mark.asyncio
    async def test_markdown_only_page(self):
        page = PageContent(url="https://acme-hvac.com", markdown="# Acme HVAC\nAC repair in Charleston")
        ai = StubTextCompletion([json.dumps(AI_PROFILE)])

        profile = await BusinessProfiler(ai).profile("acme-hvac.com", page)

        assert profile.industry == "HVAC"
        assert "AC repair in Charleston" in ai.prompts[0]

    @pytest.mark.asyncio
    async def test_invalid_json_falls_back_but_costs(self, sample_page):
        ai = StubTextCompletion(["I could not determine the business."])
        ledger = CostLedger()

        profile = await BusinessProfiler(ai).profile("acme-hvac.com", sample_page, ledger)

        assert profile.industry == "General Business"
        assert profile.name == "Acme HVAC"
        assert ledger.total_cents > 0

    @pytest.mark.asyncio
    async def test_call_failure_falls_back(self, sample_page):
        ai = StubTextCompletion(error=ProviderCallFailed("overloaded", provider="anthropic"))
        ledger = CostLedger()

        profile = await BusinessProfiler(ai).profile("acme-hvac.com", sample_page, ledger)

        assert profile.industry == "General Business"
        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_unavailable_provider_not_called(self, sample_page):
        ai = StubTextCompletion([json.dumps(AI_PROFILE)], available=False)
        ledger = CostLedger()

        profile = await BusinessProfiler(ai).profile("acme-hvac.com", sample_page, ledger)

        assert profile.industry == "General Business"
        assert ai.prompts == []
        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_no_content_skips_ai(self):
        ai = StubTextCompletion([json.dumps(AI_PROFILE)])

        await BusinessProfiler(ai).profile("acme-hvac.com", None)

        assert ai.prompts == []


class TestHeuristicProfile:
    """Test the fallback profile."""

    @pytest.mark.asyncio
    async def test_name_from_title(self, sample_page):
        profile = await BusinessProfiler().profile("acme-hvac.com", sample_page)

        assert profile.name == "Acme HVAC"
        assert profile.industry == "General Business"
        assert profile.primary_services == ["Services"]
        assert profile.target_market == TargetMarket.UNKNOWN
        assert profile.location is None
        assert profile.keywords == ["acme-hvac"]

    @pytest.mark.asyncio
    async def test_name_from_domain(self):
        profile = await BusinessProfiler().profile("https://www.acme-hvac.com/contact", None)

        assert profile.name == "Acme Hvac"
        assert profile.keywords == ["acme-hvac"]

    @pytest.mark.asyncio
    async def test_primary_service_skips_placeholder(self):
        profile = await BusinessProfiler().profile("acme-hvac.com", None)
        assert profile.primary_service == "General Business"


class TestHelpers:
    """Test title and JSON parsing helpers."""

    @pytest.mark.parametrize("title,expected", [
        ("Acme HVAC | Charleston, SC", "Acme HVAC"),
        ("Acme HVAC - Heating and Air", "Acme HVAC"),
        ("Acme HVAC – Heating and Air", "Acme HVAC"),
        ("Acme HVAC|Home", "Acme HVAC"),
        ("Smith &amp; Sons Plumbing", "Smith & Sons Plumbing"),
        ("Well-Known Roofing", "Well-Known Roofing"),
        ("", ""),
        (None, ""),
    ])
    def test_business_name_from_title(self, title, expected):
        assert business_name_from_title(title) == expected

    def test_parse_json_object(self):
        assert parse_json_object('Sure! {"industry": "HVAC"} Hope that helps.') == {"industry": "HVAC"}
        assert parse_json_object("```json\n{\"a\": {\"b\": 1}}\n```") == {"a": {"b": 1}}

    def test_parse_json_object_rejects(self):
        assert parse_json_object(None) is None
        assert parse_json_object("no json here") is None
        assert parse_json_object("{not valid}") is None

    def test_profile_round_trip(self):
        profile = BusinessProfile.from_dict(AI_PROFILE)
        assert BusinessProfile.from_dict(profile.to_dict()) == profile
