"""
Context Package

Everything the engine learns about a subject before analysis starts:
- Business profiling from the subject's homepage
- Industry classification
- Tiered competitor resolution with live domain validation

Usage:
    from aeo_engine.context import BusinessProfiler, CompetitorResolver, DomainValidator, Scope

    profile = await BusinessProfiler(claude).profile("acme-hvac.com", page)
    resolver = CompetitorResolver(DomainValidator(), text_completion=claude, keywords=dataforseo)
    candidates = await resolver.resolve("acme-hvac.com", profile, Scope.LOCAL)
"""

# Core models
from .models import (
    Scope,
    TargetMarket,
    BusinessType,
    CandidateSource,
    BusinessLocation,
    BusinessProfile,
    CompetitorCandidate,
)

# Industry classification
from .industry import (
    DEFAULT_INDUSTRY,
    classify_text,
    detect_industry,
    industry_from_domain,
    normalize_state,
)

# Business profiling
from .business_profiler import BusinessProfiler

# Domain validation
from .domain_validator import DomainValidator

# Competitor resolution
from .competitor_discovery import (
    CompetitorResolver,
    ResolutionTier,
    TierOutcome,
    discover_competitors,
)

__all__ = [
    # Models
    "Scope",
    "TargetMarket",
    "BusinessType",
    "CandidateSource",
    "BusinessLocation",
    "BusinessProfile",
    "CompetitorCandidate",
    # Industry
    "DEFAULT_INDUSTRY",
    "classify_text",
    "detect_industry",
    "industry_from_domain",
    "normalize_state",
    # Profiling
    "BusinessProfiler",
    # Validation
    "DomainValidator",
    # Resolution
    "CompetitorResolver",
    "ResolutionTier",
    "TierOutcome",
    "discover_competitors",
]
