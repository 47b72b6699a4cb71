"""
Competitor Resolution

Discovers real, live competitor domains from partial and unreliable signals
through an ordered list of tiers:

1. ai_suggested         (local)    AI names top local companies
2. serp                 (local)    Organic search results for "{service} companies {location}"
3. local_directory      (local)    Curated local table, only if tiers 1-2 found nothing
4. organic_competitors  (national) Keyword-overlap competitors; stops the chain at 3+
5. industry_directory   (both)     Curated national table by industry
6. guaranteed           (both)     Pre-vetted brands, only if everything else found nothing

A single driver loop runs the tiers in order until the target count is
reached. Every proposal passes through the same admission step: dedup by
normalized domain, blacklist and self-domain rejection, then a liveness check
(except for the guaranteed tier). A failing tier is logged and yields nothing;
resolve() never raises.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, FrozenSet, List, Optional, Set, TYPE_CHECKING

from aeo_engine.errors import ProviderUnavailable
from aeo_engine.utils.domain_filter import (
    domains_match,
    filter_competitor_domains,
    get_exclusion_reason,
    normalize_domain,
)
from .business_profiler import business_name_from_title
from .directories import directory_entries, guaranteed_entries, local_entries
from .domain_validator import DomainValidator
from .industry import DEFAULT_INDUSTRY, detect_industry, industry_from_domain, normalize_state
from .models import BusinessProfile, CandidateSource, CompetitorCandidate, Scope

if TYPE_CHECKING:
    from aeo_engine.integrations.base import KeywordIntelligence, TextCompletion
    from aeo_engine.persistence.costs import CostLedger

logger = logging.getLogger(__name__)


DEFAULT_TARGET = 5
ORGANIC_LIMIT = 20
ORGANIC_ENOUGH = 3  # Keyword-overlap results this strong end the chain

AI_SIMILARITY = 0.90
SERP_SIMILARITY = 0.85
LOCAL_DIRECTORY_SIMILARITY = 0.75
DIRECTORY_SIMILARITY = 0.70
GUARANTEED_SIMILARITY = 0.60


# =============================================================================
# PROMPTS
# =============================================================================


SUGGESTION_SYSTEM_PROMPT = """You are a local market researcher. You only name real companies with working websites. Answer with JSON only."""


SUGGESTION_USER_PROMPT = """What are the top 5 {service} companies in {location}?

The business we are comparing against is {name} ({domain}). Do not include it.
Do not include directories, review sites, marketplaces or social networks.

Return a JSON array:
```json
[
    {{"name": "Company Name", "domain": "company.com", "description": "One sentence"}}
]
```"""


def overlap_similarity(overlap_count: Optional[int]) -> float:
    """Similarity for keyword-overlap competitors: monotonic in overlap, capped at 0.95."""
    return min(0.95, 0.5 + max(0, overlap_count or 0) / 200)


def parse_json_array(text: Optional[str]) -> List[dict]:
    """Extract the first JSON array of objects from a model response."""
    if not text:
        return []
    json_match = re.search(r"\[[\s\S]*\]", text)
    if not json_match:
        return []
    try:
        data = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse competitor suggestion JSON: {e}")
        return []
    return [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []


# =============================================================================
# TIER PLUMBING
# =============================================================================


@dataclass
class TierOutcome:
    """What one tier contributed, and whether resolution should go on."""
    candidates: List[CompetitorCandidate]
    should_continue: bool = True


@dataclass
class ResolutionContext:
    """Mutable state shared by the tiers of one resolve() call."""
    subject_domain: str
    profile: BusinessProfile
    scope: Scope
    industry: str
    target: int = DEFAULT_TARGET
    ledger: Optional["CostLedger"] = None
    accepted: List[CompetitorCandidate] = field(default_factory=list)
    seen: Set[str] = field(default_factory=set)
    tier_yields: Dict[str, int] = field(default_factory=dict)

    @property
    def is_full(self) -> bool:
        return len(self.accepted) >= self.target

    @property
    def state_code(self) -> Optional[str]:
        return normalize_state(self.profile.location.state) if self.profile.location else None

    @property
    def location_text(self) -> str:
        return self.profile.location_text

    def yielded(self, *tier_names: str) -> int:
        return sum(self.tier_yields.get(name, 0) for name in tier_names)

    def charge(self, provider: str, operation: str):
        if self.ledger is not None:
            self.ledger.record(provider, operation)


Lookup = Callable[[ResolutionContext], Awaitable[List[CompetitorCandidate]]]


def _always(ctx: ResolutionContext) -> bool:
    return True


@dataclass
class ResolutionTier:
    """
    One stage of the fallback chain.

    Attributes:
        name: Tier name used in logs and tier_yields
        scopes: Scopes the tier runs for
        lookup: Produces raw proposals in source order
        applies: Extra precondition checked right before the tier runs
        validate: Check proposals are live before accepting them
        concurrent: Lookup may start before earlier tiers have finished
        stop_at: End the chain once this tier alone accepted this many
    """
    name: str
    scopes: FrozenSet[Scope]
    lookup: Lookup
    applies: Callable[[ResolutionContext], bool] = _always
    validate: bool = True
    concurrent: bool = False
    stop_at: Optional[int] = None


BOTH_SCOPES = frozenset({Scope.LOCAL, Scope.NATIONAL})


# =============================================================================
# COMPETITOR RESOLVER
# =============================================================================


class CompetitorResolver:
    """
    Produces a ranked list of validated competitor candidates.

    Usage:
        resolver = CompetitorResolver(validator, text_completion=claude, keywords=dataforseo)
        candidates = await resolver.resolve("acme-hvac.com", profile, Scope.LOCAL)
    """

    def __init__(
        self,
        validator: DomainValidator,
        text_completion: Optional["TextCompletion"] = None,
        keywords: Optional["KeywordIntelligence"] = None,
        target: int = DEFAULT_TARGET,
    ):
        self.validator = validator
        self.text_completion = text_completion
        self.keywords = keywords
        self.target = target
        self.tiers: List[ResolutionTier] = self._build_tiers()

    def _build_tiers(self) -> List[ResolutionTier]:
        local = frozenset({Scope.LOCAL})
        national = frozenset({Scope.NATIONAL})
        return [
            ResolutionTier(
                name="ai_suggested",
                scopes=local,
                lookup=self._suggest_with_ai,
                applies=lambda ctx: self._has_text_completion(),
                concurrent=True,
            ),
            ResolutionTier(
                name="serp",
                scopes=local,
                lookup=self._search_serp,
                applies=lambda ctx: self._has_keywords(),
                concurrent=True,
            ),
            ResolutionTier(
                name="local_directory",
                scopes=local,
                lookup=self._local_directory,
                applies=lambda ctx: ctx.yielded("ai_suggested", "serp") == 0,
            ),
            ResolutionTier(
                name="organic_competitors",
                scopes=national,
                lookup=self._organic_competitors,
                applies=lambda ctx: self._has_keywords(),
                stop_at=ORGANIC_ENOUGH,
            ),
            ResolutionTier(
                name="industry_directory",
                scopes=BOTH_SCOPES,
                lookup=self._industry_directory,
            ),
            ResolutionTier(
                name="guaranteed",
                scopes=BOTH_SCOPES,
                lookup=self._guaranteed,
                applies=lambda ctx: not ctx.accepted,
                validate=False,
            ),
        ]

    def _has_text_completion(self) -> bool:
        return self.text_completion is not None and self.text_completion.is_available()

    def _has_keywords(self) -> bool:
        return self.keywords is not None and self.keywords.is_available()

    async def resolve(
        self,
        subject_domain: str,
        profile: BusinessProfile,
        scope: Scope,
        ledger: Optional["CostLedger"] = None,
    ) -> List[CompetitorCandidate]:
        """
        Resolve competitors for a subject domain.

        Args:
            subject_domain: Subject domain or URL
            profile: Business profile of the subject
            scope: local or national
            ledger: Cost ledger for the run (optional)

        Returns:
            Up to `target` candidates; earlier tiers rank first
        """
        scope = Scope(scope)
        subject = normalize_domain(subject_domain)
        industry = detect_industry(profile)
        if industry == DEFAULT_INDUSTRY:
            industry = industry_from_domain(subject)

        ctx = ResolutionContext(
            subject_domain=subject,
            profile=profile,
            scope=scope,
            industry=industry,
            target=self.target,
            ledger=ledger,
        )
        logger.info(f"Resolving competitors for {subject} (scope={scope.value}, industry={industry})")

        tiers = [tier for tier in self.tiers if scope in tier.scopes]
        prefetched: Dict[str, asyncio.Future] = {
            tier.name: asyncio.ensure_future(self._lookup(tier, ctx))
            for tier in tiers
            if tier.concurrent and tier.applies(ctx)
        }

        try:
            for tier in tiers:
                if ctx.is_full:
                    break

                if not tier.applies(ctx):
                    logger.debug(f"Tier {tier.name} skipped")
                    continue

                if tier.name in prefetched:
                    proposals = await prefetched.pop(tier.name)
                else:
                    proposals = await self._lookup(tier, ctx)

                outcome = await self._run_tier(tier, ctx, proposals)
                ctx.tier_yields[tier.name] = len(outcome.candidates)
                logger.info(
                    f"Tier {tier.name}: {len(proposals)} proposed, "
                    f"{len(outcome.candidates)} accepted ({len(ctx.accepted)}/{ctx.target})"
                )

                if not outcome.should_continue:
                    break
        finally:
            for task in prefetched.values():
                task.cancel()

        logger.info(
            f"Resolved {len(ctx.accepted)} competitors for {subject}: "
            f"{', '.join(c.domain for c in ctx.accepted)}"
        )
        return list(ctx.accepted)

    async def _lookup(self, tier: ResolutionTier, ctx: ResolutionContext) -> List[CompetitorCandidate]:
        """Run a tier's lookup; failures yield no proposals."""
        try:
            return await tier.lookup(ctx)
        except ProviderUnavailable as e:
            logger.debug(f"Tier {tier.name} skipped: {e}")
        except Exception as e:
            logger.warning(f"Tier {tier.name} failed: {e}")
        return []

    async def _run_tier(
        self,
        tier: ResolutionTier,
        ctx: ResolutionContext,
        proposals: List[CompetitorCandidate],
    ) -> TierOutcome:
        try:
            accepted = await self._admit(ctx, proposals, validate=tier.validate)
        except Exception as e:
            logger.warning(f"Tier {tier.name} admission failed: {e}")
            return TierOutcome(candidates=[])

        should_continue = not (tier.stop_at is not None and len(accepted) >= tier.stop_at)
        return TierOutcome(candidates=accepted, should_continue=should_continue)

    async def _admit(
        self,
        ctx: ResolutionContext,
        proposals: List[CompetitorCandidate],
        validate: bool = True,
    ) -> List[CompetitorCandidate]:
        """
        Filter, validate and accept proposals in order until the target is reached.

        Validation runs in batches of `validator.concurrency` so no more checks
        are issued than needed to fill the list.
        """
        eligible: List[CompetitorCandidate] = []
        # Unchecked fallbacks may repeat a domain that failed an earlier check
        skip = ctx.seen if validate else {c.domain for c in ctx.accepted}
        for candidate in proposals:
            domain = normalize_domain(candidate.domain)
            if not domain or domain in skip:
                continue
            skip.add(domain)
            ctx.seen.add(domain)

            reason = get_exclusion_reason(domain)
            if reason:
                logger.debug(f"Excluded candidate {domain}: {reason}")
                continue
            if domains_match(domain, ctx.subject_domain):
                continue

            candidate.domain = domain
            candidate.verified = validate
            eligible.append(candidate)

        accepted: List[CompetitorCandidate] = []
        if not validate:
            for candidate in eligible:
                if ctx.is_full:
                    break
                ctx.accepted.append(candidate)
                accepted.append(candidate)
            return accepted

        batch_size = max(1, self.validator.concurrency)
        for start in range(0, len(eligible), batch_size):
            if ctx.is_full:
                break
            batch = eligible[start:start + batch_size]
            results = await self.validator.validate_many([c.domain for c in batch])
            for candidate, is_valid in zip(batch, results):
                if not is_valid:
                    logger.debug(f"Candidate failed validation: {candidate.domain}")
                    continue
                if ctx.is_full:
                    break
                ctx.accepted.append(candidate)
                accepted.append(candidate)

        return accepted

    # =========================================================================
    # TIER LOOKUPS
    # =========================================================================

    async def _suggest_with_ai(self, ctx: ResolutionContext) -> List[CompetitorCandidate]:
        prompt = SUGGESTION_USER_PROMPT.format(
            service=ctx.profile.primary_service,
            location=ctx.location_text or "their service area",
            name=ctx.profile.name,
            domain=ctx.subject_domain,
        )
        response = await self.text_completion.complete(
            prompt,
            system=SUGGESTION_SYSTEM_PROMPT,
            max_tokens=1000,
        )
        ctx.charge("anthropic", "competitor_suggestions")

        return [
            CompetitorCandidate(
                domain=str(item.get("domain") or ""),
                name=str(item.get("name") or item.get("domain") or ""),
                description=item.get("description"),
                similarity=AI_SIMILARITY,
                source=CandidateSource.AI_SUGGESTED,
            )
            for item in parse_json_array(response)[:5]
            if item.get("domain")
        ]

    async def _search_serp(self, ctx: ResolutionContext) -> List[CompetitorCandidate]:
        query = f"{ctx.profile.primary_service} companies {ctx.location_text}".strip()
        results = await self.keywords.search_organic(query)
        ctx.charge("dataforseo", "serp")
        results = filter_competitor_domains(results, source="serp")

        return [
            CompetitorCandidate(
                domain=result["domain"],
                name=business_name_from_title(result.get("title")) or result["domain"],
                description=result.get("description") or None,
                similarity=SERP_SIMILARITY,
                source=CandidateSource.SERP,
            )
            for result in results
            if result.get("domain")
        ]

    async def _local_directory(self, ctx: ResolutionContext) -> List[CompetitorCandidate]:
        return [
            CompetitorCandidate(
                domain=domain,
                name=name,
                similarity=LOCAL_DIRECTORY_SIMILARITY,
                source=CandidateSource.DIRECTORY,
            )
            for domain, name in local_entries(ctx.industry, ctx.state_code)
        ]

    async def _organic_competitors(self, ctx: ResolutionContext) -> List[CompetitorCandidate]:
        results = await self.keywords.organic_competitors(ctx.subject_domain, ORGANIC_LIMIT)
        ctx.charge("dataforseo", "organic_competitors")
        results = filter_competitor_domains(results, source="organic_competitors")

        ranked = sorted(results, key=lambda r: r.get("overlap_count") or 0, reverse=True)
        return [
            CompetitorCandidate(
                domain=result["domain"],
                name=result["domain"],
                similarity=overlap_similarity(result.get("overlap_count")),
                source=CandidateSource.DATAFORSEO,
                keyword_count=result.get("keyword_count"),
                traffic_estimate=result.get("traffic_estimate"),
                overlap_count=result.get("overlap_count"),
            )
            for result in ranked
            if result.get("domain")
        ]

    async def _industry_directory(self, ctx: ResolutionContext) -> List[CompetitorCandidate]:
        return [
            CompetitorCandidate(
                domain=domain,
                name=name,
                similarity=DIRECTORY_SIMILARITY,
                source=CandidateSource.DIRECTORY,
            )
            for domain, name in directory_entries(ctx.industry)
        ]

    async def _guaranteed(self, ctx: ResolutionContext) -> List[CompetitorCandidate]:
        return [
            CompetitorCandidate(
                domain=domain,
                name=name,
                similarity=GUARANTEED_SIMILARITY,
                source=CandidateSource.DIRECTORY,
                verified=False,
            )
            for domain, name in guaranteed_entries(ctx.industry)
        ]


# =============================================================================
# FACTORY FUNCTION
# =============================================================================


async def discover_competitors(
    subject_domain: str,
    profile: BusinessProfile,
    scope: Scope = Scope.NATIONAL,
    text_completion: Optional["TextCompletion"] = None,
    keywords: Optional["KeywordIntelligence"] = None,
    validator: Optional[DomainValidator] = None,
) -> List[CompetitorCandidate]:
    """
    Convenience function to resolve competitors with a throwaway validator.

    Args:
        subject_domain: Subject domain or URL
        profile: Business profile of the subject
        scope: local or national
        text_completion: AI provider for suggestions
        keywords: Keyword intelligence provider
        validator: Domain validator (a new one is created and closed if omitted)

    Returns:
        Resolved competitor candidates
    """
    own_validator = validator is None
    validator = validator or DomainValidator()
    try:
        resolver = CompetitorResolver(
            validator=validator,
            text_completion=text_completion,
            keywords=keywords,
        )
        return await resolver.resolve(subject_domain, profile, scope)
    finally:
        if own_validator:
            await validator.close()
