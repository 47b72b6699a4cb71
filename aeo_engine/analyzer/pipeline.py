"""
Analysis Pipeline - Orchestrates a subject vs competitor comparison.

Stages (progress percent):
1. crawling               5 / 20   Fetch both homepages concurrently
2. analyzing_content      35       Extract on-page elements
3. checking_seo           55       Keyword gap between the two domains
4. measuring_performance  75       Lighthouse audits for both sites
5. analyzing_voice        85       AI brand voice and content quality review
6. scoring                92       Category scorers, status, aggregate
7. complete               100

Optional providers are skipped when unavailable and their failures only mark
the affected section unavailable. The pipeline fails outright only when
neither site could be fetched.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union, TYPE_CHECKING

from aeo_engine.context.business_profiler import parse_json_object
from aeo_engine.errors import (
    PipelineFatal,
    PipelineStageFailed,
    ProviderCallFailed,
    ProviderUnavailable,
)
from aeo_engine.integrations.base import KeywordIntelligence, PageContent, PerformanceAudit, TextCompletion
from aeo_engine.integrations.content import ContentFetcher, extract_seo_elements
from aeo_engine.scoring.categories import (
    CATEGORY_LABELS,
    SCORERS,
    CategoryScore,
    CategoryStatus,
    SiteSignals,
    aggregate_score,
    compare_status,
    unavailable_category,
)
from aeo_engine.utils.domain_filter import normalize_domain, normalize_url

if TYPE_CHECKING:
    from aeo_engine.persistence.costs import CostLedger

logger = logging.getLogger(__name__)


ProgressCallback = Callable[[str, int, str], Union[None, Awaitable[None]]]

SUBJECT = "subject"
COMPETITOR = "competitor"

BOTH_FETCHES_FAILED = "We couldn't load either website. Please check both URLs and try again."


BRAND_VOICE_SYSTEM_PROMPT = """You are a brand strategist. You judge how clear, consistent and customer-focused a company's website copy is. Answer with JSON only."""


BRAND_VOICE_PROMPT = """Assess the brand voice of this homepage copy.

## Website: {url}

{content}

---

Return a JSON object:
```json
{{
    "score": 0-100,
    "tone": "two or three words describing the tone",
    "evidence": ["short quote or observation"],
    "issues": ["specific weakness"]
}}
```"""


CONTENT_QUALITY_SYSTEM_PROMPT = """You are a content analyst. You judge website copy for experience, expertise, authoritativeness and trustworthiness (E-E-A-T), and for how likely search engines and AI assistants are to cite it. Answer with JSON only."""


CONTENT_QUALITY_PROMPT = """Review the content quality of this homepage.

## Website: {url}

{content}

---

Return a JSON object:
```json
{{
    "eeat_score": 0-100,
    "citation_score": 0-100,
    "evidence": ["specific sign of expertise, experience or trust"],
    "issues": ["what's missing"],
    "quotable": ["short passage an AI assistant could quote"]
}}
```"""


@dataclass
class AnalysisResult:
    """Complete comparison of a subject site against one competitor."""

    subject_url: str
    competitor_url: str
    subject_score: int
    competitor_score: int
    categories: List[CategoryScore]

    # Supporting data
    keyword_gap: Dict[str, Any] = field(default_factory=dict)
    performance: Dict[str, Optional[Dict[str, Any]]] = field(default_factory=dict)

    # Sections that could not be produced ("keyword_gap", "performance:competitor", ...)
    unavailable: List[str] = field(default_factory=list)

    insights: List[str] = field(default_factory=list)
    analyzed_at: datetime = field(default_factory=datetime.now)

    @property
    def comparable(self) -> bool:
        """False when either homepage could not be fetched."""
        return not any(section.startswith("content:") for section in self.unavailable)

    @property
    def status(self) -> Optional[CategoryStatus]:
        if not self.comparable:
            return None
        return compare_status(self.subject_score, self.competitor_score)

    def category(self, name: str) -> Optional[CategoryScore]:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject_url": self.subject_url,
            "competitor_url": self.competitor_url,
            "subject_score": self.subject_score,
            "competitor_score": self.competitor_score,
            "status": self.status.value if self.status else None,
            "categories": [category.to_dict() for category in self.categories],
            "keyword_gap": self.keyword_gap,
            "performance": self.performance,
            "unavailable": list(self.unavailable),
            "insights": list(self.insights),
            "analyzed_at": self.analyzed_at.isoformat(),
        }


class AnalysisPipeline:
    """
    Runs one subject vs competitor analysis.

    One call to run() per analysis run; the pipeline itself holds no per-run
    state and can serve many runs concurrently.
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        keywords: Optional[KeywordIntelligence] = None,
        performance: Optional[PerformanceAudit] = None,
        text_completion: Optional[TextCompletion] = None,
    ):
        self.fetcher = fetcher
        self.keywords = keywords
        self.performance = performance
        self.text_completion = text_completion

    async def run(
        self,
        subject_url: str,
        competitor_url: str,
        run_id: str,
        on_progress: Optional[ProgressCallback] = None,
        ledger: Optional["CostLedger"] = None,
    ) -> AnalysisResult:
        """
        Run the full comparison.

        Args:
            subject_url: The subject's URL or domain
            competitor_url: The selected competitor's URL or domain
            run_id: Run id used in logs
            on_progress: Callback(stage, percent, message); sync or async
            ledger: Cost ledger for the run (optional)

        Returns:
            AnalysisResult

        Raises:
            PipelineFatal: If neither site could be fetched
        """
        subject_url = normalize_url(subject_url)
        competitor_url = normalize_url(competitor_url)
        unavailable: List[str] = []
        start_time = datetime.now()

        logger.info(f"[{run_id}] Starting analysis: {subject_url} vs {competitor_url}")

        # Stage 1: crawl both sites
        await self._report(on_progress, "crawling", 5, "Crawling both sites...")
        subject_page, competitor_page = await asyncio.gather(
            self._fetch(subject_url, "scrape_your_site", ledger),
            self._fetch(competitor_url, "scrape_competitor", ledger),
        )
        if subject_page is None and competitor_page is None:
            raise PipelineFatal(
                BOTH_FETCHES_FAILED,
                detail=f"Both fetches failed for {subject_url} and {competitor_url}",
            )
        if subject_page is None:
            unavailable.append(f"content:{SUBJECT}")
        if competitor_page is None:
            unavailable.append(f"content:{COMPETITOR}")
        await self._report(on_progress, "crawling", 20, "Both sites crawled")

        # Stage 2: on-page elements
        await self._report(on_progress, "analyzing_content", 35, "Analyzing page content...")
        signals: Dict[str, Optional[SiteSignals]] = {
            SUBJECT: self._signals(subject_url, subject_page),
            COMPETITOR: self._signals(competitor_url, competitor_page),
        }

        # Stage 3: keyword gap
        await self._report(on_progress, "checking_seo", 55, "Checking search visibility...")
        keyword_gap = await self._keyword_gap(subject_url, competitor_url, ledger)
        if keyword_gap:
            summary = keyword_gap.get("summary") or {}
            own = summary.get("your_total_keywords")
            rival = summary.get("competitor_total_keywords")
            if signals[SUBJECT]:
                signals[SUBJECT].keyword_count = own
                signals[SUBJECT].rival_keyword_count = rival
            if signals[COMPETITOR]:
                signals[COMPETITOR].keyword_count = rival
                signals[COMPETITOR].rival_keyword_count = own
        else:
            unavailable.append("keyword_gap")

        # Stage 4: performance
        await self._report(on_progress, "measuring_performance", 75, "Measuring page performance...")
        performance = await self._measure_performance(signals, ledger)
        for side, audit in performance.items():
            if audit is None:
                unavailable.append(f"performance:{side}")
            elif signals[side]:
                signals[side].performance = audit

        # Stage 5: AI review of brand voice and content quality
        await self._report(on_progress, "analyzing_voice", 85, "Analyzing brand voice and content quality...")
        voices, reviews = await asyncio.gather(
            self._assess_with_ai(
                signals, ledger, "brand_voice", BRAND_VOICE_PROMPT, BRAND_VOICE_SYSTEM_PROMPT, "score",
            ),
            self._assess_with_ai(
                signals, ledger, "content_analysis", CONTENT_QUALITY_PROMPT, CONTENT_QUALITY_SYSTEM_PROMPT, "eeat_score",
            ),
        )
        for side in (SUBJECT, COMPETITOR):
            if voices[side] is None:
                unavailable.append(f"brand_voice:{side}")
            elif signals[side]:
                signals[side].brand_voice = voices[side]
            if reviews[side] is None:
                unavailable.append(f"content_quality:{side}")
            elif signals[side]:
                signals[side].content_quality = reviews[side]

        # Stage 6: scoring
        await self._report(on_progress, "scoring", 92, "Calculating scores...")
        subject_scores = self._score_site(signals[SUBJECT], SUBJECT, unavailable)
        competitor_scores = self._score_site(signals[COMPETITOR], COMPETITOR, unavailable)

        categories = [
            subject_scores[name].compare_with(competitor_scores[name])
            for name in SCORERS
        ]
        subject_total = aggregate_score({name: s.score for name, s in subject_scores.items()})
        competitor_total = aggregate_score({name: s.score for name, s in competitor_scores.items()})

        result = AnalysisResult(
            subject_url=subject_url,
            competitor_url=competitor_url,
            subject_score=subject_total,
            competitor_score=competitor_total,
            categories=categories,
            keyword_gap=keyword_gap,
            performance=performance,
            unavailable=unavailable,
            insights=build_insights(categories, keyword_gap),
        )

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"[{run_id}] Analysis complete in {duration:.1f}s: "
            f"{subject_total} vs {competitor_total} ({len(unavailable)} sections unavailable)"
        )
        await self._report(on_progress, "complete", 100, "Analysis complete")
        return result

    # =========================================================================
    # STAGES
    # =========================================================================

    async def _report(self, on_progress: Optional[ProgressCallback], stage: str, percent: int, message: str):
        if on_progress is None:
            return
        outcome = on_progress(stage, percent, message)
        if inspect.isawaitable(outcome):
            await outcome

    async def _fetch(self, url: str, operation: str, ledger: Optional["CostLedger"]) -> Optional[PageContent]:
        try:
            page = await self.fetcher.fetch(url)
        except ProviderCallFailed as e:
            logger.warning(f"Content fetch failed for {url}: {e}")
            return None

        if ledger is not None and page.renderer == "firecrawl":
            ledger.record("firecrawl", operation)
        return page

    @staticmethod
    def _signals(url: str, page: Optional[PageContent]) -> Optional[SiteSignals]:
        if page is None:
            return None
        return SiteSignals(url=url, page=page, elements=extract_seo_elements(page))

    async def _keyword_gap(
        self,
        subject_url: str,
        competitor_url: str,
        ledger: Optional["CostLedger"],
    ) -> Dict[str, Any]:
        if not self.keywords or not self.keywords.is_available():
            logger.debug("Keyword intelligence unavailable, skipping keyword gap")
            return {}

        try:
            gap = await self.keywords.keyword_gap(
                normalize_domain(subject_url),
                normalize_domain(competitor_url),
            )
        except (ProviderCallFailed, ProviderUnavailable) as e:
            logger.warning(f"Keyword gap failed: {e}")
            return {}

        if ledger is not None:
            ledger.record("dataforseo", "keyword_gap")
        return gap or {}

    async def _measure_performance(
        self,
        signals: Dict[str, Optional[SiteSignals]],
        ledger: Optional["CostLedger"],
    ) -> Dict[str, Optional[Dict[str, Any]]]:
        if not self.performance or not self.performance.is_available():
            logger.debug("Performance audit unavailable, skipping")
            return {SUBJECT: None, COMPETITOR: None}

        operations = {SUBJECT: "performance_your_site", COMPETITOR: "performance_competitor"}

        async def audit(side: str) -> Optional[Dict[str, Any]]:
            site = signals[side]
            if site is None:
                return None
            try:
                result = await self.performance.analyze(site.url)
            except (ProviderCallFailed, ProviderUnavailable) as e:
                logger.warning(f"Performance audit failed for {site.url}: {e}")
                return None
            if ledger is not None:
                ledger.record("pagespeed", operations[side])
            return result

        subject_audit, competitor_audit = await asyncio.gather(audit(SUBJECT), audit(COMPETITOR))
        return {SUBJECT: subject_audit, COMPETITOR: competitor_audit}

    async def _assess_with_ai(
        self,
        signals: Dict[str, Optional[SiteSignals]],
        ledger: Optional["CostLedger"],
        operation: str,
        prompt: str,
        system: str,
        required_key: str,
    ) -> Dict[str, Optional[Dict[str, Any]]]:
        """Ask the text completion provider to assess each site's copy; None where it could not."""
        if not self.text_completion or not self.text_completion.is_available():
            logger.debug(f"Text completion unavailable, skipping {operation}")
            return {SUBJECT: None, COMPETITOR: None}

        async def assess(side: str) -> Optional[Dict[str, Any]]:
            site = signals[side]
            if site is None or not site.text:
                return None
            try:
                response = await self.text_completion.complete(
                    prompt.format(url=site.url, content=site.text[:4000]),
                    system=system,
                    max_tokens=800,
                )
            except (ProviderCallFailed, ProviderUnavailable) as e:
                logger.warning(f"{operation} failed for {site.url}: {e}")
                return None
            if ledger is not None:
                ledger.record("anthropic", operation)

            assessment = parse_json_object(response)
            if not assessment or required_key not in assessment:
                logger.warning(f"{operation} response for {site.url} was not usable JSON")
                return None
            return assessment

        subject, competitor = await asyncio.gather(assess(SUBJECT), assess(COMPETITOR))
        return {SUBJECT: subject, COMPETITOR: competitor}

    def _score_site(
        self,
        site: Optional[SiteSignals],
        side: str,
        unavailable: List[str],
    ) -> Dict[str, CategoryScore]:
        """Run every scorer for one site. A failing scorer marks its category unavailable."""
        scores: Dict[str, CategoryScore] = {}
        for name, scorer in SCORERS.items():
            if site is None:
                scores[name] = unavailable_category(name)
                continue
            try:
                scores[name] = scorer(site)
            except Exception as e:
                failure = PipelineStageFailed(f"{name}:{side}", e)
                logger.error(f"{failure}", exc_info=True)
                scores[name] = unavailable_category(name, "Scoring failed")
                unavailable.append(f"{name}:{side}")
        return scores


def build_insights(
    categories: List[CategoryScore],
    keyword_gap: Dict[str, Any],
) -> List[str]:
    """Short plain-language takeaways from the comparison."""
    insights: List[str] = []
    comparable = [c for c in categories if c.comparable]

    strengths = sorted(
        (c for c in comparable if c.status == CategoryStatus.WINNING),
        key=lambda c: c.score - (c.competitor_score or 0),
        reverse=True,
    )
    gaps = sorted(
        (c for c in comparable if c.status == CategoryStatus.LOSING),
        key=lambda c: (c.competitor_score or 0) - c.score,
        reverse=True,
    )

    for category in strengths[:2]:
        insights.append(
            f"You lead on {CATEGORY_LABELS[category.name]} "
            f"({category.score} vs {category.competitor_score})"
        )
    for category in gaps[:3]:
        insights.append(
            f"Your competitor leads on {CATEGORY_LABELS[category.name]} "
            f"({category.competitor_score} vs {category.score})"
        )
        if category.recommendations:
            insights.append(f"Next step: {category.recommendations[0]}")

    opportunities = keyword_gap.get("top_opportunities") or []
    if opportunities:
        top = ", ".join(kw["keyword"] for kw in opportunities[:3] if kw.get("keyword"))
        if top:
            insights.append(f"Keywords your competitor ranks for that you don't: {top}")

    return insights
