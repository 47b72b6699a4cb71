"""
Category Scoring

Independent scorers, one per evaluation category. Each takes the signals
collected for ONE site and returns a CategoryScore (0-100) with evidence,
issues, recommendations and weighted subcategories.

Categories and their weight in the aggregate score (sums to 100):

    technical_seo       12
    onpage_seo          12
    content_quality     22
    aeo_readiness       18
    brand_voice         12
    user_experience     10
    internal_structure  14

The same scorers and the same aggregate_score() are applied to the subject
and the competitor, so both sides are measured identically.
"""

import math
import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from aeo_engine.integrations.base import PageContent
from aeo_engine.integrations.content import SeoElements


# ============================================================================
# TYPES
# ============================================================================

class CategoryStatus(str, Enum):
    """Subject position relative to the competitor in one category."""
    WINNING = "winning"
    LOSING = "losing"
    TIED = "tied"


def clamp_score(value: Any) -> int:
    """Round to an int in [0, 100]. NaN, None and non-numbers become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    return int(max(0, min(100, round(number))))


@dataclass
class SubcategoryScore:
    """One weighted component of a category."""
    score: int
    weight: float  # 0-1 within its category
    evidence: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.score = clamp_score(self.score)


@dataclass
class CategoryScore:
    """Score for one category of one site, later merged with the competitor's."""
    name: str
    score: int
    competitor_score: Optional[int] = None
    status: Optional[CategoryStatus] = None
    evidence: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    subcategories: Dict[str, SubcategoryScore] = field(default_factory=dict)
    available: bool = True
    competitor_available: bool = True

    def __post_init__(self):
        self.score = clamp_score(self.score)
        if self.competitor_score is not None:
            self.competitor_score = clamp_score(self.competitor_score)

    @property
    def weight(self) -> int:
        return CATEGORY_WEIGHTS.get(self.name, 0)

    @property
    def comparable(self) -> bool:
        return self.available and self.competitor_available

    def compare_with(self, competitor: "CategoryScore") -> "CategoryScore":
        """
        Attach the competitor's score for the same category and derive status.

        Status stays None unless both sides could be scored; an unscored
        competitor has no competitor_score.
        """
        self.competitor_available = competitor.available
        self.competitor_score = competitor.score if competitor.available else None
        self.status = compare_status(self.score, competitor.score) if self.comparable else None
        return self

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value if self.status else None
        data["weight"] = self.weight
        return data


# ============================================================================
# WEIGHTS AND AGGREGATION
# ============================================================================

CATEGORY_WEIGHTS: Dict[str, int] = {
    "technical_seo": 12,
    "onpage_seo": 12,
    "content_quality": 22,
    "aeo_readiness": 18,
    "brand_voice": 12,
    "user_experience": 10,
    "internal_structure": 14,
}

CATEGORY_LABELS: Dict[str, str] = {
    "technical_seo": "Technical SEO",
    "onpage_seo": "On-Page SEO",
    "content_quality": "Content Quality",
    "aeo_readiness": "AEO Readiness",
    "brand_voice": "Brand Voice",
    "user_experience": "User Experience",
    "internal_structure": "Internal Structure",
}


def aggregate_score(scores: Mapping[str, Any]) -> int:
    """
    Weighted aggregate over category scores.

    Missing categories and NaN count as 0. Result is rounded and clamped to
    [0, 100].
    """
    total_weight = sum(CATEGORY_WEIGHTS.values())
    weighted = 0.0
    for name, weight in CATEGORY_WEIGHTS.items():
        weighted += clamp_score(scores.get(name)) * weight
    return clamp_score(weighted / total_weight)


def compare_status(subject: Any, competitor: Any) -> CategoryStatus:
    subject_score = clamp_score(subject)
    competitor_score = clamp_score(competitor)
    if subject_score > competitor_score:
        return CategoryStatus.WINNING
    if subject_score < competitor_score:
        return CategoryStatus.LOSING
    return CategoryStatus.TIED


def weighted_subcategories(subcategories: Mapping[str, SubcategoryScore]) -> int:
    """Category score from its subcategories' weights."""
    total_weight = sum(sub.weight for sub in subcategories.values())
    if total_weight <= 0:
        return 0
    return clamp_score(sum(sub.score * sub.weight for sub in subcategories.values()) / total_weight)


def unavailable_category(name: str, reason: str = "Data unavailable") -> CategoryScore:
    """Placeholder for a category that could not be scored."""
    return CategoryScore(name=name, score=0, evidence=[reason], available=False)


# ============================================================================
# SITE SIGNALS
# ============================================================================

@dataclass
class SiteSignals:
    """
    Everything collected about one site before scoring.

    Attributes:
        url: Normalized site URL
        page: Fetched homepage
        elements: Extracted on-page elements
        performance: PerformanceAudit result ({scores, core_web_vitals, opportunities})
        keyword_count: Ranking keywords for this site from the keyword gap
        rival_keyword_count: Ranking keywords for the other site
        brand_voice: AI brand voice assessment ({score, tone, evidence, issues})
        content_quality: AI content review ({eeat_score, citation_score, evidence, issues, quotable})
    """
    url: str
    page: PageContent
    elements: SeoElements
    performance: Optional[Dict[str, Any]] = None
    keyword_count: Optional[int] = None
    rival_keyword_count: Optional[int] = None
    brand_voice: Optional[Dict[str, Any]] = None
    content_quality: Optional[Dict[str, Any]] = None

    @property
    def text(self) -> str:
        return self.page.markdown or ""

    @property
    def html(self) -> str:
        return self.page.html or ""


# Recommendation per subcategory when it scores below RECOMMEND_BELOW
RECOMMEND_BELOW = 70

RECOMMENDATIONS: Dict[str, str] = {
    "page_speed": "Reduce unused JavaScript and CSS and compress images",
    "core_web_vitals": "Improve LCP: optimize hero images and the largest content element",
    "security": "Serve every page over HTTPS",
    "crawlability": "Make sure each page has a title, meta description and one H1",
    "accessibility": "Fix accessibility and best-practice issues flagged by Lighthouse",
    "title_tag": "Rewrite the title tag to 50-60 characters with the primary service and location",
    "meta_description": "Add a compelling meta description (150-160 chars) with action words",
    "header_structure": "Use a single H1 and a logical H2 structure",
    "image_alt_text": "Add descriptive alt text to all images",
    "url_structure": "Use short, readable URLs without query strings or underscores",
    "content_depth": "Expand core pages with detailed service information and examples",
    "topic_coverage": "Cover each service and common customer question in its own section",
    "internal_linking": "Link related pages together so search engines see topic clusters",
    "keyword_footprint": "Target the keywords your competitor ranks for that you do not",
    "eeat_signals": "Add author bios, credentials, licenses and real project examples",
    "citation_worthiness": "Publish original data, pricing ranges or checklists worth quoting",
    "structured_data": "Add JSON-LD structured data (LocalBusiness, FAQPage, Service)",
    "question_headings": "Phrase section headings as the questions customers ask",
    "answer_formatting": "Answer questions in short lists and tables that AI assistants can quote",
    "faq_section": "Add an FAQ section with direct, one-paragraph answers",
    "clarity": "Shorten sentences so each one makes a single point",
    "audience_focus": "Write to the customer (you/your) instead of about the company",
    "tone": "Define a consistent brand voice and apply it across every page",
    "calls_to_action": "Add clear calls to action (call, book, get a quote) above the fold",
    "trust_signals": "Show reviews, certifications, guarantees and years in business",
    "mobile_viewport": "Add a responsive viewport meta tag",
    "scannability": "Break long text into short sections with descriptive headings",
    "contact_info": "Show a phone number or email address on the homepage",
    "link_balance": "Point more links at your own service and location pages",
    "section_hierarchy": "Group each service under its own H2 with H3 subsections",
}


def build_category(name: str, subcategories: Dict[str, SubcategoryScore]) -> CategoryScore:
    """Assemble a CategoryScore from scored subcategories."""
    evidence: List[str] = []
    issues: List[str] = []
    recommendations: List[str] = []
    for key, sub in subcategories.items():
        evidence.extend(sub.evidence[:2])
        issues.extend(sub.issues)
        if sub.score < RECOMMEND_BELOW and key in RECOMMENDATIONS:
            recommendations.append(RECOMMENDATIONS[key])

    return CategoryScore(
        name=name,
        score=weighted_subcategories(subcategories),
        evidence=evidence[:6],
        issues=issues,
        recommendations=recommendations[:8],
        subcategories=subcategories,
    )


# ============================================================================
# TECHNICAL SEO
# ============================================================================

def _core_web_vitals_score(vitals: Dict[str, Any]) -> int:
    lcp = vitals.get("lcp") or 0
    cls = vitals.get("cls") or 0
    fid = vitals.get("fid") or 0
    lcp_score = 100 if lcp < 2500 else 70 if lcp < 4000 else 30
    cls_score = 100 if cls < 0.1 else 70 if cls < 0.25 else 30
    fid_score = 100 if fid < 100 else 70 if fid < 300 else 30
    return round(lcp_score * 0.4 + cls_score * 0.3 + fid_score * 0.3)


def score_technical_seo(signals: SiteSignals) -> CategoryScore:
    elements = signals.elements
    perf = signals.performance or {}
    scores = perf.get("scores") or {}
    vitals = perf.get("core_web_vitals") or {}

    subs: Dict[str, SubcategoryScore] = {}

    if scores:
        subs["page_speed"] = SubcategoryScore(
            score=scores.get("performance", 0),
            weight=0.30,
            evidence=[f"Lighthouse performance: {scores.get('performance', 0)}/100"],
            issues=["Slow page load"] if scores.get("performance", 0) < 50 else [],
        )
        cwv_score = _core_web_vitals_score(vitals)
        subs["core_web_vitals"] = SubcategoryScore(
            score=cwv_score,
            weight=0.20,
            evidence=[
                f"LCP: {(vitals.get('lcp') or 0) / 1000:.1f}s",
                f"CLS: {vitals.get('cls') or 0:.2f}",
            ],
            issues=["Core Web Vitals need work"] if cwv_score < 70 else [],
        )
        a11y = round(((scores.get("accessibility") or 0) + (scores.get("best_practices") or 0)) / 2)
        subs["accessibility"] = SubcategoryScore(
            score=a11y,
            weight=0.15,
            evidence=[f"Accessibility/best practices: {a11y}/100"],
            issues=["Accessibility score is low"] if a11y < 70 else [],
        )
    else:
        subs["page_speed"] = SubcategoryScore(
            score=50, weight=0.30, evidence=["Performance data unavailable"],
        )

    https = signals.url.startswith("https://")
    subs["security"] = SubcategoryScore(
        score=90 if https else 15,
        weight=0.15,
        evidence=["Served over HTTPS" if https else "Not served over HTTPS"],
        issues=[] if https else ["No HTTPS"],
    )

    crawl = 35
    crawl_issues = []
    if elements.title:
        crawl += 20
    else:
        crawl_issues.append("Missing title tag")
    if elements.description:
        crawl += 15
    else:
        crawl_issues.append("Missing meta description")
    if elements.headings.get("h1"):
        crawl += 15
    else:
        crawl_issues.append("Missing H1")
    if elements.has_schema:
        crawl += 15
    subs["crawlability"] = SubcategoryScore(
        score=crawl,
        weight=0.20,
        evidence=[f"Structured data: {'yes' if elements.has_schema else 'no'}"],
        issues=crawl_issues,
    )

    return build_category("technical_seo", subs)


# ============================================================================
# ON-PAGE SEO
# ============================================================================

def score_onpage_seo(signals: SiteSignals) -> CategoryScore:
    elements = signals.elements
    subs: Dict[str, SubcategoryScore] = {}

    title_length = len(elements.title)
    title_issues = []
    if title_length == 0:
        title_issues.append("Missing title tag")
    elif title_length > 60:
        title_issues.append("Title too long (>60 chars)")
    subs["title_tag"] = SubcategoryScore(
        score=100 if 50 <= title_length <= 60 else 70 if 0 < title_length < 70 else 30,
        weight=0.25,
        evidence=[f'Title: "{elements.title}" ({title_length} chars)'],
        issues=title_issues,
    )

    desc_length = len(elements.description)
    subs["meta_description"] = SubcategoryScore(
        score=100 if 150 <= desc_length <= 160 else 70 if 0 < desc_length < 200 else 30,
        weight=0.15,
        evidence=[f"Description: {desc_length} chars"] if desc_length else [],
        issues=[] if desc_length else ["Missing meta description"],
    )

    h1_count = len(elements.headings.get("h1", []))
    h2_count = len(elements.headings.get("h2", []))
    if h1_count == 1 and h2_count >= 2:
        header_score = 100
    elif h1_count == 1:
        header_score = 75
    elif h1_count == 0:
        header_score = 30
    else:
        header_score = 50
    subs["header_structure"] = SubcategoryScore(
        score=header_score,
        weight=0.20,
        evidence=[f"H1 tags: {h1_count}", f"H2 tags: {h2_count}"],
        issues=["Missing H1 tag"] if h1_count == 0 else ["Multiple H1 tags"] if h1_count > 1 else [],
    )

    if elements.images:
        alt_ratio = elements.images_with_alt / elements.images
        subs["image_alt_text"] = SubcategoryScore(
            score=alt_ratio * 100,
            weight=0.15,
            evidence=[f"{elements.images_with_alt}/{elements.images} images have alt text"],
            issues=["Some images are missing alt text"] if alt_ratio < 0.8 else [],
        )
    else:
        subs["image_alt_text"] = SubcategoryScore(
            score=50, weight=0.15, evidence=["No images detected"],
        )

    url = signals.page.metadata.get("source_url") or signals.url
    clean_url = "?" not in url and "_" not in url and len(url) < 100
    subs["url_structure"] = SubcategoryScore(
        score=85 if clean_url else 50,
        weight=0.25,
        evidence=[f"URL: {url}"],
        issues=[] if clean_url else ["URL could be cleaner"],
    )

    return build_category("onpage_seo", subs)


# ============================================================================
# CONTENT QUALITY
# ============================================================================

def score_content_quality(signals: SiteSignals) -> CategoryScore:
    elements = signals.elements
    subs: Dict[str, SubcategoryScore] = {}

    words = elements.word_count
    if words < 300:
        depth = 30
    elif words < 800:
        depth = 60
    elif words < 1500:
        depth = 80
    else:
        depth = 95
    subs["content_depth"] = SubcategoryScore(
        score=depth,
        weight=0.25,
        evidence=[f"Word count: {words}"],
        issues=["Thin content (<300 words)"] if words < 300 else [],
    )

    sections = len(elements.headings.get("h2", [])) + len(elements.headings.get("h3", []))
    subs["topic_coverage"] = SubcategoryScore(
        score=20 if sections == 0 else 30 + 10 * sections,
        weight=0.20,
        evidence=[f"{sections} topical sections (H2/H3)"],
        issues=["No topical sections"] if sections == 0 else [],
    )

    own = signals.keyword_count
    rival = signals.rival_keyword_count
    if own is None or rival is None:
        subs["keyword_footprint"] = SubcategoryScore(
            score=50, weight=0.15, evidence=["Keyword data unavailable"],
        )
    else:
        share = 0.5 if own + rival == 0 else own / (own + rival)
        subs["keyword_footprint"] = SubcategoryScore(
            score=share * 100,
            weight=0.15,
            evidence=[f"Ranks for {own} keywords vs {rival} for the other site"],
            issues=["Smaller keyword footprint than the other site"] if own < rival else [],
        )

    # AI review; without it the category rests on the heuristics above
    quality = signals.content_quality
    if quality and quality.get("eeat_score") is not None:
        subs["eeat_signals"] = SubcategoryScore(
            score=quality.get("eeat_score"),
            weight=0.25,
            evidence=[f"E-E-A-T: {clamp_score(quality.get('eeat_score'))}"] + list(quality.get("evidence") or [])[:2],
            issues=list(quality.get("issues") or [])[:3],
        )
        subs["citation_worthiness"] = SubcategoryScore(
            score=quality.get("citation_score"),
            weight=0.15,
            evidence=list(quality.get("quotable") or [])[:2],
        )

    return build_category("content_quality", subs)


# ============================================================================
# AEO READINESS
# ============================================================================

_QUESTION_START_RE = re.compile(
    r"^(how|what|why|when|where|who|which|can|do|does|is|are|should)\b", re.IGNORECASE
)
_LIST_LINE_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+\S", re.MULTILINE)
_TABLE_LINE_RE = re.compile(r"^\s*\|.*\|\s*$", re.MULTILINE)
_FAQ_RE = re.compile(r"\bfaqs?\b|frequently asked", re.IGNORECASE)


def score_aeo_readiness(signals: SiteSignals) -> CategoryScore:
    elements = signals.elements
    text = signals.text or signals.html
    subs: Dict[str, SubcategoryScore] = {}

    subs["structured_data"] = SubcategoryScore(
        score=90 if elements.has_schema else 30,
        weight=0.30,
        evidence=["JSON-LD/microdata present" if elements.has_schema else "No structured data"],
        issues=[] if elements.has_schema else ["No structured data for AI assistants to parse"],
    )

    headings = [h for level in ("h1", "h2", "h3") for h in elements.headings.get(level, [])]
    questions = [h for h in headings if h.endswith("?") or _QUESTION_START_RE.match(h)]
    subs["question_headings"] = SubcategoryScore(
        score=30 if not questions else 60 + 10 * (len(questions) - 1),
        weight=0.30,
        evidence=[f"{len(questions)} question-style headings"] + [f'"{q}"' for q in questions[:2]],
        issues=["No headings answer a customer question"] if not questions else [],
    )

    list_lines = len(_LIST_LINE_RE.findall(text))
    table_lines = len(_TABLE_LINE_RE.findall(text))
    subs["answer_formatting"] = SubcategoryScore(
        score=30 + 5 * list_lines + 5 * table_lines,
        weight=0.20,
        evidence=[f"{list_lines} list items, {table_lines} table rows"],
    )

    has_faq = bool(_FAQ_RE.search(text))
    subs["faq_section"] = SubcategoryScore(
        score=90 if has_faq else 30,
        weight=0.20,
        evidence=["FAQ section found" if has_faq else "No FAQ section"],
        issues=[] if has_faq else ["Missing FAQ section"],
    )

    return build_category("aeo_readiness", subs)


# ============================================================================
# BRAND VOICE
# ============================================================================

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]")
_YOU_RE = re.compile(r"\byou(r|rs)?\b", re.IGNORECASE)
_WE_RE = re.compile(r"\b(we|our|us)\b", re.IGNORECASE)


def score_brand_voice(signals: SiteSignals) -> CategoryScore:
    text = signals.text
    subs: Dict[str, SubcategoryScore] = {}

    sentences = [s for s in _SENTENCE_RE.findall(text) if len(s.split()) >= 3]
    if sentences:
        avg_words = sum(len(s.split()) for s in sentences) / len(sentences)
        clarity = 90 if 10 <= avg_words <= 20 else 70 if avg_words < 10 or avg_words <= 25 else 45
        subs["clarity"] = SubcategoryScore(
            score=clarity,
            weight=0.30,
            evidence=[f"Average sentence length: {avg_words:.0f} words"],
            issues=["Long, complex sentences"] if avg_words > 25 else [],
        )
    else:
        subs["clarity"] = SubcategoryScore(score=40, weight=0.30, evidence=["Too little prose to assess"])

    you = len(_YOU_RE.findall(text))
    we = len(_WE_RE.findall(text))
    focus = 50 if you + we == 0 else 30 + 70 * you / (you + we)
    subs["audience_focus"] = SubcategoryScore(
        score=focus,
        weight=0.30,
        evidence=[f"Customer-focused words: {you}, company-focused words: {we}"],
        issues=["Copy talks about the company more than the customer"] if we > you else [],
    )

    voice = signals.brand_voice
    if voice and voice.get("score") is not None:
        subs["tone"] = SubcategoryScore(
            score=voice.get("score"),
            weight=0.40,
            evidence=([f"Tone: {voice['tone']}"] if voice.get("tone") else []) + list(voice.get("evidence") or []),
            issues=list(voice.get("issues") or []),
        )
    else:
        subs["tone"] = SubcategoryScore(score=50, weight=0.40, evidence=["AI tone analysis unavailable"])

    return build_category("brand_voice", subs)


# ============================================================================
# USER EXPERIENCE
# ============================================================================

_CTA_RE = re.compile(
    r"\b(call (us|now|today)|contact us|get a (free )?(quote|estimate)|free estimate|book (now|online|an?)|"
    r"schedule|sign up|get started|request|buy now|shop now)\b",
    re.IGNORECASE,
)
_TRUST_RE = re.compile(
    r"\b(reviews?|testimonials?|licensed|insured|certified|guarantee[d]?|warranty|award|"
    r"\d+\+? years|bbb|accredited|5[- ]star)\b",
    re.IGNORECASE,
)
_VIEWPORT_RE = re.compile(r"<meta[^>]+name=[\"']viewport[\"']", re.IGNORECASE)
_PHONE_RE = re.compile(r"\(?\b\d{3}\)?[-.\s]\d{3}[-.\s]\d{4}\b")
_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.]+")


def score_user_experience(signals: SiteSignals) -> CategoryScore:
    text = signals.text or signals.html
    elements = signals.elements
    subs: Dict[str, SubcategoryScore] = {}

    ctas = len(_CTA_RE.findall(text))
    subs["calls_to_action"] = SubcategoryScore(
        score=25 if ctas == 0 else 55 + 10 * ctas,
        weight=0.25,
        evidence=[f"{ctas} calls to action"],
        issues=["No clear call to action"] if ctas == 0 else [],
    )

    trust = {m.group(0).lower() for m in _TRUST_RE.finditer(text)}
    subs["trust_signals"] = SubcategoryScore(
        score=25 if not trust else 50 + 10 * len(trust),
        weight=0.25,
        evidence=[f"Trust signals: {', '.join(sorted(trust)[:5])}"] if trust else ["No trust signals"],
        issues=["No reviews, certifications or guarantees shown"] if not trust else [],
    )

    if signals.html:
        has_viewport = bool(_VIEWPORT_RE.search(signals.html))
        subs["mobile_viewport"] = SubcategoryScore(
            score=100 if has_viewport else 30,
            weight=0.15,
            evidence=["Responsive viewport set" if has_viewport else "No viewport meta tag"],
            issues=[] if has_viewport else ["Page may not render well on mobile"],
        )
    else:
        subs["mobile_viewport"] = SubcategoryScore(score=50, weight=0.15, evidence=["HTML unavailable"])

    sections = sum(len(v) for v in elements.headings.values())
    words_per_section = elements.word_count / max(1, sections)
    subs["scannability"] = SubcategoryScore(
        score=90 if words_per_section <= 150 else 70 if words_per_section <= 300 else 40,
        weight=0.20,
        evidence=[f"{sections} headings, ~{words_per_section:.0f} words per section"],
        issues=["Long unbroken blocks of text"] if words_per_section > 300 else [],
    )

    has_phone = bool(_PHONE_RE.search(text))
    has_email = bool(_EMAIL_RE.search(text))
    subs["contact_info"] = SubcategoryScore(
        score=100 if has_phone and has_email else 80 if has_phone or has_email else 20,
        weight=0.15,
        evidence=[f"Phone: {'yes' if has_phone else 'no'}, email: {'yes' if has_email else 'no'}"],
        issues=[] if has_phone or has_email else ["No contact details on the homepage"],
    )

    return build_category("user_experience", subs)


# ============================================================================
# INTERNAL STRUCTURE
# ============================================================================

def score_internal_structure(signals: SiteSignals) -> CategoryScore:
    elements = signals.elements
    subs: Dict[str, SubcategoryScore] = {}

    internal = elements.internal_links
    subs["internal_linking"] = SubcategoryScore(
        score=25 + 3 * internal,
        weight=0.40,
        evidence=[f"{internal} internal links"],
        issues=["Few internal links"] if internal < 5 else [],
    )

    total_links = internal + elements.external_links
    if total_links == 0:
        balance = 30
    else:
        balance = 40 + 60 * internal / total_links
    subs["link_balance"] = SubcategoryScore(
        score=balance,
        weight=0.25,
        evidence=[f"{internal} of {total_links} links stay on the site"],
        issues=["Most links send visitors off the site"] if total_links and internal * 2 < total_links else [],
    )

    h2 = len(elements.headings.get("h2", []))
    h3 = len(elements.headings.get("h3", []))
    if h2 == 0:
        hierarchy = 20
    else:
        hierarchy = 60 + (20 if h2 >= 3 else 0) + (20 if h3 else 0)
    subs["section_hierarchy"] = SubcategoryScore(
        score=hierarchy,
        weight=0.35,
        evidence=[f"{h2} H2 sections, {h3} H3 subsections"],
        issues=["No H2 sections to organize topics"] if h2 == 0 else [],
    )

    return build_category("internal_structure", subs)


# ============================================================================
# REGISTRY
# ============================================================================

Scorer = Callable[[SiteSignals], CategoryScore]

SCORERS: Dict[str, Scorer] = {
    "technical_seo": score_technical_seo,
    "onpage_seo": score_onpage_seo,
    "content_quality": score_content_quality,
    "aeo_readiness": score_aeo_readiness,
    "brand_voice": score_brand_voice,
    "user_experience": score_user_experience,
    "internal_structure": score_internal_structure,
}
