"""
Context Data Models

Types produced before a run's analysis starts:
- Business profile extracted from the subject's homepage
- Competitor candidates proposed by the resolution tiers
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# ENUMS
# =============================================================================


class Scope(str, Enum):
    """Geographic scope of an analysis."""
    LOCAL = "local"
    NATIONAL = "national"


class TargetMarket(str, Enum):
    """Market reach of the subject business."""
    LOCAL = "local"
    REGIONAL = "regional"
    NATIONAL = "national"
    UNKNOWN = "unknown"


class BusinessType(str, Enum):
    """Who the business sells to."""
    B2B = "B2B"
    B2C = "B2C"
    BOTH = "both"
    UNKNOWN = "unknown"


class CandidateSource(str, Enum):
    """How a competitor candidate was discovered."""
    AI_SUGGESTED = "ai_suggested"
    DATAFORSEO = "dataforseo"  # Keyword-overlap competitors
    SERP = "serp"  # Organic search results
    DIRECTORY = "directory"  # Built-in curated tables


def _coerce_enum(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        # Tolerate case differences ("b2b", "National")
        for member in enum_cls:
            if str(value).lower() == member.value.lower():
                return member
        return default


# =============================================================================
# BUSINESS PROFILE
# =============================================================================


@dataclass(frozen=True)
class BusinessLocation:
    """Where a business operates."""
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    service_area: Optional[str] = None

    def describe(self) -> str:
        """Human-readable location ("Charleston, SC")."""
        parts = [p for p in (self.city, self.state) if p]
        if not parts and self.country:
            parts = [self.country]
        return ", ".join(parts)

    @property
    def is_empty(self) -> bool:
        return not any((self.city, self.state, self.country, self.service_area))


@dataclass(frozen=True)
class BusinessProfile:
    """
    Structured description of the subject business.

    Produced once per run by the BusinessProfiler and never mutated.
    """
    name: str
    industry: str
    niche: str = "Unknown"
    primary_services: List[str] = field(default_factory=list)
    target_market: TargetMarket = TargetMarket.UNKNOWN
    location: Optional[BusinessLocation] = None
    business_type: BusinessType = BusinessType.UNKNOWN
    keywords: List[str] = field(default_factory=list)
    search_queries: List[str] = field(default_factory=list)

    @property
    def primary_service(self) -> str:
        """First listed service, falling back to the industry."""
        for service in self.primary_services:
            if service and service.lower() != "services":
                return service
        return self.industry

    @property
    def location_text(self) -> str:
        return self.location.describe() if self.location else ""

    def classification_text(self) -> str:
        """Concatenated free text used for industry classification."""
        return " ".join([
            self.industry or "",
            self.niche or "",
            self.name or "",
            " ".join(self.primary_services),
            " ".join(self.keywords),
        ]).lower()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["target_market"] = self.target_market.value
        data["business_type"] = self.business_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BusinessProfile":
        location = data.get("location")
        if isinstance(location, dict):
            location = BusinessLocation(
                city=location.get("city"),
                state=location.get("state"),
                country=location.get("country"),
                service_area=location.get("service_area") or location.get("serviceArea"),
            )
        services = data.get("primary_services") or data.get("primaryServices") or []
        queries = data.get("search_queries") or data.get("competitorSearchQueries") or []
        return cls(
            name=str(data.get("name") or data.get("businessName") or "Unknown"),
            industry=str(data.get("industry") or "General Business"),
            niche=str(data.get("niche") or "Unknown"),
            primary_services=[str(s) for s in services if s],
            target_market=_coerce_enum(
                TargetMarket, data.get("target_market") or data.get("targetMarket") or "unknown",
                TargetMarket.UNKNOWN,
            ),
            location=location if location and not location.is_empty else None,
            business_type=_coerce_enum(
                BusinessType, data.get("business_type") or data.get("businessType") or "unknown",
                BusinessType.UNKNOWN,
            ),
            keywords=[str(k) for k in data.get("keywords") or [] if k],
            search_queries=[str(q) for q in queries if q],
        )


# =============================================================================
# COMPETITOR CANDIDATES
# =============================================================================


@dataclass
class CompetitorCandidate:
    """A proposed competitor domain."""
    domain: str
    name: str
    source: CandidateSource
    similarity: float = 0.5  # 0-1
    description: Optional[str] = None

    # Optional metrics from keyword intelligence
    keyword_count: Optional[int] = None
    traffic_estimate: Optional[float] = None
    overlap_count: Optional[int] = None

    # False only for pre-vetted guaranteed fallbacks that skip the liveness check
    verified: bool = True

    def __post_init__(self):
        self.similarity = max(0.0, min(1.0, float(self.similarity)))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompetitorCandidate":
        return cls(
            domain=data["domain"],
            name=data.get("name") or data["domain"],
            source=CandidateSource(data.get("source", CandidateSource.DIRECTORY.value)),
            similarity=data.get("similarity", 0.5),
            description=data.get("description"),
            keyword_count=data.get("keyword_count"),
            traffic_estimate=data.get("traffic_estimate"),
            overlap_count=data.get("overlap_count"),
            verified=data.get("verified", True),
        )
