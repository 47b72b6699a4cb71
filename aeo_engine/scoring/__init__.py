"""
Scoring Module

Per-category scorers for one site and the weighted aggregate used for both
sides of a comparison.

Example Usage:
    from aeo_engine.scoring import SCORERS, SiteSignals, aggregate_score

    scores = {name: scorer(signals).score for name, scorer in SCORERS.items()}
    total = aggregate_score(scores)
"""

from .categories import (
    # Types
    CategoryStatus,
    SubcategoryScore,
    CategoryScore,
    SiteSignals,
    # Weights and aggregation
    CATEGORY_WEIGHTS,
    CATEGORY_LABELS,
    clamp_score,
    aggregate_score,
    compare_status,
    weighted_subcategories,
    unavailable_category,
    # Scorers
    SCORERS,
    score_technical_seo,
    score_onpage_seo,
    score_content_quality,
    score_aeo_readiness,
    score_brand_voice,
    score_user_experience,
    score_internal_structure,
)

__all__ = [
    "CategoryStatus",
    "SubcategoryScore",
    "CategoryScore",
    "SiteSignals",
    "CATEGORY_WEIGHTS",
    "CATEGORY_LABELS",
    "clamp_score",
    "aggregate_score",
    "compare_status",
    "weighted_subcategories",
    "unavailable_category",
    "SCORERS",
    "score_technical_seo",
    "score_onpage_seo",
    "score_content_quality",
    "score_aeo_readiness",
    "score_brand_voice",
    "score_user_experience",
    "score_internal_structure",
]
