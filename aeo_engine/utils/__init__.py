"""Utility modules for the AEO competitor engine."""

from .config import Settings, get_settings
from .domain_filter import (
    EXCLUDED_DOMAINS,
    domains_match,
    filter_competitor_domains,
    get_exclusion_reason,
    is_excluded_domain,
    normalize_domain,
    normalize_url,
    strip_tld,
)
from .log import configure_logging

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    # Domain handling
    "EXCLUDED_DOMAINS",
    "domains_match",
    "filter_competitor_domains",
    "get_exclusion_reason",
    "is_excluded_domain",
    "normalize_domain",
    "normalize_url",
    "strip_tld",
]
