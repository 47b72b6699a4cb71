"""
Domain Normalization and Filtering

Shared domain logic used across every competitor discovery tier:
- Canonical domain form used for deduplication (no scheme, no www., no path)
- URL normalization for user-submitted analysis targets
- Exclusion of platforms that are never real competitors

This ensures platforms like Facebook, Yelp, Amazon, etc. are NEVER offered as
competitors regardless of which tier proposed them.
"""

import re
from typing import Iterable, Optional, Set
from urllib.parse import urlsplit
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# NORMALIZATION
# =============================================================================

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_HOST_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)+$")


def normalize_domain(value: Optional[str]) -> str:
    """
    Canonicalize a URL or domain string to a bare host name.

    "HTTPS://www.Example.com/about?x=1" -> "example.com"

    Args:
        value: URL or domain in any common form

    Returns:
        Lower-case host without scheme, www. prefix, port, path or trailing dot.
        Empty string when nothing usable remains.
    """
    if not value:
        return ""

    text = value.strip().lower()
    if not text:
        return ""

    if not _SCHEME_RE.match(text):
        text = f"http://{text}"

    try:
        host = urlsplit(text).hostname or ""
    except ValueError:
        return ""

    host = host.rstrip(".")
    if host.startswith("www."):
        host = host[4:]

    return host


def normalize_url(value: Optional[str]) -> str:
    """
    Normalize a user-submitted URL for analysis.

    Trims and lower-cases the input and adds https:// when no scheme is given.

    Raises:
        ValueError: If the value does not contain a valid host name
    """
    if not value or not value.strip():
        raise ValueError("URL is required")

    url = value.strip().lower()
    if not _SCHEME_RE.match(url):
        url = f"https://{url}"

    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        raise ValueError(f"Unsupported URL scheme: {parts.scheme}")

    host = (parts.hostname or "").rstrip(".")
    if not host or not _HOST_RE.match(host):
        raise ValueError(f"Invalid URL: {value.strip()}")

    return url.rstrip("/")


def domains_match(first: Optional[str], second: Optional[str]) -> bool:
    """Check whether two URLs/domains refer to the same site."""
    a = normalize_domain(first)
    return bool(a) and a == normalize_domain(second)


def strip_tld(domain: str) -> str:
    """Return the registrable name without its TLD ("acme-hvac.com" -> "acme-hvac")."""
    host = normalize_domain(domain)
    return host.split(".")[0] if host else ""


# =============================================================================
# EXCLUDED DOMAINS - Platforms that are never business competitors
# =============================================================================

# Social Media Platforms
SOCIAL_MEDIA = {
    "facebook.com", "fb.com", "fb.me",
    "twitter.com", "x.com", "t.co",
    "instagram.com",
    "linkedin.com", "lnkd.in",
    "pinterest.com",
    "tiktok.com",
    "reddit.com",
    "tumblr.com",
    "snapchat.com",
    "threads.net",
    "whatsapp.com",
    "telegram.org", "t.me",
    "nextdoor.com",
}

# Video & Media Platforms
VIDEO_PLATFORMS = {
    "youtube.com", "youtu.be",
    "vimeo.com",
    "twitch.tv",
}

# Search Engines & Platform Vendors
TECH_PLATFORMS = {
    "google.com", "bing.com", "yahoo.com", "duckduckgo.com",
    "apple.com", "microsoft.com", "adobe.com",
    "zoom.us", "canva.com",
    "cloudflare.com",
}

# Marketplaces & Big-Box Retail
MARKETPLACES = {
    "amazon.com", "ebay.com", "etsy.com",
    "walmart.com", "target.com",
    "homedepot.com", "lowes.com",
    "alibaba.com", "aliexpress.com",
    "craigslist.org",
}

# Reference & Publishing Platforms
REFERENCE_SITES = {
    "wikipedia.org", "wikimedia.org",
    "medium.com",
    "wordpress.com", "blogger.com", "blogspot.com",
    "quora.com",
}

# Review, Directory & Lead-Gen Sites
REVIEW_DIRECTORIES = {
    "yelp.com",
    "yellowpages.com",
    "bbb.org",
    "thumbtack.com",
    "homeadvisor.com",
    "angieslist.com", "angi.com",
    "manta.com",
    "superpages.com",
    "citysearch.com",
    "foursquare.com",
    "mapquest.com",
    "tripadvisor.com",
    "trustpilot.com",
    "glassdoor.com",
    "indeed.com",
}

# Website Builders & Hosting
SITE_BUILDERS = {
    "godaddy.com",
    "wix.com",
    "squarespace.com",
    "weebly.com",
}

# Map & App Store Hosts
APP_STORES = {
    "maps.google.com",
    "play.google.com",
    "apps.apple.com",
}

# Government & Educational TLD patterns
GOVERNMENT_PATTERNS = (".gov", ".edu", ".mil")

# Base names that identify a platform on any TLD (google.de, amazon.co.uk)
PLATFORM_INDICATORS = {
    "facebook", "youtube", "twitter", "instagram", "linkedin",
    "tiktok", "pinterest", "reddit", "google", "amazon", "yelp", "wikipedia",
}

# Combine all into master set
EXCLUDED_DOMAINS: Set[str] = (
    SOCIAL_MEDIA |
    VIDEO_PLATFORMS |
    TECH_PLATFORMS |
    MARKETPLACES |
    REFERENCE_SITES |
    REVIEW_DIRECTORIES |
    SITE_BUILDERS |
    APP_STORES
)

_EXCLUSION_GROUPS = (
    (SOCIAL_MEDIA, "Social media platform"),
    (VIDEO_PLATFORMS, "Video/media platform"),
    (TECH_PLATFORMS, "Technology platform"),
    (MARKETPLACES, "Marketplace or big-box retailer"),
    (REFERENCE_SITES, "Reference/publishing platform"),
    (REVIEW_DIRECTORIES, "Review or business directory"),
    (SITE_BUILDERS, "Website builder or host"),
    (APP_STORES, "Map or app store"),
)


def _matches(domain: str, group: Iterable[str]) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in group)


def is_excluded_domain(domain: Optional[str]) -> bool:
    """
    Check if a domain should be excluded from competitor discovery.

    Matching strategies:
    1. Exact match against known domains (after www. stripping)
    2. Subdomain matching (business.facebook.com -> facebook.com)
    3. Government/educational TLD patterns
    4. Platform base names on any TLD (amazon.co.uk)

    Args:
        domain: Domain or URL to check

    Returns:
        True if domain should be excluded, False if it's a valid competitor candidate
    """
    domain_lower = normalize_domain(domain)
    if not domain_lower:
        return True

    if domain_lower in EXCLUDED_DOMAINS:
        return True

    if _matches(domain_lower, EXCLUDED_DOMAINS):
        return True

    for pattern in GOVERNMENT_PATTERNS:
        if domain_lower.endswith(pattern) or pattern + "." in domain_lower:
            return True

    domain_parts = domain_lower.split(".")
    if len(domain_parts) >= 2:
        # "amazon" from amazon.com, also "amazon" from amazon.co.uk
        if domain_parts[-2] in PLATFORM_INDICATORS or domain_parts[0] in PLATFORM_INDICATORS:
            return True

    return False


def filter_competitor_domains(domains: list, source: str = "unknown") -> list:
    """
    Filter a list of competitor domains, removing excluded platforms.

    Args:
        domains: List of domain strings, dicts with a 'domain' key, or objects
                 with a `domain` attribute
        source: Description of where these domains came from (for logging)

    Returns:
        Filtered list with excluded domains removed
    """
    filtered = []
    excluded_count = 0

    for item in domains:
        if isinstance(item, str):
            domain = item
        elif isinstance(item, dict):
            domain = item.get("domain", "")
        else:
            domain = getattr(item, "domain", "")

        if is_excluded_domain(domain):
            excluded_count += 1
            logger.debug(f"Excluded platform domain from {source}: {domain}")
        else:
            filtered.append(item)

    if excluded_count > 0:
        logger.info(f"Filtered {excluded_count} platform domains from {source}")

    return filtered


def get_exclusion_reason(domain: str) -> Optional[str]:
    """
    Get the reason why a domain is excluded.

    Returns:
        Reason string if excluded, None if valid competitor
    """
    domain_lower = normalize_domain(domain)
    if not domain_lower:
        return "Empty domain"

    for group, reason in _EXCLUSION_GROUPS:
        if _matches(domain_lower, group):
            return reason

    for pattern in GOVERNMENT_PATTERNS:
        if domain_lower.endswith(pattern) or pattern + "." in domain_lower:
            return "Government/educational site"

    if is_excluded_domain(domain_lower):
        return "Platform domain"

    return None
