"""
Industry Classification

Maps free-text business descriptions to a fixed set of industry tags using an
ordered rule list. The first matching rule wins; `general` when none match.
Pure functions, no I/O.
"""

import re
from typing import List, Optional, Pattern, Tuple

from .models import BusinessProfile

DEFAULT_INDUSTRY = "general"

# Order matters: "heating" must classify as hvac before anything more generic.
INDUSTRY_RULES: List[Tuple[Pattern, str]] = [
    (re.compile(r"hvac|heating|cooling|air condition|furnace|heat pump|ductwork"), "hvac"),
    (re.compile(r"plumb|pipe|drain|water heater|sewer"), "plumbing"),
    (re.compile(r"electric|wiring|outlet|panel|generator"), "electrical"),
    (re.compile(r"roof|shingle|gutter|siding"), "roofing"),
    (re.compile(r"landscap|lawn|garden|tree|irrigation"), "landscaping"),
    (re.compile(r"\bcars?\b|auto|vehicle|mechanic|oil change|tire|brake"), "automotive"),
    (re.compile(r"dental|dentist|orthodont|teeth|smile"), "dental"),
    (re.compile(r"\blaw\b|attorney|legal|lawyer"), "legal"),
    (re.compile(r"real estate|realtor|property|home (sale|buy)"), "realestate"),
    (re.compile(r"restaurant|food|catering|dining"), "restaurant"),
    (re.compile(r"salon|\bspa\b|hair|beauty|nail|massage"), "beauty"),
    (re.compile(r"\bgym\b|fitness|personal train|workout"), "fitness"),
    (re.compile(r"clean|janitorial|maid|housekeep"), "cleaning"),
    (re.compile(r"pest|exterminat|termite|\bbugs?\b"), "pestcontrol"),
    (re.compile(r"insurance|coverage|policy"), "insurance"),
    (re.compile(r"account|\btax\b|bookkeep|\bcpa\b|financial"), "accounting"),
    (re.compile(r"moving|relocation|storage"), "moving"),
    (re.compile(r"security|alarm|surveillance|camera"), "security"),
    (re.compile(r"e-?commerce|online store|shop online|retail"), "ecommerce"),
    (re.compile(r"\bsaas\b|software|platform|\bapp\b|cloud"), "saas"),
    (re.compile(r"\bb2b\b|enterprise|wholesale|manufactur"), "b2b"),
]

# Keywords in a domain name that hint at an industry ("acme-hvac.com")
DOMAIN_HINTS: List[Tuple[str, str]] = [
    ("hvac", "hvac"),
    ("heating", "hvac"),
    ("cooling", "hvac"),
    ("plumb", "plumbing"),
    ("rooter", "plumbing"),
    ("drain", "plumbing"),
    ("electric", "electrical"),
    ("roof", "roofing"),
    ("lawn", "landscaping"),
    ("landscap", "landscaping"),
    ("dental", "dental"),
    ("dentist", "dental"),
    ("law", "legal"),
    ("legal", "legal"),
    ("clean", "cleaning"),
    ("maid", "cleaning"),
    ("pest", "pestcontrol"),
    ("auto", "automotive"),
]

US_STATES = {
    "alabama": "al", "alaska": "ak", "arizona": "az", "arkansas": "ar",
    "california": "ca", "colorado": "co", "connecticut": "ct", "delaware": "de",
    "florida": "fl", "georgia": "ga", "hawaii": "hi", "idaho": "id",
    "illinois": "il", "indiana": "in", "iowa": "ia", "kansas": "ks",
    "kentucky": "ky", "louisiana": "la", "maine": "me", "maryland": "md",
    "massachusetts": "ma", "michigan": "mi", "minnesota": "mn", "mississippi": "ms",
    "missouri": "mo", "montana": "mt", "nebraska": "ne", "nevada": "nv",
    "new hampshire": "nh", "new jersey": "nj", "new mexico": "nm", "new york": "ny",
    "north carolina": "nc", "north dakota": "nd", "ohio": "oh", "oklahoma": "ok",
    "oregon": "or", "pennsylvania": "pa", "rhode island": "ri", "south carolina": "sc",
    "south dakota": "sd", "tennessee": "tn", "texas": "tx", "utah": "ut",
    "vermont": "vt", "virginia": "va", "washington": "wa", "west virginia": "wv",
    "wisconsin": "wi", "wyoming": "wy",
}


def classify_text(text: Optional[str]) -> str:
    """
    Classify free text into an industry tag.

    Args:
        text: Any description (industry, niche, services...)

    Returns:
        Industry tag, `general` when no rule matches
    """
    if not text:
        return DEFAULT_INDUSTRY

    lowered = text.lower()
    for pattern, tag in INDUSTRY_RULES:
        if pattern.search(lowered):
            return tag
    return DEFAULT_INDUSTRY


def detect_industry(profile: BusinessProfile) -> str:
    """Classify a business profile using industry, niche, name, services and keywords."""
    return classify_text(profile.classification_text())


def industry_from_domain(domain: Optional[str]) -> str:
    """Guess an industry from keywords embedded in a domain name."""
    if not domain:
        return DEFAULT_INDUSTRY

    name = domain.lower().split(".")[0]
    for hint, tag in DOMAIN_HINTS:
        if hint in name:
            return tag
    return DEFAULT_INDUSTRY


def normalize_state(state: Optional[str]) -> Optional[str]:
    """
    Normalize a US state name or code to its two-letter code.

    "South Carolina" -> "sc", "SC" -> "sc", "Ontario" -> None
    """
    if not state:
        return None

    value = state.strip().lower().rstrip(".")
    if value in US_STATES:
        return US_STATES[value]
    if len(value) == 2 and value in US_STATES.values():
        return value
    return None
