"""
Curated Competitor Tables

Static, hand-maintained competitor lists used by the fallback tiers of
competitor resolution. Entries are (domain, display name).

None of these tables may contain a domain rejected by
`aeo_engine.utils.domain_filter.is_excluded_domain`.
"""

from typing import Dict, List, Tuple

Entry = Tuple[str, str]


# Real local competitors keyed by US state code, then industry
LOCAL_BY_STATE: Dict[str, Dict[str, List[Entry]]] = {
    "sc": {
        "hvac": [
            ("morrisjenkins.com", "Morris-Jenkins"),
            ("lordandcompany.com", "Lord & Company"),
            ("berkeleyheatingandair.com", "Berkeley Heating & Air"),
            ("coolrayheating.com", "Coolray"),
            ("cmbsllc.com", "CMBS Mechanical"),
            ("foxmechanical.com", "Fox Mechanical"),
            ("smithmech.com", "Smith Mechanical"),
        ],
        "plumbing": [
            ("rooterplus.com", "Rooter Plus"),
            ("charlestonplumber.com", "Charleston Plumber"),
        ],
    },
    "nc": {
        "hvac": [
            ("morrisjenkins.com", "Morris-Jenkins"),
            ("coolrayheating.com", "Coolray"),
        ],
    },
    "ga": {
        "hvac": [
            ("coolrayheating.com", "Coolray"),
            ("berkeleyheatingandair.com", "Berkeley Heating & Air"),
        ],
    },
}

# Industry-generic national franchises with local presence everywhere
LOCAL_GENERIC: Dict[str, List[Entry]] = {
    "hvac": [
        ("onehourheatandair.com", "One Hour Heating & Air"),
        ("serviceexperts.com", "Service Experts"),
        ("arshvac.com", "ARS Rescue Rooter"),
    ],
    "plumbing": [
        ("rotorooter.com", "Roto-Rooter"),
        ("mrrooter.com", "Mr. Rooter"),
        ("benjaminfranklinplumbing.com", "Benjamin Franklin Plumbing"),
    ],
    "electrical": [
        ("mrelectric.com", "Mr. Electric"),
        ("mistersparky.com", "Mister Sparky"),
    ],
    "landscaping": [
        ("trugreen.com", "TruGreen"),
        ("weedman.com", "Weed Man"),
        ("lawnlove.com", "Lawn Love"),
        ("brightview.com", "BrightView"),
        ("greenviewpartners.com", "GreenView Partners"),
    ],
    "roofing": [
        ("roofmaxx.com", "Roof Maxx"),
        ("certainteed.com", "CertainTeed"),
    ],
    "dental": [
        ("aspendental.com", "Aspen Dental"),
        ("gentledental.com", "Gentle Dental"),
    ],
    "cleaning": [
        ("mollymaid.com", "Molly Maid"),
        ("merrymaids.com", "Merry Maids"),
    ],
    "pestcontrol": [
        ("orkin.com", "Orkin"),
        ("terminix.com", "Terminix"),
    ],
    "general": [
        ("porch.com", "Porch"),
        ("networx.com", "Networx"),
    ],
}

# Coarse national directory keyed by industry
NATIONAL_DIRECTORY: Dict[str, List[Entry]] = {
    "hvac": [
        ("carrier.com", "Carrier"),
        ("trane.com", "Trane"),
        ("lennox.com", "Lennox"),
        ("daikin.com", "Daikin"),
    ],
    "plumbing": [
        ("ferguson.com", "Ferguson"),
        ("supplyhouse.com", "SupplyHouse"),
        ("build.com", "Build.com"),
    ],
    "electrical": [
        ("grainger.com", "Grainger"),
        ("graybar.com", "Graybar"),
    ],
    "legal": [
        ("legalzoom.com", "LegalZoom"),
        ("rocketlawyer.com", "Rocket Lawyer"),
        ("nolo.com", "Nolo"),
    ],
    "ecommerce": [
        ("shopify.com", "Shopify"),
        ("bigcommerce.com", "BigCommerce"),
    ],
    "saas": [
        ("salesforce.com", "Salesforce"),
        ("hubspot.com", "HubSpot"),
        ("zendesk.com", "Zendesk"),
    ],
    "b2b": [
        ("salesforce.com", "Salesforce"),
        ("oracle.com", "Oracle"),
        ("sap.com", "SAP"),
    ],
    "general": [
        ("shopify.com", "Shopify"),
        ("hubspot.com", "HubSpot"),
        ("mailchimp.com", "Mailchimp"),
    ],
}

# Pre-vetted major brands; served without a liveness check when every other tier is empty
GUARANTEED_FALLBACKS: Dict[str, List[Entry]] = {
    "hvac": [
        ("carrier.com", "Carrier"),
        ("trane.com", "Trane"),
        ("lennox.com", "Lennox"),
    ],
    "plumbing": [
        ("rotorooter.com", "Roto-Rooter"),
        ("benjaminfranklinplumbing.com", "Benjamin Franklin Plumbing"),
    ],
    "legal": [
        ("legalzoom.com", "LegalZoom"),
        ("rocketlawyer.com", "Rocket Lawyer"),
    ],
    "default": [
        ("hubspot.com", "HubSpot"),
        ("shopify.com", "Shopify"),
    ],
}


def local_entries(industry: str, state_code: str = None) -> List[Entry]:
    """State-specific entries when known, else the generic franchise list."""
    if state_code:
        by_industry = LOCAL_BY_STATE.get(state_code, {})
        if by_industry.get(industry):
            return by_industry[industry]
    return LOCAL_GENERIC.get(industry) or LOCAL_GENERIC["general"]


def directory_entries(industry: str) -> List[Entry]:
    return NATIONAL_DIRECTORY.get(industry) or NATIONAL_DIRECTORY["general"]


def guaranteed_entries(industry: str) -> List[Entry]:
    return GUARANTEED_FALLBACKS.get(industry) or GUARANTEED_FALLBACKS["default"]
