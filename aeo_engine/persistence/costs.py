"""
Cost Ledger

Append-only record of provider calls made for one analysis run, in integer
cents. Entries are never mutated or removed, so a run's total only grows.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


# Default unit costs in cents, keyed by (provider, operation)
DEFAULT_COSTS: Dict[Tuple[str, str], int] = {
    ("firecrawl", "scrape_your_site"): 1,
    ("firecrawl", "scrape_competitor"): 1,
    ("anthropic", "business_profile"): 2,
    ("anthropic", "competitor_suggestions"): 2,
    ("anthropic", "content_analysis"): 10,
    ("anthropic", "brand_voice"): 8,
    ("pagespeed", "performance_your_site"): 0,
    ("pagespeed", "performance_competitor"): 0,
    ("dataforseo", "organic_competitors"): 1,
    ("dataforseo", "serp"): 1,
    ("dataforseo", "keyword_gap"): 2,
}


@dataclass(frozen=True)
class CostEntry:
    """One attributable provider call."""
    provider: str
    operation: str
    cost_cents: int

    def to_dict(self) -> Dict:
        return asdict(self)


class CostLedger:
    """
    Records a unit cost per external call made during a run.

    Usage:
        ledger = CostLedger()
        ledger.record("firecrawl", "scrape_your_site")
        ledger.total_cents  # 1
    """

    def __init__(self, costs: Optional[Dict[Tuple[str, str], int]] = None):
        self.costs = dict(DEFAULT_COSTS) if costs is None else dict(costs)
        self._entries: List[CostEntry] = []

    def record(self, provider: str, operation: str, cost_cents: Optional[int] = None) -> CostEntry:
        """
        Append an entry.

        Args:
            provider: Provider name ("anthropic", "dataforseo", ...)
            operation: Operation name
            cost_cents: Explicit cost; defaults to the configured unit cost (0 if unknown)

        Raises:
            ValueError: If cost_cents is negative
        """
        if cost_cents is None:
            cost_cents = self.costs.get((provider, operation), 0)
        if cost_cents < 0:
            raise ValueError("Cost cannot be negative")

        entry = CostEntry(provider=provider, operation=operation, cost_cents=int(cost_cents))
        self._entries.append(entry)
        logger.debug(f"Cost recorded: {provider}/{operation} = {entry.cost_cents}c")
        return entry

    @property
    def entries(self) -> Tuple[CostEntry, ...]:
        return tuple(self._entries)

    @property
    def total_cents(self) -> int:
        return sum(entry.cost_cents for entry in self._entries)

    def by_provider(self) -> Dict[str, int]:
        """Total cents per provider."""
        totals: Dict[str, int] = {}
        for entry in self._entries:
            totals[entry.provider] = totals.get(entry.provider, 0) + entry.cost_cents
        return totals

    def to_list(self) -> List[Dict]:
        return [entry.to_dict() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
