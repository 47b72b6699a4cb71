"""
AEO Competitor Engine

Competitive web-presence analysis core:
1. Profiles a business from its homepage (Claude AI with heuristic fallback)
2. Resolves real, validated competitor domains through a tiered fallback chain
3. Crawls subject and competitor sites and scores them category by category
4. Tracks run state, progress and per-call provider costs
"""

__version__ = "0.1.0"
