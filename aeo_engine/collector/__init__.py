"""
Search Data Collection Package

Keyword intelligence from the DataForSEO API:
- Organic competitors by keyword overlap
- Organic SERP results for discovery queries
- Keyword gap between two domains
"""

from .client import DataForSEOClient, DataForSEOError, RetryConfig, summarize_keyword_gap

__all__ = [
    "DataForSEOClient",
    "DataForSEOError",
    "RetryConfig",
    "summarize_keyword_gap",
]
