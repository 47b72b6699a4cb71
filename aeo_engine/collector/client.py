"""
DataForSEO API Client

Keyword-intelligence provider. Async HTTP client with:
- Connection pooling
- Automatic retry with exponential backoff
- Graceful error handling: helper methods log failures and return empty results
"""

import asyncio
import httpx
import base64
import logging
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from aeo_engine.errors import ProviderCallFailed, ProviderUnavailable
from aeo_engine.integrations.base import KeywordIntelligence
from aeo_engine.utils.domain_filter import normalize_domain

logger = logging.getLogger(__name__)


def safe_get_result(response: Dict, get_items: bool = True) -> Any:
    """
    Safely extract result data from DataForSEO API response.

    Handles cases where result is None, empty, or malformed.

    Args:
        response: Raw API response dict
        get_items: If True, returns items list. If False, returns first result object.

    Returns:
        List of items, result dict, or empty list/dict on failure
    """
    try:
        tasks = response.get("tasks")
        if not tasks or not isinstance(tasks, list):
            return [] if get_items else {}

        result = tasks[0].get("result")
        if not result or not isinstance(result, list):
            return [] if get_items else {}

        first_result = result[0]
        if not first_result or not isinstance(first_result, dict):
            return [] if get_items else {}

        if get_items:
            items = first_result.get("items")
            return items if items and isinstance(items, list) else []
        return first_result
    except (AttributeError, TypeError, IndexError, KeyError) as e:
        logger.debug(f"Safe result extraction failed: {e}")
        return [] if get_items else {}


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 2
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0


class DataForSEOError(ProviderCallFailed):
    """Custom exception for DataForSEO API errors."""

    def __init__(self, message: str, status_code: int = None, response: dict = None):
        super().__init__(message, provider="dataforseo", status_code=status_code, response=response)


def _intent(value: Optional[str]) -> str:
    if not value:
        return "unknown"
    value = value.lower()
    for intent in ("informational", "navigational", "commercial", "transactional"):
        if intent in value:
            return intent
    return "unknown"


def _gap_item(item: Dict[str, Any], subject_first: bool) -> Dict[str, Any]:
    """Flatten a domain_intersection item; positions are from the subject's point of view."""
    keyword_data = item.get("keyword_data") or {}
    info = keyword_data.get("keyword_info") or {}
    first = (item.get("first_domain_serp_element") or {}).get("rank_group")
    second = (item.get("second_domain_serp_element") or {}).get("rank_group")
    return {
        "keyword": keyword_data.get("keyword") or item.get("keyword", ""),
        "search_volume": info.get("search_volume") or 0,
        "your_position": first if subject_first else second,
        "competitor_position": second if subject_first else first,
        "keyword_difficulty": info.get("keyword_difficulty") or 50,
        "cpc": info.get("cpc") or 0,
        "intent": _intent((keyword_data.get("search_intent_info") or {}).get("main_intent")),
    }


def summarize_keyword_gap(
    missing: List[Dict[str, Any]],
    unique: List[Dict[str, Any]],
    shared: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Build the keyword gap report from the three intersection lists.

    Top opportunities: missing keywords with volume > 100 and difficulty < 70,
    ranked by volume / (difficulty + 1). Quick wins: shared keywords where the
    subject ranks on page two (11-20).
    """
    top_opportunities = sorted(
        (kw for kw in missing if kw["search_volume"] > 100 and kw["keyword_difficulty"] < 70),
        key=lambda kw: kw["search_volume"] / (kw["keyword_difficulty"] + 1),
        reverse=True,
    )[:10]

    quick_wins = [
        kw for kw in shared
        if kw["your_position"] and 10 < kw["your_position"] <= 20
    ]

    missed_traffic = sum(
        kw["search_volume"] * 0.1
        for kw in missing
        if kw["competitor_position"] and kw["competitor_position"] <= 10
    )

    return {
        "missing": missing,
        "unique": unique,
        "shared": shared,
        "top_opportunities": top_opportunities,
        "quick_wins": quick_wins,
        "summary": {
            "your_total_keywords": len(unique) + len(shared),
            "competitor_total_keywords": len(missing) + len(shared),
            "missed_opportunity_traffic": round(missed_traffic),
            "shared_keywords_count": len(shared),
            "quick_wins": len(quick_wins),
        },
    }


class DataForSEOClient(KeywordIntelligence):
    """
    Async client for DataForSEO API.

    Usage:
        client = DataForSEOClient(login="your_login", password="your_password")

        competitors = await client.organic_competitors("example.com", limit=20)

        await client.close()
    """

    name = "dataforseo"
    BASE_URL = "https://api.dataforseo.com/v3"

    def __init__(
        self,
        login: Optional[str],
        password: Optional[str],
        retry_config: Optional[RetryConfig] = None,
        max_connections: int = 20,
        timeout: float = 30.0,
        location_code: int = 2840,
        language_code: str = "en",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize DataForSEO client.

        Args:
            login: DataForSEO login email
            password: DataForSEO API password
            retry_config: Retry configuration (optional)
            max_connections: Maximum concurrent connections
            timeout: Request timeout in seconds
            location_code: DataForSEO location code (default: 2840 = US)
            language_code: Language code (default: "en")
            transport: Custom httpx transport (tests)
        """
        self.login = login
        self.password = password
        self.retry_config = retry_config or RetryConfig()
        self.location_code = location_code
        self.language_code = language_code

        credentials = f"{login or ''}:{password or ''}"
        auth_token = base64.b64encode(credentials.encode()).decode()

        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Basic {auth_token}",
                "Content-Type": "application/json",
            },
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections // 2,
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

        self._closed = False

    def is_available(self) -> bool:
        return bool(self.login and self.password) and not self._closed

    async def post(
        self,
        endpoint: str,
        data: List[Dict[str, Any]],
        retry: bool = True
    ) -> Dict[str, Any]:
        """
        Make POST request to DataForSEO API.

        Args:
            endpoint: API endpoint path (e.g., "dataforseo_labs/google/competitors_domain/live")
            data: Request payload (list of task objects)
            retry: Whether to retry on failure

        Returns:
            API response as dictionary

        Raises:
            ProviderUnavailable: No credentials configured
            DataForSEOError: On API error
        """
        if not self.is_available():
            raise ProviderUnavailable(self.name)

        url = f"/{endpoint}"

        if retry:
            return await self._request_with_retry(url, data)
        return await self._make_request(url, data)

    async def _make_request(self, url: str, data: List[Dict]) -> Dict[str, Any]:
        """Make a single HTTP request."""
        logger.debug(f"POST {url}")

        response = await self._client.post(url, json=data)

        if response.status_code != 200:
            raise DataForSEOError(
                f"API request failed: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError:
            raise DataForSEOError("Invalid JSON response", status_code=response.status_code)

        if not isinstance(result, dict):
            raise DataForSEOError("Unexpected response shape", status_code=response.status_code)

        if result.get("status_code") != 20000:
            error_msg = result.get("status_message", "Unknown error")
            raise DataForSEOError(
                f"API error: {error_msg}",
                status_code=result.get("status_code"),
                response=result,
            )

        for task in result.get("tasks") or []:
            task_status = task.get("status_code")
            if task_status not in (20000, 20100):
                logger.error(
                    f"DataForSEO task error in {url}: "
                    f"{task.get('status_message', 'Task error')} (status: {task_status})"
                )

        return result

    async def _request_with_retry(self, url: str, data: List[Dict]) -> Dict[str, Any]:
        """Make request with automatic retry on failure."""
        last_exception = None
        delay = self.retry_config.initial_delay

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                return await self._make_request(url, data)

            except DataForSEOError as e:
                last_exception = e

                # Don't retry client errors (4xx except 429)
                if e.status_code and 400 <= e.status_code < 500 and e.status_code != 429:
                    raise

            except httpx.TimeoutException as e:
                last_exception = DataForSEOError(f"Request timed out: {e}")

            except httpx.HTTPError as e:
                last_exception = DataForSEOError(f"HTTP error: {e}")

            if attempt < self.retry_config.max_retries:
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{self.retry_config.max_retries + 1}): "
                    f"{last_exception}. Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
                delay = min(
                    delay * self.retry_config.exponential_base,
                    self.retry_config.max_delay
                )

        raise last_exception

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ========================================================================
    # KEYWORD INTELLIGENCE
    # ========================================================================

    async def organic_competitors(self, domain: str, limit: int = 20) -> List[Dict[str, Any]]:
        """
        Domains sharing organic keywords with `domain`, highest overlap first.

        Returns:
            [{domain, overlap_count, traffic_estimate, keyword_count}]; empty on error
        """
        try:
            result = await self.post(
                "dataforseo_labs/google/competitors_domain/live",
                [{
                    "target": normalize_domain(domain),
                    "location_code": self.location_code,
                    "language_code": self.language_code,
                    "limit": limit,
                    "filters": [["intersections", ">", 5]],
                    "order_by": ["intersections,desc"],
                }]
            )
        except DataForSEOError as e:
            logger.warning(f"Organic competitors query failed for {domain}: {e}")
            return []

        competitors = []
        for item in safe_get_result(result):
            competitor_domain = normalize_domain(item.get("domain"))
            if not competitor_domain:
                continue
            organic = ((item.get("full_domain_metrics") or item.get("metrics") or {}).get("organic") or {})
            competitors.append({
                "domain": competitor_domain,
                "overlap_count": item.get("intersections") or 0,
                "traffic_estimate": organic.get("etv") or 0,
                "keyword_count": organic.get("count") or 0,
            })
        return competitors

    async def search_organic(self, query: str) -> List[Dict[str, Any]]:
        """
        Google organic results for a query.

        Returns:
            [{domain, title, description}]; empty on error
        """
        try:
            result = await self.post(
                "serp/google/organic/live/regular",
                [{
                    "keyword": query,
                    "location_code": self.location_code,
                    "language_code": self.language_code,
                    "depth": 30,
                }]
            )
        except DataForSEOError as e:
            logger.warning(f"SERP query failed for '{query}': {e}")
            return []

        results = []
        for item in safe_get_result(result):
            if item.get("type") != "organic":
                continue
            result_domain = normalize_domain(item.get("domain") or item.get("url"))
            if result_domain:
                results.append({
                    "domain": result_domain,
                    "title": item.get("title") or "",
                    "description": item.get("description") or "",
                })
        return results

    async def _intersection(
        self,
        target1: str,
        target2: str,
        mode: str,
        limit: int,
    ) -> List[Dict[str, Any]]:
        payload = {
            "target1": normalize_domain(target1),
            "target2": normalize_domain(target2),
            "location_code": self.location_code,
            "language_code": self.language_code,
            "limit": limit,
            "order_by": ["keyword_data.keyword_info.search_volume,desc"],
        }
        if mode == "unique":
            payload["intersections"] = False
        result = await self.post("dataforseo_labs/google/domain_intersection/live", [payload])
        return safe_get_result(result)

    async def keyword_gap(self, domain_a: str, domain_b: str, limit: int = 50) -> Dict[str, Any]:
        """
        Keyword gap between the subject (domain_a) and a competitor (domain_b).

        Returns:
            {missing, unique, shared, top_opportunities, quick_wins, summary};
            empty dict on error
        """
        try:
            missing_raw, unique_raw, shared_raw = await asyncio.gather(
                self._intersection(domain_b, domain_a, "unique", limit),
                self._intersection(domain_a, domain_b, "unique", limit),
                self._intersection(domain_a, domain_b, "shared", 30),
            )
        except DataForSEOError as e:
            logger.warning(f"Keyword gap failed for {domain_a} vs {domain_b}: {e}")
            return {}

        missing = [_gap_item(item, subject_first=False) for item in missing_raw[:limit]]
        unique = [_gap_item(item, subject_first=True) for item in unique_raw[:limit]]
        shared = [_gap_item(item, subject_first=True) for item in shared_raw[:limit]]

        logger.info(
            f"Keyword gap complete: {len(missing)} missing, {len(unique)} unique, "
            f"{len(shared)} shared"
        )
        return summarize_keyword_gap(missing, unique, shared)
