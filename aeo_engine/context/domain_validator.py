"""
Domain Validation

Confirms a candidate competitor domain is a live, owned website with a cheap
HEAD request. Parked or registrar placeholder hosts are rejected.
"""

import asyncio
import logging
from typing import Dict, List, Optional

import httpx

from aeo_engine.errors import ValidationRejected
from aeo_engine.utils.domain_filter import normalize_domain

logger = logging.getLogger(__name__)

# Server header fragments used by parking and registrar placeholder pages
PARKING_SIGNATURES = ("godaddy", "parking", "sedo", "bodis", "parklogic")

# Auth-protected hosts are still live and owned
ACCEPTED_STATUS_CODES = (401, 403)


class DomainValidator:
    """
    Validates that a domain resolves to a live, non-parked website.

    `validate()` never raises. Concurrent calls for the same domain share one
    in-flight check.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        concurrency: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            timeout: Request timeout in seconds
            concurrency: Maximum checks in flight for validate_many()
            transport: Custom httpx transport (tests)
        """
        self.timeout = timeout
        self.concurrency = concurrency
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": "Mozilla/5.0 (compatible; AEOCompetitorBot/1.0)"},
            transport=transport,
        )
        self._in_flight: Dict[str, asyncio.Future] = {}

    async def validate(self, domain: str) -> bool:
        """
        Check whether https://{domain} answers like a live, owned site.

        Returns:
            True on 2xx, 401 or 403 from a non-parked host; False otherwise
        """
        host = normalize_domain(domain)
        if not host:
            return False

        task = self._in_flight.get(host)
        if task is None:
            task = asyncio.ensure_future(self._check_host(host))
            self._in_flight[host] = task
            task.add_done_callback(lambda _: self._in_flight.pop(host, None))

        return await asyncio.shield(task)

    async def validate_many(self, domains: List[str]) -> List[bool]:
        """Validate domains with bounded concurrency; results keep input order."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def validate_with_semaphore(domain: str) -> bool:
            async with semaphore:
                return await self.validate(domain)

        return list(await asyncio.gather(*(validate_with_semaphore(d) for d in domains)))

    async def _check_host(self, host: str) -> bool:
        try:
            response = await asyncio.wait_for(
                self._client.head(f"https://{host}"),
                timeout=self.timeout,
            )
            self._check_response(host, response)
            return True
        except ValidationRejected as e:
            logger.debug(f"Domain validation rejected {host}: {e.reason}")
            return False
        except asyncio.TimeoutError:
            logger.debug(f"Domain validation timed out for {host}")
            return False
        except httpx.HTTPError as e:
            logger.debug(f"Domain validation failed for {host}: {e}")
            return False

    @staticmethod
    def _check_response(host: str, response: httpx.Response):
        server = response.headers.get("server", "").lower()
        for signature in PARKING_SIGNATURES:
            if signature in server:
                raise ValidationRejected(host, f"parked domain (server: {server})")

        if response.is_success or response.status_code in ACCEPTED_STATUS_CODES:
            return

        raise ValidationRejected(host, f"HTTP {response.status_code}")

    async def close(self):
        await self._client.aclose()
