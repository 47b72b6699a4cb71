"""
Tests for DomainValidator live-site probing
"""

import asyncio

import httpx
import pytest

from aeo_engine.context.domain_validator import DomainValidator


def validator_for(handler) -> DomainValidator:
    return DomainValidator(timeout=1.0, transport=httpx.MockTransport(handler))


class TestValidate:
    """Test single-domain probing."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [200, 204, 401, 403])
    async def test_live_statuses(self, status_code):
        validator = validator_for(lambda request: httpx.Response(status_code))
        assert await validator.validate("rival-hvac.com") is True
        await validator.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [404, 410, 500, 503])
    async def test_dead_statuses(self, status_code):
        validator = validator_for(lambda request: httpx.Response(status_code))
        assert await validator.validate("rival-hvac.com") is False
        await validator.close()

    @pytest.mark.asyncio
    async def test_parked_domain(self):
        validator = validator_for(lambda request: httpx.Response(200, headers={"server": "Parking/1.0"}))
        assert await validator.validate("parked-hvac.com") is False
        await validator.close()

    @pytest.mark.asyncio
    async def test_registrar_placeholder(self):
        validator = validator_for(lambda request: httpx.Response(200, headers={"Server": "GoDaddy"}))
        assert await validator.validate("parked-hvac.com") is False
        await validator.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        validator = validator_for(handler)
        assert await validator.validate("gone-hvac.com") is False
        await validator.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        validator = validator_for(handler)
        assert await validator.validate("slow-hvac.com") is False
        await validator.close()

    @pytest.mark.asyncio
    async def test_sends_https_head(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.scheme, request.url.host))
            return httpx.Response(200)

        validator = validator_for(handler)
        assert await validator.validate("HTTPS://www.Rival-HVAC.com/about")
        assert seen == [("HEAD", "https", "rival-hvac.com")]
        await validator.close()

    @pytest.mark.asyncio
    async def test_empty_domain(self):
        validator = validator_for(lambda request: httpx.Response(200))
        assert await validator.validate("") is False
        await validator.close()


class TestValidateMany:
    """Test batch probing."""

    @pytest.mark.asyncio
    async def test_keeps_input_order(self):
        live = {"a-hvac.com", "c-hvac.com"}
        validator = validator_for(
            lambda request: httpx.Response(200 if request.url.host in live else 404)
        )
        results = await validator.validate_many(["a-hvac.com", "b-hvac.com", "c-hvac.com"])
        assert results == [True, False, True]
        await validator.close()

    @pytest.mark.asyncio
    async def test_concurrent_calls_agree(self):
        calls = []

        def handler(request):
            calls.append(request.url.host)
            return httpx.Response(200)

        validator = validator_for(handler)
        results = await asyncio.gather(*(validator.validate("rival-hvac.com") for _ in range(5)))
        assert results == [True] * 5
        assert len(calls) <= 5
        await validator.close()

    @pytest.mark.asyncio
    async def test_empty_list(self):
        validator = validator_for(lambda request: httpx.Response(200))
        assert await validator.validate_many([]) == []
        await validator.close()
