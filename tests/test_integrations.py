"""
Tests for provider clients and content extraction (httpx MockTransport)
"""

import json

import httpx
import pytest

from aeo_engine.collector.client import DataForSEOClient, RetryConfig as DataForSEORetryConfig
from aeo_engine.collector.client import summarize_keyword_gap
from aeo_engine.errors import ProviderCallFailed, ProviderUnavailable
from aeo_engine.integrations.base import PageContent
from aeo_engine.integrations.content import ContentFetcher, extract_relevant_content, extract_seo_elements
from aeo_engine.integrations.firecrawl import FirecrawlClient, FirecrawlError, RetryConfig
from aeo_engine.integrations.http_fetch import HttpContentRenderer, html_to_markdown, strip_tags
from aeo_engine.integrations.pagespeed import PageSpeedClient, PageSpeedError, parse_lighthouse

from conftest import SAMPLE_HTML, StubRenderer, make_page


NO_DELAY = RetryConfig(max_retries=1, initial_delay=0.0)


def dataforseo_response(items):
    return {
        "status_code": 20000,
        "tasks": [{"status_code": 20000, "result": [{"items": items}]}],
    }


# ============================================================================
# Firecrawl
# ============================================================================

class TestFirecrawlClient:
    """Test the Firecrawl renderer."""

    @pytest.mark.asyncio
    async def test_fetch(self):
        payloads = []

        def handler(request):
            payloads.append(json.loads(request.content))
            return httpx.Response(200, json={
                "success": True,
                "data": {
                    "markdown": "# Acme HVAC",
                    "html": "<h1>Acme HVAC</h1>",
                    "metadata": {"title": "Acme HVAC", "description": "Heating", "sourceURL": "https://acme-hvac.com/", "statusCode": 200},
                },
            })

        client = FirecrawlClient(api_key="fc-test", transport=httpx.MockTransport(handler))
        page = await client.fetch("https://acme-hvac.com")

        assert page.renderer == "firecrawl"
        assert page.markdown == "# Acme HVAC"
        assert page.title == "Acme HVAC"
        assert page.metadata["source_url"] == "https://acme-hvac.com/"
        assert payloads[0]["formats"] == ["markdown", "html"]
        assert payloads[0]["onlyMainContent"] is True
        await client.close()

    @pytest.mark.asyncio
    async def test_unavailable_without_key(self):
        client = FirecrawlClient(api_key=None)
        assert not client.is_available()
        with pytest.raises(ProviderUnavailable):
            await client.fetch("https://acme-hvac.com")
        await client.close()

    @pytest.mark.asyncio
    async def test_disabled(self):
        client = FirecrawlClient(api_key="fc-test", enabled=False)
        assert not client.is_available()
        await client.close()

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        calls = []

        def handler(request):
            calls.append(1)
            if len(calls) == 1:
                return httpx.Response(503, json={"error": "busy"})
            return httpx.Response(200, json={"success": True, "data": {"markdown": "ok"}})

        client = FirecrawlClient(api_key="fc-test", retry_config=NO_DELAY, transport=httpx.MockTransport(handler))
        page = await client.fetch("https://acme-hvac.com")

        assert page.markdown == "ok"
        assert len(calls) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(402, json={"error": "Payment required"})

        client = FirecrawlClient(api_key="fc-test", retry_config=NO_DELAY, transport=httpx.MockTransport(handler))
        with pytest.raises(FirecrawlError) as exc_info:
            await client.fetch("https://acme-hvac.com")

        assert exc_info.value.status_code == 402
        assert len(calls) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_unsuccessful_scrape(self):
        client = FirecrawlClient(
            api_key="fc-test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"success": False, "error": "blocked"})),
        )
        with pytest.raises(ProviderCallFailed):
            await client.fetch("https://acme-hvac.com")
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = FirecrawlClient(
            api_key="fc-test",
            retry_config=NO_DELAY,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>Gateway</html>")),
        )
        with pytest.raises(FirecrawlError):
            await client.fetch("https://acme-hvac.com")
        await client.close()


# ============================================================================
# Plain HTTP
# ============================================================================

class TestHttpContentRenderer:
    """Test the plain GET renderer."""

    @pytest.mark.asyncio
    async def test_fetch(self):
        renderer = HttpContentRenderer(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text=SAMPLE_HTML)),
        )
        page = await renderer.fetch("https://acme-hvac.com")

        assert page.renderer == "http"
        assert page.title == "Acme HVAC | Heating and Air Conditioning in Charleston, SC"
        assert page.description.startswith("Acme HVAC offers furnace repair")
        assert "# Heating and Cooling Experts in Charleston" in page.markdown
        assert "LocalBusiness" not in page.markdown
        await renderer.close()

    @pytest.mark.asyncio
    async def test_error_status(self):
        renderer = HttpContentRenderer(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        with pytest.raises(ProviderCallFailed) as exc_info:
            await renderer.fetch("https://acme-hvac.com")
        assert exc_info.value.status_code == 500
        await renderer.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        renderer = HttpContentRenderer(transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderCallFailed):
            await renderer.fetch("https://acme-hvac.com")
        await renderer.close()

    def test_strip_tags(self):
        assert strip_tags("<p>Hello <b>world</b></p><script>var x = 1;</script>") == "Hello world"

    def test_html_to_markdown(self):
        markdown = html_to_markdown("<h2>Our <em>Services</em></h2><p>AC repair</p>")
        assert markdown.splitlines() == ["## Our Services", "AC repair"]


# ============================================================================
# Content fetcher and extraction
# ============================================================================

class TestContentFetcher:
    """Test rich-then-plain fallback."""

    @pytest.mark.asyncio
    async def test_prefers_rich(self):
        rich = StubRenderer({"acme-hvac.com": make_page()}, name="firecrawl")
        plain = StubRenderer({"acme-hvac.com": make_page()}, name="http")
        page = await ContentFetcher(rich=rich, plain=plain).fetch("https://acme-hvac.com")
        assert page.renderer == "firecrawl"
        assert plain.fetched == []

    @pytest.mark.asyncio
    async def test_falls_back_to_plain(self):
        rich = StubRenderer({}, name="firecrawl")
        plain = StubRenderer({"acme-hvac.com": make_page()}, name="http")
        page = await ContentFetcher(rich=rich, plain=plain).fetch("https://acme-hvac.com")
        assert page.renderer == "http"
        assert rich.fetched == ["https://acme-hvac.com"]

    @pytest.mark.asyncio
    async def test_skips_unavailable(self):
        rich = StubRenderer({"acme-hvac.com": make_page()}, name="firecrawl", available=False)
        plain = StubRenderer({"acme-hvac.com": make_page()}, name="http")
        page = await ContentFetcher(rich=rich, plain=plain).fetch("https://acme-hvac.com")
        assert page.renderer == "http"
        assert rich.fetched == []

    @pytest.mark.asyncio
    async def test_empty_content_is_a_failure(self):
        empty = StubRenderer({"acme-hvac.com": PageContent(url="https://acme-hvac.com")}, name="http")
        with pytest.raises(ProviderCallFailed):
            await ContentFetcher(plain=empty).fetch("https://acme-hvac.com")

    @pytest.mark.asyncio
    async def test_no_renderer(self):
        with pytest.raises(ProviderCallFailed):
            await ContentFetcher().fetch("https://acme-hvac.com")

    @pytest.mark.asyncio
    async def test_non_json_rich_falls_back(self):
        rich = FirecrawlClient(
            api_key="fc-test",
            retry_config=NO_DELAY,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="upstream error")),
        )
        plain = StubRenderer({"acme-hvac.com": make_page()}, name="http")

        page = await ContentFetcher(rich=rich, plain=plain).fetch("https://acme-hvac.com")

        assert page.renderer == "http"
        await rich.close()

    @pytest.mark.asyncio
    async def test_unexpected_renderer_error_falls_back(self):
        class BrokenRenderer(StubRenderer):
            async def fetch(self, url):
                raise RuntimeError("renderer bug")

        plain = StubRenderer({"acme-hvac.com": make_page()}, name="http")
        page = await ContentFetcher(rich=BrokenRenderer({}, name="firecrawl"), plain=plain).fetch("https://acme-hvac.com")

        assert page.renderer == "http"

    @pytest.mark.asyncio
    async def test_unexpected_error_on_last_renderer(self):
        class BrokenRenderer(StubRenderer):
            async def fetch(self, url):
                raise KeyError("data")

        with pytest.raises(ProviderCallFailed) as exc:
            await ContentFetcher(plain=BrokenRenderer({})).fetch("https://acme-hvac.com")
        assert "KeyError" in str(exc.value)


class TestExtractSeoElements:
    """Test on-page element extraction."""

    def test_markdown_headings(self, sample_page):
        elements = extract_seo_elements(sample_page)
        assert elements.headings["h1"] == ["Heating and Cooling Experts in Charleston"]
        assert "What does an AC tune-up include?" in elements.headings["h2"]
        assert elements.headings["h3"] == ["How often should you service your furnace?"]

    def test_html_headings_fallback(self):
        page = PageContent(url="https://acme-hvac.com", html=SAMPLE_HTML)
        elements = extract_seo_elements(page)
        assert elements.headings["h1"] == ["Heating and Cooling Experts in Charleston"]
        assert elements.title.startswith("Acme HVAC")

    def test_images_schema_and_links(self, sample_page):
        elements = extract_seo_elements(sample_page)
        assert elements.has_schema is True
        assert elements.images == 2
        assert elements.images_with_alt == 1
        assert elements.internal_links == 2
        assert elements.external_links == 1

    def test_word_count(self, sample_page):
        assert extract_seo_elements(sample_page).word_count > 50

    def test_relevant_content(self):
        digest = extract_relevant_content(SAMPLE_HTML)
        assert digest.startswith("Title: Acme HVAC")
        assert "Headings: Heating and Cooling Experts in Charleston" in digest
        assert "Content:" in digest
        assert extract_relevant_content("") == ""


# ============================================================================
# DataForSEO
# ============================================================================

class TestDataForSEOClient:
    """Test keyword intelligence queries."""

    def client_for(self, handler) -> DataForSEOClient:
        return DataForSEOClient(
            login="login",
            password="secret",
            retry_config=DataForSEORetryConfig(max_retries=0, initial_delay=0.0),
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_unavailable_without_credentials(self):
        client = DataForSEOClient(login=None, password=None)
        assert not client.is_available()
        with pytest.raises(ProviderUnavailable):
            await client.organic_competitors("acme-hvac.com")
        await client.close()

    @pytest.mark.asyncio
    async def test_organic_competitors(self):
        requests = []

        def handler(request):
            requests.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200, json=dataforseo_response([
                {"domain": "www.rival-hvac.com", "intersections": 140, "full_domain_metrics": {"organic": {"etv": 900.5, "count": 1200}}},
                {"domain": "", "intersections": 3},
            ]))

        client = self.client_for(handler)
        competitors = await client.organic_competitors("https://acme-hvac.com", limit=10)

        assert competitors == [
            {"domain": "rival-hvac.com", "overlap_count": 140, "traffic_estimate": 900.5, "keyword_count": 1200},
        ]
        path, payload = requests[0]
        assert path.endswith("/dataforseo_labs/google/competitors_domain/live")
        assert payload[0]["target"] == "acme-hvac.com"
        assert payload[0]["limit"] == 10
        await client.close()

    @pytest.mark.asyncio
    async def test_search_organic_keeps_organic_items(self):
        client = self.client_for(lambda request: httpx.Response(200, json=dataforseo_response([
            {"type": "organic", "domain": "rival-hvac.com", "title": "Rival HVAC | Charleston", "description": "AC repair"},
            {"type": "local_pack", "domain": "maps-hvac.com", "title": "Map"},
            {"type": "organic", "url": "https://www.coastal-comfort.com/ac", "title": "Coastal Comfort"},
        ])))

        results = await client.search_organic("hvac repair companies Charleston, SC")

        assert [r["domain"] for r in results] == ["rival-hvac.com", "coastal-comfort.com"]
        await client.close()

    @pytest.mark.asyncio
    async def test_api_error_returns_empty(self):
        client = self.client_for(lambda request: httpx.Response(200, json={"status_code": 40100, "status_message": "Unauthorized"}))
        assert await client.organic_competitors("acme-hvac.com") == []
        assert await client.search_organic("hvac") == []
        assert await client.keyword_gap("acme-hvac.com", "rival-hvac.com") == {}
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body_returns_empty(self):
        client = self.client_for(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        assert await client.organic_competitors("acme-hvac.com") == []
        assert await client.search_organic("hvac") == []
        assert await client.keyword_gap("acme-hvac.com", "rival-hvac.com") == {}
        await client.close()

    @pytest.mark.asyncio
    async def test_keyword_gap(self):
        def item(keyword, volume, first=None, second=None):
            return {
                "keyword_data": {
                    "keyword": keyword,
                    "keyword_info": {"search_volume": volume, "keyword_difficulty": 20, "cpc": 2.0},
                    "search_intent_info": {"main_intent": "commercial"},
                },
                "first_domain_serp_element": {"rank_group": first} if first else None,
                "second_domain_serp_element": {"rank_group": second} if second else None,
            }

        def handler(request):
            payload = json.loads(request.content)[0]
            if payload.get("intersections") is False and payload["target1"] == "rival-hvac.com":
                items = [item("ac repair charleston", 900, first=3)]
            elif payload.get("intersections") is False:
                items = [item("acme hvac", 50, first=1)]
            else:
                items = [item("hvac charleston", 1200, first=15, second=4)]
            return httpx.Response(200, json=dataforseo_response(items))

        client = self.client_for(handler)
        gap = await client.keyword_gap("acme-hvac.com", "rival-hvac.com")

        assert gap["missing"][0]["keyword"] == "ac repair charleston"
        assert gap["missing"][0]["competitor_position"] == 3
        assert gap["missing"][0]["your_position"] is None
        assert gap["shared"][0]["your_position"] == 15
        assert gap["quick_wins"][0]["keyword"] == "hvac charleston"
        assert gap["summary"]["your_total_keywords"] == 2
        assert gap["summary"]["competitor_total_keywords"] == 2
        await client.close()


class TestSummarizeKeywordGap:
    """Test gap report assembly."""

    def kw(self, keyword, volume, difficulty, yours=None, theirs=None):
        return {
            "keyword": keyword,
            "search_volume": volume,
            "your_position": yours,
            "competitor_position": theirs,
            "keyword_difficulty": difficulty,
            "cpc": 0,
            "intent": "unknown",
        }

    def test_opportunities_ranked_by_value(self):
        gap = summarize_keyword_gap(
            missing=[
                self.kw("hard", 5000, 90, theirs=2),
                self.kw("small", 80, 10, theirs=5),
                self.kw("good", 1000, 20, theirs=3),
                self.kw("better", 1000, 5, theirs=12),
            ],
            unique=[],
            shared=[],
        )
        assert [kw["keyword"] for kw in gap["top_opportunities"]] == ["better", "good"]
        assert gap["summary"]["missed_opportunity_traffic"] == 608

    def test_quick_wins_on_page_two(self):
        gap = summarize_keyword_gap(
            missing=[],
            unique=[],
            shared=[self.kw("page one", 500, 30, yours=4), self.kw("page two", 500, 30, yours=12)],
        )
        assert [kw["keyword"] for kw in gap["quick_wins"]] == ["page two"]
        assert gap["summary"]["quick_wins"] == 1


# ============================================================================
# PageSpeed
# ============================================================================

LIGHTHOUSE = {
    "categories": {
        "performance": {"score": 0.82},
        "accessibility": {"score": 0.91},
        "best-practices": {"score": 0.88},
        "seo": {"score": None},
    },
    "audits": {
        "largest-contentful-paint": {"numericValue": 2100.4},
        "cumulative-layout-shift": {"numericValue": 0.05},
        "unused-javascript": {
            "id": "unused-javascript", "title": "Reduce unused JavaScript", "score": 0.4,
            "details": {"type": "opportunity", "overallSavingsMs": 900},
        },
        "render-blocking-resources": {
            "id": "render-blocking-resources", "title": "Eliminate render-blocking resources", "score": 0.6,
            "details": {"type": "opportunity", "overallSavingsMs": 1500},
        },
        "uses-http2": {"score": 1, "details": {"type": "opportunity", "overallSavingsMs": 0}},
    },
}


class TestPageSpeed:
    """Test Lighthouse parsing and the PageSpeed client."""

    def test_parse_lighthouse(self):
        audit = parse_lighthouse(LIGHTHOUSE)
        assert audit["scores"] == {"performance": 82, "accessibility": 91, "best_practices": 88, "seo": 0}
        assert audit["core_web_vitals"]["lcp"] == 2100.4
        assert audit["core_web_vitals"]["fid"] == 0
        assert [o["id"] for o in audit["opportunities"]] == ["render-blocking-resources", "unused-javascript"]

    @pytest.mark.asyncio
    async def test_analyze(self):
        seen = []

        def handler(request):
            seen.append(request.url.params.get_list("category"))
            return httpx.Response(200, json={"lighthouseResult": LIGHTHOUSE})

        client = PageSpeedClient(api_key="psi-key", transport=httpx.MockTransport(handler))
        audit = await client.analyze("https://acme-hvac.com")

        assert audit["scores"]["performance"] == 82
        assert seen[0] == ["performance", "accessibility", "best-practices", "seo"]
        await client.close()

    @pytest.mark.asyncio
    async def test_unavailable_without_key(self):
        client = PageSpeedClient(api_key=None)
        with pytest.raises(ProviderUnavailable):
            await client.analyze("https://acme-hvac.com")
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_lighthouse_result(self):
        client = PageSpeedClient(
            api_key="psi-key",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"error": "x"})),
        )
        with pytest.raises(PageSpeedError):
            await client.analyze("https://acme-hvac.com")
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = PageSpeedClient(
            api_key="psi-key",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="Service Unavailable")),
        )
        with pytest.raises(PageSpeedError):
            await client.analyze("https://acme-hvac.com")
        await client.close()
