"""
Plain HTTP Content Renderer

Fallback fetch path: a single GET without JavaScript rendering. Produces the
same PageContent shape as the Firecrawl renderer, with a crude markdown
approximation made by stripping tags.
"""

import html as html_lib
import logging
import re
from typing import Optional

import httpx

from aeo_engine.errors import ProviderCallFailed
from .base import ContentRenderer, PageContent

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; AEOCompetitorBot/1.0)"
MAX_MARKDOWN_CHARS = 10_000

_TITLE_RE = re.compile(r"<title[^>]*>([\s\S]*?)</title>", re.IGNORECASE)
_META_DESC_RE = re.compile(
    r"<meta[^>]+name=[\"']description[\"'][^>]*content=[\"']([^\"']*)[\"']",
    re.IGNORECASE,
)
_META_DESC_REVERSED_RE = re.compile(
    r"<meta[^>]+content=[\"']([^\"']*)[\"'][^>]*name=[\"']description[\"']",
    re.IGNORECASE,
)
_NON_CONTENT_RE = re.compile(r"<(script|style|noscript)[^>]*>[\s\S]*?</\1>", re.IGNORECASE)
_HEADING_RE = re.compile(r"<h([1-3])[^>]*>([\s\S]*?)</h\1>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def extract_title(page_html: str) -> str:
    match = _TITLE_RE.search(page_html or "")
    return html_lib.unescape(_WS_RE.sub(" ", match.group(1))).strip() if match else ""


def extract_meta_description(page_html: str) -> str:
    match = _META_DESC_RE.search(page_html or "") or _META_DESC_REVERSED_RE.search(page_html or "")
    return html_lib.unescape(match.group(1)).strip() if match else ""


def strip_tags(page_html: str) -> str:
    """Remove script/style blocks and all tags, collapsing whitespace."""
    text = _NON_CONTENT_RE.sub(" ", page_html or "")
    text = _TAG_RE.sub(" ", text)
    return _WS_RE.sub(" ", html_lib.unescape(text)).strip()


def html_to_markdown(page_html: str) -> str:
    """Approximate markdown: headings become #-lines, everything else plain text."""
    text = _NON_CONTENT_RE.sub(" ", page_html or "")
    text = _HEADING_RE.sub(
        lambda m: "\n" + "#" * int(m.group(1)) + " " + _WS_RE.sub(" ", _TAG_RE.sub(" ", m.group(2))).strip() + "\n",
        text,
    )
    text = _TAG_RE.sub(" ", text)
    lines = [_WS_RE.sub(" ", html_lib.unescape(line)).strip() for line in text.split("\n")]
    return "\n".join(line for line in lines if line)[:MAX_MARKDOWN_CHARS]


class HttpContentRenderer(ContentRenderer):
    """Fetches pages with a plain GET. Always available."""

    name = "http"

    def __init__(
        self,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            transport=transport,
        )

    def is_available(self) -> bool:
        return True

    async def fetch(self, url: str) -> PageContent:
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise ProviderCallFailed(f"Fetch timed out: {e}", provider=self.name)
        except httpx.RequestError as e:
            raise ProviderCallFailed(f"Fetch failed: {e}", provider=self.name)

        if response.status_code >= 400:
            raise ProviderCallFailed(
                f"Fetch returned HTTP {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
            )

        page_html = response.text
        logger.debug(f"Fetched {url} via plain HTTP ({len(page_html)} bytes)")

        return PageContent(
            url=str(response.url),
            markdown=html_to_markdown(page_html),
            html=page_html,
            metadata={
                "title": extract_title(page_html),
                "description": extract_meta_description(page_html),
                "source_url": str(response.url),
                "status_code": response.status_code,
            },
            renderer=self.name,
        )

    async def close(self):
        await self._client.aclose()
