"""
Content Fetching and Page Element Extraction

ContentFetcher tries the rich (JS-rendering) renderer first and falls back to
the plain HTTP renderer. Both produce a PageContent; callers never need to
know which path served the page except through `PageContent.renderer`.
"""

import asyncio
import html as html_lib
import logging
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from aeo_engine.errors import ProviderCallFailed, ProviderUnavailable
from aeo_engine.utils.domain_filter import normalize_domain
from .base import ContentRenderer, PageContent
from .http_fetch import extract_meta_description, extract_title, strip_tags

logger = logging.getLogger(__name__)


class ContentFetcher:
    """
    Fetch rendered page content with a rich-then-plain fallback.

    Usage:
        fetcher = ContentFetcher(rich=firecrawl, plain=HttpContentRenderer())
        page = await fetcher.fetch("https://example.com")
    """

    def __init__(
        self,
        rich: Optional[ContentRenderer] = None,
        plain: Optional[ContentRenderer] = None,
        timeout: float = 15.0,
    ):
        self.rich = rich
        self.plain = plain
        self.timeout = timeout

    async def fetch(self, url: str) -> PageContent:
        """
        Fetch a URL.

        Raises:
            ProviderCallFailed: If no renderer could fetch the page
        """
        errors = []

        for renderer in (self.rich, self.plain):
            if renderer is None:
                continue
            if not renderer.is_available():
                logger.debug(f"Renderer {renderer.name} unavailable, skipping for {url}")
                continue

            try:
                page = await asyncio.wait_for(renderer.fetch(url), timeout=self.timeout)
            except asyncio.TimeoutError:
                errors.append(f"{renderer.name}: timed out after {self.timeout}s")
                logger.warning(f"{renderer.name} fetch of {url} timed out")
                continue
            except (ProviderCallFailed, ProviderUnavailable) as e:
                errors.append(f"{renderer.name}: {e}")
                logger.warning(f"{renderer.name} fetch of {url} failed: {e}")
                continue
            except Exception as e:
                errors.append(f"{renderer.name}: {type(e).__name__}: {e}")
                logger.error(f"{renderer.name} fetch of {url} raised unexpectedly: {e}", exc_info=True)
                continue

            if not (page.markdown or page.html):
                errors.append(f"{renderer.name}: empty content")
                logger.warning(f"{renderer.name} returned empty content for {url}")
                continue

            logger.info(f"Fetched {url} via {renderer.name}")
            return page

        raise ProviderCallFailed(
            f"Could not fetch {url}: {'; '.join(errors) or 'no renderer available'}",
            provider="content",
        )


# =============================================================================
# SEO ELEMENT EXTRACTION
# =============================================================================


@dataclass
class SeoElements:
    """On-page elements extracted from a fetched page."""
    title: str = ""
    description: str = ""
    headings: Dict[str, List[str]] = field(default_factory=lambda: {"h1": [], "h2": [], "h3": []})
    word_count: int = 0
    has_schema: bool = False
    images: int = 0
    images_with_alt: int = 0
    internal_links: int = 0
    external_links: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_MD_HEADING_RE = re.compile(r"^(#{1,3})\s+(.+?)\s*#*\s*$", re.MULTILINE)
_HTML_HEADING_RE = re.compile(r"<h([1-3])[^>]*>([\s\S]*?)</h\1>", re.IGNORECASE)
_SCHEMA_RE = re.compile(r"application/ld\+json|itemtype=", re.IGNORECASE)
_MD_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(")
_IMG_TAG_RE = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
_ALT_RE = re.compile(r"\balt=[\"'][^\"']+[\"']", re.IGNORECASE)
_HREF_RE = re.compile(r"<a\b[^>]*href=[\"']([^\"'#]+)[\"']", re.IGNORECASE)
_MD_LINK_RE = re.compile(r"(?<!!)\[[^\]]*\]\(([^)\s]+)")
_WORD_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9'-]*")


def _count_links(hrefs: List[str], site_domain: str) -> Dict[str, int]:
    internal = external = 0
    for href in hrefs:
        href = href.strip()
        if href.startswith(("mailto:", "tel:", "javascript:")):
            continue
        if href.startswith(("http://", "https://", "//")):
            host = normalize_domain(href if not href.startswith("//") else "https:" + href)
            if host and site_domain and (host == site_domain or host.endswith("." + site_domain)):
                internal += 1
            else:
                external += 1
        else:
            internal += 1
    return {"internal": internal, "external": external}


def extract_seo_elements(page: PageContent) -> SeoElements:
    """
    Extract title, description, headings, word count, schema presence, images
    and link counts from a fetched page.
    """
    markdown = page.markdown or ""
    page_html = page.html or ""

    headings: Dict[str, List[str]] = {"h1": [], "h2": [], "h3": []}
    for hashes, text in _MD_HEADING_RE.findall(markdown):
        headings[f"h{len(hashes)}"].append(text.strip())
    if not any(headings.values()) and page_html:
        for level, text in _HTML_HEADING_RE.findall(page_html):
            clean = strip_tags(text)
            if clean:
                headings[f"h{level}"].append(clean)

    text_for_count = markdown or strip_tags(page_html)
    word_count = len(_WORD_RE.findall(text_for_count))

    if page_html:
        img_tags = _IMG_TAG_RE.findall(page_html)
        images = len(img_tags)
        images_with_alt = sum(1 for tag in img_tags if _ALT_RE.search(tag))
        hrefs = _HREF_RE.findall(page_html)
    else:
        md_images = _MD_IMAGE_RE.findall(markdown)
        images = len(md_images)
        images_with_alt = sum(1 for alt in md_images if alt.strip())
        hrefs = _MD_LINK_RE.findall(markdown)

    links = _count_links(hrefs, normalize_domain(page.metadata.get("source_url") or page.url))

    return SeoElements(
        title=page.title or extract_title(page_html),
        description=page.description or extract_meta_description(page_html),
        headings=headings,
        word_count=word_count,
        has_schema=bool(_SCHEMA_RE.search(page_html)),
        images=images,
        images_with_alt=images_with_alt,
        internal_links=links["internal"],
        external_links=links["external"],
    )


# =============================================================================
# BUSINESS CONTENT DIGEST
# =============================================================================

MAX_HEADINGS = 10
MAX_BODY_CHARS = 3000

_BODY_RE = re.compile(r"<body[^>]*>([\s\S]*?)</body>", re.IGNORECASE)
_H12_RE = re.compile(r"<h[12][^>]*>([\s\S]*?)</h[12]>", re.IGNORECASE)


def extract_relevant_content(page_html: str) -> str:
    """
    Condense a homepage into the text a business profiler needs.

    Keeps the title, meta description, up to 10 h1/h2 headings and the first
    3000 characters of visible body text.
    """
    if not page_html:
        return ""

    parts = []
    title = extract_title(page_html)
    if title:
        parts.append(f"Title: {title}")

    description = extract_meta_description(page_html)
    if description:
        parts.append(f"Description: {description}")

    headings = [strip_tags(h) for h in _H12_RE.findall(page_html)]
    headings = [h for h in headings if h][:MAX_HEADINGS]
    if headings:
        parts.append("Headings: " + " | ".join(headings))

    body_match = _BODY_RE.search(page_html)
    body_text = strip_tags(body_match.group(1) if body_match else page_html)
    if body_text:
        parts.append(f"Content: {body_text[:MAX_BODY_CHARS]}")

    return html_lib.unescape("\n".join(parts))
