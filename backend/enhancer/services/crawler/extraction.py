"""Competitor page extraction - isolates primary article text from arbitrary markup."""

import asyncio
import random
import re
from typing import Callable, List, Optional, Tuple

import httpx
from loguru import logger
from selectolax.parser import HTMLParser, Node

from enhancer.config import Settings, get_settings

from .constants import (
    ACCEPT_HEADER,
    BLOCKING_PHRASES,
    CONTENT_SELECTORS,
    DESCRIPTION_META_SELECTORS,
    MAX_DESCRIPTION_CHARS,
    MAX_TITLE_CHARS,
    NON_CONTENT_SELECTORS,
    TITLE_META_SELECTORS,
)
from .models import ExtractedContent, PageStructure

RegionProbe = Tuple[str, Callable[[HTMLParser], Optional[Node]]]


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text.replace("\xa0", " ")).strip()


def strip_non_content(tree: HTMLParser) -> None:
    """Remove every denylisted region from the tree in place."""
    for selector in NON_CONTENT_SELECTORS:
        # Re-query after each removal so nested matches never point at freed nodes
        node = tree.css_first(selector)
        while node is not None:
            node.decompose()
            node = tree.css_first(selector)


class ContentExtractor:
    """Fetches competitor pages and extracts their article body."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Optional[Settings] = None,
        progress_callback: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.progress_callback = progress_callback
        self.min_length = int(self.settings.min_article_length)
        self._region_probes: List[RegionProbe] = [
            (selector, lambda tree, selector=selector: tree.css_first(selector))
            for selector in CONTENT_SELECTORS
        ]
        self._region_probes.append(("body", self._substantial_body))

    def _log(self, message: str) -> None:
        """Log progress, and forward it to the callback if set."""
        logger.debug(message)
        if self.progress_callback:
            self.progress_callback(message)

    def _safe_node_text(self, node: Optional[Node]) -> str:
        """Safely extract collapsed text from a selectolax node."""
        if node is None:
            return ""
        try:
            text = node.text(separator=" ")
        except Exception:
            return ""
        return _collapse_whitespace(str(text or ""))

    def _safe_attr_text(self, node: Optional[Node], key: str) -> str:
        if node is None:
            return ""
        raw = node.attributes.get(key, "")
        return _collapse_whitespace(str(raw or ""))

    def _primary_headers(self) -> dict:
        return {
            "User-Agent": self.settings.user_agent,
            "Accept": ACCEPT_HEADER,
            "Accept-Language": "en-US,en;q=0.5",
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
            "Cache-Control": "max-age=0",
        }

    def _alternate_headers(self) -> dict:
        return {
            "User-Agent": self.settings.alternate_user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def _pause(self, low: float, high: float) -> None:
        if high <= 0:
            return
        await asyncio.sleep(random.uniform(max(0.0, low), high))

    async def _fetch(self, url: str) -> str:
        """GET the page, retrying once with the alternate identity."""
        timeout = float(self.settings.fetch_timeout_seconds)
        try:
            response = await self.client.get(url, headers=self._primary_headers(), timeout=timeout)
            response.raise_for_status()
            return response.text
        except httpx.HTTPError as e:
            logger.warning(f"First attempt failed for {url}: {e}")

        response = await self.client.get(url, headers=self._alternate_headers(), timeout=timeout)
        response.raise_for_status()
        return response.text

    async def extract(self, url: str) -> ExtractedContent:
        """Extract the article at ``url``. Never raises."""
        self._log(f"Extracting article: {url}")
        try:
            await self._pause(
                self.settings.pre_request_delay_min_seconds,
                self.settings.pre_request_delay_max_seconds,
            )
            html = await self._fetch(url)
            return self.parse_html(url, html)
        except Exception as e:
            logger.warning(f"Failed to extract {url}: {e}")
            return ExtractedContent.failure(url, str(e) or e.__class__.__name__)

    async def extract_many(self, urls: List[str]) -> List[ExtractedContent]:
        """
        Extract each URL sequentially with an inter-request delay.

        Only successful extractions meeting the length threshold are returned;
        an empty list means callers continue without competitor content.
        """
        self._log(f"Extracting {len(urls)} articles...")
        results: List[ExtractedContent] = []
        for index, url in enumerate(urls):
            results.append(await self.extract(url))
            if index < len(urls) - 1:
                await self._pause(
                    self.settings.inter_request_delay_min_seconds,
                    self.settings.inter_request_delay_max_seconds,
                )

        usable = [r for r in results if r.success and len(r.body) >= self.min_length]
        logger.info(f"Successfully extracted {len(usable)}/{len(urls)} articles")
        if urls and not usable:
            logger.warning("No articles were extracted; enhancement proceeds without competitor analysis")
        return usable

    def parse_html(self, url: str, html: str) -> ExtractedContent:
        """Turn fetched markup into an ExtractedContent record."""
        tree = HTMLParser(html)
        title = self._extract_title(tree)
        description = self._extract_description(tree)

        strip_non_content(tree)
        region, region_name = self._select_primary_region(tree)
        if region is None:
            return ExtractedContent.failure(url, "no_content_region")

        fragment = HTMLParser(region.html or "")
        strip_non_content(fragment)
        root = fragment.body if fragment.body is not None else fragment.root
        body = self._safe_node_text(root)

        reason = self.rejection_reason(body)
        if reason:
            self._log(f"Rejected {url}: {reason}")
            return ExtractedContent(
                url=url,
                title=title,
                description=description,
                success=False,
                failure_reason=reason,
            )

        self._log(f"Extracted {url} using region '{region_name}' ({len(body)} chars)")
        return ExtractedContent(
            url=url,
            title=title,
            description=description,
            body=body,
            success=True,
            structure=self._measure_structure(fragment),
        )

    def rejection_reason(self, body: str) -> Optional[str]:
        """Return why ``body`` is unusable, or None when it passes validation."""
        if len(body) < self.min_length:
            return f"content_too_short:{len(body)}"
        lowered = body.lower()
        for phrase in BLOCKING_PHRASES:
            if phrase in lowered:
                return f"blocking_phrase:{phrase}"
        return None

    def _select_primary_region(self, tree: HTMLParser) -> Tuple[Optional[Node], str]:
        for name, probe in self._region_probes:
            node = probe(tree)
            if node is not None:
                return node, name
        return None, ""

    def _substantial_body(self, tree: HTMLParser) -> Optional[Node]:
        """Full body, but only when it carries enough words to be a content page."""
        body = tree.body
        if body is None:
            return None
        words = len(self._safe_node_text(body).split())
        if words > int(self.settings.body_fallback_min_words):
            return body
        return None

    def _extract_title(self, tree: HTMLParser) -> str:
        candidates = [
            self._safe_node_text(tree.css_first("title")),
            self._safe_node_text(tree.css_first("h1")),
        ]
        candidates.extend(
            self._safe_attr_text(tree.css_first(selector), "content")
            for selector in TITLE_META_SELECTORS
        )
        return next((c for c in candidates if c), "")[:MAX_TITLE_CHARS]

    def _extract_description(self, tree: HTMLParser) -> str:
        for selector in DESCRIPTION_META_SELECTORS:
            value = self._safe_attr_text(tree.css_first(selector), "content")
            if value:
                return value[:MAX_DESCRIPTION_CHARS]
        return ""

    def _measure_structure(self, fragment: HTMLParser) -> PageStructure:
        return PageStructure(
            headings=len(fragment.css("h1, h2, h3, h4, h5, h6")),
            lists=len(fragment.css("ul, ol")),
            paragraphs=len(fragment.css("p")),
            tables=len(fragment.css("table")),
        )
