from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import httpx
from loguru import logger
from selectolax.parser import HTMLParser

from enhancer.config import Settings, get_settings
from enhancer.services.crawler.models import CandidateReference

# Probed in order against the HTML results page; the first selector with matches wins
RESULT_LINK_SELECTORS = [
    "a.result__a",
    ".result__title a",
    "a.result__url",
    ".result a[href]",
]


class SearchUnavailableError(RuntimeError):
    pass


def _host(url: str) -> str:
    host = str(urlparse(url).netloc or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def _domain_label(url: str) -> str:
    host = _host(url)
    if not host:
        return "Search Result"
    return host.split(".")[0].replace("-", " ").title()


def decode_redirect_url(href: str) -> str:
    """Unwrap ``/l/?uddg=<target>`` style redirect links to their real target."""
    raw = str(href or "").strip()
    if raw.startswith("//"):
        raw = f"https:{raw}"
    target = parse_qs(urlparse(raw).query).get("uddg")
    if target and target[0]:
        return target[0]
    return raw


class CompetitorDiscovery:
    """Finds comparable external articles for a document title."""

    def __init__(self, client: httpx.AsyncClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()

    @property
    def cap(self) -> int:
        return max(1, int(self.settings.competitor_articles_to_fetch))

    def build_query(self, title: str) -> str:
        return f"{str(title or '').strip()} blog article"

    def is_excluded(self, url: str) -> bool:
        lowered = str(url or "").lower()
        if not lowered.startswith(("http://", "https://")):
            return True
        own_domain = str(self.settings.own_domain or "").strip().lower()
        if own_domain and own_domain in _host(lowered):
            return True
        return any(marker in lowered for marker in self.settings.excluded_result_marker_list)

    async def discover(self, title: str) -> List[CandidateReference]:
        """
        Return up to ``cap`` ranked candidate articles for ``title``.

        The search API is tried first; the HTML results page is the single
        fallback. Both failing yields an empty list.
        """
        query = self.build_query(title)
        try:
            items = await self._search_google_api(query)
            provider = "google_api"
        except Exception as exc:
            logger.warning(f"Google API search failed: {exc}")
            try:
                items = await self._search_duckduckgo(query)
                provider = "duckduckgo_html"
            except Exception as fallback_exc:
                logger.error(f"Alternative search also failed: {fallback_exc}")
                return []

        candidates = self._to_candidates(items)
        logger.info(f"{provider} found {len(candidates)} competitor articles for '{title}'")
        for candidate in candidates:
            logger.debug(f"  {candidate.rank}. {candidate.title} ({candidate.url})")
        return candidates

    def _to_candidates(self, items: List[Dict[str, Any]]) -> List[CandidateReference]:
        candidates: List[CandidateReference] = []
        seen: set[str] = set()
        for item in items:
            url = str(item.get("url") or "").strip()
            if not url or url in seen or self.is_excluded(url):
                continue
            seen.add(url)
            candidates.append(
                CandidateReference(
                    url=url,
                    title=str(item.get("title") or _domain_label(url)).strip()[:300],
                    rank=len(candidates) + 1,
                    snippet=str(item.get("snippet") or "").strip()[:400],
                )
            )
            if len(candidates) >= self.cap:
                break
        return candidates

    async def _search_google_api(self, query: str) -> List[Dict[str, Any]]:
        settings = self.settings
        if not settings.google_api_key or not settings.google_search_engine_id:
            raise SearchUnavailableError("GOOGLE_API_KEY / GOOGLE_SEARCH_ENGINE_ID not configured")
        params = {
            "key": settings.google_api_key,
            "cx": settings.google_search_engine_id,
            "q": query,
            "num": max(1, min(int(settings.search_max_results), 10)),
        }
        resp = await self.client.get(
            settings.google_search_api_url,
            params=params,
            timeout=float(settings.search_timeout_seconds),
        )
        resp.raise_for_status()
        data = resp.json()
        results: List[Dict[str, Any]] = []
        for item in data.get("items", []) or []:
            if not isinstance(item, dict):
                continue
            results.append(
                {
                    "title": item.get("title"),
                    "url": item.get("link"),
                    "snippet": item.get("snippet"),
                }
            )
        return results

    async def _search_duckduckgo(self, query: str) -> List[Dict[str, Any]]:
        settings = self.settings
        resp = await self.client.get(
            settings.duckduckgo_html_url,
            params={"q": query},
            headers={"User-Agent": settings.user_agent},
            timeout=float(settings.search_timeout_seconds),
        )
        resp.raise_for_status()
        tree = HTMLParser(resp.text)

        links = []
        for selector in RESULT_LINK_SELECTORS:
            links = tree.css(selector)
            if links:
                break

        results: List[Dict[str, Any]] = []
        for link in links:
            href = link.attributes.get("href") or ""
            if not href:
                continue
            results.append(
                {
                    "title": " ".join((link.text(separator=" ") or "").split()),
                    "url": decode_redirect_url(href),
                    "snippet": "",
                }
            )
        return results
