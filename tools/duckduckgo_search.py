"""DuckDuckGo HTML search used when no semantic search key is configured."""

from __future__ import annotations

from typing import List
from urllib.parse import parse_qs, urlparse

import requests
from bs4 import BeautifulSoup

from tools.search import SearchResult, TransientSearchError, check_response, search_retry
from utils.logging import get_logger

logger = get_logger(__name__)

DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"

_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept-Language": "en-US,en;q=0.9",
}


def _resolve_href(href: str) -> str | None:
    """Unwrap ``//duckduckgo.com/l/?uddg=...`` redirect links."""
    if href.startswith("//"):
        href = f"https:{href}"
    parsed = urlparse(href)
    if parsed.netloc.endswith("duckduckgo.com") and parsed.path.startswith("/l/"):
        target = parse_qs(parsed.query).get("uddg")
        return target[0] if target else None
    if not parsed.scheme.startswith("http"):
        return None
    return href


def parse_results(html: str, max_results: int) -> List[SearchResult]:
    soup = BeautifulSoup(html, "html.parser")
    results: List[SearchResult] = []
    seen_urls = set()

    for block in soup.select("div.result"):
        anchor = block.select_one("a.result__a")
        if not anchor or not anchor.get("href"):
            continue
        url = _resolve_href(anchor["href"])
        if not url or url in seen_urls:
            continue
        title = anchor.get_text(" ", strip=True)
        if not title:
            continue
        snippet_el = block.select_one(".result__snippet")
        snippet = snippet_el.get_text(" ", strip=True) if snippet_el else ""

        results.append(SearchResult(url=url, title=title, text=snippet))
        seen_urls.add(url)
        if len(results) >= max_results:
            break
    return results


class DuckDuckGoSearchClient:
    """Keyless backend; result text is the snippet rather than the full page."""

    name = "duckduckgo"

    def __init__(self, timeout: float = 20.0) -> None:
        self.timeout = timeout

    @search_retry
    def search(self, query: str, *, num_results: int = 10, max_characters: int = 3000) -> List[SearchResult]:
        if not query.strip():
            raise ValueError("Search query cannot be empty.")
        try:
            response = requests.post(
                DUCKDUCKGO_HTML_URL,
                data={"q": query},
                headers=_HEADERS,
                timeout=self.timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise TransientSearchError(f"DuckDuckGo request did not complete: {exc}") from exc
        check_response(response, "DuckDuckGo")
        results = parse_results(response.text, num_results)
        logger.info("DuckDuckGo search %r returned %d results", query, len(results))
        return [SearchResult(url=item.url, title=item.title, text=item.text[:max_characters]) for item in results]
