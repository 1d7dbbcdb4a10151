"""Exa neural search client returning page text alongside each hit."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from tools.search import SearchProviderError, SearchResult, TransientSearchError, check_response, search_retry
from utils.logging import get_logger

logger = get_logger(__name__)

EXA_SEARCH_URL = "https://api.exa.ai/search"
MAX_RESULTS = 50


class ExaSearchClient:
    """Thin wrapper over Exa's ``/search`` endpoint with inline contents."""

    name = "exa"

    def __init__(self, api_key: str, *, category: Optional[str] = None, timeout: float = 30.0) -> None:
        if not api_key:
            raise SearchProviderError("Exa search requires an API key.")
        self.api_key = api_key
        self.category = category
        self.timeout = timeout

    def build_payload(self, query: str, num_results: int, max_characters: int) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "query": query,
            "type": "neural",
            "useAutoprompt": True,
            "numResults": max(1, min(num_results, MAX_RESULTS)),
            "contents": {"text": {"maxCharacters": max_characters}},
        }
        if self.category:
            payload["category"] = self.category
        return payload

    @search_retry
    def search(self, query: str, *, num_results: int = 10, max_characters: int = 3000) -> List[SearchResult]:
        if not query.strip():
            raise ValueError("Search query cannot be empty.")
        payload = self.build_payload(query, num_results, max_characters)
        logger.info("Exa search: %r (numResults=%d)", query, payload["numResults"])
        try:
            response = requests.post(
                EXA_SEARCH_URL,
                json=payload,
                headers={"x-api-key": self.api_key, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise TransientSearchError(f"Exa request did not complete: {exc}") from exc
        check_response(response, "Exa")

        results: List[SearchResult] = []
        for item in response.json().get("results", []):
            url = item.get("url")
            if not url:
                continue
            results.append(
                SearchResult(
                    url=url,
                    title=(item.get("title") or "").strip(),
                    text=(item.get("text") or "")[:max_characters],
                )
            )
        logger.info("Exa search returned %d results", len(results))
        return results
