"""Search provider contract shared by the semantic and keyless backends."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class SearchProviderError(RuntimeError):
    """Raised when a search backend cannot serve a query."""


class TransientSearchError(SearchProviderError):
    """Rate limits, 5xx responses and timeouts."""


@dataclass(frozen=True, slots=True)
class SearchResult:
    url: str
    title: str = ""
    text: str = ""


class SearchProvider(Protocol):
    name: str

    def search(self, query: str, *, num_results: int = 10, max_characters: int = 3000) -> List[SearchResult]:
        ...  # pragma: no cover - interface only


def check_response(response: requests.Response, provider: str) -> None:
    if response.status_code in _RETRYABLE_STATUS:
        raise TransientSearchError(f"{provider} returned status {response.status_code}")
    if response.status_code >= 400:
        raise SearchProviderError(f"{provider} request failed with status {response.status_code}: {response.text[:200]}")


search_retry = retry(
    retry=retry_if_exception_type(TransientSearchError),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=8.0),
    stop=stop_after_attempt(3),
    reraise=True,
)


def build_search_provider(name: str, api_key: Optional[str] = None) -> Optional[SearchProvider]:
    """Instantiate the configured backend; ``none`` disables semantic search."""
    if name == "exa":
        from tools.exa_search import ExaSearchClient

        if not api_key:
            raise SearchProviderError("Exa search requires EXA_API_KEY.")
        return ExaSearchClient(api_key)
    if name == "duckduckgo":
        from tools.duckduckgo_search import DuckDuckGoSearchClient

        return DuckDuckGoSearchClient()
    return None
