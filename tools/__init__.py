"""Browser and search tools used by the hunter agents."""

from .browser_session import BrowserSessionError, PlaywrightSession, PlaywrightSessionConfig
from .search import SearchProvider, SearchProviderError, SearchResult, build_search_provider

__all__ = [
    "BrowserSessionError",
    "PlaywrightSession",
    "PlaywrightSessionConfig",
    "SearchProvider",
    "SearchProviderError",
    "SearchResult",
    "build_search_provider",
]
