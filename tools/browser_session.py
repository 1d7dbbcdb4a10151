"""Async Playwright session that hands out one page per job."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

from playwright.async_api import (  # type: ignore[import]
    Error as PlaywrightError,
    async_playwright,
)

from utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class BrowserSessionError(RuntimeError):
    """Raised when the browser cannot be launched or a page cannot be opened."""


@dataclass(slots=True)
class PlaywrightSessionConfig:
    headless: bool = True
    browser: str = "chromium"
    navigation_timeout_ms: int = 30_000
    action_timeout_ms: int = 10_000
    slow_mo: Optional[int] = None
    viewport_width: int = 1280
    viewport_height: int = 900
    user_agent: str = DEFAULT_USER_AGENT


class PlaywrightSession:
    """Context manager that owns a Playwright browser + context.

    Each job gets its own page from ``new_page()`` so no DOM state is shared
    between jobs. All pages are closed with the context on exit.
    """

    def __init__(self, config: PlaywrightSessionConfig | None = None) -> None:
        self.config = config or PlaywrightSessionConfig()
        self._playwright = None
        self._browser = None
        self._context = None
        self._pages: List[Any] = []

    async def __aenter__(self) -> "PlaywrightSession":
        try:
            self._playwright = await async_playwright().start()
            browser_factory = getattr(self._playwright, self.config.browser, None)
            if browser_factory is None:
                await self._close()
                raise BrowserSessionError(f"Unsupported browser: {self.config.browser}")
            self._browser = await browser_factory.launch(
                headless=self.config.headless,
                slow_mo=self.config.slow_mo,
            )
            self._context = await self._browser.new_context(
                viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
                user_agent=self.config.user_agent,
            )
        except PlaywrightError as exc:
            await self._close()
            raise BrowserSessionError(f"Unable to launch {self.config.browser}: {exc}") from exc
        logger.info("Browser session started (%s, headless=%s)", self.config.browser, self.config.headless)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - cleanup path
        await self._close()

    async def new_page(self):
        if not self._context:
            raise BrowserSessionError("Playwright session is not initialized.")
        try:
            page = await self._context.new_page()
        except PlaywrightError as exc:
            raise BrowserSessionError(f"Unable to open a new page: {exc}") from exc
        page.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        page.set_default_timeout(self.config.action_timeout_ms)
        self._pages.append(page)
        return page

    async def close_page(self, page) -> None:
        if page in self._pages:
            self._pages.remove(page)
        try:
            await page.close()
        except PlaywrightError as exc:  # pragma: no cover - runtime interaction
            logger.debug("Ignoring page close failure: %s", exc)

    async def _close(self) -> None:
        for page in list(self._pages):
            await self.close_page(page)
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        logger.debug("Browser session closed")
