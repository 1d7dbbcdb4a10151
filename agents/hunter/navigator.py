"""Walk from a job URL to its application form, then through multi-page forms."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

from agents.common.gemini_client import LLMProviderError
from agents.hunter import rules
from agents.hunter.models import DiscoveredJob, FillResult, PageAnalysis, PageType
from agents.hunter.pacing import NoPacing, PacingPolicy, pause
from utils.logging import get_logger

logger = get_logger(__name__)

MAX_NAVIGATION_STEPS = 10
MAX_FORM_PAGES = 20
NAVIGATION_TIMEOUT_MS = 30_000
LOAD_STATE_TIMEOUT_MS = 10_000
BODY_TEXT_JS = "() => (document.body && document.body.textContent) || ''"
ERROR_PAGE = "error"

OnFormPage = Callable[[PageAnalysis], Awaitable[Optional[FillResult]]]
ConfirmSubmit = Callable[[], Awaitable[bool]]


@dataclass(slots=True)
class NavigationResult:
    success: bool
    current_page: str
    analysis: Optional[PageAnalysis] = None
    error: Optional[str] = None

    @property
    def requires_login(self) -> bool:
        return self.current_page == PageType.LOGIN.value


@dataclass(slots=True)
class FormFlowResult:
    success: bool
    total_pages: int
    error: Optional[str] = None
    declined: bool = False


class CareerPageNavigator:
    """Uses fresh page analyses to decide the next click at every step."""

    def __init__(self, analyzer, pacing: PacingPolicy | None = None) -> None:
        self.analyzer = analyzer
        self.pacing = pacing or NoPacing()

    async def navigate_to_application(self, page, job: DiscoveredJob) -> NavigationResult:
        try:
            await page.goto(job.apply_url or job.url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
            await pause(self.pacing, "navigation")

            for step in range(1, MAX_NAVIGATION_STEPS + 1):
                analysis = await self.analyzer.analyze_page(page)
                logger.info("Navigator: step %d on %s -> %s", step, page.url, analysis.page_type.value)
                if analysis.errors:
                    logger.info("Navigator: page errors: %s", ", ".join(analysis.errors))

                if analysis.page_type == PageType.APPLICATION_FORM:
                    return NavigationResult(True, PageType.APPLICATION_FORM.value, analysis)

                if analysis.page_type == PageType.LOGIN:
                    return NavigationResult(
                        False,
                        PageType.LOGIN.value,
                        analysis,
                        "Login required - manual authentication needed",
                    )

                if analysis.page_type == PageType.JOB_DETAILS:
                    selectors = [analysis.submit_button, analysis.next_button, *rules.APPLY_BUTTON_SELECTORS]
                    if not await self._click_first_visible(page, selectors):
                        return NavigationResult(False, analysis.page_type.value, analysis, "Could not find apply button")
                elif analysis.page_type == PageType.JOB_LISTING:
                    if not await self._open_job(page, job.title, analysis):
                        return NavigationResult(
                            False, analysis.page_type.value, analysis, f"Could not find job: {job.title}"
                        )
                elif not await self._click_first_visible(page, rules.APPLICATION_PATH_SELECTORS):
                    return NavigationResult(False, analysis.page_type.value, analysis, "Unable to find application path")

                await pause(self.pacing, "settle")

            return NavigationResult(False, ERROR_PAGE, error="Max navigation steps exceeded")
        except LLMProviderError:
            raise
        except Exception as exc:
            logger.warning("Navigator: navigation failed for %s: %s", job.url, exc)
            return NavigationResult(False, ERROR_PAGE, error=str(exc) or exc.__class__.__name__)

    async def navigate_multi_page_form(
        self,
        page,
        on_page: OnFormPage,
        confirm_submit: ConfirmSubmit | None = None,
    ) -> FormFlowResult:
        """Fill and advance through up to ``MAX_FORM_PAGES`` form pages.

        ``on_page`` fills the current page; a returned ``FillResult`` that is
        not a success ends the flow before any button is clicked. When
        ``confirm_submit`` is given it is awaited right before the submit
        button is clicked; ``False`` stops the flow without submitting.
        """
        for page_number in range(1, MAX_FORM_PAGES + 1):
            logger.info("Navigator: processing form page %d", page_number)
            analysis = await self.analyzer.analyze_page(page)

            if analysis.page_type != PageType.APPLICATION_FORM:
                if rules.looks_like_success_page(await self._body_text(page)):
                    return FormFlowResult(True, page_number)
                return FormFlowResult(False, page_number, f"Unexpected page type: {analysis.page_type.value}")

            fill = await on_page(analysis)
            if fill is not None and not fill.success:
                logger.warning("Navigator: page %d could not be filled: %s", page_number, "; ".join(fill.errors))
                return FormFlowResult(False, page_number, "No fields could be filled")

            if analysis.next_button and await self._click_button(page, analysis.next_button):
                await self._wait_after_click(page, "navigation")
                continue

            if analysis.submit_button:
                button = await self._visible_element(page, analysis.submit_button)
                if button is not None:
                    if confirm_submit is not None and not await confirm_submit():
                        logger.info("Navigator: submission declined before clicking submit")
                        return FormFlowResult(False, page_number, "Submission declined", declined=True)
                    await button.scroll_into_view_if_needed()
                    await pause(self.pacing, "button")
                    await button.click()
                    await self._wait_after_click(page, "settle")
                    if rules.looks_like_success_page(await self._body_text(page)):
                        return FormFlowResult(True, page_number)
                    continue

            return FormFlowResult(False, page_number, "Could not find next/submit button")

        return FormFlowResult(False, MAX_FORM_PAGES, "Too many form pages")

    async def capture_screenshot(self, page, path: Optional[str] = None) -> bytes:
        if path:
            return await page.screenshot(path=path, type="png", full_page=False)
        return await page.screenshot(type="png", full_page=False)

    async def _visible_element(self, page, selector: str):
        try:
            element = await page.query_selector(selector)
            if element is not None and await element.is_visible():
                return element
        except Exception as exc:
            logger.debug("Navigator: selector %s unusable: %s", selector, exc)
        return None

    async def _click_button(self, page, selector: str) -> bool:
        element = await self._visible_element(page, selector)
        if element is None:
            return False
        try:
            await element.scroll_into_view_if_needed()
            await pause(self.pacing, "button")
            await element.click()
        except Exception as exc:
            logger.debug("Navigator: click on %s failed: %s", selector, exc)
            return False
        return True

    async def _click_first_visible(self, page, selectors: Iterable[Optional[str]]) -> bool:
        for selector in selectors:
            if selector and await self._click_button(page, selector):
                logger.debug("Navigator: clicked %s", selector)
                return True
        return False

    async def _open_job(self, page, title: str, analysis: PageAnalysis) -> bool:
        for ref in analysis.jobs:
            if not rules.titles_match(ref.title, title):
                continue
            if ref.selector and await self._click_button(page, ref.selector):
                return True
            if ref.url:
                await page.goto(ref.url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
                return True
        return await self._click_button(page, f'a:has-text("{title[:30]}")')

    async def _wait_after_click(self, page, pacing_kind: str) -> None:
        try:
            await page.wait_for_load_state("networkidle", timeout=LOAD_STATE_TIMEOUT_MS)
        except Exception as exc:
            logger.debug("Navigator: page did not settle: %s", exc)
        await pause(self.pacing, pacing_kind)

    async def _body_text(self, page) -> str:
        try:
            return str(await page.evaluate(BODY_TEXT_JS) or "")
        except Exception as exc:
            logger.debug("Navigator: could not read page text: %s", exc)
            return ""
