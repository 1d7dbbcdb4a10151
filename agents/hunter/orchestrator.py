"""Hunt orchestrator: discovery, matching, then one application per matched job."""
from __future__ import annotations

import asyncio
import inspect
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

from agents.common.gemini_client import LLMProviderError
from agents.hunter import rules
from agents.hunter.models import (
    ApplicationAttempt,
    AttemptStatus,
    Company,
    DiscoveredJob,
    FillResult,
    HuntConfig,
    HuntPhase,
    HuntResult,
    JobContext,
    PageAnalysis,
    make_job_id,
    utc_now,
)
from agents.hunter.pacing import NoPacing, PacingPolicy, pause
from agents.hunter.profile import UserProfile
from tools.browser_session import BrowserSessionError
from tools.search import SearchProviderError
from utils.logging import get_logger

logger = get_logger(__name__)

# Errors that make forward progress impossible and end the run.
FATAL_ERRORS = (LLMProviderError, SearchProviderError, BrowserSessionError)
SHORT_DESCRIPTION_CHARS = 200


@dataclass
class HuntCallbacks:
    """Optional hooks; each may be a plain function or a coroutine function."""

    on_job_discovered: Optional[Callable[[DiscoveredJob], Any]] = None
    on_job_matched: Optional[Callable[[DiscoveredJob, int], Any]] = None
    on_application_start: Optional[Callable[[DiscoveredJob], Any]] = None
    on_application_complete: Optional[Callable[[ApplicationAttempt], Any]] = None
    on_confirmation_required: Optional[Callable[[DiscoveredJob], Awaitable[bool]]] = None
    on_error: Optional[Callable[[BaseException, Optional[DiscoveredJob]], Any]] = None
    on_progress: Optional[Callable[[str], Any]] = None


class JobHunterOrchestrator:
    """Sequences a hunt run: ``idle -> discovering -> matching -> applying -> completed``.

    ``session_factory`` returns an async context manager exposing
    ``new_page()`` and ``close_page(page)``; every job gets its own page.
    Cancellation is checked between jobs only, never during a fill.
    """

    def __init__(
        self,
        analyzer,
        discovery,
        navigator,
        form_filler,
        tracker,
        session_factory: Callable[[], Any],
        pacing: PacingPolicy | None = None,
        screenshots_dir: Path | None = None,
    ) -> None:
        self.analyzer = analyzer
        self.discovery = discovery
        self.navigator = navigator
        self.form_filler = form_filler
        self.tracker = tracker
        self.session_factory = session_factory
        self.pacing = pacing or NoPacing()
        self.screenshots_dir = Path(screenshots_dir) if screenshots_dir else None
        self.phase = HuntPhase.IDLE

    async def hunt(
        self,
        profile: UserProfile,
        config: HuntConfig,
        callbacks: HuntCallbacks | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> HuntResult:
        callbacks = callbacks or HuntCallbacks()
        result = HuntResult(session_id=uuid.uuid4().hex, config=config)
        self._enter(result, HuntPhase.IDLE)
        await self._progress(callbacks, f"Starting job hunt session: {result.session_id}")
        await self._progress(callbacks, f'Search query: "{config.search_query}"')

        try:
            async with self.session_factory() as session:
                self._enter(result, HuntPhase.DISCOVERING)
                discovered = await self._discover(session, config, callbacks)
                result.jobs_discovered = len(discovered)
                await self._progress(callbacks, f"Found {len(discovered)} jobs")
                if not discovered:
                    return self._finish(result, HuntPhase.COMPLETED)

                self._enter(result, HuntPhase.MATCHING)
                matched = await self._match(session, discovered, profile, config, callbacks, cancel_event)
                if matched is None:
                    return self._finish(result, HuntPhase.CANCELLED)
                result.jobs_matched = len(matched)
                await self._progress(callbacks, f"{len(matched)} jobs matched your profile")

                if not matched or config.dry_run or not config.auto_apply:
                    if config.dry_run:
                        await self._progress(callbacks, "Dry run mode - skipping applications")
                    return self._finish(result, HuntPhase.COMPLETED)

                self._enter(result, HuntPhase.APPLYING)
                for index, job in enumerate(matched):
                    if cancel_event is not None and cancel_event.is_set():
                        await self._progress(callbacks, "Hunt cancelled")
                        return self._finish(result, HuntPhase.CANCELLED)
                    if index:
                        await pause(self.pacing, "between_jobs")

                    await self._emit(callbacks.on_application_start, job)
                    attempt = await self._apply_to_job(session, job, profile, config, callbacks)
                    self._count(result, attempt)
                    self._record(job, profile.id, attempt)
                    await self._emit(callbacks.on_application_complete, attempt)

            await self._progress(
                callbacks,
                f"Hunt complete: {result.applications_successful}/{result.applications_attempted} successful",
            )
            return self._finish(result, HuntPhase.COMPLETED)
        except Exception as exc:
            logger.error("JobHunter: hunt %s failed: %s", result.session_id, exc)
            result.error = str(exc) or exc.__class__.__name__
            await self._emit(callbacks.on_error, exc, None)
            await self._progress(callbacks, f"Hunt failed: {result.error}")
            return self._finish(result, HuntPhase.ERROR)

    async def quick_apply(
        self,
        company: str,
        job_title: str,
        profile: UserProfile,
        callbacks: HuntCallbacks | None = None,
        *,
        require_confirmation: bool = False,
    ) -> ApplicationAttempt:
        """Apply to one role at one company without a discovery run."""
        callbacks = callbacks or HuntCallbacks()
        config = HuntConfig(search_query=job_title, require_confirmation=require_confirmation)
        try:
            async with self.session_factory() as session:
                await self._progress(callbacks, f"Finding {company} careers page...")
                careers_url = await self.analyzer.find_careers_page(company)
                if not careers_url:
                    message = f"Could not find careers page for {company}"
                    await self._progress(callbacks, message)
                    return ApplicationAttempt(
                        job_id="",
                        profile_id=profile.id,
                        company_name=company,
                        job_title=job_title,
                        url="",
                        status=AttemptStatus.FAILED,
                        message=message,
                        errors=[message],
                    )

                job = DiscoveredJob(
                    id=make_job_id(careers_url),
                    title=job_title,
                    company=company,
                    location="",
                    description="",
                    url=careers_url,
                    source=rules.detect_source(careers_url),
                )
                page = await session.new_page()
                try:
                    found = await self.discovery.scrape_company_careers_page(
                        page, Company(name=company, careers_url=careers_url), job_title
                    )
                finally:
                    await session.close_page(page)
                if found:
                    job = found[0]

                await self._emit(callbacks.on_application_start, job)
                attempt = await self._apply_to_job(session, job, profile, config, callbacks)
                self._record(job, profile.id, attempt)
                await self._emit(callbacks.on_application_complete, attempt)
                return attempt
        except FATAL_ERRORS as exc:
            logger.error("JobHunter: quick apply to %s failed: %s", company, exc)
            await self._emit(callbacks.on_error, exc, None)
            raise

    # -------------------- phases --------------------
    async def _discover(self, session, config: HuntConfig, callbacks: HuntCallbacks) -> List[DiscoveredJob]:
        await self._progress(callbacks, "Phase 1: Discovering jobs...")
        needs_page = "companies" in config.sources and bool(config.include_companies)
        page = await session.new_page() if needs_page else None
        try:
            jobs = await self.discovery.discover(config, page=page)
        finally:
            if page is not None:
                await session.close_page(page)
        for job in jobs:
            await self._emit(callbacks.on_job_discovered, job)
        return jobs

    async def _match(
        self,
        session,
        jobs: List[DiscoveredJob],
        profile: UserProfile,
        config: HuntConfig,
        callbacks: HuntCallbacks,
        cancel_event: asyncio.Event | None,
    ) -> Optional[List[DiscoveredJob]]:
        """Score and filter jobs; ``None`` means the run was cancelled."""
        await self._progress(callbacks, "Phase 2: Analyzing job matches...")
        threshold = config.match_threshold
        matched: List[DiscoveredJob] = []
        for job in jobs:
            if cancel_event is not None and cancel_event.is_set():
                await self._progress(callbacks, "Hunt cancelled")
                return None
            try:
                if job.match_score is None or job.match_score < threshold:
                    job = await self._score(session, job, profile)
            except FATAL_ERRORS:
                raise
            except Exception as exc:
                logger.warning("JobHunter: failed to match %s: %s", job.title, exc)
                await self._progress(callbacks, f"Failed to match {job.title}: {exc}")
                continue

            score = job.match_score or 0
            if score >= threshold:
                matched.append(job)
                await self._emit(callbacks.on_job_matched, job, score)
                await self._progress(callbacks, f"Match: {job.title} at {job.company} ({score}%)")
            else:
                await self._progress(callbacks, f"Skip: {job.title} at {job.company} ({score}% < {threshold}%)")

        matched.sort(key=lambda item: item.match_score or 0, reverse=True)
        return matched[: config.max_jobs or 10]

    async def _score(self, session, job: DiscoveredJob, profile: UserProfile) -> DiscoveredJob:
        if len(job.description) < SHORT_DESCRIPTION_CHARS:
            page = await session.new_page()
            try:
                job = await self.discovery.get_job_details(page, job)
            finally:
                await session.close_page(page)
        match = await self.analyzer.match_job(job.description, profile)
        return job.with_updates(match_score=match.score, match_analysis=match.analysis)

    async def _apply_to_job(
        self,
        session,
        job: DiscoveredJob,
        profile: UserProfile,
        config: HuntConfig,
        callbacks: HuntCallbacks,
    ) -> ApplicationAttempt:
        await self._progress(callbacks, f"Applying to: {job.title} at {job.company}")
        fill_errors: List[str] = []
        fields_filled = 0
        page = await session.new_page()
        try:
            nav = await self.navigator.navigate_to_application(page, job)
            if not nav.success:
                status = AttemptStatus.REQUIRES_MANUAL if nav.requires_login else AttemptStatus.FAILED
                message = "Login required" if nav.requires_login else (nav.error or "Navigation failed")
                attempt = ApplicationAttempt.for_job(job, profile.id, status, message=message)
            else:
                job_context = JobContext.from_job(job)

                async def fill_page(analysis: PageAnalysis) -> FillResult:
                    nonlocal fields_filled
                    fill = await self.form_filler.fill_form(page, profile, job_context, analysis)
                    fields_filled += fill.fields_filled
                    fill_errors.extend(fill.errors)
                    return fill

                async def confirm() -> bool:
                    return await self._confirm(callbacks, job)

                flow = await self.navigator.navigate_multi_page_form(
                    page,
                    fill_page,
                    confirm_submit=confirm if config.require_confirmation else None,
                )
                if flow.declined:
                    attempt = ApplicationAttempt.for_job(job, profile.id, AttemptStatus.SKIPPED, message="Skipped by user")
                elif flow.success:
                    attempt = ApplicationAttempt.for_job(
                        job,
                        profile.id,
                        AttemptStatus.SUCCESS,
                        message=f"Completed {flow.total_pages} form page(s)",
                        applied_at=utc_now(),
                    )
                else:
                    attempt = ApplicationAttempt.for_job(job, profile.id, AttemptStatus.FAILED, message=flow.error)
                attempt.errors = list(fill_errors)
                attempt.fields_filled = fields_filled
            attempt.screenshot_path = await self._save_screenshot(page, job.id)
        except FATAL_ERRORS:
            raise
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.warning("JobHunter: application to %s failed: %s", job.url, message)
            attempt = ApplicationAttempt.for_job(
                job,
                profile.id,
                AttemptStatus.FAILED,
                message=message,
                errors=fill_errors + [message],
                fields_filled=fields_filled,
            )
            attempt.screenshot_path = await self._save_screenshot(page, job.id)
            await self._emit(callbacks.on_error, exc, job)
        finally:
            await session.close_page(page)

        logger.info("JobHunter: %s -> %s (%s)", job.id, attempt.status.value, attempt.message)
        return attempt

    # -------------------- helpers --------------------
    async def _confirm(self, callbacks: HuntCallbacks, job: DiscoveredJob) -> bool:
        if callbacks.on_confirmation_required is None:
            return True
        try:
            answer = callbacks.on_confirmation_required(job)
            if inspect.isawaitable(answer):
                answer = await answer
        except Exception as exc:
            logger.warning("JobHunter: confirmation callback failed for %s: %s", job.id, exc)
            return False
        return bool(answer)

    async def _save_screenshot(self, page, job_id: str) -> Optional[str]:
        if self.screenshots_dir is None:
            return None
        path = self.screenshots_dir / f"{job_id}-{int(time.time() * 1000)}.png"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await self.navigator.capture_screenshot(page, str(path))
        except Exception as exc:
            logger.warning("JobHunter: screenshot for %s failed: %s", job_id, exc)
            return None
        return str(path)

    def _record(self, job: DiscoveredJob, profile_id: str, attempt: ApplicationAttempt) -> None:
        try:
            self.tracker.record_attempt(job, profile_id, attempt)
        except Exception as exc:
            logger.error("JobHunter: could not record attempt for %s: %s", job.id, exc)

    @staticmethod
    def _count(result: HuntResult, attempt: ApplicationAttempt) -> None:
        result.applications.append(attempt)
        if attempt.status == AttemptStatus.SKIPPED:
            result.applications_skipped += 1
            return
        result.applications_attempted += 1
        if attempt.status == AttemptStatus.SUCCESS:
            result.applications_successful += 1
        elif attempt.status == AttemptStatus.FAILED:
            result.applications_failed += 1

    def _enter(self, result: HuntResult, phase: HuntPhase) -> None:
        self.phase = phase
        result.phase = phase
        logger.debug("JobHunter: phase -> %s", phase.value)

    def _finish(self, result: HuntResult, phase: HuntPhase) -> HuntResult:
        self._enter(result, phase)
        result.completed_at = utc_now()
        return result

    async def _progress(self, callbacks: HuntCallbacks, message: str) -> None:
        logger.info("JobHunter: %s", message)
        await self._emit(callbacks.on_progress, message)

    async def _emit(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.warning("JobHunter: callback %s raised: %s", getattr(callback, "__name__", callback), exc)
