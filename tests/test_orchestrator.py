from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest

from agents.common.gemini_client import LLMProviderError
from agents.hunter.models import (
    AttemptStatus,
    DiscoveredJob,
    FillResult,
    HuntConfig,
    HuntPhase,
    MatchResult,
    PageAnalysis,
    PageType,
    make_job_id,
)
from agents.hunter.form_filler import FormFiller
from agents.hunter.navigator import CareerPageNavigator, FormFlowResult, NavigationResult
from agents.hunter.orchestrator import HuntCallbacks, JobHunterOrchestrator
from agents.hunter.page_analyzer import PageAnalyzer
from tests.fakes import FakeElement, FakeLLM, FakePage, FakeSession, analysis_json
from tools.browser_session import BrowserSessionError
from tools.search import SearchProviderError

LONG_TEXT = "x" * 250


def make_job(title: str, description: Optional[str] = None, company: str = "Acme") -> DiscoveredJob:
    url = f"https://acme.com/jobs/{title.lower().replace(' ', '-')}"
    return DiscoveredJob(
        id=make_job_id(url),
        title=title,
        company=company,
        location="London",
        description=f"{title}: {LONG_TEXT}" if description is None else description,
        url=url,
        source="company_site",
    )


class StubAnalyzer:
    def __init__(self, scores: Dict[str, Union[int, Exception]] | None = None, careers_url: Optional[str] = None, error: Exception | None = None) -> None:
        self.scores = scores or {}
        self.careers_url = careers_url
        self.error = error
        self.matched: List[str] = []

    async def match_job(self, description: str, profile) -> MatchResult:
        for key, score in self.scores.items():
            if description.startswith(key):
                self.matched.append(key)
                if isinstance(score, Exception):
                    raise score
                return MatchResult(score=score, analysis=f"{key} scored {score}")
        return MatchResult(score=50, analysis="default")

    async def find_careers_page(self, company: str, website: Optional[str] = None) -> Optional[str]:
        if self.error is not None:
            raise self.error
        return self.careers_url


class StubDiscovery:
    def __init__(self, jobs: List[DiscoveredJob] | None = None, error: Exception | None = None, found: List[DiscoveredJob] | None = None) -> None:
        self.jobs = jobs or []
        self.error = error
        self.found = found or []
        self.pages: List[object] = []
        self.detailed: List[str] = []
        self.scraped: List[tuple] = []

    async def discover(self, config: HuntConfig, page=None) -> List[DiscoveredJob]:
        self.pages.append(page)
        if self.error is not None:
            raise self.error
        return list(self.jobs)

    async def get_job_details(self, page, job: DiscoveredJob) -> DiscoveredJob:
        self.detailed.append(job.id)
        return job.with_updates(description=f"{job.title}: full description {LONG_TEXT}")

    async def scrape_company_careers_page(self, page, company, query=None) -> List[DiscoveredJob]:
        self.scraped.append((company.name, company.careers_url, query))
        return list(self.found)


class StubNavigator:
    """Per-job navigation outcome (result or exception) and a shared form-flow result."""

    def __init__(
        self,
        outcomes: Dict[str, Union[NavigationResult, Exception]] | None = None,
        flow: FormFlowResult | None = None,
    ) -> None:
        self.outcomes = outcomes or {}
        self.flow = flow or FormFlowResult(True, 1)
        self.visited: List[str] = []
        self.screenshots: List[Optional[str]] = []

    async def navigate_to_application(self, page, job: DiscoveredJob) -> NavigationResult:
        self.visited.append(job.id)
        outcome = self.outcomes.get(job.id, NavigationResult(True, "application_form"))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def navigate_multi_page_form(self, page, on_page, confirm_submit=None) -> FormFlowResult:
        fill = await on_page(PageAnalysis(page_type=PageType.APPLICATION_FORM))
        if fill is not None and not fill.success:
            return FormFlowResult(False, 1, "No fields could be filled")
        if confirm_submit is not None and not await confirm_submit():
            return FormFlowResult(False, 1, "Submission declined", declined=True)
        return self.flow

    async def capture_screenshot(self, page, path: Optional[str] = None) -> bytes:
        self.screenshots.append(path)
        return await page.screenshot(path=path, type="png", full_page=False)


class StubFiller:
    def __init__(self, result: FillResult | None = None) -> None:
        self.result = result or FillResult(fields_filled=3)
        self.calls = 0

    async def fill_form(self, page, profile, job_context, analysis=None) -> FillResult:
        self.calls += 1
        return self.result


class RecordingTracker:
    def __init__(self, error: Exception | None = None) -> None:
        self.records: List[tuple] = []
        self.error = error

    def record_attempt(self, job, profile_id, attempt) -> None:
        if self.error is not None:
            raise self.error
        self.records.append((job.id, profile_id, attempt.status))


class Events:
    def __init__(self) -> None:
        self.discovered: List[str] = []
        self.matched: List[tuple] = []
        self.started: List[str] = []
        self.completed: List[AttemptStatus] = []
        self.errors: List[tuple] = []
        self.progress: List[str] = []

    def callbacks(self, **overrides) -> HuntCallbacks:
        async def on_matched(job, score):
            self.matched.append((job.title, score))

        values = dict(
            on_job_discovered=lambda job: self.discovered.append(job.title),
            on_job_matched=on_matched,
            on_application_start=lambda job: self.started.append(job.title),
            on_application_complete=lambda attempt: self.completed.append(attempt.status),
            on_error=lambda exc, job: self.errors.append((exc, job.title if job else None)),
            on_progress=self.progress.append,
        )
        values.update(overrides)
        return HuntCallbacks(**values)


class Harness:
    def __init__(
        self,
        *,
        analyzer: StubAnalyzer | None = None,
        discovery: StubDiscovery | None = None,
        navigator: StubNavigator | None = None,
        filler: StubFiller | None = None,
        tracker: RecordingTracker | None = None,
        session: FakeSession | None = None,
        screenshots_dir: Path | None = None,
    ) -> None:
        self.analyzer = analyzer or StubAnalyzer()
        self.discovery = discovery or StubDiscovery()
        self.navigator = navigator or StubNavigator()
        self.filler = filler or StubFiller()
        self.tracker = tracker or RecordingTracker()
        self.session = session or FakeSession()
        self.orchestrator = JobHunterOrchestrator(
            analyzer=self.analyzer,
            discovery=self.discovery,
            navigator=self.navigator,
            form_filler=self.filler,
            tracker=self.tracker,
            session_factory=lambda: self.session,
            screenshots_dir=screenshots_dir,
        )

    def hunt(self, profile, config: HuntConfig, callbacks: HuntCallbacks | None = None, cancel_event=None):
        return asyncio.run(self.orchestrator.hunt(profile, config, callbacks, cancel_event))


JOBS = [make_job("Backend Engineer"), make_job("Office Manager"), make_job("Platform Engineer")]
SCORES = {"Backend Engineer": 90, "Office Manager": 40, "Platform Engineer": 70}


def test_full_hunt_applies_to_matched_jobs_in_score_order(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(list(JOBS)))
    events = Events()

    result = harness.hunt(profile, HuntConfig(search_query="engineer"), events.callbacks())

    assert result.phase is HuntPhase.COMPLETED
    assert harness.orchestrator.phase is HuntPhase.COMPLETED
    assert result.completed_at is not None
    assert (result.jobs_discovered, result.jobs_matched) == (3, 2)
    assert (result.applications_attempted, result.applications_successful, result.applications_failed) == (2, 2, 0)
    assert [attempt.job_title for attempt in result.applications] == ["Backend Engineer", "Platform Engineer"]
    first = result.applications[0]
    assert first.status is AttemptStatus.SUCCESS
    assert first.fields_filled == 3
    assert first.message == "Completed 1 form page(s)"
    assert first.applied_at is not None
    assert first.profile_id == "profile-1"

    assert harness.tracker.records == [
        (JOBS[0].id, "profile-1", AttemptStatus.SUCCESS),
        (JOBS[2].id, "profile-1", AttemptStatus.SUCCESS),
    ]
    assert events.discovered == ["Backend Engineer", "Office Manager", "Platform Engineer"]
    assert events.matched == [("Backend Engineer", 90), ("Platform Engineer", 70)]
    assert events.started == ["Backend Engineer", "Platform Engineer"]
    assert events.completed == [AttemptStatus.SUCCESS, AttemptStatus.SUCCESS]
    assert "Found 3 jobs" in events.progress
    assert harness.discovery.pages == [None]
    assert harness.session.closed == harness.session.opened
    assert len(harness.session.opened) == 2
    assert harness.session.exited


def test_hunt_result_serializes(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(list(JOBS)))
    summary = harness.hunt(profile, HuntConfig(search_query="engineer", max_jobs=1)).to_dict()
    assert summary["phase"] == "completed"
    assert summary["jobs_matched"] == 1
    assert summary["applications"][0]["job_title"] == "Backend Engineer"
    assert summary["config"]["max_jobs"] == 1


def test_dry_run_stops_after_matching(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(list(JOBS)))
    events = Events()
    result = harness.hunt(profile, HuntConfig(search_query="engineer", dry_run=True), events.callbacks())

    assert result.phase is HuntPhase.COMPLETED
    assert result.jobs_matched == 2
    assert result.applications == []
    assert harness.navigator.visited == []
    assert harness.session.opened == []
    assert "Dry run mode - skipping applications" in events.progress


def test_auto_apply_disabled_stops_after_matching(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(list(JOBS)))
    result = harness.hunt(profile, HuntConfig(search_query="engineer", auto_apply=False))
    assert result.jobs_matched == 2
    assert result.applications_attempted == 0


def test_nothing_discovered_completes_immediately(profile) -> None:
    harness = Harness()
    result = harness.hunt(profile, HuntConfig(search_query="engineer"))
    assert result.phase is HuntPhase.COMPLETED
    assert result.jobs_discovered == 0
    assert harness.analyzer.matched == []


def test_company_sources_get_a_browser_page(profile) -> None:
    harness = Harness()
    harness.hunt(profile, HuntConfig(search_query="engineer", include_companies=["Acme"]))
    assert harness.discovery.pages == harness.session.opened
    assert harness.session.closed == harness.session.opened


def test_short_descriptions_are_hydrated_before_scoring(profile) -> None:
    short = make_job("Data Engineer", description="Data Engineer")
    harness = Harness(analyzer=StubAnalyzer({"Data Engineer": 80}), discovery=StubDiscovery([short]))

    result = harness.hunt(profile, HuntConfig(search_query="engineer", dry_run=True))

    assert harness.discovery.detailed == [short.id]
    assert result.jobs_matched == 1
    assert len(harness.session.opened) == 1
    assert harness.session.closed == harness.session.opened


def test_match_failure_skips_only_that_job(profile) -> None:
    scores = {"Backend Engineer": ValueError("bad json"), "Office Manager": 60, "Platform Engineer": 70}
    harness = Harness(analyzer=StubAnalyzer(scores), discovery=StubDiscovery(list(JOBS)))
    result = harness.hunt(profile, HuntConfig(search_query="engineer", dry_run=True))
    assert result.phase is HuntPhase.COMPLETED
    assert result.jobs_matched == 2


def test_per_job_failures_do_not_stop_the_hunt(profile) -> None:
    navigator = StubNavigator(
        outcomes={
            JOBS[0].id: NavigationResult(False, "job_details", error="Could not find apply button"),
            JOBS[2].id: RuntimeError("Target page, context or browser has been closed"),
        }
    )
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(list(JOBS)), navigator=navigator)
    events = Events()

    result = harness.hunt(profile, HuntConfig(search_query="engineer"), events.callbacks())

    assert result.phase is HuntPhase.COMPLETED
    assert (result.applications_attempted, result.applications_failed) == (2, 2)
    assert [attempt.message for attempt in result.applications] == [
        "Could not find apply button",
        "Target page, context or browser has been closed",
    ]
    assert result.applications[1].errors == ["Target page, context or browser has been closed"]
    assert [(str(exc), title) for exc, title in events.errors] == [
        ("Target page, context or browser has been closed", "Platform Engineer")
    ]
    assert harness.session.closed == harness.session.opened
    assert len(harness.tracker.records) == 2


def test_login_walls_need_manual_follow_up(profile) -> None:
    navigator = StubNavigator(
        outcomes={JOBS[0].id: NavigationResult(False, "login", error="Login required - manual authentication needed")}
    )
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(JOBS[:1]), navigator=navigator)
    result = harness.hunt(profile, HuntConfig(search_query="engineer"))

    attempt = result.applications[0]
    assert attempt.status is AttemptStatus.REQUIRES_MANUAL
    assert attempt.message == "Login required"
    assert (result.applications_attempted, result.applications_failed) == (1, 0)


def test_form_flow_failure_keeps_fill_errors(profile) -> None:
    navigator = StubNavigator(flow=FormFlowResult(False, 2, "Could not find next/submit button"))
    filler = StubFiller(FillResult(fields_filled=1, errors=["No value for required field: Visa status"]))
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(JOBS[:1]), navigator=navigator, filler=filler)

    attempt = harness.hunt(profile, HuntConfig(search_query="engineer")).applications[0]

    assert attempt.status is AttemptStatus.FAILED
    assert attempt.message == "Could not find next/submit button"
    assert attempt.errors == ["No value for required field: Visa status"]
    assert attempt.fields_filled == 1


def test_unfillable_form_is_failed_without_submitting(profile) -> None:
    page = FakePage()
    submit = FakeElement(on_click=lambda: setattr(page, "body_text", "Thank you for applying!"))
    page.elements = {"#visa": FakeElement(), "#submit": submit}
    form = analysis_json(
        "application_form",
        formFields=[{"selector": "#visa", "type": "text", "label": "Visa sponsorship", "required": True}],
        submitButton="#submit",
    )
    page_analyzer = PageAnalyzer(FakeLLM({"page_analysis": form, "field_value": ""}))
    orchestrator = JobHunterOrchestrator(
        analyzer=StubAnalyzer(dict(SCORES)),
        discovery=StubDiscovery(JOBS[:1]),
        navigator=CareerPageNavigator(page_analyzer),
        form_filler=FormFiller(page_analyzer),
        tracker=RecordingTracker(),
        session_factory=lambda: FakeSession(pages=[page]),
    )

    result = asyncio.run(orchestrator.hunt(profile, HuntConfig(search_query="engineer")))
    attempt = result.applications[0]

    assert submit.clicks == 0
    assert attempt.status is AttemptStatus.FAILED
    assert attempt.message == "No fields could be filled"
    assert attempt.errors == ["No value for required field: Visa sponsorship"]
    assert attempt.fields_filled == 0
    assert (result.applications_successful, result.applications_failed) == (0, 1)


@pytest.mark.parametrize(
    ("error", "message"),
    [
        (SearchProviderError("Exa returned status 401"), "Exa returned status 401"),
        (LLMProviderError("quota exhausted"), "quota exhausted"),
    ],
)
def test_fatal_discovery_errors_end_the_run(profile, error: Exception, message: str) -> None:
    harness = Harness(discovery=StubDiscovery(error=error))
    events = Events()
    result = harness.hunt(profile, HuntConfig(search_query="engineer"), events.callbacks())

    assert result.phase is HuntPhase.ERROR
    assert result.error == message
    assert events.errors == [(error, None)]
    assert harness.session.exited


def test_fatal_error_while_applying_ends_the_run(profile) -> None:
    navigator = StubNavigator(outcomes={JOBS[0].id: LLMProviderError("model unavailable")})
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(list(JOBS)), navigator=navigator)

    result = harness.hunt(profile, HuntConfig(search_query="engineer"))

    assert result.phase is HuntPhase.ERROR
    assert result.error == "model unavailable"
    assert result.applications == []
    assert harness.tracker.records == []
    assert harness.navigator.visited == [JOBS[0].id]
    assert harness.session.closed == harness.session.opened


def test_browser_that_cannot_start_is_an_error(profile) -> None:
    harness = Harness(session=FakeSession(enter_error=BrowserSessionError("Executable doesn't exist")))
    result = harness.hunt(profile, HuntConfig(search_query="engineer"))
    assert result.phase is HuntPhase.ERROR
    assert "Executable doesn't exist" in result.error


def test_cancel_before_matching(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(list(JOBS)))
    cancel = asyncio.Event()
    cancel.set()
    result = harness.hunt(profile, HuntConfig(search_query="engineer"), cancel_event=cancel)
    assert result.phase is HuntPhase.CANCELLED
    assert result.jobs_discovered == 3
    assert harness.analyzer.matched == []


def test_cancel_between_applications(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(list(JOBS)))
    cancel = asyncio.Event()
    events = Events()
    callbacks = events.callbacks(on_application_complete=lambda attempt: cancel.set())

    result = harness.hunt(profile, HuntConfig(search_query="engineer"), callbacks, cancel)

    assert result.phase is HuntPhase.CANCELLED
    assert len(result.applications) == 1
    assert harness.navigator.visited == [JOBS[0].id]


def test_declined_confirmation_is_skipped(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(JOBS[:1]))
    asked: List[str] = []

    async def decline(job):
        asked.append(job.title)
        return False

    result = harness.hunt(
        profile,
        HuntConfig(search_query="engineer", require_confirmation=True),
        HuntCallbacks(on_confirmation_required=decline),
    )

    attempt = result.applications[0]
    assert attempt.status is AttemptStatus.SKIPPED
    assert attempt.message == "Skipped by user"
    assert asked == ["Backend Engineer"]
    assert (result.applications_attempted, result.applications_skipped) == (0, 1)
    assert harness.tracker.records == [(JOBS[0].id, "profile-1", AttemptStatus.SKIPPED)]


def test_confirmation_without_callback_proceeds(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(JOBS[:1]))
    result = harness.hunt(profile, HuntConfig(search_query="engineer", require_confirmation=True))
    assert result.applications[0].status is AttemptStatus.SUCCESS


def test_failing_confirmation_callback_counts_as_no(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(dict(SCORES)), discovery=StubDiscovery(JOBS[:1]))

    def broken(job):
        raise RuntimeError("stdin closed")

    result = harness.hunt(
        profile,
        HuntConfig(search_query="engineer", require_confirmation=True),
        HuntCallbacks(on_confirmation_required=broken),
    )
    assert result.applications[0].status is AttemptStatus.SKIPPED


def test_callback_and_tracker_errors_are_contained(profile) -> None:
    harness = Harness(
        analyzer=StubAnalyzer(dict(SCORES)),
        discovery=StubDiscovery(list(JOBS)),
        tracker=RecordingTracker(error=OSError("disk full")),
    )

    def explode(*args):
        raise RuntimeError("listener bug")

    callbacks = HuntCallbacks(on_progress=explode, on_job_discovered=explode, on_application_complete=explode)
    result = harness.hunt(profile, HuntConfig(search_query="engineer"), callbacks)

    assert result.phase is HuntPhase.COMPLETED
    assert result.applications_successful == 2


def test_screenshots_are_saved_per_attempt(profile, tmp_path: Path) -> None:
    harness = Harness(
        analyzer=StubAnalyzer(dict(SCORES)),
        discovery=StubDiscovery(JOBS[:1]),
        screenshots_dir=tmp_path / "shots",
    )
    attempt = harness.hunt(profile, HuntConfig(search_query="engineer")).applications[0]

    assert attempt.screenshot_path is not None
    path = Path(attempt.screenshot_path)
    assert path.exists()
    assert path.parent == tmp_path / "shots"
    assert path.name.startswith(f"{JOBS[0].id}-")
    assert harness.navigator.screenshots == [attempt.screenshot_path]


def test_quick_apply_without_careers_page(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(careers_url=None))
    attempt = asyncio.run(harness.orchestrator.quick_apply("Acme", "Backend Engineer", profile))

    assert attempt.status is AttemptStatus.FAILED
    assert attempt.job_id == ""
    assert attempt.message == "Could not find careers page for Acme"
    assert harness.tracker.records == []
    assert harness.navigator.visited == []


def test_quick_apply_uses_first_scraped_match(profile) -> None:
    found = make_job("Backend Engineer II")
    harness = Harness(
        analyzer=StubAnalyzer(careers_url="https://acme.com/careers"),
        discovery=StubDiscovery(found=[found, make_job("Backend Engineer III")]),
    )
    events = Events()

    attempt = asyncio.run(harness.orchestrator.quick_apply("Acme", "Backend Engineer", profile, events.callbacks()))

    assert attempt.status is AttemptStatus.SUCCESS
    assert attempt.job_id == found.id
    assert harness.discovery.scraped == [("Acme", "https://acme.com/careers", "Backend Engineer")]
    assert harness.tracker.records == [(found.id, "profile-1", AttemptStatus.SUCCESS)]
    assert events.started == ["Backend Engineer II"]
    assert harness.session.closed == harness.session.opened


def test_quick_apply_falls_back_to_careers_page(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(careers_url="https://boards.greenhouse.io/acme"))
    attempt = asyncio.run(harness.orchestrator.quick_apply("Acme", "Backend Engineer", profile))

    assert attempt.job_id == make_job_id("https://boards.greenhouse.io/acme")
    assert attempt.url == "https://boards.greenhouse.io/acme"
    assert attempt.job_title == "Backend Engineer"


def test_quick_apply_confirmation(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(careers_url="https://acme.com/careers"))

    async def decline(job):
        return False

    attempt = asyncio.run(
        harness.orchestrator.quick_apply(
            "Acme",
            "Backend Engineer",
            profile,
            HuntCallbacks(on_confirmation_required=decline),
            require_confirmation=True,
        )
    )
    assert attempt.status is AttemptStatus.SKIPPED


def test_quick_apply_reraises_fatal_errors(profile) -> None:
    harness = Harness(analyzer=StubAnalyzer(error=LLMProviderError("quota exhausted")))
    events = Events()
    with pytest.raises(LLMProviderError):
        asyncio.run(harness.orchestrator.quick_apply("Acme", "Backend Engineer", profile, events.callbacks()))
    assert [str(exc) for exc, _ in events.errors] == ["quota exhausted"]
