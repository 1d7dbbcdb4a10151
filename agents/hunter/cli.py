"""Command-line entry point for hunts and single-company quick applies."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from agents.common.gemini_client import GeminiClient, GeminiConfig, LLMProviderError
from agents.hunter.attempt_writer import JsonAttemptWriter
from agents.hunter.discovery import JobDiscovery
from agents.hunter.form_filler import FormFiller
from agents.hunter.models import DiscoveredJob, HuntConfig
from agents.hunter.navigator import CareerPageNavigator
from agents.hunter.orchestrator import HuntCallbacks, JobHunterOrchestrator
from agents.hunter.pacing import build_pacing
from agents.hunter.page_analyzer import PageAnalyzer
from agents.hunter.profile import UserProfile
from tools.browser_session import BrowserSessionError, PlaywrightSession, PlaywrightSessionConfig
from tools.search import SearchProviderError, build_search_provider
from utils.config import ConfigurationError, HunterSettings
from utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def build_orchestrator(settings: HunterSettings, *, headless: Optional[bool] = None) -> JobHunterOrchestrator:
    """Wire the default collaborators from settings."""
    llm = GeminiClient(
        GeminiConfig(
            model=settings.gemini_model,
            api_base=settings.gemini_api_base,
            timeout_seconds=settings.gemini_timeout,
        ),
        api_key=settings.gemini_api_key or None,
    )
    analyzer = PageAnalyzer(llm)
    pacing = build_pacing(settings.pacing)
    search = build_search_provider(settings.search_provider, settings.exa_api_key)
    session_config = PlaywrightSessionConfig(
        headless=settings.headless if headless is None else headless,
        navigation_timeout_ms=settings.navigation_timeout_ms,
    )
    return JobHunterOrchestrator(
        analyzer=analyzer,
        discovery=JobDiscovery(analyzer, search=search, pacing=pacing),
        navigator=CareerPageNavigator(analyzer, pacing=pacing),
        form_filler=FormFiller(analyzer, pacing=pacing),
        tracker=JsonAttemptWriter(settings.attempts_dir),
        session_factory=lambda: PlaywrightSession(session_config),
        pacing=pacing,
        screenshots_dir=settings.screenshots_dir,
    )


async def ask_confirmation(job: DiscoveredJob) -> bool:
    prompt = f"Submit application for {job.title} at {job.company} ({job.url})? [y/N] "
    answer = await asyncio.to_thread(input, prompt)
    return answer.strip().lower() in {"y", "yes"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="job-hunter", description="Discover jobs and apply through their web forms")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    hunt = subparsers.add_parser("hunt", help="Run a full discovery + apply session")
    hunt.add_argument("--profile", required=True, help="Path to the profile JSON")
    hunt.add_argument("--query", required=True, help="Job search query, e.g. 'backend engineer'")
    hunt.add_argument("--location")
    hunt.add_argument("--remote", action="store_true")
    hunt.add_argument("--level", dest="experience_level", help="Experience level, e.g. senior")
    hunt.add_argument("--max-jobs", type=int, default=10)
    hunt.add_argument("--threshold", type=int, default=50, help="Minimum match score (0-100)")
    hunt.add_argument("--exclude", action="append", default=[], help="Company substring to skip (repeatable)")
    hunt.add_argument("--company", action="append", default=[], help="Company careers page to scan (repeatable)")
    hunt.add_argument("--no-search", action="store_true", help="Skip semantic search; only scan --company pages")
    hunt.add_argument("--dry-run", action="store_true", help="Stop after matching")
    hunt.add_argument("--confirm", action="store_true", help="Ask before every submit")
    hunt.add_argument("--headful", action="store_true", help="Show the browser window")

    quick = subparsers.add_parser("quick-apply", help="Apply to one role at one company")
    quick.add_argument("--profile", required=True, help="Path to the profile JSON")
    quick.add_argument("--company", required=True)
    quick.add_argument("--title", required=True, help="Job title to look for")
    quick.add_argument("--confirm", action="store_true", help="Ask before submitting")
    quick.add_argument("--headful", action="store_true", help="Show the browser window")
    return parser


def hunt_config_from_args(args: argparse.Namespace) -> HuntConfig:
    sources = ["companies"] if args.no_search else ["search", "companies"]
    return HuntConfig(
        search_query=args.query,
        location=args.location,
        remote=args.remote,
        experience_level=args.experience_level,
        max_jobs=args.max_jobs,
        match_threshold=args.threshold,
        exclude_companies=list(args.exclude),
        include_companies=list(args.company),
        sources=sources,
        require_confirmation=args.confirm,
        dry_run=args.dry_run,
    )


async def _run(args: argparse.Namespace, settings: HunterSettings) -> dict:
    profile = UserProfile.from_file(Path(args.profile))
    orchestrator = build_orchestrator(settings, headless=False if args.headful else None)
    callbacks = HuntCallbacks(on_confirmation_required=ask_confirmation if args.confirm else None)

    if args.command == "hunt":
        result = await orchestrator.hunt(profile, hunt_config_from_args(args), callbacks)
        return result.to_dict()
    attempt = await orchestrator.quick_apply(
        args.company,
        args.title,
        profile,
        callbacks,
        require_confirmation=args.confirm,
    )
    return attempt.to_dict()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        settings = HunterSettings.from_env()
        summary = asyncio.run(_run(args, settings))
    except (ConfigurationError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 2
    except (LLMProviderError, SearchProviderError, BrowserSessionError) as exc:
        logger.error("Quick apply aborted: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    if args.command == "hunt" and summary.get("phase") == "error":
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
