"""Job discovery through semantic search and company careers pages."""
from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional

from agents.common.gemini_client import LLMProviderError
from agents.hunter import rules
from agents.hunter.models import Company, DiscoveredJob, HuntConfig, JobRef, PageType, make_job_id
from agents.hunter.pacing import NoPacing, PacingPolicy, pause
from tools.search import SearchProvider
from utils.logging import get_logger

logger = get_logger(__name__)

SEARCH_TEXT_CHARS = 3_000
MAX_SEARCH_RESULTS = 50
DEFAULT_SEARCH_RESULTS = 20
COMPANY_SEARCH_RESULTS = 20
DETAIL_TEXT_CHARS = 5_000
NAVIGATION_TIMEOUT_MS = 30_000
UNKNOWN_LOCATION = "Not specified"
LISTING_LOCATION = "Check job details"

JOB_DETAILS_JS = """
() => {
  const getText = (selectors) => {
    for (const sel of selectors) {
      const el = document.querySelector(sel);
      if (el && el.textContent && el.textContent.trim()) return el.textContent.trim();
    }
    return null;
  };
  const article = document.querySelector('article, [class*="job-description"], [class*="description"], main');
  const apply = document.querySelector('a[href*="apply"]');
  return {
    text: (article && article.textContent) || (document.body && document.body.textContent) || "",
    location: getText(['[class*="location"]', '[data-testid*="location"]']),
    salary: getText(['[class*="salary"]', '[class*="compensation"]', '[data-testid*="salary"]']),
    applyUrl: apply ? apply.href : null,
  };
}
"""


def build_search_query(config: HuntConfig) -> str:
    parts = [config.search_query.strip()]
    if config.location:
        parts.append(config.location)
    if config.remote:
        parts.append("remote")
    if config.experience_level:
        parts.append(f"{config.experience_level} level")
    return " ".join(part for part in parts if part)


def is_excluded(company: str, exclusions: Iterable[str]) -> bool:
    lowered = company.lower()
    return any(item and item.lower() in lowered for item in exclusions)


def dedupe_jobs(jobs: Iterable[DiscoveredJob]) -> List[DiscoveredJob]:
    """Keep the first job seen per id."""
    seen: Dict[str, DiscoveredJob] = {}
    for job in jobs:
        seen.setdefault(job.id, job)
    return list(seen.values())


class JobDiscovery:
    """Finds candidate jobs; every job it returns carries a URL-derived id."""

    def __init__(
        self,
        analyzer,
        search: Optional[SearchProvider] = None,
        pacing: PacingPolicy | None = None,
    ) -> None:
        self.analyzer = analyzer
        self.search = search
        self.pacing = pacing or NoPacing()

    async def discover(self, config: HuntConfig, page=None) -> List[DiscoveredJob]:
        jobs: List[DiscoveredJob] = []
        if "search" in config.sources and self.search is not None:
            jobs.extend(await self.search_jobs(config))

        if "companies" in config.sources and config.include_companies:
            if page is None:
                logger.info("Discovery: no browser page supplied; skipping careers pages")
            else:
                for name in config.include_companies:
                    careers_url = await self.analyzer.find_careers_page(name)
                    if not careers_url:
                        logger.info("Discovery: no careers page known for %s", name)
                        continue
                    company = Company(name=name, careers_url=careers_url)
                    jobs.extend(await self.scrape_company_careers_page(page, company, config.search_query))

        unique = dedupe_jobs(job for job in jobs if not is_excluded(job.company, config.exclude_companies))
        logger.info("Discovery: %d unique jobs (%d raw)", len(unique), len(jobs))
        return unique

    async def search_jobs(self, config: HuntConfig) -> List[DiscoveredJob]:
        if self.search is None:
            return []
        query = build_search_query(config)
        limit = min(config.max_jobs or DEFAULT_SEARCH_RESULTS, MAX_SEARCH_RESULTS)
        logger.info("Discovery: searching %s for %r", self.search.name, query)
        results = await asyncio.to_thread(
            self.search.search,
            query,
            num_results=limit,
            max_characters=SEARCH_TEXT_CHARS,
        )

        jobs: List[DiscoveredJob] = []
        for result in results:
            title, text = result.title or "", result.text or ""
            if not rules.looks_like_job_page(result.url, title, text):
                continue
            company = rules.extract_company(result.url, title)
            if is_excluded(company, config.exclude_companies):
                logger.debug("Discovery: excluded %s (%s)", result.url, company)
                continue
            jobs.append(
                DiscoveredJob(
                    id=make_job_id(result.url),
                    title=rules.extract_job_title(title, text),
                    company=company,
                    location=config.location or UNKNOWN_LOCATION,
                    description=text,
                    url=result.url,
                    source=rules.detect_source(result.url),
                )
            )
        return dedupe_jobs(jobs)

    async def scrape_company_careers_page(
        self,
        page,
        company: Company,
        query: Optional[str] = None,
    ) -> List[DiscoveredJob]:
        careers_url = company.careers_url or f"{(company.website or '').rstrip('/')}/careers"
        jobs: List[DiscoveredJob] = []
        try:
            await page.goto(careers_url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
            await pause(self.pacing, "settle")
            analysis = await self.analyzer.analyze_page(page)

            if analysis.page_type == PageType.JOB_LISTING:
                for ref in analysis.jobs:
                    if query and not rules.job_matches_query(ref.title, query):
                        continue
                    jobs.append(self._job_from_ref(ref, company.name, careers_url))
            elif query:
                jobs.extend(await self.search_on_page(page, query, company))
        except LLMProviderError:
            raise
        except Exception as exc:
            logger.error("Discovery: failed to scrape %s careers page %s: %s", company.name, careers_url, exc)
        return jobs

    async def search_on_page(self, page, query: str, company: Company) -> List[DiscoveredJob]:
        search_input = None
        for selector in rules.SEARCH_INPUT_SELECTORS:
            search_input = await page.query_selector(selector)
            if search_input is not None:
                break
        if search_input is None:
            logger.debug("Discovery: no search input on %s", page.url)
            return []

        await search_input.fill(query)
        await page.keyboard.press("Enter")
        await pause(self.pacing, "settle")

        analysis = await self.analyzer.analyze_page(page)
        base_url = page.url
        return [self._job_from_ref(ref, company.name, base_url) for ref in analysis.jobs]

    async def get_job_details(self, page, job: DiscoveredJob) -> DiscoveredJob:
        """Visit the job page and return a richer copy; the input job is untouched."""
        try:
            await page.goto(job.url, wait_until="networkidle", timeout=NAVIGATION_TIMEOUT_MS)
            await pause(self.pacing, "settle")
            details = await page.evaluate(JOB_DETAILS_JS) or {}
        except Exception as exc:
            logger.warning("Discovery: could not load details for %s: %s", job.title, exc)
            return job

        changes = {}
        text = " ".join(str(details.get("text") or "").split())
        if text:
            changes["description"] = text[:DETAIL_TEXT_CHARS]
        if details.get("location"):
            changes["location"] = str(details["location"])
        if details.get("salary"):
            changes["salary"] = str(details["salary"])
        if details.get("applyUrl"):
            changes["apply_url"] = str(details["applyUrl"])
        return job.with_updates(**changes) if changes else job

    async def discover_companies(self, industry: str, location: Optional[str] = None) -> List[Company]:
        if self.search is None:
            return []
        query = " ".join(part for part in (industry, "companies", location or "", "careers jobs hiring") if part)
        results = await asyncio.to_thread(
            self.search.search,
            query,
            num_results=COMPANY_SEARCH_RESULTS,
            max_characters=1_000,
        )
        companies: List[Company] = []
        seen = set()
        for result in results:
            name = rules.extract_company(result.url, result.title or "")
            if not name or name in seen:
                continue
            seen.add(name)
            website = rules.extract_domain(result.url)
            careers_url = await self.analyzer.find_careers_page(name, website)
            companies.append(Company(name=name, website=website, careers_url=careers_url, industry=industry))
        logger.info("Discovery: %d companies for %r", len(companies), industry)
        return companies

    @staticmethod
    def _job_from_ref(ref: JobRef, company: str, base_url: str) -> DiscoveredJob:
        url = ref.url or base_url
        return DiscoveredJob(
            id=make_job_id(ref.url or f"{base_url}{ref.selector}"),
            title=ref.title,
            company=company,
            location=LISTING_LOCATION,
            description="",
            url=url,
            source=rules.detect_source(base_url),
        )
