from __future__ import annotations

import asyncio

import pytest

from agents.common.gemini_client import LLMProviderError
from agents.hunter.discovery import (
    LISTING_LOCATION,
    UNKNOWN_LOCATION,
    JobDiscovery,
    build_search_query,
    dedupe_jobs,
    is_excluded,
)
from agents.hunter.models import Company, DiscoveredJob, HuntConfig, make_job_id
from agents.hunter.page_analyzer import PageAnalyzer
from tests.fakes import FakeElement, FakeLLM, FakePage, FakeSearch, analysis_json
from tools.search import SearchProviderError, SearchResult

GREENHOUSE_URL = "https://boards.greenhouse.io/acme/jobs/123"

SEARCH_RESULTS = [
    SearchResult(url=GREENHOUSE_URL, title="Senior Backend Engineer", text="We are hiring a backend engineer."),
    SearchResult(url="https://jobs.lever.co/globex/abc", title="Backend Developer", text="Join Globex."),
    SearchResult(url="https://blog.example.com/post", title="Cooking tips", text="recipes"),
    SearchResult(url=GREENHOUSE_URL, title="Senior Backend Engineer (copy)", text="duplicate"),
]

LISTING = analysis_json(
    "job_listing",
    jobs=[
        {"title": "Backend Engineer", "selector": "#job-1", "url": "https://acme.com/jobs/1"},
        {"title": "Office Manager", "selector": "#job-2"},
    ],
)


def _discovery(llm: FakeLLM | None = None, search: FakeSearch | None = None) -> JobDiscovery:
    return JobDiscovery(PageAnalyzer(llm or FakeLLM()), search=search)


def _job(url: str, company: str = "Acme", title: str = "Backend Engineer") -> DiscoveredJob:
    return DiscoveredJob(
        id=make_job_id(url),
        title=title,
        company=company,
        location=UNKNOWN_LOCATION,
        description="",
        url=url,
        source="company_site",
    )


def test_build_search_query_appends_filters() -> None:
    config = HuntConfig(search_query=" backend engineer ", location="London", remote=True, experience_level="senior")
    assert build_search_query(config) == "backend engineer London remote senior level"
    assert build_search_query(HuntConfig(search_query="data analyst")) == "data analyst"


def test_exclusion_is_case_insensitive_substring() -> None:
    assert is_excluded("Globex Corporation", ["globex"])
    assert not is_excluded("Acme", ["globex", ""])


def test_dedupe_keeps_first_occurrence() -> None:
    first = _job("https://acme.com/jobs/1", title="First")
    second = _job("https://acme.com/jobs/1", title="Second")
    other = _job("https://acme.com/jobs/2")
    assert [job.title for job in dedupe_jobs([first, second, other])] == ["First", "Backend Engineer"]


def test_search_jobs_filters_excludes_and_dedupes() -> None:
    search = FakeSearch(SEARCH_RESULTS)
    config = HuntConfig(search_query="backend engineer", location="London", max_jobs=5, exclude_companies=["globex"])

    jobs = asyncio.run(_discovery(search=search).search_jobs(config))

    assert len(jobs) == 1
    job = jobs[0]
    assert job.id == make_job_id(GREENHOUSE_URL)
    assert job.title == "Senior Backend Engineer"
    assert job.company == "Acme"
    assert job.location == "London"
    assert job.source == "greenhouse"
    assert job.description == "We are hiring a backend engineer."
    assert search.calls == [{"query": "backend engineer London", "num_results": 5, "max_characters": 3000}]


@pytest.mark.parametrize(("max_jobs", "expected"), [(0, 20), (100, 50), (7, 7)])
def test_search_jobs_result_limit(max_jobs: int, expected: int) -> None:
    search = FakeSearch([])
    asyncio.run(_discovery(search=search).search_jobs(HuntConfig(search_query="x", max_jobs=max_jobs)))
    assert search.calls[0]["num_results"] == expected


def test_search_jobs_defaults_location_and_propagates_provider_errors() -> None:
    search = FakeSearch([SEARCH_RESULTS[1]])
    jobs = asyncio.run(_discovery(search=search).search_jobs(HuntConfig(search_query="backend")))
    assert jobs[0].location == UNKNOWN_LOCATION
    assert jobs[0].company == "Globex"

    failing = FakeSearch(error=SearchProviderError("quota exhausted"))
    with pytest.raises(SearchProviderError):
        asyncio.run(_discovery(search=failing).search_jobs(HuntConfig(search_query="backend")))


def test_search_jobs_without_provider_is_empty() -> None:
    assert asyncio.run(_discovery().search_jobs(HuntConfig(search_query="backend"))) == []


def test_scrape_listing_filters_by_query() -> None:
    page = FakePage()
    company = Company(name="Acme", careers_url="https://acme.com/careers")
    jobs = asyncio.run(
        _discovery(FakeLLM({"page_analysis": LISTING})).scrape_company_careers_page(page, company, "backend engineer")
    )

    assert page.visited == ["https://acme.com/careers"]
    assert [job.title for job in jobs] == ["Backend Engineer"]
    assert jobs[0].url == "https://acme.com/jobs/1"
    assert jobs[0].id == make_job_id("https://acme.com/jobs/1")
    assert jobs[0].location == LISTING_LOCATION
    assert jobs[0].company == "Acme"


def test_scrape_listing_without_query_keeps_everything() -> None:
    company = Company(name="Acme", website="https://acme.com/")
    jobs = asyncio.run(_discovery(FakeLLM({"page_analysis": LISTING})).scrape_company_careers_page(FakePage(), company))

    assert len(jobs) == 2
    selector_only = jobs[1]
    assert selector_only.url == "https://acme.com/careers"
    assert selector_only.id == make_job_id("https://acme.com/careers#job-2")


def test_scrape_navigation_failure_returns_empty() -> None:
    page = FakePage(goto_error=RuntimeError("net::ERR_NAME_NOT_RESOLVED"))
    company = Company(name="Nowhere", careers_url="https://nowhere.invalid/careers")
    assert asyncio.run(_discovery().scrape_company_careers_page(page, company, "engineer")) == []


def test_scrape_model_failure_propagates() -> None:
    llm = FakeLLM(error=LLMProviderError("quota"))
    company = Company(name="Acme", careers_url="https://acme.com/careers")
    with pytest.raises(LLMProviderError):
        asyncio.run(_discovery(llm).scrape_company_careers_page(FakePage(), company, "engineer"))


def test_scrape_uses_on_page_search_when_not_a_listing() -> None:
    search_box = FakeElement()
    page = FakePage(elements={'input[type="search"]': search_box})
    llm = FakeLLM(
        {
            "page_analysis": [
                analysis_json("other"),
                analysis_json("job_listing", jobs=[{"title": "Platform Engineer", "selector": ".row-1"}]),
            ]
        }
    )
    company = Company(name="Acme", careers_url="https://acme.com/careers")

    jobs = asyncio.run(_discovery(llm).scrape_company_careers_page(page, company, "platform engineer"))

    assert search_box.fills == ["platform engineer"]
    assert page.keyboard.pressed == ["Enter"]
    assert [job.title for job in jobs] == ["Platform Engineer"]
    assert jobs[0].id == make_job_id("https://acme.com/careers.row-1")
    assert len(llm.calls_for("page_analysis")) == 2


def test_on_page_search_without_input_returns_nothing() -> None:
    llm = FakeLLM({"page_analysis": analysis_json("other")})
    company = Company(name="Acme", careers_url="https://acme.com/careers")
    jobs = asyncio.run(_discovery(llm).scrape_company_careers_page(FakePage(), company, "engineer"))
    assert jobs == []
    assert len(llm.calls_for("page_analysis")) == 1


def test_get_job_details_returns_enriched_copy() -> None:
    job = _job("https://acme.com/jobs/1")
    page = FakePage(
        details={
            "text": "  Build   reliable\n services  ",
            "location": "Remote (EU)",
            "salary": "£80k",
            "applyUrl": "https://acme.com/jobs/1/apply",
        }
    )

    detailed = asyncio.run(_discovery().get_job_details(page, job))

    assert detailed is not job
    assert detailed.id == job.id
    assert detailed.description == "Build reliable services"
    assert detailed.location == "Remote (EU)"
    assert detailed.salary == "£80k"
    assert detailed.apply_url == "https://acme.com/jobs/1/apply"
    assert job.description == ""
    assert page.visited == [job.url]


def test_get_job_details_failure_returns_original() -> None:
    job = _job("https://acme.com/jobs/1")
    assert asyncio.run(_discovery().get_job_details(FakePage(details=None), job)) is job


def test_discover_merges_sources_and_dedupes() -> None:
    llm = FakeLLM(
        {
            "careers_page": "https://acme.com/careers",
            "page_analysis": analysis_json(
                "job_listing",
                jobs=[
                    {"title": "Backend Engineer (dup)", "url": GREENHOUSE_URL},
                    {"title": "Backend Engineer II", "url": "https://acme.com/jobs/2"},
                ],
            ),
        }
    )
    search = FakeSearch(SEARCH_RESULTS[:1])
    config = HuntConfig(search_query="backend engineer", include_companies=["Acme"])

    jobs = asyncio.run(_discovery(llm, search).discover(config, page=FakePage()))

    assert [job.title for job in jobs] == ["Senior Backend Engineer", "Backend Engineer II"]
    assert len({job.id for job in jobs}) == 2


def test_discover_applies_exclusions_to_every_source() -> None:
    llm = FakeLLM({"careers_page": "https://acme.com/careers", "page_analysis": LISTING})
    config = HuntConfig(search_query="backend engineer", include_companies=["Acme"], exclude_companies=["ACME"])
    jobs = asyncio.run(_discovery(llm, FakeSearch(SEARCH_RESULTS[:1])).discover(config, page=FakePage()))
    assert jobs == []


def test_discover_skips_companies_without_page_or_careers_url() -> None:
    config = HuntConfig(search_query="backend", include_companies=["Acme"], sources=["companies"])
    assert asyncio.run(_discovery().discover(config)) == []

    llm = FakeLLM({"careers_page": "UNKNOWN"})
    page = FakePage()
    assert asyncio.run(_discovery(llm).discover(config, page=page)) == []
    assert page.visited == []


def test_discover_companies_resolves_careers_pages() -> None:
    search = FakeSearch(
        [
            SearchResult(url="https://www.acme.com/careers", title="Careers at Acme"),
            SearchResult(url="https://initech.com/jobs", title="Initech jobs"),
            SearchResult(url="https://acme.com/about", title="About Acme"),
        ]
    )
    llm = FakeLLM({"careers_page": ["careers.acme.com", "UNKNOWN"]})

    companies = asyncio.run(_discovery(llm, search).discover_companies("fintech", "London"))

    assert [(c.name, c.website, c.careers_url) for c in companies] == [
        ("Acme", "https://www.acme.com", "https://careers.acme.com"),
        ("Initech", "https://initech.com", None),
    ]
    assert all(c.industry == "fintech" for c in companies)
    assert search.calls[0]["query"] == "fintech companies London careers jobs hiring"
    assert "Their website is: https://www.acme.com" in llm.calls[0]["prompt"]


def test_discover_companies_without_provider() -> None:
    assert asyncio.run(_discovery().discover_companies("fintech")) == []
