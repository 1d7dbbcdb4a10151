"""Vision-model page analyzer: classifies a rendered page and describes its form.

Every call is a fresh classification of the page as it is right now; results
are returned to the caller and never cached, because the DOM behind a URL
changes between visits.
"""
from __future__ import annotations

import json
import re
from textwrap import dedent
from typing import Any, Dict, Optional, Protocol

from bs4 import BeautifulSoup

from agents.common.gemini_client import strip_code_fence
from agents.hunter.models import (
    AnalysisDegraded,
    AnalysisOk,
    FormField,
    JobContext,
    MatchResult,
    PageAnalysis,
    ParseResult,
)
from agents.hunter.profile import UserProfile
from utils.logging import get_logger

logger = get_logger(__name__)

MAX_HTML_CHARS = 15_000
MAX_DESCRIPTION_CHARS = 3_000
DEFAULT_MATCH_SCORE = 50
_STRIPPED_TAGS = ("script", "style", "noscript", "svg")
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


class LLMClient(Protocol):
    """The single method the analyzer needs from a model client."""

    async def complete(
        self,
        prompt: str,
        *,
        image: bytes | None = None,
        temperature: Optional[float] = None,
        bucket: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:  # pragma: no cover - interface only
        ...


PAGE_ANALYSIS_PROMPT = dedent(
    """
    Analyze this webpage screenshot and the HTML below. Determine:

    1. Page type: is this a job listing page, job details page, application form, login page, or other?
    2. If job listings: identify job titles, their CSS selectors and URLs.
    3. If application form: identify ALL form fields with their
       - CSS selector (be specific, use IDs when available)
       - field type (text, email, phone, file, select, checkbox, radio, textarea)
       - label/purpose
       - whether it is required
       - which profile attribute should fill it (firstName, lastName, email, phone, linkedin,
         github, website, location, resumePath) if any
       - options for select/radio fields
    4. Identify submit/next/apply buttons with their selectors.
    5. Note any login requirements or visible error messages.

    HTML (truncated):
    {html}

    Respond with ONLY a JSON object:
    {{
      "pageType": "job_listing" | "job_details" | "application_form" | "login" | "other",
      "title": "page title",
      "jobs": [{{"title": "...", "selector": "...", "url": "..."}}],
      "formFields": [{{"selector": "...", "type": "...", "label": "...", "required": true, "profileMapping": "...", "options": []}}],
      "submitButton": "selector",
      "nextButton": "selector if multi-step",
      "loginRequired": false,
      "errors": ["any error messages visible"]
    }}
    """
).strip()

JOB_MATCH_PROMPT = dedent(
    """
    Analyze how well this candidate matches the job.

    JOB DESCRIPTION:
    {description}

    CANDIDATE PROFILE:
    Skills: {skills}
    Experience: {experience}
    Education: {education}

    Respond with ONLY JSON:
    {{
      "score": 0-100,
      "analysis": "2-3 sentence explanation",
      "missingSkills": ["skills the job wants but the candidate lacks"],
      "strongMatches": ["areas where the candidate excels"]
    }}
    """
).strip()

FIELD_VALUE_PROMPT = dedent(
    """
    What should I fill for this form field?

    Field: {label} ({field_type})
    {options_line}
    Job: {job_title} at {company}

    User Profile Summary:
    {profile}

    Respond with ONLY the value to fill (no explanation). For select/radio, respond with the exact option text.
    """
).strip()

CAREERS_PAGE_PROMPT = dedent(
    """
    What is the careers/jobs page URL for {company}?
    {website_line}
    Common patterns:
    - careers.company.com
    - company.com/careers
    - jobs.company.com
    - company.com/jobs
    - boards.greenhouse.io/company
    - jobs.lever.co/company

    Respond with ONLY the most likely URL (no explanation). If unknown, respond "UNKNOWN".
    """
).strip()


def compact_html(html: str, limit: int = MAX_HTML_CHARS) -> str:
    """Drop non-structural tags and truncate so the request stays bounded."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(list(_STRIPPED_TAGS)):
        tag.decompose()
    return str(soup)[:limit]


def _json_candidate(text: str) -> str:
    match = _FENCED_BLOCK.search(text or "")
    if match:
        return match.group(1).strip()
    return strip_code_fence(text or "")


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        payload = json.loads(_json_candidate(text))
    except (json.JSONDecodeError, TypeError):
        return None
    return payload if isinstance(payload, dict) else None


def parse_page_analysis(text: str) -> ParseResult:
    """Turn raw model output into a PageAnalysis; never raises."""
    payload = parse_json_object(text)
    if payload is None:
        return AnalysisDegraded(reason="Failed to analyze page structure: model output was not a JSON object", raw=text or "")
    try:
        return AnalysisOk(PageAnalysis.from_dict(payload))
    except (TypeError, ValueError, AttributeError) as exc:
        return AnalysisDegraded(reason=f"Failed to analyze page structure: {exc}", raw=text or "")


def _clamp_score(value: Any) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return DEFAULT_MATCH_SCORE
    return max(0, min(100, score))


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


class PageAnalyzer:
    """Classifies pages and answers the narrower questions discovery needs."""

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def analyze_page(self, page) -> PageAnalysis:
        screenshot = await page.screenshot(type="png", full_page=False)
        html = await page.content()
        prompt = PAGE_ANALYSIS_PROMPT.format(html=compact_html(html))
        url = getattr(page, "url", "")
        raw = await self.llm.complete(
            prompt,
            image=screenshot,
            temperature=0.0,
            bucket="page_analysis",
            metadata={"url": url},
        )
        result = parse_page_analysis(raw)
        if isinstance(result, AnalysisDegraded):
            logger.warning("Analyzer: could not parse analysis for %s (%s)", url, result.reason)
            logger.debug("Analyzer: raw response %s", result.raw[:1000])
            return result.analysis
        analysis = result.analysis
        logger.info(
            "Analyzer: %s classified as %s (%d fields, %d jobs)",
            url,
            analysis.page_type.value,
            len(analysis.form_fields),
            len(analysis.jobs),
        )
        return analysis

    async def match_job(self, description: str, profile: UserProfile) -> MatchResult:
        prompt = JOB_MATCH_PROMPT.format(
            description=(description or "")[:MAX_DESCRIPTION_CHARS],
            skills=", ".join(profile.skills),
            experience="; ".join(f"{item.title} at {item.company}" for item in profile.experience),
            education="; ".join(f"{item.degree} in {item.field}" for item in profile.education),
        )
        raw = await self.llm.complete(prompt, temperature=0.0, bucket="job_match")
        payload = parse_json_object(raw)
        if payload is None:
            logger.warning("Analyzer: job match response was not JSON; using default score")
            return MatchResult(score=DEFAULT_MATCH_SCORE, analysis="Unable to analyze match")
        return MatchResult(
            score=_clamp_score(payload.get("score")),
            analysis=str(payload.get("analysis") or ""),
            missing_skills=_str_list(payload.get("missingSkills") or payload.get("missing_skills")),
            strong_matches=_str_list(payload.get("strongMatches") or payload.get("strong_matches")),
        )

    async def determine_field_value(self, field: FormField, profile: UserProfile, job_context: JobContext) -> str:
        options_line = f"Options: {', '.join(field.options)}" if field.options else ""
        prompt = FIELD_VALUE_PROMPT.format(
            label=field.label,
            field_type=field.type,
            options_line=options_line,
            job_title=job_context.title,
            company=job_context.company,
            profile=profile.summary(),
        )
        raw = await self.llm.complete(
            prompt,
            temperature=0.0,
            bucket="field_value",
            metadata={"field_label": field.label},
        )
        return (raw or "").strip()

    async def find_careers_page(self, company: str, website: Optional[str] = None) -> Optional[str]:
        website_line = f"Their website is: {website}\n" if website else ""
        prompt = CAREERS_PAGE_PROMPT.format(company=company, website_line=website_line)
        raw = await self.llm.complete(prompt, temperature=0.0, bucket="careers_page", metadata={"company": company})
        return normalize_careers_answer(raw)


def normalize_careers_answer(raw: str) -> Optional[str]:
    answer = strip_code_fence(raw or "").strip().strip("`'\"<>").strip()
    if not answer:
        return None
    answer = answer.split()[0].rstrip(".,;")
    if answer.upper() == "UNKNOWN":
        return None
    if answer.startswith(("http://", "https://")):
        return answer
    if "." in answer and "/" not in answer.split(".")[0]:
        return f"https://{answer}"
    return None
