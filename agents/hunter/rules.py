"""Ordered heuristic tables used by discovery and navigation.

Each table is evaluated top to bottom and the first matching rule wins, so the
precedence is whatever order the entries appear in below.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Tuple
from urllib.parse import urlparse

JOB_OPENING_PLACEHOLDER = "Job Opening"

JOB_KEYWORDS: Tuple[str, ...] = (
    "job",
    "career",
    "position",
    "opening",
    "hiring",
    "apply",
    "engineer",
    "developer",
    "manager",
    "analyst",
    "designer",
)

TITLE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(
        r"^(senior|junior|lead|staff|principal)?\s*"
        r"(software|frontend|backend|fullstack|full-stack|data|ml|ai|devops|cloud|security|mobile|ios|android)\s*"
        r"(engineer|developer|architect|scientist|analyst)",
        re.IGNORECASE,
    ),
    re.compile(r"^(product|project|engineering|technical|program)\s*manager", re.IGNORECASE),
    re.compile(r"^(ux|ui|product|graphic)\s*designer", re.IGNORECASE),
)

# How many leading body lines are inspected for a title when the page title misses.
TITLE_SCAN_LINES = 5
TITLE_MAX_CHARS = 100


@dataclass(frozen=True)
class CompanyRule:
    """Extract a company from ``(url, hostname, title)`` when ``applies`` holds."""

    name: str
    applies: Callable[[str], bool]
    extract: Callable[[str, str], Optional[str]]


def format_company_name(slug: str) -> str:
    words = slug.replace("-", " ").replace("_", " ").split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words if word)


def _path_slug(pattern: str) -> Callable[[str, str], Optional[str]]:
    compiled = re.compile(pattern, re.IGNORECASE)

    def extract(url: str, _title: str) -> Optional[str]:
        match = compiled.search(url)
        return format_company_name(match.group(1)) if match else None

    return extract


def _linkedin_company(_url: str, title: str) -> Optional[str]:
    match = re.search(r"\bat\s+([^|]+)", title, re.IGNORECASE)
    return match.group(1).strip() if match else None


def _domain_company(url: str, _title: str) -> Optional[str]:
    hostname = (urlparse(url).hostname or "").lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]
    parts = [part for part in hostname.split(".") if part]
    if not parts:
        return None
    # Second-level domain: acme.com -> acme, careers.acme.co.uk -> acme.
    if len(parts) >= 3 and len(parts[-1]) == 2 and parts[-2] in {"co", "com", "org", "net", "ac"}:
        label = parts[-3]
    elif len(parts) >= 2:
        label = parts[-2]
    else:
        label = parts[0]
    return format_company_name(label)


COMPANY_RULES: Tuple[CompanyRule, ...] = (
    CompanyRule("greenhouse", lambda host: "greenhouse.io" in host, _path_slug(r"greenhouse\.io/([^/?#]+)")),
    CompanyRule("lever", lambda host: "lever.co" in host, _path_slug(r"lever\.co/([^/?#]+)")),
    CompanyRule(
        "workday",
        lambda host: "myworkdayjobs.com" in host or "workday.com" in host,
        _path_slug(r"//([^./]+)\.wd\d+\.myworkday(?:jobs)?\.com"),
    ),
    CompanyRule("linkedin", lambda host: "linkedin.com" in host, _linkedin_company),
    CompanyRule("domain", lambda host: bool(host), _domain_company),
)

SOURCE_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("linkedin.com",), "linkedin"),
    (("indeed.com",), "indeed"),
    (("glassdoor.com",), "glassdoor"),
    (("greenhouse.io",), "greenhouse"),
    (("lever.co",), "lever"),
    (("workday.com", "myworkdayjobs.com"), "workday"),
)
DEFAULT_SOURCE = "company_site"

SEARCH_INPUT_SELECTORS: Tuple[str, ...] = (
    'input[type="search"]',
    'input[placeholder*="search" i]',
    'input[name*="search" i]',
    'input[id*="search" i]',
    'input[aria-label*="search" i]',
)

APPLY_BUTTON_SELECTORS: Tuple[str, ...] = (
    'button:has-text("Apply")',
    'a:has-text("Apply")',
    '[class*="apply"]',
    '[id*="apply"]',
    'button:has-text("Easy Apply")',
    'button:has-text("Apply Now")',
    'a:has-text("Apply Now")',
    'button[type="submit"]',
)

APPLICATION_PATH_SELECTORS: Tuple[str, ...] = (
    'a:has-text("Apply")',
    'a:has-text("Careers")',
    'a:has-text("Jobs")',
    'a:has-text("View Jobs")',
    'a:has-text("Open Positions")',
    'a[href*="careers"]',
    'a[href*="jobs"]',
    'a[href*="apply"]',
)

SUCCESS_INDICATORS: Tuple[str, ...] = (
    "application submitted",
    "thank you for applying",
    "application received",
    "successfully submitted",
    "we have received your application",
    "application complete",
    "you have applied",
    "thanks for applying",
)


def looks_like_job_page(url: str, title: str, text: str) -> bool:
    combined = f"{url} {title} {text}".lower()
    return any(keyword in combined for keyword in JOB_KEYWORDS)


def _matches_title_pattern(value: str) -> bool:
    return any(pattern.search(value) for pattern in TITLE_PATTERNS)


def extract_job_title(title: str, text: str) -> str:
    """Pick a job title from the page title, then the first body lines."""
    title = (title or "").strip()
    if title and _matches_title_pattern(title):
        return title
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    for line in lines[:TITLE_SCAN_LINES]:
        if _matches_title_pattern(line):
            return line[:TITLE_MAX_CHARS]
    return title or JOB_OPENING_PLACEHOLDER


def extract_company(url: str, title: str = "") -> str:
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
    for rule in COMPANY_RULES:
        if rule.applies(hostname):
            return rule.extract(url, title or "") or ""
    return ""


def detect_source(url: str) -> str:
    lowered = url.lower()
    for needles, source in SOURCE_RULES:
        if any(needle in lowered for needle in needles):
            return source
    return DEFAULT_SOURCE


def extract_domain(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        return url
    return f"{parsed.scheme}://{parsed.hostname}"


def job_matches_query(title: str, query: str) -> bool:
    """At least half the query words appear in the title; words under 3 chars always count."""
    words = (query or "").lower().split()
    if not words:
        return True
    title_lower = (title or "").lower()
    matched = sum(1 for word in words if len(word) < 3 or word in title_lower)
    return matched >= len(words) / 2


def _normalize_title(value: str) -> str:
    value = re.sub(r"[^\w\s]", "", value.lower())
    return re.sub(r"\s+", " ", value).strip()


def titles_match(first: str, second: str) -> bool:
    left, right = _normalize_title(first), _normalize_title(second)
    if not left or not right:
        return False
    if left == right or left in right or right in left:
        return True
    left_words, right_words = set(left.split(" ")), set(right.split(" "))
    overlap = [word for word in left_words if word in right_words and len(word) > 2]
    return len(overlap) >= min(len(left_words), len(right_words)) / 2


def looks_like_success_page(text: str) -> bool:
    lowered = (text or "").lower()
    return any(indicator in lowered for indicator in SUCCESS_INDICATORS)


__all__: List[str] = [
    "APPLICATION_PATH_SELECTORS",
    "APPLY_BUTTON_SELECTORS",
    "COMPANY_RULES",
    "JOB_KEYWORDS",
    "SEARCH_INPUT_SELECTORS",
    "SUCCESS_INDICATORS",
    "TITLE_PATTERNS",
    "detect_source",
    "extract_company",
    "extract_domain",
    "extract_job_title",
    "format_company_name",
    "job_matches_query",
    "looks_like_job_page",
    "looks_like_success_page",
    "titles_match",
]
