"""Shared dataclasses for discovery, page analysis, form filling and hunts."""
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

FIELD_TYPES = ("text", "email", "phone", "file", "select", "checkbox", "radio", "textarea")
TEXT_LIKE_TYPES = ("text", "email", "phone", "textarea")


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime(ISO_FORMAT)


def make_job_id(url: str) -> str:
    """Deterministic dedup key for a canonical job URL (not a security boundary)."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()[:12]


class PageType(str, Enum):
    JOB_LISTING = "job_listing"
    JOB_DETAILS = "job_details"
    APPLICATION_FORM = "application_form"
    LOGIN = "login"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Any) -> "PageType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


class AttemptStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    REQUIRES_MANUAL = "requires_manual"


class HuntPhase(str, Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    MATCHING = "matching"
    APPLYING = "applying"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (HuntPhase.COMPLETED, HuntPhase.ERROR, HuntPhase.CANCELLED)


def _as_str_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if item not in (None, "")]
    return [str(value)]


def _optional_str(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    return str(value)


@dataclass(frozen=True, slots=True)
class DiscoveredJob:
    """A job candidate. Superseded, never mutated, when richer detail arrives."""

    id: str
    title: str
    company: str
    location: str
    description: str
    url: str
    source: str
    discovered_at: str = field(default_factory=utc_now)
    salary: Optional[str] = None
    apply_url: Optional[str] = None
    match_score: Optional[int] = None
    match_analysis: Optional[str] = None

    def with_updates(self, **changes: Any) -> "DiscoveredJob":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "description": self.description,
            "url": self.url,
            "source": self.source,
            "discovered_at": self.discovered_at,
            "salary": self.salary,
            "apply_url": self.apply_url,
            "match_score": self.match_score,
            "match_analysis": self.match_analysis,
        }


@dataclass(slots=True)
class Company:
    name: str
    website: Optional[str] = None
    careers_url: Optional[str] = None
    industry: Optional[str] = None


@dataclass(frozen=True, slots=True)
class JobRef:
    title: str
    selector: str = ""
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "JobRef":
        return cls(
            title=str(payload.get("title") or "").strip(),
            selector=str(payload.get("selector") or ""),
            url=_optional_str(payload.get("url")),
        )


@dataclass(slots=True)
class FormField:
    """One interactive element described by the page analyzer."""

    selector: str
    type: str
    label: str
    required: bool = False
    profile_mapping: Optional[str] = None
    options: List[str] = field(default_factory=list)
    value: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FormField":
        return cls(
            selector=str(payload.get("selector") or ""),
            type=str(payload.get("type") or "text").strip().lower(),
            label=str(payload.get("label") or "").strip(),
            required=bool(payload.get("required", False)),
            profile_mapping=_optional_str(payload.get("profileMapping") or payload.get("profile_mapping")),
            options=_as_str_list(payload.get("options")),
            value=_optional_str(payload.get("value")),
        )


@dataclass(slots=True)
class PageAnalysis:
    page_type: PageType
    title: Optional[str] = None
    jobs: List[JobRef] = field(default_factory=list)
    form_fields: List[FormField] = field(default_factory=list)
    submit_button: Optional[str] = None
    next_button: Optional[str] = None
    login_required: bool = False
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PageAnalysis":
        jobs = [JobRef.from_dict(item) for item in payload.get("jobs") or [] if isinstance(item, Mapping)]
        fields = [
            FormField.from_dict(item)
            for item in payload.get("formFields") or payload.get("form_fields") or []
            if isinstance(item, Mapping)
        ]
        return cls(
            page_type=PageType.coerce(payload.get("pageType") or payload.get("page_type")),
            title=_optional_str(payload.get("title")),
            jobs=[job for job in jobs if job.title],
            form_fields=[item for item in fields if item.selector],
            submit_button=_optional_str(payload.get("submitButton") or payload.get("submit_button")),
            next_button=_optional_str(payload.get("nextButton") or payload.get("next_button")),
            login_required=bool(payload.get("loginRequired") or payload.get("login_required") or False),
            errors=_as_str_list(payload.get("errors")),
        )

    @classmethod
    def degraded(cls, reason: str) -> "PageAnalysis":
        return cls(page_type=PageType.OTHER, errors=[reason or "Failed to analyze page structure"])


@dataclass(frozen=True, slots=True)
class AnalysisOk:
    analysis: PageAnalysis


@dataclass(frozen=True, slots=True)
class AnalysisDegraded:
    reason: str
    raw: str = ""

    @property
    def analysis(self) -> PageAnalysis:
        return PageAnalysis.degraded(self.reason)


ParseResult = Union[AnalysisOk, AnalysisDegraded]


@dataclass(slots=True)
class FillResult:
    fields_filled: int = 0
    fields_skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        # Partial success is still success.
        return not (self.errors and self.fields_filled == 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "fields_filled": self.fields_filled,
            "fields_skipped": self.fields_skipped,
            "errors": list(self.errors),
        }


@dataclass(frozen=True, slots=True)
class MatchResult:
    score: int
    analysis: str
    missing_skills: List[str] = field(default_factory=list)
    strong_matches: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class JobContext:
    title: str
    company: str
    description: str = ""

    @classmethod
    def from_job(cls, job: DiscoveredJob) -> "JobContext":
        return cls(title=job.title, company=job.company, description=job.description)


@dataclass(slots=True)
class HuntConfig:
    search_query: str
    location: Optional[str] = None
    remote: bool = False
    experience_level: Optional[str] = None
    max_jobs: int = 10
    match_threshold: int = 50
    exclude_companies: List[str] = field(default_factory=list)
    include_companies: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=lambda: ["search", "companies"])
    auto_apply: bool = True
    require_confirmation: bool = False
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "search_query": self.search_query,
            "location": self.location,
            "remote": self.remote,
            "experience_level": self.experience_level,
            "max_jobs": self.max_jobs,
            "match_threshold": self.match_threshold,
            "exclude_companies": list(self.exclude_companies),
            "include_companies": list(self.include_companies),
            "sources": list(self.sources),
            "auto_apply": self.auto_apply,
            "require_confirmation": self.require_confirmation,
            "dry_run": self.dry_run,
        }


@dataclass(slots=True)
class ApplicationAttempt:
    """Outcome of one try at one job; handed to the application tracker."""

    job_id: str
    profile_id: str
    company_name: str
    job_title: str
    url: str
    status: AttemptStatus
    message: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    fields_filled: int = 0
    screenshot_path: Optional[str] = None
    applied_at: Optional[str] = None
    timestamp: str = field(default_factory=utc_now)

    @classmethod
    def for_job(cls, job: DiscoveredJob, profile_id: str, status: AttemptStatus, **extra: Any) -> "ApplicationAttempt":
        return cls(
            job_id=job.id,
            profile_id=profile_id,
            company_name=job.company,
            job_title=job.title,
            url=job.url,
            status=status,
            **extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "profile_id": self.profile_id,
            "company_name": self.company_name,
            "job_title": self.job_title,
            "url": self.url,
            "status": self.status.value,
            "message": self.message,
            "errors": list(self.errors),
            "fields_filled": self.fields_filled,
            "screenshot_path": self.screenshot_path,
            "applied_at": self.applied_at,
            "timestamp": self.timestamp,
        }


@dataclass(slots=True)
class HuntResult:
    session_id: str
    config: HuntConfig
    started_at: str = field(default_factory=utc_now)
    completed_at: Optional[str] = None
    phase: HuntPhase = HuntPhase.IDLE
    jobs_discovered: int = 0
    jobs_matched: int = 0
    applications_attempted: int = 0
    applications_successful: int = 0
    applications_failed: int = 0
    applications_skipped: int = 0
    applications: List[ApplicationAttempt] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "phase": self.phase.value,
            "config": self.config.to_dict(),
            "jobs_discovered": self.jobs_discovered,
            "jobs_matched": self.jobs_matched,
            "applications_attempted": self.applications_attempted,
            "applications_successful": self.applications_successful,
            "applications_failed": self.applications_failed,
            "applications_skipped": self.applications_skipped,
            "applications": [attempt.to_dict() for attempt in self.applications],
            "error": self.error,
        }
