"""Hunter agents - classify pages, discover jobs, fill forms, run hunts."""

from .attempt_writer import ApplicationTracker, JsonAttemptWriter
from .discovery import JobDiscovery
from .field_resolver import FieldResolver
from .form_filler import FormFiller
from .models import (
    ApplicationAttempt,
    AttemptStatus,
    DiscoveredJob,
    FillResult,
    FormField,
    HuntConfig,
    HuntPhase,
    HuntResult,
    PageAnalysis,
    PageType,
)
from .navigator import CareerPageNavigator
from .orchestrator import HuntCallbacks, JobHunterOrchestrator
from .page_analyzer import PageAnalyzer
from .profile import UserProfile

__all__ = [
    "ApplicationAttempt",
    "ApplicationTracker",
    "AttemptStatus",
    "CareerPageNavigator",
    "DiscoveredJob",
    "FieldResolver",
    "FillResult",
    "FormField",
    "FormFiller",
    "HuntCallbacks",
    "HuntConfig",
    "HuntPhase",
    "HuntResult",
    "JobDiscovery",
    "JobHunterOrchestrator",
    "JsonAttemptWriter",
    "PageAnalysis",
    "PageAnalyzer",
    "PageType",
    "UserProfile",
]
