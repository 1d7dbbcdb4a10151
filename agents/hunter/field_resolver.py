"""Decide what to type into a form field.

Precedence, each step tried only when the previous one yields nothing:

1. a value pre-populated on the field by the caller
2. the profile attribute named by ``profile_mapping`` (if non-empty)
3. the first ``LABEL_RULES`` entry whose keywords match the label
4. the model's answer for the field
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from agents.hunter.models import FormField, JobContext
from agents.hunter.profile import UserProfile
from utils.logging import get_logger

logger = get_logger(__name__)

ProfileGetter = Callable[[UserProfile], str]


def _first_name(profile: UserProfile) -> str:
    return profile.first_name


def _last_name(profile: UserProfile) -> str:
    return profile.last_name


def _full_name(profile: UserProfile) -> str:
    return profile.full_name


def _email(profile: UserProfile) -> str:
    return profile.contact.email


def _phone(profile: UserProfile) -> str:
    return profile.contact.phone


def _linkedin(profile: UserProfile) -> str:
    return profile.contact.linkedin


def _github(profile: UserProfile) -> str:
    return profile.contact.github


def _website(profile: UserProfile) -> str:
    return profile.contact.website


def _location(profile: UserProfile) -> str:
    return profile.contact.location


def _resume(profile: UserProfile) -> str:
    return profile.resume_path


# Accepts the analyzer's camelCase names and snake_case aliases.
PROFILE_MAPPINGS: Dict[str, ProfileGetter] = {
    "firstname": _first_name,
    "first_name": _first_name,
    "lastname": _last_name,
    "last_name": _last_name,
    "fullname": _full_name,
    "full_name": _full_name,
    "name": _full_name,
    "email": _email,
    "phone": _phone,
    "linkedin": _linkedin,
    "github": _github,
    "website": _website,
    "portfolio": _website,
    "location": _location,
    "city": _location,
    "address": _location,
    "resumepath": _resume,
    "resume_path": _resume,
    "resume": _resume,
}


@dataclass(frozen=True)
class LabelRule:
    """Matches when the lowercased label contains any keyword or equals an exact form."""

    category: str
    contains: Tuple[str, ...]
    getter: ProfileGetter
    equals: Tuple[str, ...] = ()

    def matches(self, label: str) -> bool:
        return label in self.equals or any(keyword in label for keyword in self.contains)


LABEL_RULES: Tuple[LabelRule, ...] = (
    LabelRule("first_name", ("first name",), _first_name, equals=("first",)),
    LabelRule("last_name", ("last name",), _last_name, equals=("last",)),
    LabelRule("full_name", ("full name",), _full_name, equals=("name",)),
    LabelRule("email", ("email",), _email),
    LabelRule("phone", ("phone", "mobile", "cell"), _phone),
    LabelRule("linkedin", ("linkedin",), _linkedin),
    LabelRule("github", ("github",), _github),
    LabelRule("website", ("website", "portfolio"), _website),
    LabelRule("location", ("address", "location", "city"), _location),
    LabelRule("resume", ("resume", "cv"), _resume),
)


def match_label(label: str) -> Optional[LabelRule]:
    lowered = (label or "").strip().lower()
    if not lowered:
        return None
    for rule in LABEL_RULES:
        if rule.matches(lowered):
            return rule
    return None


def mapped_profile_value(mapping: Optional[str], profile: UserProfile) -> str:
    if not mapping:
        return ""
    getter = PROFILE_MAPPINGS.get(mapping.strip().lower())
    if getter is None:
        return ""
    return getter(profile) or ""


class FieldResolver:
    """Stateless; each call is a function of ``(field, profile, job_context)``."""

    def __init__(self, analyzer) -> None:
        self.analyzer = analyzer

    def match_label(self, label: str) -> Optional[LabelRule]:
        return match_label(label)

    async def resolve_value(self, field: FormField, profile: UserProfile, job_context: JobContext) -> str:
        if field.value:
            return field.value

        mapped = mapped_profile_value(field.profile_mapping, profile)
        if mapped:
            return mapped

        # A matched category answers from the profile even when the value is blank.
        rule = match_label(field.label)
        if rule is not None:
            return rule.getter(profile) or ""

        logger.debug("Resolver: asking model for %r (%s)", field.label, field.type)
        return await self.analyzer.determine_field_value(field, profile, job_context)
