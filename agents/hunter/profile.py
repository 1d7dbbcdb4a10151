"""Read-only candidate profile consumed by the hunter."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

PROFILE_SUMMARY_LIMIT = 1500


def _pick(payload: Mapping[str, Any], *keys: str, default: Any = "") -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return default


@dataclass(frozen=True, slots=True)
class ContactInfo:
    email: str = ""
    phone: str = ""
    linkedin: str = ""
    github: str = ""
    website: str = ""
    location: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "ContactInfo":
        payload = payload or {}
        return cls(
            email=str(_pick(payload, "email")),
            phone=str(_pick(payload, "phone", "mobile")),
            linkedin=str(_pick(payload, "linkedin", "linkedIn")),
            github=str(_pick(payload, "github")),
            website=str(_pick(payload, "website", "portfolio")),
            location=str(_pick(payload, "location", "city")),
        )


@dataclass(frozen=True, slots=True)
class Experience:
    title: str
    company: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class Education:
    degree: str
    field: str = ""
    institution: str = ""


@dataclass(frozen=True)
class UserProfile:
    """Candidate data. The hunter reads it and never writes back."""

    id: str
    first_name: str
    last_name: str
    contact: ContactInfo = field(default_factory=ContactInfo)
    skills: List[str] = field(default_factory=list)
    experience: List[Experience] = field(default_factory=list)
    education: List[Education] = field(default_factory=list)
    resume_path: str = ""
    summary_text: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UserProfile":
        """Build a profile from dashboard JSON (camelCase) or snake_case input."""
        skills_raw = payload.get("skills") or []
        skills = [
            str(skill.get("name", "")) if isinstance(skill, Mapping) else str(skill)
            for skill in skills_raw
        ]
        experience = [
            Experience(
                title=str(_pick(item, "title")),
                company=str(_pick(item, "company")),
                description=str(_pick(item, "description")),
            )
            for item in payload.get("experience") or []
            if isinstance(item, Mapping)
        ]
        education = [
            Education(
                degree=str(_pick(item, "degree")),
                field=str(_pick(item, "field", "fieldOfStudy", "field_of_study")),
                institution=str(_pick(item, "institution", "school")),
            )
            for item in payload.get("education") or []
            if isinstance(item, Mapping)
        ]
        return cls(
            id=str(_pick(payload, "id", "profileId", "profile_id", default="default")),
            first_name=str(_pick(payload, "firstName", "first_name")),
            last_name=str(_pick(payload, "lastName", "last_name")),
            contact=ContactInfo.from_dict(payload.get("contact")),
            skills=[skill for skill in skills if skill],
            experience=experience,
            education=education,
            resume_path=str(_pick(payload, "resumePath", "resume_path")),
            summary_text=str(_pick(payload, "summary", "headline")),
        )

    @classmethod
    def from_file(cls, path: Path) -> "UserProfile":
        if not path.exists():
            raise FileNotFoundError(f"Profile not found: {path}")
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def summary(self, limit: Optional[int] = PROFILE_SUMMARY_LIMIT) -> str:
        text = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        return text if limit is None else text[:limit]
