"""Application tracker writing one JSON artifact per attempt."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from agents.hunter.models import ApplicationAttempt, AttemptStatus, DiscoveredJob, utc_now
from utils.logging import get_logger

logger = get_logger(__name__)


class ApplicationTracker(Protocol):
    def record_attempt(self, job: DiscoveredJob, profile_id: str, attempt: ApplicationAttempt) -> None:
        ...  # pragma: no cover - interface only


class JsonAttemptWriter:
    """Writes successful attempts to ``applied/`` and everything else to ``not_applied/``."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)
        self.applied_dir = self.base_dir / "applied"
        self.not_applied_dir = self.base_dir / "not_applied"

    def path_for(self, attempt: ApplicationAttempt) -> Path:
        folder = self.applied_dir if attempt.status == AttemptStatus.SUCCESS else self.not_applied_dir
        return folder / f"{attempt.job_id}.json"

    def record_attempt(self, job: DiscoveredJob, profile_id: str, attempt: ApplicationAttempt) -> Path:
        path = self.path_for(attempt)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "job": job.to_dict(),
            "profile_id": profile_id,
            "applied": attempt.status == AttemptStatus.SUCCESS,
            "attempt": attempt.to_dict(),
            "recorded_at": utc_now(),
        }
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Tracker: %s attempt for %s written to %s", attempt.status.value, job.id, path)
        return path
