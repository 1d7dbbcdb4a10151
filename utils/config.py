"""Runtime settings for the job hunter, read from the environment and ``.env``."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta"
SEARCH_PROVIDERS = ("exa", "duckduckgo", "none")
PACING_MODES = ("human", "none")

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing or malformed."""


def _env_get(env: Mapping[str, str], key: str, default: str = "") -> str:
    value = env.get(key)
    if value is None:
        return default
    return str(value).strip() or default


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _env_get(env, key)
    if not raw:
        return default
    return raw.lower() in _TRUTHY


@dataclass(slots=True)
class HunterSettings:
    """Credentials and knobs consumed by the CLI and the orchestrator wiring."""

    gemini_api_key: str
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_api_base: str = DEFAULT_GEMINI_BASE
    gemini_timeout: float = 60.0
    exa_api_key: Optional[str] = None
    search_provider: str = "exa"
    headless: bool = True
    navigation_timeout_ms: int = 30_000
    data_dir: Path = PROJECT_ROOT / "data"
    pacing: str = "human"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, *, load_dotenv_file: bool = True) -> "HunterSettings":
        if load_dotenv_file and env is None:
            load_dotenv(PROJECT_ROOT / ".env")
        env_map = env if env is not None else os.environ

        api_key = _env_get(env_map, "GEMINI_API_KEY") or _env_get(env_map, "GOOGLE_API_KEY")
        if not api_key and not _env_get(env_map, "MOCK_LLM_RESPONSES"):
            raise ConfigurationError("Set GEMINI_API_KEY or GOOGLE_API_KEY before running the job hunter.")

        exa_key = _env_get(env_map, "EXA_API_KEY") or None
        search_provider = _env_get(env_map, "SEARCH_PROVIDER", "exa" if exa_key else "duckduckgo").lower()
        if search_provider not in SEARCH_PROVIDERS:
            raise ConfigurationError(
                f"SEARCH_PROVIDER must be one of {', '.join(SEARCH_PROVIDERS)} (got {search_provider!r})"
            )
        if search_provider == "exa" and not exa_key:
            raise ConfigurationError("SEARCH_PROVIDER=exa requires EXA_API_KEY.")

        pacing = _env_get(env_map, "HUNTER_PACING", "human").lower()
        if pacing not in PACING_MODES:
            raise ConfigurationError(f"HUNTER_PACING must be one of {', '.join(PACING_MODES)}")

        try:
            timeout = float(_env_get(env_map, "GEMINI_TIMEOUT", "60"))
            nav_timeout = int(_env_get(env_map, "HUNTER_NAV_TIMEOUT_MS", "30000"))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc

        data_dir = Path(_env_get(env_map, "HUNTER_DATA_DIR", str(PROJECT_ROOT / "data"))).expanduser()

        return cls(
            gemini_api_key=api_key,
            gemini_model=_env_get(env_map, "GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            gemini_api_base=_env_get(env_map, "GEMINI_API_BASE", DEFAULT_GEMINI_BASE).rstrip("/"),
            gemini_timeout=timeout,
            exa_api_key=exa_key,
            search_provider=search_provider,
            headless=_env_bool(env_map, "HUNTER_HEADLESS", True),
            navigation_timeout_ms=nav_timeout,
            data_dir=data_dir,
            pacing=pacing,
        )

    @property
    def screenshots_dir(self) -> Path:
        return self.data_dir / "screenshots"

    @property
    def attempts_dir(self) -> Path:
        return self.data_dir / "attempts"
