"""Shared utilities for the job hunter."""

from utils.config import ConfigurationError, HunterSettings
from utils.logging import configure_logging, get_logger
from utils.mock_llm import get_mock_response, mock_enabled, reset_mock_cache

__all__ = [
    "ConfigurationError",
    "HunterSettings",
    "configure_logging",
    "get_logger",
    "mock_enabled",
    "get_mock_response",
    "reset_mock_cache",
]
