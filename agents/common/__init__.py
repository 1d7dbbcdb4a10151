"""Common/shared agents - utilities used across the hunter."""

from .gemini_client import GeminiClient, GeminiConfig, LLMAuthError, LLMProviderError, strip_code_fence

__all__ = [
    "GeminiClient",
    "GeminiConfig",
    "LLMAuthError",
    "LLMProviderError",
    "strip_code_fence",
]
