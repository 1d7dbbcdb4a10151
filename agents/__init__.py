"""Agents package for the job hunter.

Subpackages:
- common: Shared Gemini client
- hunter: Page analysis, discovery, form filling and the hunt orchestrator
"""

from agents.common import GeminiClient, GeminiConfig, LLMProviderError
from agents.hunter import (
    CareerPageNavigator,
    FieldResolver,
    FormFiller,
    HuntCallbacks,
    JobDiscovery,
    JobHunterOrchestrator,
    PageAnalyzer,
)

__all__ = [
    # Common
    "GeminiClient",
    "GeminiConfig",
    "LLMProviderError",
    # Hunter
    "CareerPageNavigator",
    "FieldResolver",
    "FormFiller",
    "HuntCallbacks",
    "JobDiscovery",
    "JobHunterOrchestrator",
    "PageAnalyzer",
]
