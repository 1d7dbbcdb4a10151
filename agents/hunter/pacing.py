"""Pacing policies that space out browser actions.

Form filling and navigation ask the policy how long to wait before each
action instead of sleeping on their own, so tests can run with ``NoPacing``.
"""
from __future__ import annotations

import asyncio
import random
from typing import Dict, Optional, Protocol, Tuple

# Seconds, (low, high) per action kind.
HUMAN_DELAYS: Dict[str, Tuple[float, float]] = {
    "field": (0.2, 0.5),
    "scroll": (0.1, 0.3),
    "click": (0.1, 0.2),
    "keystroke": (0.03, 0.1),
    "button": (0.5, 1.0),
    "navigation": (1.5, 2.5),
    "settle": (2.0, 3.0),
    "between_jobs": (3.0, 5.0),
}
_FALLBACK_DELAY = (0.1, 0.3)


class PacingPolicy(Protocol):
    def delay_before_action(self, action_kind: str) -> float:  # pragma: no cover - interface only
        ...


class HumanPacing:
    """Randomized, human-looking delays."""

    def __init__(self, delays: Optional[Dict[str, Tuple[float, float]]] = None, rng: Optional[random.Random] = None) -> None:
        self.delays = dict(HUMAN_DELAYS)
        if delays:
            self.delays.update(delays)
        self._rng = rng or random.Random()

    def delay_before_action(self, action_kind: str) -> float:
        low, high = self.delays.get(action_kind, _FALLBACK_DELAY)
        return self._rng.uniform(low, high)


class NoPacing:
    """Zero delay everywhere."""

    def delay_before_action(self, action_kind: str) -> float:
        return 0.0


def build_pacing(mode: str) -> PacingPolicy:
    return NoPacing() if mode == "none" else HumanPacing()


async def pause(policy: PacingPolicy, action_kind: str) -> None:
    delay = policy.delay_before_action(action_kind)
    if delay > 0:
        await asyncio.sleep(delay)
