"""Duration policy for uploaded videos."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class DurationDecision:
    accepted: bool
    duration: int
    ceiling: int


@dataclass(slots=True, frozen=True)
class DurationGate:
    """Reject videos strictly longer than ``max_seconds``; the boundary passes."""

    max_seconds: int = 120

    def check(self, duration: int) -> DurationDecision:
        return DurationDecision(
            accepted=duration <= self.max_seconds,
            duration=duration,
            ceiling=self.max_seconds,
        )
