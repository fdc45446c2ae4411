"""Request admission policy deciding whether a change set is worth a request."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import AbstractSet, Callable, Literal, Protocol

GateVerdict = Literal["proceed", "skip"]


class RandomSource(Protocol):
    """Explicit randomness source; ``random.Random`` satisfies it."""

    def random(self) -> float:  # pragma: no cover - protocol stub
        ...


@dataclass(slots=True, frozen=True)
class GatePolicyState:
    threshold: float
    rng: RandomSource


@dataclass(slots=True, frozen=True)
class GateDecision:
    """Outcome from evaluating a change set against the gate policy."""

    verdict: GateVerdict
    reason: str
    changed_count: int = 0
    total_lines: int = 0
    change_ratio: float = 0.0
    sample: float | None = None
    threshold: float | None = None

    @property
    def proceed(self) -> bool:
        return self.verdict == "proceed"

    def as_payload(self) -> dict[str, object]:
        """Return a telemetry-friendly dictionary for this decision."""

        return {
            "verdict": self.verdict,
            "reason": self.reason,
            "changed_count": int(self.changed_count),
            "total_lines": int(self.total_lines),
            "change_ratio": round(float(self.change_ratio), 4),
            "sample": self.sample,
            "threshold": self.threshold,
        }


GatePolicy = Callable[[AbstractSet[int], int, GatePolicyState], GateDecision]


def change_ratio(changed_count: int, total_lines: int) -> float:
    if changed_count <= 0:
        return 0.0
    if total_lines <= 0:
        return 1.0
    return min(1.0, changed_count / total_lines)


def threshold_policy(changed_lines: AbstractSet[int], total_lines: int, state: GatePolicyState) -> GateDecision:
    """Proceed iff one uniform sample ``r <= threshold + change_ratio``."""

    changed_count = len(changed_lines)
    if not changed_count:
        return GateDecision(verdict="skip", reason="no_changes", total_lines=total_lines, threshold=state.threshold)
    ratio = change_ratio(changed_count, total_lines)
    sample = float(state.rng.random())
    proceed = sample <= state.threshold + ratio
    return GateDecision(
        verdict="proceed" if proceed else "skip",
        reason="sampled" if proceed else "below_threshold",
        changed_count=changed_count,
        total_lines=total_lines,
        change_ratio=ratio,
        sample=sample,
        threshold=state.threshold,
    )


class RequestGate:
    """Applies a pure, injectable policy to each candidate request."""

    def __init__(
        self,
        *,
        threshold: float,
        rng: RandomSource | None = None,
        policy: GatePolicy | None = None,
    ) -> None:
        threshold = float(threshold)
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        self._state = GatePolicyState(threshold=threshold, rng=rng or random.Random())
        self._policy = policy or threshold_policy

    @property
    def threshold(self) -> float:
        return self._state.threshold

    def decide(self, changed_lines: AbstractSet[int], total_lines: int) -> GateDecision:
        # Empty change sets never reach the policy, so no randomness is consumed.
        if not changed_lines:
            return GateDecision(verdict="skip", reason="no_changes", total_lines=total_lines, threshold=self.threshold)
        return self._policy(changed_lines, max(0, int(total_lines)), self._state)


__all__ = [
    "GateDecision",
    "GatePolicy",
    "GatePolicyState",
    "GateVerdict",
    "RandomSource",
    "RequestGate",
    "change_ratio",
    "threshold_policy",
]
