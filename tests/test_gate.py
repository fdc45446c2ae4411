"""Tests for the request gate policy."""

from __future__ import annotations

import random

import pytest

from socrates.feedback.gate import GateDecision, GatePolicyState, RequestGate, change_ratio, threshold_policy
from tests.helpers import SequenceRandom


def test_change_ratio_edges() -> None:
    assert change_ratio(0, 10) == 0.0
    assert change_ratio(3, 0) == 1.0
    assert change_ratio(5, 10) == pytest.approx(0.5)
    assert change_ratio(30, 10) == 1.0


def test_policy_proceeds_when_sample_within_threshold_plus_ratio() -> None:
    state = GatePolicyState(threshold=0.2, rng=SequenceRandom([0.29, 0.31]))

    first = threshold_policy(frozenset({1}), 10, state)
    second = threshold_policy(frozenset({1}), 10, state)

    assert first.proceed and first.reason == "sampled"
    assert not second.proceed and second.reason == "below_threshold"
    assert second.sample == pytest.approx(0.31)


def test_gate_is_deterministic_for_a_seeded_source() -> None:
    changed = frozenset({0, 1})

    def _verdicts(seed: int) -> list[bool]:
        gate = RequestGate(threshold=0.3, rng=random.Random(seed))
        return [gate.decide(changed, 40).proceed for _ in range(20)]

    assert _verdicts(7) == _verdicts(7)


def test_empty_change_set_skips_without_sampling() -> None:
    rng = SequenceRandom([])
    gate = RequestGate(threshold=1.0, rng=rng)

    decision = gate.decide(frozenset(), 10)

    assert not decision.proceed
    assert decision.reason == "no_changes"
    assert rng.calls == 0


def test_threshold_of_one_always_proceeds() -> None:
    gate = RequestGate(threshold=1.0, rng=SequenceRandom([0.999999]))

    assert gate.decide(frozenset({3}), 100).proceed


def test_gate_validates_threshold() -> None:
    with pytest.raises(ValueError):
        RequestGate(threshold=1.5)
    with pytest.raises(ValueError):
        RequestGate(threshold=-0.1)


def test_custom_policy_is_used() -> None:
    calls: list[int] = []

    def _always_skip(changed, total, state):
        calls.append(total)
        return GateDecision(verdict="skip", reason="custom")

    gate = RequestGate(threshold=0.5, policy=_always_skip)

    assert gate.decide(frozenset({1}), 12).reason == "custom"
    assert calls == [12]


def test_decision_payload_is_serializable() -> None:
    gate = RequestGate(threshold=0.0, rng=SequenceRandom([0.9]))

    payload = gate.decide(frozenset({1, 2}), 3).as_payload()

    assert payload["verdict"] == "skip"
    assert payload["change_ratio"] == pytest.approx(0.6667)
    assert payload["changed_count"] == 2
