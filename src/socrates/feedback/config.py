"""Tunable parameters for the feedback engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..editor.events import DEFAULT_EDIT_KIND


def _frozen(name: str, values: Iterable[str]) -> frozenset[str]:
    if isinstance(values, (str, bytes)):
        raise ValueError(f"{name} must be a collection of strings, not a single string")
    return frozenset(str(value).strip().lower() for value in values if str(value).strip())


@dataclass(slots=True, frozen=True)
class FeedbackConfig:
    """Scheduler, gate, and attach policy for one engine."""

    debounce_ms: int = 1_000
    response_threshold: float = 0.8
    minimum_text_length: int = 0
    edit_event_classes: frozenset[str] = field(default_factory=lambda: frozenset({DEFAULT_EDIT_KIND}))
    languages: frozenset[str] = field(default_factory=lambda: frozenset({"markdown"}))
    review_on_attach: bool = False
    request_timeout_ms: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.debounce_ms, bool) or int(self.debounce_ms) < 0:
            raise ValueError("debounce_ms must be a non-negative integer")
        if not 0.0 <= float(self.response_threshold) <= 1.0:
            raise ValueError("response_threshold must be within [0, 1]")
        if int(self.minimum_text_length) < 0:
            raise ValueError("minimum_text_length must be >= 0")
        if self.request_timeout_ms is not None and int(self.request_timeout_ms) <= 0:
            raise ValueError("request_timeout_ms must be positive when set")
        object.__setattr__(self, "debounce_ms", int(self.debounce_ms))
        object.__setattr__(self, "response_threshold", float(self.response_threshold))
        object.__setattr__(self, "minimum_text_length", int(self.minimum_text_length))
        object.__setattr__(self, "edit_event_classes", _frozen("edit_event_classes", self.edit_event_classes))
        object.__setattr__(self, "languages", _frozen("languages", self.languages))

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def request_timeout_seconds(self) -> float | None:
        if self.request_timeout_ms is None:
            return None
        return self.request_timeout_ms / 1000.0

    def accepts_language(self, language: str | None) -> bool:
        if not self.languages:
            return True
        return (language or "").strip().lower() in self.languages

    def counts_as_edit(self, kind: str | None) -> bool:
        return (kind or "").strip().lower() in self.edit_event_classes


__all__ = ["FeedbackConfig"]
