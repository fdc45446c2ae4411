"""Shared types and collaborator protocols for the feedback engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Sequence

from ..core.ranges import LineRange
from ..editor.document_model import TextSnapshot


@dataclass(slots=True, frozen=True)
class Annotation:
    """A single piece of feedback anchored to an inclusive line range."""

    id: str
    line_range: LineRange
    title: str
    body: str = ""
    origin_request_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "line_range": self.line_range.to_list(),
            "title": self.title,
            "body": self.body,
            "origin_request_id": self.origin_request_id,
        }


@dataclass(slots=True)
class PendingRequest:
    """Bookkeeping for one in-flight enrichment request."""

    request_id: str
    snapshot: TextSnapshot
    changed_lines: frozenset[int]
    superseded: bool = False

    @property
    def snapshot_version(self) -> int:
        return self.snapshot.version


@dataclass(slots=True, frozen=True)
class PromptPayload:
    """Data handed to the transport; turning it into a prompt is the transport's job."""

    document_id: str
    text: str
    language: str
    version: int
    changed_lines: tuple[int, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "text": self.text,
            "language": self.language,
            "changed_lines": list(self.changed_lines),
        }
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload


class DocumentPhase(str, enum.Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    REQUESTING = "requesting"


class TextSource(Protocol):
    """Read access to the live document."""

    def snapshot(self, document_id: str) -> TextSnapshot:  # pragma: no cover - protocol stub
        ...


class AnnotationSink(Protocol):
    """Renders the current annotation set somewhere visible."""

    def apply(self, document_id: str, annotations: Sequence[Annotation]) -> None:  # pragma: no cover - protocol stub
        ...

    def clear(self, document_id: str) -> None:  # pragma: no cover - protocol stub
        ...


class RequestTransport(Protocol):
    """Single round-trip call to the enrichment service.

    Implementations return the raw response text or raise
    :class:`~socrates.feedback.errors.TransportError`.
    """

    async def submit(self, document_id: str, payload: PromptPayload) -> str:  # pragma: no cover - protocol stub
        ...


PromptBuilder = Callable[[TextSnapshot, frozenset[int]], PromptPayload]


__all__ = [
    "Annotation",
    "AnnotationSink",
    "DocumentPhase",
    "PendingRequest",
    "PromptBuilder",
    "PromptPayload",
    "RequestTransport",
    "TextSource",
]
