"""Line-oriented document snapshots, edit deltas, and an in-memory buffer."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .events import (
    DEFAULT_EDIT_KIND,
    DocumentClosedEvent,
    DocumentEditedEvent,
    DocumentEventBus,
    DocumentOpenedEvent,
)

LOGGER = logging.getLogger(__name__)


def _split_lines(text: str) -> tuple[str, ...]:
    return tuple(text.split("\n"))


@dataclass(slots=True, frozen=True)
class TextSnapshot:
    """Immutable capture of a document's lines at one version."""

    document_id: str
    lines: tuple[str, ...]
    version: int
    language: str = "markdown"

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    @classmethod
    def from_text(cls, document_id: str, text: str, *, version: int, language: str = "markdown") -> TextSnapshot:
        return cls(document_id=document_id, lines=_split_lines(text), version=version, language=language)


@dataclass(slots=True, frozen=True)
class EditDelta:
    """Raw shape of one edit notification, in pre-edit line coordinates."""

    start_line: int
    removed_count: int = 0
    added_count: int = 0

    def __post_init__(self) -> None:
        for label in ("start_line", "removed_count", "added_count"):
            value = getattr(self, label)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"EditDelta {label} must be an integer")
            if value < 0:
                raise ValueError(f"EditDelta {label} must be >= 0")

    def pre_edit_span(self) -> tuple[int, int]:
        """Return ``(start, start + removed - 1)``; empty for pure insertions."""

        return (self.start_line, self.start_line + self.removed_count - 1)

    def affected_lines(self) -> frozenset[int]:
        """Return the lines touched by the edit, before or after it applied."""

        width = max(self.removed_count, self.added_count)
        return frozenset(range(self.start_line, self.start_line + width))


@dataclass(slots=True)
class LineDocument:
    """Mutable line buffer that reports each edit as an :class:`EditDelta`."""

    document_id: str
    lines: list[str] = field(default_factory=lambda: [""])
    language: str = "markdown"
    version_id: int = 1
    bus: DocumentEventBus | None = None
    edit_kind: str = DEFAULT_EDIT_KIND
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self) -> None:
        if not self.lines:
            self.lines = [""]

    @classmethod
    def from_text(cls, document_id: str, text: str, **kwargs) -> LineDocument:
        return cls(document_id=document_id, lines=list(_split_lines(text)), **kwargs)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def snapshot(self) -> TextSnapshot:
        with self._lock:
            return TextSnapshot(
                document_id=self.document_id,
                lines=tuple(self.lines),
                version=self.version_id,
                language=self.language,
            )

    def replace_lines(self, start: int, end: int, new_lines: Sequence[str]) -> EditDelta:
        """Replace ``lines[start:end]`` with ``new_lines`` and publish the edit."""

        with self._lock:
            line_count = len(self.lines)
            if not 0 <= start <= line_count:
                raise ValueError(f"start line {start} outside document of {line_count} lines")
            if not start <= end <= line_count:
                raise ValueError(f"end line {end} outside [{start}, {line_count}]")
            replacement = list(new_lines)
            self.lines[start:end] = replacement
            if not self.lines:
                self.lines = [""]
            self.version_id += 1
            delta = EditDelta(start_line=start, removed_count=end - start, added_count=len(replacement))
        self._publish(delta)
        return delta

    def insert_lines(self, index: int, new_lines: Iterable[str]) -> EditDelta:
        return self.replace_lines(index, index, list(new_lines))

    def delete_lines(self, start: int, end: int) -> EditDelta:
        return self.replace_lines(start, end, [])

    def set_line(self, index: int, value: str) -> EditDelta:
        return self.replace_lines(index, index + 1, [value])

    def set_text(self, text: str) -> EditDelta:
        """Replace the whole buffer."""

        return self.replace_lines(0, len(self.lines), list(_split_lines(text)))

    def _publish(self, delta: EditDelta) -> None:
        if self.bus is None:
            return
        self.bus.publish(
            DocumentEditedEvent(
                document_id=self.document_id,
                delta=delta,
                kind=self.edit_kind,
            )
        )


class DocumentWorkspace:
    """Registry of open :class:`LineDocument` buffers; acts as the text source."""

    def __init__(self, *, bus: DocumentEventBus | None = None) -> None:
        self._bus = bus
        self._documents: dict[str, LineDocument] = {}
        self._lock = threading.RLock()

    @property
    def bus(self) -> DocumentEventBus | None:
        return self._bus

    def open(self, document_id: str, text: str = "", *, language: str = "markdown") -> LineDocument:
        document = LineDocument.from_text(document_id, text, language=language, bus=self._bus)
        with self._lock:
            if document_id in self._documents:
                raise ValueError(f"Document {document_id!r} is already open")
            self._documents[document_id] = document
        LOGGER.debug("Opened document %s (%s lines)", document_id, len(document.lines))
        if self._bus is not None:
            self._bus.publish(DocumentOpenedEvent(document_id=document_id, language=language))
        return document

    def close(self, document_id: str, *, reason: str | None = None) -> None:
        with self._lock:
            document = self._documents.pop(document_id, None)
        if document is None:
            return
        LOGGER.debug("Closed document %s", document_id)
        if self._bus is not None:
            self._bus.publish(DocumentClosedEvent(document_id=document_id, reason=reason))

    def get(self, document_id: str) -> LineDocument | None:
        with self._lock:
            return self._documents.get(document_id)

    def snapshot(self, document_id: str) -> TextSnapshot:
        document = self.get(document_id)
        if document is None:
            raise KeyError(document_id)
        return document.snapshot()

    def document_ids(self) -> list[str]:
        with self._lock:
            return list(self._documents)


__all__ = ["TextSnapshot", "EditDelta", "LineDocument", "DocumentWorkspace"]
