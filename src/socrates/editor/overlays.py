"""In-memory annotation sink standing in for on-screen markers.

Keeps the rendered annotation set per document and formats end-of-line
markers the way an editor would show them as virtual text. Real editors
plug in their own sink with the same ``apply``/``clear`` shape.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Sequence

from ..feedback.types import Annotation

LOGGER = logging.getLogger(__name__)

MARKER_PREFIX = "⚠ "

RenderListener = Callable[[str, tuple[Annotation, ...]], None]


class OverlaySink:
    """Tracks which annotations are currently shown for each document."""

    def __init__(self, *, on_change: RenderListener | None = None) -> None:
        self._rendered: dict[str, tuple[Annotation, ...]] = {}
        self._on_change = on_change
        self._lock = Lock()
        self.apply_count = 0

    def apply(self, document_id: str, annotations: Sequence[Annotation]) -> None:
        rendered = tuple(annotations)
        with self._lock:
            self._rendered[document_id] = rendered
            self.apply_count += 1
        LOGGER.debug("Rendering %s marker(s) for %s", len(rendered), document_id)
        self._notify(document_id, rendered)

    def clear(self, document_id: str) -> None:
        with self._lock:
            had_markers = self._rendered.pop(document_id, None) is not None
        if had_markers:
            self._notify(document_id, ())

    def rendered(self, document_id: str) -> tuple[Annotation, ...]:
        with self._lock:
            return self._rendered.get(document_id, ())

    def markers(self, document_id: str) -> dict[int, list[str]]:
        """Return end-of-line marker text keyed by each annotation's first line."""

        markers: dict[int, list[str]] = {}
        for annotation in self.rendered(document_id):
            markers.setdefault(annotation.line_range.start, []).append(f"{MARKER_PREFIX}{annotation.title}")
        return markers

    def _notify(self, document_id: str, annotations: tuple[Annotation, ...]) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(document_id, annotations)
        except Exception:  # pragma: no cover - listeners must not break rendering
            LOGGER.debug("Overlay listener failed for %s", document_id, exc_info=True)


__all__ = ["MARKER_PREFIX", "OverlaySink"]
