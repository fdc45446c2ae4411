"""Per-document annotation store with overlap-based invalidation."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .types import Annotation

LOGGER = logging.getLogger(__name__)


class AnnotationStore:
    """Holds the current annotation set for each document.

    New annotations only enter through :meth:`replace`, which swaps the whole
    set; the only other mutations remove entries.
    """

    def __init__(self) -> None:
        self._annotations: dict[str, tuple[Annotation, ...]] = {}

    def replace(self, document_id: str, annotations: Iterable[Annotation]) -> None:
        self._annotations[document_id] = tuple(annotations)
        LOGGER.debug("Stored %s annotation(s) for %s", len(self._annotations[document_id]), document_id)

    def invalidate_overlapping(
        self,
        document_id: str,
        edited_range: Sequence[int],
    ) -> list[Annotation]:
        """Drop annotations intersecting the inclusive ``edited_range``.

        Returns the removed annotations so callers can refresh their view.
        """

        current = self._annotations.get(document_id)
        if not current:
            return []
        start, end = int(edited_range[0]), int(edited_range[1])
        kept: list[Annotation] = []
        removed: list[Annotation] = []
        for annotation in current:
            if annotation.line_range.overlaps(start, end):
                removed.append(annotation)
            else:
                kept.append(annotation)
        if removed:
            self._annotations[document_id] = tuple(kept)
            LOGGER.debug(
                "Invalidated %s annotation(s) in %s overlapping lines %s-%s",
                len(removed),
                document_id,
                start,
                end,
            )
        return removed

    def clear(self, document_id: str) -> None:
        self._annotations.pop(document_id, None)

    def get(self, document_id: str) -> list[Annotation]:
        return list(self._annotations.get(document_id, ()))

    def find_at_line(self, document_id: str, line: int) -> list[Annotation]:
        """Return annotations whose range covers ``line``."""

        return [
            annotation
            for annotation in self._annotations.get(document_id, ())
            if annotation.line_range.overlaps(line, line)
        ]

    def document_ids(self) -> list[str]:
        return list(self._annotations)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._annotations

    def __len__(self) -> int:
        return len(self._annotations)


def within_document(annotations: Iterable[Annotation], line_count: int) -> tuple[list[Annotation], list[Annotation]]:
    """Split annotations into those addressing existing lines and the rest."""

    valid: list[Annotation] = []
    dropped: list[Annotation] = []
    for annotation in annotations:
        target = valid if annotation.line_range.fits(line_count) else dropped
        target.append(annotation)
    return valid, dropped


__all__ = ["AnnotationStore", "within_document"]
