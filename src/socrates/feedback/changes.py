"""Line-level change detection between snapshots."""

from __future__ import annotations

from typing import Sequence

from ..editor.document_model import EditDelta


def diff_lines(old: Sequence[str], new: Sequence[str]) -> frozenset[int]:
    """Return the indices whose content differs between ``old`` and ``new``.

    Lines are compared position by position; an index missing from one side
    counts as an empty string, and indices that exist only in the longer
    sequence are always reported. No alignment is attempted, so an inserted
    line marks every following line as changed.
    """

    old_len = len(old)
    new_len = len(new)
    shorter = min(old_len, new_len)
    changed = {index for index in range(shorter) if old[index] != new[index]}
    changed.update(range(shorter, max(old_len, new_len)))
    return frozenset(changed)


def delta_span(delta: EditDelta) -> tuple[int, int]:
    """Pre-edit inclusive span ``[start, start + removed - 1]`` of ``delta``."""

    return delta.pre_edit_span()


def delta_changes(delta: EditDelta) -> frozenset[int]:
    return delta.affected_lines()


__all__ = ["diff_lines", "delta_span", "delta_changes"]
