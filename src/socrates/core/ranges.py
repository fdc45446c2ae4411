"""Inclusive line spans shared by annotations and edit invalidation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Iterator


@dataclass(slots=True, frozen=True)
class LineRange(Sequence[int]):
    """0-based line span with inclusive ``start``/``end`` bounds."""

    start: int
    end: int

    def __post_init__(self) -> None:
        start = self._coerce_index(self.start, "start")
        end = self._coerce_index(self.end, "end")
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        if isinstance(value, bool):
            raise ValueError(f"LineRange {label} must be an integer")
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"LineRange {label} must be an integer") from exc
        if number < 0:
            return 0
        return number

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> int | tuple[int, ...]:
        if isinstance(index, slice):
            return self.to_tuple()[index]
        if index == 0:
            return self.start
        if index == 1:
            return self.end
        raise IndexError("LineRange index out of range")

    def __iter__(self) -> Iterator[int]:
        yield self.start
        yield self.end

    @property
    def line_count(self) -> int:
        """Return the number of lines covered by the span."""

        return (self.end - self.start) + 1

    def overlaps(self, start: int, end: int) -> bool:
        """Return ``True`` when ``[start, end]`` intersects this span.

        ``end`` may be ``start - 1`` for pure insertions; such a span only
        intersects annotations that strictly contain the insertion point.
        """

        return not (end < self.start or start > self.end)

    def fits(self, line_count: int) -> bool:
        """Return ``True`` when the span addresses existing lines only."""

        return self.end < max(0, int(line_count))

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def to_list(self) -> list[int]:
        """Return the span as a JSON-friendly list."""

        return [self.start, self.end]

    @classmethod
    def single(cls, line: int) -> LineRange:
        return cls(line, line)

    @classmethod
    def from_value(cls, value: Any) -> LineRange:
        """Coerce ``value`` into a :class:`LineRange`."""

        if isinstance(value, LineRange):
            return value
        if value is None:
            raise ValueError("LineRange value is required")
        if isinstance(value, Mapping):
            start = value.get("start")
            end = value.get("end")
            if start is None or end is None:
                raise ValueError("LineRange mappings require start and end keys")
            return cls(start, end)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("LineRange sequences must have exactly two entries")
            return cls(seq[0], seq[1])
        raise TypeError("Unsupported LineRange input")


__all__ = ["LineRange"]
