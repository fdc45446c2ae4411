"""Tests for inclusive line ranges."""

from __future__ import annotations

import pytest

from socrates.core.ranges import LineRange


def test_line_range_swaps_reversed_bounds_and_clamps_negatives() -> None:
    assert LineRange(5, 2).to_tuple() == (2, 5)
    assert LineRange(-3, 1).to_tuple() == (0, 1)


def test_line_range_rejects_booleans_and_non_numbers() -> None:
    with pytest.raises(ValueError):
        LineRange(True, 3)
    with pytest.raises(ValueError):
        LineRange("a", 3)


def test_line_range_behaves_like_a_pair() -> None:
    span = LineRange(20, 24)

    start, end = span
    assert (start, end) == (20, 24)
    assert len(span) == 2
    assert span[1] == 24
    assert span.line_count == 5
    assert span.to_list() == [20, 24]


@pytest.mark.parametrize(
    ("start", "end", "expected"),
    [
        (22, 22, True),
        (24, 24, True),
        (20, 20, True),
        (25, 25, False),
        (10, 19, False),
        (10, 30, True),
        (24, 23, True),
        (20, 19, False),
        (25, 24, False),
    ],
)
def test_overlaps_is_inclusive(start: int, end: int, expected: bool) -> None:
    assert LineRange(20, 24).overlaps(start, end) is expected


def test_fits_checks_last_line_against_line_count() -> None:
    assert LineRange(0, 9).fits(10)
    assert not LineRange(8, 10).fits(10)
    assert not LineRange.single(0).fits(0)


def test_from_value_accepts_mappings_and_sequences() -> None:
    assert LineRange.from_value({"start": 1, "end": 3}) == LineRange(1, 3)
    assert LineRange.from_value([4, 2]) == LineRange(2, 4)
    existing = LineRange.single(7)
    assert LineRange.from_value(existing) is existing

    with pytest.raises(ValueError):
        LineRange.from_value([1, 2, 3])
    with pytest.raises(ValueError):
        LineRange.from_value({"start": 1})
    with pytest.raises(TypeError):
        LineRange.from_value("1-2")
