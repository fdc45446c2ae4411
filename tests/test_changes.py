"""Tests for line-level change detection."""

from __future__ import annotations

from socrates.editor.document_model import EditDelta
from socrates.feedback.changes import delta_changes, delta_span, diff_lines


def test_diff_reports_modified_and_appended_lines() -> None:
    assert diff_lines(["a", "b", "c"], ["a", "x", "c", "d"]) == frozenset({1, 3})


def test_diff_of_identical_sequences_is_empty() -> None:
    assert diff_lines(["a", "b"], ["a", "b"]) == frozenset()
    assert diff_lines([], []) == frozenset()


def test_diff_reports_removed_tail_lines() -> None:
    assert diff_lines(["a", "b", "c"], ["a"]) == frozenset({1, 2})


def test_removed_empty_line_still_counts_as_changed() -> None:
    assert diff_lines(["a", ""], ["a"]) == frozenset({1})


def test_insertion_shifts_every_following_line() -> None:
    assert diff_lines(["a", "b", "c"], ["new", "a", "b", "c"]) == frozenset({0, 1, 2, 3})


def test_delta_helpers() -> None:
    delta = EditDelta(start_line=3, removed_count=1, added_count=2)

    assert delta_span(delta) == (3, 3)
    assert delta_changes(delta) == frozenset({3, 4})
