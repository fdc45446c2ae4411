"""Parsing of enrichment responses into annotations.

Two wire shapes are accepted, tried in order:

* comments: ``{"comments": [{"line_number": 3, "comment": "..."}]}`` with
  1-based line numbers;
* feedback list: ``[{"lineRange": [20, 24], "title": "...", "description": "..."}]``
  with 0-based inclusive ranges.

Anything else raises :class:`~socrates.feedback.errors.ParseError`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Mapping

from ..core.ranges import LineRange
from .errors import ParseError
from .types import Annotation

LOGGER = logging.getLogger(__name__)

_CODE_BLOCK_PATTERNS = (
    re.compile(r"```json\s*(.*?)\s*```", re.DOTALL),
    re.compile(r"```\s*(.*?)\s*```", re.DOTALL),
)
_DEFAULT_TITLE = "No Title"


class _SchemaMismatch(Exception):
    pass


def parse_feedback(raw_text: str | None, *, request_id: str | None = None) -> list[Annotation]:
    """Convert a raw response body into annotations.

    Whitespace-only bodies are an empty result, not an error.
    """

    if raw_text is None or not raw_text.strip():
        return []
    data = _load_json(raw_text.strip())
    prefix = request_id or "annotation"
    for parser in _SCHEMAS:
        try:
            annotations = parser(data, prefix, request_id)
        except _SchemaMismatch:
            continue
        LOGGER.debug("Parsed %s annotation(s) via %s", len(annotations), parser.__name__)
        return annotations
    raise ParseError(
        message="Response did not match the comments or feedback-list schema",
        details={"excerpt": raw_text[:200]},
    )


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    for pattern in _CODE_BLOCK_PATTERNS:
        match = pattern.search(text)
        if match:
            try:
                return json.loads(match.group(1).strip())
            except json.JSONDecodeError:
                continue
    raise ParseError(message="Response body is not valid JSON", details={"excerpt": text[:200]})


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_comments(data: Any, prefix: str, request_id: str | None) -> list[Annotation]:
    if not isinstance(data, Mapping):
        raise _SchemaMismatch
    comments = data.get("comments")
    if not isinstance(comments, list):
        raise _SchemaMismatch
    annotations: list[Annotation] = []
    for index, entry in enumerate(comments):
        if not isinstance(entry, Mapping):
            raise _SchemaMismatch
        line_number = entry.get("line_number")
        comment = entry.get("comment")
        if not _is_int(line_number) or not isinstance(comment, str):
            raise _SchemaMismatch
        line = max(0, line_number - 1)
        annotations.append(
            Annotation(
                id=f"{prefix}:{index}",
                line_range=LineRange.single(line),
                title=comment,
                origin_request_id=request_id,
            )
        )
    return annotations


def _parse_feedback_list(data: Any, prefix: str, request_id: str | None) -> list[Annotation]:
    if not isinstance(data, list):
        raise _SchemaMismatch
    annotations: list[Annotation] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, Mapping):
            raise _SchemaMismatch
        line_range = entry.get("lineRange")
        if not isinstance(line_range, list) or len(line_range) != 2 or not all(_is_int(v) for v in line_range):
            raise _SchemaMismatch
        title = entry.get("title", _DEFAULT_TITLE)
        description = entry.get("description", "")
        if not isinstance(title, str) or not isinstance(description, str):
            raise _SchemaMismatch
        annotations.append(
            Annotation(
                id=f"{prefix}:{index}",
                line_range=LineRange.from_value(line_range),
                title=title or _DEFAULT_TITLE,
                body=description,
                origin_request_id=request_id,
            )
        )
    return annotations


_SCHEMAS: tuple[Callable[[Any, str, str | None], list[Annotation]], ...] = (
    _parse_comments,
    _parse_feedback_list,
)


__all__ = ["parse_feedback"]
