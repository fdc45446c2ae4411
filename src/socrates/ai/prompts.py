"""Prompt templates for writing-feedback requests."""

from __future__ import annotations

from typing import Literal

from ..feedback.types import PromptPayload

ResponseSchema = Literal["comments", "feedback_list"]

DEFAULT_RESPONSE_SCHEMA: ResponseSchema = "comments"
MAX_CHANGED_LINES_LISTED = 200


def system_prompt(*, schema: ResponseSchema = DEFAULT_RESPONSE_SCHEMA) -> str:
    """Return the system prompt asking for JSON feedback in ``schema`` form."""

    return f"""{_role_section()}

## Response Format

{_schema_section(schema)}

## Guidelines

{_guidelines_section()}
"""


def _role_section() -> str:
    return """You are a writing feedback assistant.
Given a document, you point out weak arguments, unclear passages, and factual
or logical problems, focusing on the lines the author changed most recently."""


def _schema_section(schema: ResponseSchema) -> str:
    if schema == "feedback_list":
        return """Respond ONLY with a JSON array of feedback objects:
[
  {
    "lineRange": [startLine, endLine],
    "title": "Short Title",
    "description": "Detailed Explanation"
  }
]
Line numbers in lineRange are 0-based and inclusive."""
    return """Respond ONLY with a JSON object of the form:
{"comments": [{"line_number": 3, "comment": "Short, specific feedback"}]}
line_number is the 1-based number shown before each line.
Return {"comments": []} when there is nothing worth saying."""


def _guidelines_section() -> str:
    return """- Comment on at most a handful of lines; skip nitpicks.
- Never rewrite the text; explain the problem instead.
- Do not wrap the JSON in prose."""


def format_numbered_text(text: str) -> str:
    """Prefix every line with its 1-based number."""

    lines = text.split("\n")
    width = len(str(len(lines)))
    return "\n".join(f"{index:>{width}}: {line}" for index, line in enumerate(lines, start=1))


def user_prompt(payload: PromptPayload) -> str:
    sections = [f"Language: {payload.language or 'text'}"]
    if payload.changed_lines:
        listed = [str(line + 1) for line in payload.changed_lines[:MAX_CHANGED_LINES_LISTED]]
        suffix = " ..." if len(payload.changed_lines) > MAX_CHANGED_LINES_LISTED else ""
        sections.append(f"Changed lines: {', '.join(listed)}{suffix}")
    sections.append("Document:")
    sections.append(format_numbered_text(payload.text))
    return "\n\n".join(sections)


def build_messages(payload: PromptPayload, *, schema: ResponseSchema = DEFAULT_RESPONSE_SCHEMA) -> list[dict[str, str]]:
    """Return chat messages for ``payload``."""

    return [
        {"role": "system", "content": system_prompt(schema=schema)},
        {"role": "user", "content": user_prompt(payload)},
    ]


__all__ = [
    "DEFAULT_RESPONSE_SCHEMA",
    "ResponseSchema",
    "build_messages",
    "format_numbered_text",
    "system_prompt",
    "user_prompt",
]
