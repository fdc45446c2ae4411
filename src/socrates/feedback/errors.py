"""Error types raised by the feedback engine and its collaborators.

Transport and parse failures are recovered inside the engine and surfaced as
non-fatal notices; configuration failures are evaluated once at setup and
leave the engine dormant.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ErrorCode:
    """Machine-readable identifiers carried by :class:`FeedbackError`."""

    TRANSPORT_FAILED = "transport_failed"
    TIMEOUT = "timeout"
    INVALID_RESPONSE = "invalid_response"
    MISSING_CREDENTIALS = "missing_credentials"
    MISSING_ENDPOINT = "missing_endpoint"
    INVALID_CONFIG = "invalid_config"


@dataclass
class FeedbackError(Exception):
    """Base exception for feedback failures.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class TransportError(FeedbackError):
    """The external service could not be reached or answered with a failure."""

    error_code: str = field(default=ErrorCode.TRANSPORT_FAILED)
    message: str = field(default="Feedback request failed")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ParseError(FeedbackError):
    """The response body matched neither supported schema."""

    error_code: str = field(default=ErrorCode.INVALID_RESPONSE)
    message: str = field(default="Response did not match a known feedback schema")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ConfigError(FeedbackError):
    """A required credential or endpoint is missing."""

    error_code: str = field(default=ErrorCode.MISSING_CREDENTIALS)
    message: str = field(default="Feedback transport is not configured")
    details: dict[str, Any] = field(default_factory=dict)


__all__ = ["ErrorCode", "FeedbackError", "TransportError", "ParseError", "ConfigError"]
