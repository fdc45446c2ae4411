"""Feedback coordination core: debounce, change detection, gating, and storage."""

from .changes import delta_changes, delta_span, diff_lines
from .config import FeedbackConfig
from .debounce import DebounceScheduler
from .errors import ConfigError, ErrorCode, FeedbackError, ParseError, TransportError
from .gate import GateDecision, GatePolicyState, RequestGate, threshold_policy
from .orchestrator import DocumentState, FeedbackEngine, default_prompt_builder
from .parsing import parse_feedback
from .store import AnnotationStore
from .types import (
    Annotation,
    AnnotationSink,
    DocumentPhase,
    PendingRequest,
    PromptPayload,
    RequestTransport,
    TextSource,
)

__all__ = [
    "Annotation",
    "AnnotationSink",
    "AnnotationStore",
    "ConfigError",
    "DebounceScheduler",
    "DocumentPhase",
    "DocumentState",
    "ErrorCode",
    "FeedbackConfig",
    "FeedbackEngine",
    "FeedbackError",
    "GateDecision",
    "GatePolicyState",
    "ParseError",
    "PendingRequest",
    "PromptPayload",
    "RequestGate",
    "RequestTransport",
    "TextSource",
    "TransportError",
    "default_prompt_builder",
    "delta_changes",
    "delta_span",
    "diff_lines",
    "parse_feedback",
    "threshold_policy",
]
