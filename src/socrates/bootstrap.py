"""Wiring helpers that turn settings into a ready feedback engine."""

from __future__ import annotations

import asyncio
import logging
import random

from .ai.client import AIClient, ClientSettings, OpenAITransport
from .ai.http_transport import HttpEndpointTransport, HttpTransportSettings
from .feedback.errors import ConfigError, ErrorCode
from .feedback.gate import RandomSource, RequestGate
from .feedback.orchestrator import FeedbackEngine
from .feedback.types import AnnotationSink, RequestTransport, TextSource
from .services.settings import TRANSPORT_CHOICES, Settings

LOGGER = logging.getLogger(__name__)


def build_transport(settings: Settings) -> RequestTransport:
    """Create the configured transport or raise :class:`ConfigError`."""

    kind = (settings.transport or "openai").strip().lower()
    if kind not in TRANSPORT_CHOICES:
        raise ConfigError(
            error_code=ErrorCode.INVALID_CONFIG,
            message=f"Unknown transport {settings.transport!r}",
            details={"choices": list(TRANSPORT_CHOICES)},
        )
    if kind == "http":
        url = (settings.endpoint_url or "").strip()
        if not url:
            raise ConfigError(error_code=ErrorCode.MISSING_ENDPOINT, message="No feedback endpoint URL configured")
        headers = {"Content-Type": "application/json"}
        headers.update(settings.default_headers or {})
        return HttpEndpointTransport(
            HttpTransportSettings(
                url=url,
                headers=headers,
                request_timeout=settings.request_timeout,
                max_retries=settings.max_retries,
                retry_min_seconds=settings.retry_min_seconds,
                retry_max_seconds=settings.retry_max_seconds,
            )
        )
    api_key = (settings.api_key or "").strip()
    if not api_key:
        raise ConfigError(message="No API key set for the OpenAI transport")
    client = AIClient(
        ClientSettings(
            base_url=settings.base_url,
            api_key=api_key,
            model=settings.model,
            organization=settings.organization,
            temperature=settings.temperature,
            request_timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            retry_min_seconds=settings.retry_min_seconds,
            retry_max_seconds=settings.retry_max_seconds,
            default_headers=settings.default_headers or None,
            debug_logging=settings.debug_logging,
        )
    )
    schema = "feedback_list" if settings.response_schema == "feedback_list" else "comments"
    return OpenAITransport(client, schema=schema)


def create_engine(
    settings: Settings,
    *,
    text_source: TextSource,
    sink: AnnotationSink,
    transport: RequestTransport | None = None,
    rng: RandomSource | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> FeedbackEngine:
    """Build a :class:`FeedbackEngine`; missing credentials yield a dormant engine."""

    config = settings.feedback_config()
    dormant_reason: str | None = None
    if transport is None:
        try:
            transport = build_transport(settings)
        except ConfigError as exc:
            LOGGER.warning("Feedback disabled: %s", exc.message)
            dormant_reason = exc.message
    gate = RequestGate(threshold=config.response_threshold, rng=rng or random.Random())
    return FeedbackEngine(
        text_source=text_source,
        sink=sink,
        transport=transport,
        config=config,
        gate=gate,
        loop=loop,
        dormant_reason=dormant_reason,
    )


__all__ = ["build_transport", "create_engine"]
