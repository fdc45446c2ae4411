"""Transport posting document payloads to a custom feedback endpoint."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Mapping

import httpx

from ..feedback.errors import TransportError
from ..feedback.types import PromptPayload
from .client import build_retrying

LOGGER = logging.getLogger(__name__)

_RETRYABLE_ERRORS = (httpx.TransportError,)


@dataclass(slots=True)
class HttpTransportSettings:
    """Endpoint, headers, and retry policy for :class:`HttpEndpointTransport`."""

    url: str
    headers: Mapping[str, str] = field(default_factory=lambda: {"Content-Type": "application/json"})
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0


class HttpEndpointTransport:
    """POSTs ``{"text", "language", "changed_lines"}`` JSON and returns the body."""

    def __init__(self, settings: HttpTransportSettings, *, client: httpx.AsyncClient | None = None) -> None:
        if not settings.url:
            raise ValueError("url is required")
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    @property
    def settings(self) -> HttpTransportSettings:
        return self._settings

    async def submit(self, document_id: str, payload: PromptPayload) -> str:
        body = json.dumps(payload.to_dict(), ensure_ascii=False)
        LOGGER.debug("Posting %s (v%s, %s bytes) to %s", document_id, payload.version, len(body), self._settings.url)
        retrying = build_retrying(
            max_retries=self._settings.max_retries,
            retry_min_seconds=self._settings.retry_min_seconds,
            retry_max_seconds=self._settings.retry_max_seconds,
            retry_on=_RETRYABLE_ERRORS,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._client.post(
                        self._settings.url,
                        content=body.encode("utf-8"),
                        headers=dict(self._settings.headers),
                    )
        except httpx.HTTPError as exc:
            raise TransportError(
                message=f"Feedback endpoint unreachable: {exc}",
                details={"url": self._settings.url, "type": exc.__class__.__name__},
            ) from exc
        if response.is_error:
            raise TransportError(
                message=f"Feedback endpoint returned HTTP {response.status_code}",
                details={"url": self._settings.url, "status_code": response.status_code},
            )
        return response.text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["HttpEndpointTransport", "HttpTransportSettings"]
