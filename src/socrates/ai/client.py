"""Async client wrapper built around OpenAI-compatible chat endpoints."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, cast

import httpx
from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI, RateLimitError
from openai.types.chat import ChatCompletionMessageParam
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..feedback.errors import TransportError
from ..feedback.types import PromptPayload
from .prompts import DEFAULT_RESPONSE_SCHEMA, ResponseSchema, build_messages

LOGGER = logging.getLogger(__name__)

_RETRYABLE_ERRORS = (
    APIError,
    APIStatusError,
    APIConnectionError,
    RateLimitError,
    httpx.TimeoutException,
)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the AI client."""

    base_url: str
    api_key: str
    model: str
    organization: str | None = None
    temperature: float | None = 0.7
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False


def build_retrying(*, max_retries: int, retry_min_seconds: float, retry_max_seconds: float, retry_on: tuple[type[BaseException], ...]) -> AsyncRetrying:
    """Exponential-backoff retry policy shared by the transports."""

    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max(1, max_retries)),
        wait=wait_exponential(multiplier=retry_min_seconds, max=retry_max_seconds),
        retry=retry_if_exception_type(retry_on),
    )


class AIClient:
    """Async client returning the text content of chat completions."""

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def complete_chat(
        self,
        messages: Iterable[Mapping[str, Any] | ChatCompletionMessageParam],
        *,
        temperature: float | None = None,
        response_format: Mapping[str, Any] | None = None,
        **extra_params: Any,
    ) -> str:
        """Return the first choice's message content for ``messages``."""

        payload = self._build_chat_payload(
            messages=self._coerce_messages(messages),
            temperature=self._settings.temperature if temperature is None else temperature,
            response_format=response_format,
            extra_params=extra_params,
        )
        LOGGER.debug(
            "Starting chat completion via %s with %s message(s)",
            self._settings.model,
            len(payload["messages"]),
        )
        if self._settings.debug_logging:
            self._log_prompt_payload(payload)

        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self._client.chat.completions.create(**payload)
        except _RETRYABLE_ERRORS as exc:
            raise TransportError(
                message=f"Chat completion failed: {exc}",
                details={"model": self._settings.model, "type": exc.__class__.__name__},
            ) from exc
        return self._extract_content(response)

    def _build_client(self, settings: ClientSettings) -> AsyncOpenAI:
        headers = dict(settings.default_headers) if settings.default_headers else None
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
            max_retries=0,
            default_headers=headers,
        )

    def _retrying(self) -> AsyncRetrying:
        return build_retrying(
            max_retries=self._settings.max_retries,
            retry_min_seconds=self._settings.retry_min_seconds,
            retry_max_seconds=self._settings.retry_max_seconds,
            retry_on=_RETRYABLE_ERRORS,
        )

    def _coerce_messages(
        self, messages: Iterable[Mapping[str, Any] | ChatCompletionMessageParam]
    ) -> List[ChatCompletionMessageParam]:
        normalized: List[ChatCompletionMessageParam] = []
        for message in messages:
            if isinstance(message, MutableMapping):
                normalized.append(cast(ChatCompletionMessageParam, dict(message)))
            else:
                try:
                    normalized.append(cast(ChatCompletionMessageParam, dict(message)))
                except TypeError as exc:  # pragma: no cover - non-mapping message
                    raise TypeError("Messages must be mapping-like objects") from exc
        if not normalized:
            raise ValueError("At least one message is required to start a chat")
        return normalized

    def _build_chat_payload(
        self,
        *,
        messages: List[ChatCompletionMessageParam],
        temperature: float | None,
        response_format: Mapping[str, Any] | None,
        extra_params: Mapping[str, Any],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._settings.model,
            "messages": list(messages),
        }
        if response_format is not None:
            payload["response_format"] = dict(response_format)
        if temperature is not None:
            payload["temperature"] = temperature
        if extra_params:
            payload.update(extra_params)
        return payload

    def _extract_content(self, response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise TransportError(message="No choices in chat completion response")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None) if message is not None else None
        if not content:
            raise TransportError(message="No content in chat completion response")
        return str(content)

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("AI prompt payload (unserializable): %s", payload)
        else:
            LOGGER.debug("AI prompt payload:\n%s", serialized)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        try:
            result = close()
        except Exception as exc:  # pragma: no cover - close() raised synchronously
            LOGGER.debug("AI client close failed to start: %s", exc)
            return
        if inspect.isawaitable(result):
            await result


class OpenAITransport:
    """Request transport that asks a chat model for feedback JSON."""

    def __init__(self, client: AIClient, *, schema: ResponseSchema = DEFAULT_RESPONSE_SCHEMA) -> None:
        self._client = client
        self._schema = schema

    @property
    def client(self) -> AIClient:
        return self._client

    async def submit(self, document_id: str, payload: PromptPayload) -> str:
        LOGGER.debug("Submitting %s (v%s) to %s", document_id, payload.version, self._client.settings.model)
        messages = build_messages(payload, schema=self._schema)
        response_format = {"type": "json_object"} if self._schema == "comments" else None
        return await self._client.complete_chat(messages, response_format=response_format)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["AIClient", "ClientSettings", "OpenAITransport", "build_retrying"]
