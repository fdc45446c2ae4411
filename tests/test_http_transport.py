"""Tests for the custom endpoint transport."""

from __future__ import annotations

import json

import httpx
import pytest

from socrates.ai.http_transport import HttpEndpointTransport, HttpTransportSettings
from socrates.feedback.errors import TransportError
from socrates.feedback.types import PromptPayload

URL = "https://feedback.example.invalid/review"


def _payload() -> PromptPayload:
    return PromptPayload(document_id="doc", text="one\ntwo", language="markdown", version=3, changed_lines=(0, 1))


def _transport(handler, **overrides) -> HttpEndpointTransport:
    options = {"url": URL, "max_retries": 3, "retry_min_seconds": 0.0, "retry_max_seconds": 0.0}
    options.update(overrides)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpEndpointTransport(HttpTransportSettings(**options), client=client)


@pytest.mark.asyncio
async def test_submit_posts_document_json_and_returns_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text='[{"lineRange": [0, 0], "title": "t"}]')

    transport = _transport(handler, headers={"Content-Type": "application/json", "X-Team": "docs"})

    body = await transport.submit("doc", _payload())

    assert body.startswith("[")
    request = seen[0]
    assert request.method == "POST"
    assert request.headers["X-Team"] == "docs"
    assert json.loads(request.content) == {"text": "one\ntwo", "language": "markdown", "changed_lines": [0, 1]}


@pytest.mark.asyncio
async def test_http_error_status_raises_transport_error() -> None:
    transport = _transport(lambda request: httpx.Response(503, text="busy"))

    with pytest.raises(TransportError) as excinfo:
        await transport.submit("doc", _payload())

    assert excinfo.value.details["status_code"] == 503


@pytest.mark.asyncio
async def test_connection_errors_are_retried() -> None:
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, text="{}")

    transport = _transport(handler)

    assert await transport.submit("doc", _payload()) == "{}"
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_unreachable_endpoint_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    transport = _transport(handler, max_retries=2)

    with pytest.raises(TransportError) as excinfo:
        await transport.submit("doc", _payload())

    assert excinfo.value.details["type"] == "ConnectError"


def test_url_is_required() -> None:
    with pytest.raises(ValueError):
        HttpEndpointTransport(HttpTransportSettings(url=""))
