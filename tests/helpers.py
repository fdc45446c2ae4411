"""Shared test helpers and stub classes.

Reusable fakes for the engine's collaborators. Import from here instead of
duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Callable, Iterable, Sequence

from socrates.feedback.types import Annotation, PromptPayload


class FakeTransport:
    """Request transport stub.

    Queued responses (strings or exceptions) are consumed in order; once the
    queue is empty every call parks on a future the test resolves with
    :meth:`respond` or :meth:`fail`.

    Example:
        transport = FakeTransport(['{"comments": []}'])
        engine = FeedbackEngine(text_source=workspace, sink=sink, transport=transport)
    """

    def __init__(self, responses: Iterable[str | BaseException] = ()) -> None:
        self._responses: deque[str | BaseException] = deque(responses)
        self._parked: deque[asyncio.Future[str]] = deque()
        self.calls: list[tuple[str, PromptPayload]] = []

    def queue(self, *responses: str | BaseException) -> None:
        self._responses.extend(responses)

    async def submit(self, document_id: str, payload: PromptPayload) -> str:
        self.calls.append((document_id, payload))
        if self._responses:
            response = self._responses.popleft()
            if isinstance(response, BaseException):
                raise response
            return response
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._parked.append(future)
        return await future

    @property
    def parked(self) -> int:
        return sum(1 for future in self._parked if not future.done())

    def respond(self, text: str) -> None:
        self._next_parked().set_result(text)

    def fail(self, exc: BaseException) -> None:
        self._next_parked().set_exception(exc)

    def _next_parked(self) -> asyncio.Future[str]:
        while self._parked:
            future = self._parked.popleft()
            if not future.done():
                return future
        raise AssertionError("No request is waiting for a response")


class RecordingSink:
    """Annotation sink that records every render and clear call."""

    def __init__(self) -> None:
        self.applied: list[tuple[str, tuple[Annotation, ...]]] = []
        self.cleared: list[str] = []

    def apply(self, document_id: str, annotations: Sequence[Annotation]) -> None:
        self.applied.append((document_id, tuple(annotations)))

    def clear(self, document_id: str) -> None:
        self.cleared.append(document_id)

    def last(self, document_id: str) -> tuple[Annotation, ...] | None:
        for target, annotations in reversed(self.applied):
            if target == document_id:
                return annotations
        return None


class SequenceRandom:
    """Deterministic ``random()`` source replaying fixed samples."""

    def __init__(self, values: Iterable[float]) -> None:
        self._values = deque(values)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if not self._values:
            raise AssertionError("SequenceRandom exhausted")
        return self._values.popleft()


class ConstantRandom:
    def __init__(self, value: float) -> None:
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


async def wait_for(predicate: Callable[[], Any], *, timeout: float = 1.0, interval: float = 0.002) -> None:
    """Poll ``predicate`` on the running loop until it holds or ``timeout`` passes."""

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(interval)


def numbered_lines(count: int, prefix: str = "line") -> str:
    return "\n".join(f"{prefix} {index}" for index in range(count))
