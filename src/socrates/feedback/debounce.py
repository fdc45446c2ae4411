"""Per-document debounce timers on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

LOGGER = logging.getLogger(__name__)

Action = Callable[[], None]


class DebounceScheduler:
    """Coalesces bursts of signals per document into one delayed action.

    Each ``schedule`` call resets the quiet period for its document; the
    action fires once, after ``delay`` seconds without another ``schedule``
    for the same document. There is no periodic firing under continuous
    activity.
    """

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handles: dict[str, asyncio.TimerHandle] = {}

    def schedule(self, document_id: str, delay: float, action: Action) -> None:
        self.cancel(document_id)
        loop = self._loop or asyncio.get_running_loop()
        handle = loop.call_later(max(0.0, float(delay)), self._fire, document_id, action)
        self._handles[document_id] = handle

    def cancel(self, document_id: str) -> bool:
        """Abort the pending timer; returns ``False`` when nothing was pending."""

        handle = self._handles.pop(document_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for document_id in list(self._handles):
            self.cancel(document_id)

    def is_pending(self, document_id: str) -> bool:
        return document_id in self._handles

    def pending_documents(self) -> list[str]:
        return list(self._handles)

    def _fire(self, document_id: str, action: Action) -> None:
        self._handles.pop(document_id, None)
        try:
            action()
        except Exception:  # pragma: no cover - timer callbacks must not kill the loop
            LOGGER.exception("Debounced action failed for %s", document_id)


__all__ = ["DebounceScheduler"]
