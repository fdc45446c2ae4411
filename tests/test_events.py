"""Tests for the document event bus."""

from __future__ import annotations

import gc

from socrates.editor.document_model import EditDelta
from socrates.editor.events import (
    DocumentClosedEvent,
    DocumentEditedEvent,
    DocumentEvent,
    DocumentEventBus,
)


class _Listener:
    def __init__(self) -> None:
        self.events: list[DocumentEvent] = []

    def handle(self, event: DocumentEvent) -> None:
        self.events.append(event)


def _edit(document_id: str = "doc") -> DocumentEditedEvent:
    return DocumentEditedEvent(document_id=document_id, delta=EditDelta(start_line=0, removed_count=1, added_count=1))


def test_bus_delivers_events_to_matching_subscribers() -> None:
    bus = DocumentEventBus()
    edits = _Listener()
    closes = _Listener()
    everything = _Listener()
    bus.subscribe(DocumentEditedEvent, edits.handle)
    bus.subscribe(DocumentClosedEvent, closes.handle)
    bus.subscribe(DocumentEvent, everything.handle)

    bus.publish(_edit())

    assert len(edits.events) == 1
    assert closes.events == []
    assert len(everything.events) == 1


def test_unsubscribe_stops_delivery() -> None:
    bus = DocumentEventBus()
    weak = _Listener()
    strong = _Listener()
    bus.subscribe(DocumentEditedEvent, weak.handle, weak=True)
    bus.subscribe(DocumentEditedEvent, strong.handle)
    bus.unsubscribe(DocumentEditedEvent, weak.handle)
    bus.unsubscribe(DocumentEditedEvent, strong.handle)

    bus.publish(_edit())

    assert weak.events == []
    assert strong.events == []


def test_weak_subscribers_are_dropped_after_collection() -> None:
    bus = DocumentEventBus()
    received: list[DocumentEvent] = []

    class _Owner:
        def handle(self, event: DocumentEvent) -> None:
            received.append(event)

    owner = _Owner()
    bus.subscribe(DocumentEditedEvent, owner.handle, weak=True)
    bus.publish(_edit())
    assert len(received) == 1

    del owner
    gc.collect()
    bus.publish(_edit())

    assert len(received) == 1


def test_failing_subscriber_does_not_block_others() -> None:
    bus = DocumentEventBus()
    listener = _Listener()

    def _boom(_event: DocumentEvent) -> None:
        raise RuntimeError("subscriber failure")

    bus.subscribe(DocumentEditedEvent, _boom)
    bus.subscribe(DocumentEditedEvent, listener.handle)

    bus.publish(_edit())

    assert len(listener.events) == 1
