"""Document lifecycle/edit bus consumed by the feedback engine."""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from types import MethodType
from typing import TYPE_CHECKING, Any, Callable, Type
import logging
import weakref

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from .document_model import EditDelta

_LOGGER = logging.getLogger(__name__)

DEFAULT_EDIT_KIND = "lines"


class DocumentEvent:
    """Base class for document events."""

    __slots__ = ("document_id", "source")

    def __init__(self, document_id: str, *, source: str | None = None) -> None:
        self.document_id = document_id
        self.source = source


class DocumentOpenedEvent(DocumentEvent):
    """Published when a document becomes available for feedback."""

    __slots__ = ("language",)

    def __init__(self, *, document_id: str, language: str = "markdown", source: str | None = None) -> None:
        super().__init__(document_id, source=source)
        self.language = language


class DocumentEditedEvent(DocumentEvent):
    """Published once per discrete edit, in document order."""

    __slots__ = ("delta", "kind")

    def __init__(
        self,
        *,
        document_id: str,
        delta: EditDelta,
        kind: str = DEFAULT_EDIT_KIND,
        source: str | None = None,
    ) -> None:
        super().__init__(document_id, source=source)
        self.delta = delta
        self.kind = kind


class DocumentClosedEvent(DocumentEvent):
    """Published when a document is closed and its state should be dropped."""

    __slots__ = ("reason",)

    def __init__(self, *, document_id: str, reason: str | None = None, source: str | None = None) -> None:
        super().__init__(document_id, source=source)
        self.reason = reason


Subscriber = Callable[[DocumentEvent], None]


@dataclass(slots=True)
class _Subscription:
    """A registered handler; weak subscriptions keep only a reference to the method's owner."""

    func: Any
    handler: Subscriber | None = None
    owner: weakref.ReferenceType[Any] | None = None

    @classmethod
    def create(cls, handler: Subscriber, *, weak: bool) -> _Subscription:
        owner = getattr(handler, "__self__", None)
        func = getattr(handler, "__func__", handler)
        if weak and owner is not None:
            try:
                return cls(func=func, owner=weakref.ref(owner))
            except TypeError:
                _LOGGER.debug("%r does not support weak references; holding it strongly", owner)
        return cls(func=func, handler=handler)

    def callback(self) -> Subscriber | None:
        if self.owner is None:
            return self.handler
        owner = self.owner()
        return MethodType(self.func, owner) if owner is not None else None

    def matches(self, handler: Subscriber) -> bool:
        if self.owner is None:
            return self.handler == handler
        return getattr(handler, "__func__", None) is self.func and getattr(handler, "__self__", None) is self.owner()


class DocumentEventBus:
    """Synchronous pub/sub bus for document events.

    Handlers run on the publishing thread, outside the bus lock. With
    ``weak=True`` a bound-method handler does not keep its owner alive and
    is pruned on the next publish after the owner is collected.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[Type[DocumentEvent], list[_Subscription]] = {}
        self._lock = RLock()

    def subscribe(self, event_type: Type[DocumentEvent], handler: Subscriber, *, weak: bool = False) -> None:
        subscription = _Subscription.create(handler, weak=weak)
        with self._lock:
            self._subscriptions.setdefault(event_type, []).append(subscription)

    def unsubscribe(self, event_type: Type[DocumentEvent], handler: Subscriber) -> None:
        with self._lock:
            remaining = [item for item in self._subscriptions.get(event_type, ()) if not item.matches(handler)]
            if remaining:
                self._subscriptions[event_type] = remaining
            else:
                self._subscriptions.pop(event_type, None)

    def publish(self, event: DocumentEvent) -> None:
        callbacks: list[Subscriber] = []
        with self._lock:
            for event_type in [key for key in self._subscriptions if isinstance(event, key)]:
                live: list[_Subscription] = []
                for subscription in self._subscriptions[event_type]:
                    callback = subscription.callback()
                    if callback is not None:
                        live.append(subscription)
                        callbacks.append(callback)
                if live:
                    self._subscriptions[event_type] = live
                else:
                    del self._subscriptions[event_type]
        for callback in callbacks:
            try:
                callback(event)
            except Exception:  # pragma: no cover - subscriber isolation
                _LOGGER.exception("Document event subscriber failed for %s", event.document_id)


__all__ = [
    "DEFAULT_EDIT_KIND",
    "DocumentEvent",
    "DocumentOpenedEvent",
    "DocumentEditedEvent",
    "DocumentClosedEvent",
    "DocumentEventBus",
]
