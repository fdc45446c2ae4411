"""Per-document state machine coordinating edits, debounce, and requests."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from ..editor.document_model import EditDelta, TextSnapshot
from ..editor.events import (
    DEFAULT_EDIT_KIND,
    DocumentClosedEvent,
    DocumentEditedEvent,
    DocumentEvent,
    DocumentEventBus,
    DocumentOpenedEvent,
)
from ..services.telemetry import emit
from .changes import diff_lines
from .config import FeedbackConfig
from .debounce import DebounceScheduler
from .errors import ConfigError, ErrorCode, FeedbackError, ParseError, TransportError
from .gate import GateDecision, RequestGate
from .parsing import parse_feedback
from .store import AnnotationStore, within_document
from .types import (
    Annotation,
    AnnotationSink,
    DocumentPhase,
    PendingRequest,
    PromptBuilder,
    PromptPayload,
    RequestTransport,
    TextSource,
)

__all__ = ["DocumentState", "FeedbackEngine", "default_prompt_builder"]

LOGGER = logging.getLogger(__name__)


def default_prompt_builder(snapshot: TextSnapshot, changed_lines: frozenset[int]) -> PromptPayload:
    return PromptPayload(
        document_id=snapshot.document_id,
        text=snapshot.text,
        language=snapshot.language,
        version=snapshot.version,
        changed_lines=tuple(sorted(changed_lines)),
    )


@dataclass(slots=True)
class DocumentState:
    """Mutable coordination state for one attached document."""

    document_id: str
    current_snapshot: TextSnapshot
    last_sent_snapshot: TextSnapshot
    phase: DocumentPhase = DocumentPhase.IDLE
    pending: PendingRequest | None = None
    cycle_owed: bool = False
    full_review: bool = False
    idle: asyncio.Event = field(default_factory=asyncio.Event)

    def __post_init__(self) -> None:
        if self.phase is DocumentPhase.IDLE:
            self.idle.set()

    @property
    def current_request_id(self) -> str | None:
        return self.pending.request_id if self.pending is not None else None


class FeedbackEngine:
    """Registry of attached documents and the feedback state machine.

    Edit signals, timer firings, and request completions for a document all
    run on the engine's event loop, so no two of them mutate the same
    :class:`DocumentState` concurrently. Requests are never cancelled once
    dispatched; a response is applied only if its request is still current
    for a still-attached document.
    """

    def __init__(
        self,
        *,
        text_source: TextSource,
        sink: AnnotationSink,
        transport: RequestTransport | None,
        config: FeedbackConfig | None = None,
        gate: RequestGate | None = None,
        scheduler: DebounceScheduler | None = None,
        store: AnnotationStore | None = None,
        prompt_builder: PromptBuilder | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        dormant_reason: str | None = None,
    ) -> None:
        if text_source is None:
            raise ValueError("text_source is required")
        if sink is None:
            raise ValueError("sink is required")
        if transport is None and dormant_reason is None:
            raise ValueError("transport is required unless the engine is dormant")
        self._text_source = text_source
        self._sink = sink
        self._transport = transport
        self._config = config or FeedbackConfig()
        self._gate = gate or RequestGate(threshold=self._config.response_threshold)
        self._scheduler = scheduler or DebounceScheduler(loop=loop)
        self._store = store or AnnotationStore()
        self._prompt_builder = prompt_builder or default_prompt_builder
        self._loop = loop
        self._dormant_reason = dormant_reason
        self._documents: dict[str, DocumentState] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def config(self) -> FeedbackConfig:
        return self._config

    @property
    def store(self) -> AnnotationStore:
        return self._store

    @property
    def transport(self) -> RequestTransport | None:
        return self._transport

    @property
    def is_dormant(self) -> bool:
        return self._dormant_reason is not None

    @property
    def dormant_reason(self) -> str | None:
        return self._dormant_reason

    def is_attached(self, document_id: str) -> bool:
        return document_id in self._documents

    def document_ids(self) -> list[str]:
        return list(self._documents)

    def phase(self, document_id: str) -> DocumentPhase | None:
        state = self._documents.get(document_id)
        return state.phase if state is not None else None

    def state(self, document_id: str) -> DocumentState | None:
        return self._documents.get(document_id)

    def annotations(self, document_id: str) -> list[Annotation]:
        return self._store.get(document_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def attach(self, document_id: str, *, review: bool | None = None) -> bool:
        """Start tracking ``document_id``; returns ``False`` when refused."""

        if self._dormant_reason is not None:
            LOGGER.info("Feedback engine dormant (%s); not attaching %s", self._dormant_reason, document_id)
            return False
        if self._closed:
            return False
        if document_id in self._documents:
            return True
        snapshot = self._read_snapshot(document_id)
        if snapshot is None:
            return False
        state = DocumentState(
            document_id=document_id,
            current_snapshot=snapshot,
            last_sent_snapshot=snapshot,
        )
        self._documents[document_id] = state
        LOGGER.debug("Attached %s at version %s", document_id, snapshot.version)
        if review is None:
            review = self._config.review_on_attach
        if review:
            self.request_review(document_id)
        return True

    def detach(self, document_id: str) -> None:
        state = self._documents.pop(document_id, None)
        if state is None:
            return
        self._scheduler.cancel(document_id)
        if state.pending is not None:
            LOGGER.debug("Detached %s with request %s still in flight", document_id, state.pending.request_id)
        state.pending = None
        state.cycle_owed = False
        state.phase = DocumentPhase.IDLE
        state.idle.set()
        self._store.clear(document_id)
        self._clear_sink(document_id)
        LOGGER.debug("Detached %s", document_id)

    async def wait_until_idle(self, document_id: str, *, timeout: float | None = None) -> None:
        """Wait until ``document_id`` is Idle with no follow-up cycle owed, or detached."""

        state = self._documents.get(document_id)
        if state is None:
            return

        async def _settled() -> None:
            # A resolved request may go straight back to Debouncing.
            while self._documents.get(document_id) is state and state.phase is not DocumentPhase.IDLE:
                await state.idle.wait()

        await asyncio.wait_for(_settled(), timeout)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        for document_id in list(self._documents):
            self.detach(document_id)
        self._scheduler.cancel_all()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------
    def handle_edit(self, document_id: str, delta: EditDelta, *, kind: str = DEFAULT_EDIT_KIND) -> None:
        """React to one edit notification for an attached document."""

        if not self._config.counts_as_edit(kind):
            return
        state = self._documents.get(document_id)
        if state is None:
            return
        removed = self._store.invalidate_overlapping(document_id, delta.pre_edit_span())
        if removed:
            self._render(document_id)
        if state.phase is DocumentPhase.REQUESTING:
            state.cycle_owed = True
            if state.pending is not None:
                state.pending.superseded = True
            return
        self._schedule_cycle(state, self._config.debounce_seconds)

    def request_review(self, document_id: str) -> None:
        """Review the whole document as soon as possible, bypassing the gate."""

        state = self._documents.get(document_id)
        if state is None:
            return
        state.full_review = True
        if state.phase is DocumentPhase.REQUESTING:
            state.cycle_owed = True
            return
        self._schedule_cycle(state, 0.0)

    def bind(self, bus: DocumentEventBus) -> None:
        """Consume opened/edited/closed events published on ``bus``."""

        if self._loop is None:
            with contextlib.suppress(RuntimeError):
                self._loop = asyncio.get_running_loop()
        bus.subscribe(DocumentOpenedEvent, self._handle_opened, weak=True)
        bus.subscribe(DocumentEditedEvent, self._handle_edited, weak=True)
        bus.subscribe(DocumentClosedEvent, self._handle_closed, weak=True)

    def unbind(self, bus: DocumentEventBus) -> None:
        bus.unsubscribe(DocumentOpenedEvent, self._handle_opened)
        bus.unsubscribe(DocumentEditedEvent, self._handle_edited)
        bus.unsubscribe(DocumentClosedEvent, self._handle_closed)

    # ------------------------------------------------------------------
    # Bus handlers
    # ------------------------------------------------------------------
    def _handle_opened(self, event: DocumentEvent) -> None:
        if not isinstance(event, DocumentOpenedEvent):
            return
        if not self._config.accepts_language(event.language):
            LOGGER.debug("Ignoring %s (language %s)", event.document_id, event.language)
            return
        self._dispatch(self.attach, event.document_id)

    def _handle_edited(self, event: DocumentEvent) -> None:
        if not isinstance(event, DocumentEditedEvent):
            return
        self._dispatch(self._handle_edit_event, event)

    def _handle_closed(self, event: DocumentEvent) -> None:
        if not isinstance(event, DocumentClosedEvent):
            return
        self._dispatch(self.detach, event.document_id)

    def _handle_edit_event(self, event: DocumentEditedEvent) -> None:
        self.handle_edit(event.document_id, event.delta, kind=event.kind)

    def _dispatch(self, callback: Callable[..., Any], *args: Any) -> None:
        if self._closed:
            return
        loop = self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if loop is None or running is loop:
            callback(*args)
        else:
            loop.call_soon_threadsafe(callback, *args)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------
    def _schedule_cycle(self, state: DocumentState, delay: float) -> None:
        self._set_phase(state, DocumentPhase.DEBOUNCING)
        document_id = state.document_id
        self._scheduler.schedule(document_id, delay, lambda: self._on_timer(document_id))

    def _on_timer(self, document_id: str) -> None:
        state = self._documents.get(document_id)
        if state is None or state.phase is not DocumentPhase.DEBOUNCING:
            return
        snapshot = self._read_snapshot(document_id)
        if snapshot is None:
            self.detach(document_id)
            return
        state.current_snapshot = snapshot
        full_review = state.full_review
        state.full_review = False

        if len(snapshot.text) < self._config.minimum_text_length:
            LOGGER.debug("%s below minimum length; clearing feedback", document_id)
            self._store.clear(document_id)
            self._clear_sink(document_id)
            emit("feedback.gate.skip", {"document_id": document_id, "reason": "below_minimum_length"})
            self._set_phase(state, DocumentPhase.IDLE)
            return

        if full_review:
            changed = frozenset(range(snapshot.line_count))
        else:
            changed = diff_lines(state.last_sent_snapshot.lines, snapshot.lines)
        if not changed:
            self._set_phase(state, DocumentPhase.IDLE)
            return

        if not full_review:
            decision = self._gate.decide(changed, snapshot.line_count)
            if not decision.proceed:
                self._skip_cycle(state, snapshot, decision)
                return
        self._start_request(state, snapshot, changed)

    def _skip_cycle(self, state: DocumentState, snapshot: TextSnapshot, decision: GateDecision) -> None:
        LOGGER.debug("Gate skipped request for %s (%s)", state.document_id, decision.reason)
        state.last_sent_snapshot = snapshot
        emit("feedback.gate.skip", {"document_id": state.document_id, **decision.as_payload()})
        self._set_phase(state, DocumentPhase.IDLE)

    def _start_request(self, state: DocumentState, snapshot: TextSnapshot, changed: frozenset[int]) -> None:
        request_id = uuid.uuid4().hex
        pending = PendingRequest(request_id=request_id, snapshot=snapshot, changed_lines=changed)
        payload = self._prompt_builder(snapshot, changed)
        state.pending = pending
        state.cycle_owed = False
        self._set_phase(state, DocumentPhase.REQUESTING)
        LOGGER.debug(
            "Requesting feedback for %s v%s (%s changed line(s), request %s)",
            state.document_id,
            snapshot.version,
            len(changed),
            request_id,
        )
        emit(
            "feedback.request.start",
            {
                "document_id": state.document_id,
                "request_id": request_id,
                "version": snapshot.version,
                "changed_lines": len(changed),
                "total_lines": snapshot.line_count,
            },
        )
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._run_request(state.document_id, pending, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_request(self, document_id: str, pending: PendingRequest, payload: PromptPayload) -> None:
        started = time.perf_counter()
        annotations: list[Annotation] | None = None
        error: FeedbackError | None = None
        try:
            raw_text = await self._submit(document_id, payload)
            annotations = parse_feedback(raw_text, request_id=pending.request_id)
        except (TransportError, ParseError, ConfigError) as exc:
            error = exc
        except Exception as exc:  # pragma: no cover - transports should raise TransportError
            LOGGER.exception("Feedback transport raised unexpectedly for %s", document_id)
            error = TransportError(message=str(exc) or exc.__class__.__name__)
        latency_ms = (time.perf_counter() - started) * 1000.0
        self._resolve(document_id, pending, annotations, error, latency_ms)

    async def _submit(self, document_id: str, payload: PromptPayload) -> str:
        if self._transport is None:
            raise ConfigError(message=self._dormant_reason or "No feedback transport configured")
        timeout = self._config.request_timeout_seconds
        if timeout is None:
            return await self._transport.submit(document_id, payload)
        try:
            return await asyncio.wait_for(self._transport.submit(document_id, payload), timeout)
        except asyncio.TimeoutError as exc:
            raise TransportError(
                error_code=ErrorCode.TIMEOUT,
                message=f"Feedback request timed out after {timeout:.1f}s",
            ) from exc

    def _resolve(
        self,
        document_id: str,
        pending: PendingRequest,
        annotations: list[Annotation] | None,
        error: FeedbackError | None,
        latency_ms: float,
    ) -> None:
        state = self._documents.get(document_id)
        if state is None or state.current_request_id != pending.request_id:
            LOGGER.debug("Discarding response %s for %s", pending.request_id, document_id)
            emit("feedback.request.discarded", {"document_id": document_id, "request_id": pending.request_id})
            return

        state.pending = None
        status = "ok"
        if error is not None:
            status = "error"
            self._notify(document_id, error)
        elif pending.superseded:
            status = "stale"
            LOGGER.debug("Request %s outdated by edits in flight; not applying", pending.request_id)
        elif not annotations:
            status = "empty"
        else:
            self._apply(document_id, annotations)
        emit(
            "feedback.request.end",
            {
                "document_id": document_id,
                "request_id": pending.request_id,
                "status": status,
                "annotation_count": len(annotations or ()),
                "latency_ms": round(latency_ms, 3),
            },
        )

        state.last_sent_snapshot = pending.snapshot
        self._set_phase(state, DocumentPhase.IDLE)
        if state.cycle_owed:
            state.cycle_owed = False
            delay = 0.0 if state.full_review else self._config.debounce_seconds
            self._schedule_cycle(state, delay)

    def _apply(self, document_id: str, annotations: Sequence[Annotation]) -> None:
        live = self._read_snapshot(document_id)
        if live is None:
            return
        valid, dropped = within_document(annotations, live.line_count)
        if dropped:
            LOGGER.debug(
                "Dropped %s annotation(s) beyond the %s-line document %s",
                len(dropped),
                live.line_count,
                document_id,
            )
        self._store.replace(document_id, valid)
        self._render(document_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _read_snapshot(self, document_id: str) -> TextSnapshot | None:
        try:
            return self._text_source.snapshot(document_id)
        except KeyError:
            LOGGER.debug("Text source no longer provides %s", document_id)
            return None

    def _set_phase(self, state: DocumentState, phase: DocumentPhase) -> None:
        state.phase = phase
        if phase is DocumentPhase.IDLE:
            state.idle.set()
        else:
            state.idle.clear()

    def _notify(self, document_id: str, error: FeedbackError) -> None:
        LOGGER.warning("Feedback request for %s failed: %s", document_id, error)
        emit("feedback.notice", {"document_id": document_id, **error.to_dict()})

    def _render(self, document_id: str) -> None:
        try:
            self._sink.apply(document_id, self._store.get(document_id))
        except Exception:  # pragma: no cover - sinks must not break the engine
            LOGGER.exception("Annotation sink failed to render %s", document_id)

    def _clear_sink(self, document_id: str) -> None:
        try:
            self._sink.clear(document_id)
        except Exception:  # pragma: no cover - sinks must not break the engine
            LOGGER.exception("Annotation sink failed to clear %s", document_id)
