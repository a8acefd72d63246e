"""
Event channels for streamed generation.

Executors publish a generation's progress on three channels namespaced by
plan id: text chunks, a completion carrying the full text and token counts,
and a failure. The orchestrator listens through a ``PlanStream``, which owns
all three subscriptions and tears them down in exactly one place.

Example:
    from draftsmith.events import EventBus, PlanStream, done_channel, DoneEvent

    bus = EventBus()
    stream = PlanStream(bus, "plan-1")

    # Somewhere in an executor:
    await bus.emit(done_channel("plan-1"), DoneEvent(full_text="...", model="gpt-4o"))

    done = await stream.wait()   # DoneEvent, or None if cancelled
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from draftsmith.errors import ExecutionError
from draftsmith.logging import get_logger

logger = get_logger("events")


# ---------------------------------------------------------------------------
# Channel names
# ---------------------------------------------------------------------------

CHUNK = "generation:chunk"
DONE = "generation:done"
ERROR = "generation:error"
PHASE_CHANGED = "generation:phase"


def chunk_channel(plan_id: str) -> str:
    return f"{CHUNK}:{plan_id}"


def done_channel(plan_id: str) -> str:
    return f"{DONE}:{plan_id}"


def error_channel(plan_id: str) -> str:
    return f"{ERROR}:{plan_id}"


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------


@dataclass
class ChunkEvent:
    """An incremental piece of generated text."""

    text: str


@dataclass
class DoneEvent:
    """Emitted once when a generation completes."""

    full_text: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""


@dataclass
class ErrorEvent:
    """Emitted once when a generation fails."""

    error: str


@dataclass
class PhaseChangeEvent:
    """Emitted by a GenerationSession on every phase transition."""

    previous: str
    current: str
    plan_id: str | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Handler types
# ---------------------------------------------------------------------------

# Handlers can be sync or async, and optionally return a result object.
EventHandler = Callable[..., Any]


@dataclass
class _HandlerEntry:
    """Internal: a registered handler with metadata."""

    event: str
    handler: EventHandler
    priority: int = 0  # lower runs first
    source: str = ""  # who registered it (plan stream, UI, etc.)


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class EventBus:
    """
    In-process event bus.

    Handlers are called in priority order (lower first) and can be sync or
    async. A failing handler is logged and does not stop the others.

    Usage:
        bus = EventBus()

        # Decorator style
        @bus.on(PHASE_CHANGED)
        def on_phase(event: PhaseChangeEvent):
            print(f"{event.previous} -> {event.current}")

        # Method style
        unsub = bus.on(chunk_channel(plan_id), lambda e: print(e.text))
        unsub()  # remove handler
    """

    def __init__(self) -> None:
        self._handlers: list[_HandlerEntry] = []

    def on(
        self,
        event: str,
        handler: EventHandler | None = None,
        priority: int = 0,
        source: str = "",
    ) -> Callable[[], None] | Callable[[EventHandler], EventHandler]:
        """
        Register an event handler.

        Can be used as a method call or as a decorator:

            # Method call returns an unsubscribe function
            unsub = bus.on(PHASE_CHANGED, my_handler)
            unsub()

            # Decorator returns the original function
            @bus.on(PHASE_CHANGED)
            def my_handler(event):
                ...
        """
        if handler is not None:
            entry = _HandlerEntry(
                event=event, handler=handler, priority=priority, source=source
            )
            self._handlers.append(entry)

            def unsubscribe() -> None:
                if entry in self._handlers:
                    self._handlers.remove(entry)

            return unsubscribe

        def decorator(fn: EventHandler) -> EventHandler:
            self.on(event, fn, priority=priority, source=source)
            return fn

        return decorator

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove a specific handler for an event."""
        self._handlers = [
            h for h in self._handlers if not (h.event == event and h.handler == handler)
        ]

    def off_by_source(self, source: str) -> int:
        """Remove all handlers registered by a given source. Returns count removed."""
        before = len(self._handlers)
        self._handlers = [h for h in self._handlers if h.source != source]
        return before - len(self._handlers)

    def clear(self, event: str | None = None) -> None:
        """Remove all handlers, or all handlers for a specific event."""
        if event is None:
            self._handlers.clear()
        else:
            self._handlers = [h for h in self._handlers if h.event != event]

    def _relevant(self, event: str) -> list[_HandlerEntry]:
        return sorted(
            (h for h in self._handlers if h.event == event),
            key=lambda h: h.priority,
        )

    async def emit(self, event: str, data: Any = None) -> list[Any]:
        """
        Emit an event and collect handler results.

        The handler list is snapshotted before dispatch, so a handler may
        unsubscribe itself (or others) while the event is being delivered.

        Returns:
            List of non-None results from handlers
        """
        results: list[Any] = []
        for entry in self._relevant(event):
            try:
                result = entry.handler(data)
                if asyncio.iscoroutine(result) or asyncio.isfuture(result):
                    result = await result
                if result is not None:
                    results.append(result)
            except Exception as e:
                logger.warning(
                    "Event handler error (event=%s, source=%s): %s",
                    event,
                    entry.source,
                    e,
                )
        return results

    def emit_sync(self, event: str, data: Any = None) -> list[Any]:
        """
        Emit an event synchronously (only calls sync handlers).

        Async handlers are skipped with a warning.
        """
        results: list[Any] = []
        for entry in self._relevant(event):
            try:
                result = entry.handler(data)
                if asyncio.iscoroutine(result):
                    result.close()
                    logger.warning(
                        "Async handler skipped in sync emit (event=%s, source=%s)",
                        event,
                        entry.source,
                    )
                    continue
                if result is not None:
                    results.append(result)
            except Exception as e:
                logger.warning(
                    "Event handler error (event=%s, source=%s): %s",
                    event,
                    entry.source,
                    e,
                )
        return results

    @property
    def handler_count(self) -> int:
        """Total number of registered handlers."""
        return len(self._handlers)

    def has_handlers(self, event: str) -> bool:
        """Check if any handlers are registered for an event."""
        return any(h.event == event for h in self._handlers)


# ---------------------------------------------------------------------------
# PlanStream
# ---------------------------------------------------------------------------


class PlanStream:
    """
    Single-resolution handle over one plan's three channels.

    The stream resolves exactly once: with the DoneEvent, with an
    ExecutionError, or with None when cancelled. Whatever resolves it also
    unsubscribes all three handlers, so later events for the plan reach
    nobody.

    Must be created inside a running event loop.
    """

    def __init__(
        self,
        bus: EventBus,
        plan_id: str,
        on_chunk: Callable[[str], None] | None = None,
    ) -> None:
        self.bus = bus
        self.plan_id = plan_id
        self.source = f"plan:{plan_id}"
        self._on_chunk = on_chunk
        self._chunks: list[str] = []
        self._closed = False
        self._future: asyncio.Future[DoneEvent | None] = (
            asyncio.get_running_loop().create_future()
        )

        bus.on(chunk_channel(plan_id), self._handle_chunk, source=self.source)
        bus.on(done_channel(plan_id), self._handle_done, source=self.source)
        bus.on(error_channel(plan_id), self._handle_error, source=self.source)

    @property
    def text(self) -> str:
        """Text received through chunk events so far."""
        return "".join(self._chunks)

    @property
    def resolved(self) -> bool:
        return self._future.done()

    @property
    def closed(self) -> bool:
        return self._closed

    async def wait(self) -> DoneEvent | None:
        """Wait for resolution. Raises ExecutionError if the plan failed."""
        return await self._future

    def fail(self, error: BaseException) -> None:
        """Resolve with ``error`` (e.g. the executor raised before streaming)."""
        self._resolve(exception=error)

    def cancel(self) -> None:
        """Resolve with None and stop listening."""
        self._resolve(result=None)

    def close(self) -> None:
        """Unsubscribe from all three channels. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        removed = self.bus.off_by_source(self.source)
        logger.debug("Closed stream for plan %s (%d handler(s))", self.plan_id, removed)

    def _handle_chunk(self, event: ChunkEvent) -> None:
        if self._future.done():
            return
        self._chunks.append(event.text)
        if self._on_chunk is not None:
            self._on_chunk(event.text)

    def _handle_done(self, event: DoneEvent) -> None:
        self._resolve(result=event)

    def _handle_error(self, event: ErrorEvent) -> None:
        self._resolve(exception=ExecutionError(event.error))

    def _resolve(
        self,
        result: DoneEvent | None = None,
        exception: BaseException | None = None,
    ) -> None:
        if not self._future.done():
            if exception is not None:
                self._future.set_exception(exception)
            else:
                self._future.set_result(result)
        self.close()
