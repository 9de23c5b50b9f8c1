"""EventEmitter — named-event callbacks plus asyncio.Queue fanout streams."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Callable

import structlog

logger = structlog.get_logger("daisy_sdk.core.emitter")

Listener = Callable[..., Any]

# Pushed into every stream queue when the emitter is closed.
_CLOSED = object()


class EventEmitter:
    """Minimal event emitter with two delivery styles.

    ``on(event, callback)`` registers a plain callback invoked synchronously
    on every ``emit``.  ``stream(event)`` yields the emitted argument tuples
    through an independent queue per consumer, until ``close()`` is called.

    Usage::

        emitter = EventEmitter()
        emitter.on("confirmation", lambda n, tx: print(n))
        emitter.emit("confirmation", 3, {"blockNumber": 100})

        async for args in emitter.stream("confirmation"):
            ...
    """

    def __init__(self, maxsize: int = 1024) -> None:
        self._maxsize = maxsize
        self._listeners: dict[str, list[Listener]] = {}
        # event -> list of subscriber queues
        self._streams: dict[str, list[asyncio.Queue[Any]]] = {}
        self._closed = False

    # ── Callbacks ────────────────────────────────────────────────

    def on(self, event: str, listener: Listener) -> EventEmitter:
        """Register *listener* for *event*.  Returns self for chaining."""
        self._listeners.setdefault(event, []).append(listener)
        return self

    def off(self, event: str, listener: Listener | None = None) -> EventEmitter:
        """Remove *listener* from *event*, or every listener when omitted."""
        if listener is None:
            self._listeners.pop(event, None)
            return self

        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            self._listeners.pop(event, None)
        return self

    def emit(self, event: str, *args: Any) -> bool:
        """Deliver *args* to every listener and stream of *event*.

        Returns True if anything was subscribed.  A listener raising does not
        prevent delivery to the remaining listeners; the error is logged.
        """
        listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception("emitter.listener_failed", event_name=event)

        queues = self._streams.get(event, [])
        for q in queues:
            try:
                q.put_nowait(args)
            except asyncio.QueueFull:
                logger.warning("emitter.queue_full", event_name=event, queue_size=q.qsize())

        return bool(listeners or queues)

    # ── Streams ──────────────────────────────────────────────────

    async def stream(self, event: str) -> AsyncIterator[tuple[Any, ...]]:
        """Yield argument tuples emitted for *event* until ``close()``."""
        if self._closed:
            return

        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=self._maxsize)
        self._streams.setdefault(event, []).append(queue)

        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    break
                yield item
        finally:
            subs = self._streams.get(event, [])
            if queue in subs:
                subs.remove(queue)
            if not subs:
                self._streams.pop(event, None)

    def close(self) -> None:
        """End every open stream.  Callbacks stay registered."""
        self._closed = True
        for queues in self._streams.values():
            for q in queues:
                try:
                    q.put_nowait(_CLOSED)
                except asyncio.QueueFull:
                    # Drop the oldest update so the end marker always fits.
                    q.get_nowait()
                    q.put_nowait(_CLOSED)

    # ── Introspection ────────────────────────────────────────────

    def listener_count(self, event: str | None = None) -> int:
        """Return callbacks plus streams for *event*, or for all events."""
        if event is not None:
            return len(self._listeners.get(event, [])) + len(self._streams.get(event, []))
        return sum(len(v) for v in self._listeners.values()) + sum(
            len(v) for v in self._streams.values()
        )

    @property
    def event_names(self) -> list[str]:
        """Return events with at least one listener or stream."""
        return sorted(set(self._listeners) | set(self._streams))
