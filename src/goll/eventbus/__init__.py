"""Synchronous in-process event bus.

Handlers are keyed by event name, or subscribed to every event, and run on
the emitting thread (the event loop thread for pipeline events), so they
must not block. A failing handler is logged and counted; it never breaks
the emitter or the other handlers.

Counters: events_emitted_total{event}, handler_exceptions_total{event}.
"""
from __future__ import annotations

import logging
from threading import Lock
from time import time
from typing import Any, Callable, Dict, Tuple

from goll import metrics

Handler = Callable[[Dict[str, Any]], None]
# Receives every event: handler(event_name, payload)
AnyHandler = Callable[[str, Dict[str, Any]], None]
Unsubscribe = Callable[[], None]

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self) -> None:
        # Copy-on-write: emit reads a tuple without holding the lock
        self._handlers: Dict[str, Tuple[Handler, ...]] = {}
        self._any: Tuple[AnyHandler, ...] = ()
        self._lock = Lock()

    def subscribe(self, event: str, handler: Handler) -> Unsubscribe:
        with self._lock:
            self._handlers[event] = self._handlers.get(event, ()) + (handler,)
        return lambda: self._remove(event, handler)

    def subscribe_all(self, handler: AnyHandler) -> Unsubscribe:
        with self._lock:
            self._any = self._any + (handler,)
        return lambda: self._remove_any(handler)

    def _remove_any(self, handler: AnyHandler) -> None:
        with self._lock:
            self._any = tuple(h for h in self._any if h is not handler)

    def _remove(self, event: str, handler: Handler) -> None:
        with self._lock:
            current = self._handlers.get(event, ())
            if handler in current:
                idx = current.index(handler)
                self._handlers[event] = current[:idx] + current[idx + 1 :]

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        payload.setdefault("ts", time())
        metrics.inc("events_emitted_total", {"event": event})
        for handler in self._handlers.get(event, ()):
            self._call(event, handler, dict(payload))
        for any_handler in self._any:
            self._call(event, any_handler, event, dict(payload))

    @staticmethod
    def _call(event: str, handler: Callable[..., None], *args: Any) -> None:
        try:
            handler(*args)
        except Exception:  # noqa: BLE001
            logger.exception("handler for %s raised", event)
            metrics.inc("handler_exceptions_total", {"event": event})

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()
            self._any = ()


_BUS = EventBus()


def subscribe(event: str, handler: Handler) -> Unsubscribe:
    return _BUS.subscribe(event, handler)


def subscribe_all(handler: AnyHandler) -> Unsubscribe:
    return _BUS.subscribe_all(handler)


def emit(event: str, payload: Dict[str, Any]) -> None:
    _BUS.emit(event, payload)


def reset_for_tests() -> None:  # pragma: no cover
    _BUS.clear()


__all__ = [
    "EventBus",
    "Handler",
    "AnyHandler",
    "emit",
    "subscribe",
    "subscribe_all",
    "reset_for_tests",
]
