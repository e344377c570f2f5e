"""Impersonation lifecycle events and a fire-and-forget dispatcher."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

__all__ = [
    "EventDispatcher",
    "ImpersonationStarted",
    "ImpersonationStopped",
]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImpersonationStarted:
    impersonator: Any
    impersonated: Any
    guard_name: str


@dataclass(frozen=True)
class ImpersonationStopped:
    impersonator: Any
    impersonated: Any
    guard_name: str


Listener = Callable[[Any], None]


class EventDispatcher:
    """
    Delivers events to listeners registered per event class.

    A listener that raises is logged and skipped; it never undoes the
    transition that produced the event.

    Example:
        events = EventDispatcher()
        events.listen(ImpersonationStarted, audit_log.record)
    """

    def __init__(self) -> None:
        self._listeners: dict[type, list[Listener]] = defaultdict(list)

    def listen(self, event_type: type, listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def listeners_for(self, event_type: type) -> list[Listener]:
        return list(self._listeners.get(event_type, ()))

    def dispatch(self, event: Any) -> None:
        for listener in self.listeners_for(type(event)):
            try:
                listener(event)
            except Exception:
                log.exception(
                    "Listener %r failed for %s", listener, type(event).__name__
                )
