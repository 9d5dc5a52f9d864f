"""
Event Bus - Synchronous publish/subscribe hub.

Producers (clock, status store, memory ledger) publish named events;
consumers (reaction rules, notification queues) subscribe by name.

Dispatch rules:
- publish() calls every current subscriber of the name, in subscription
  order, before returning.
- Handlers may publish in turn. Nested publishes complete before the next
  handler of the outer event runs (depth-first).
- A handler that raises is logged and skipped; remaining handlers still run.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Any, Callable, TypeAlias
import logging

from ..log import get_logger

logger = get_logger(__name__)

EventPayload: TypeAlias = dict[str, Any]
EventHandler: TypeAlias = Callable[[EventPayload], None]
EventObserver: TypeAlias = Callable[[str, EventPayload], None]


class EventName:
    """Event names published by the engine."""
    # Status store
    STATUS_CHANGED = "statusChanged"
    RELATIONSHIP_CHANGED = "relationshipChanged"

    # Clock
    TIME_CONSUMED = "timeConsumed"
    TIME_DEPLETED = "timeDepleted"
    TIME_CHANGED = "timeChanged"
    TIME_LOW = "timeLow"
    PHASE_CHANGED = "phaseChanged"
    DAY_ADVANCED = "dayAdvanced"
    DAY_LIMIT_EXCEEDED = "dayLimitExceeded"

    # Memory ledger
    MEMORY_STARTED = "memoryStarted"
    MEMORY_UNLOCKED = "memoryUnlocked"
    MEMORY_OFFERED = "memoryOffered"

    # Orchestrator
    DIALOGUE_CHOICE = "dialogueChoice"
    ENDING_TRIGGERED = "endingTriggered"
    HIGH_FATIGUE = "highFatigue"
    HIGH_CORRUPTION = "highCorruption"
    LOW_HOPE = "lowHope"


class EventBus:
    """In-process, single-threaded publish/subscribe hub."""

    def __init__(self, debug: bool = False):
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self._observers: list[EventObserver] = []
        self.debug = debug
        self.failures = 0

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Register a handler for an event name. Duplicate registrations are ignored."""
        if handler not in self._subscribers[event_name]:
            self._subscribers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        handlers = self._subscribers.get(event_name)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def observe(self, observer: EventObserver) -> None:
        """
        Register an observer that sees every event before its subscribers run.

        Used for tracing; observers receive (event_name, payload).
        """
        if observer not in self._observers:
            self._observers.append(observer)

    def unobserve(self, observer: EventObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def publish(self, event_name: str, payload: EventPayload | None = None) -> int:
        """
        Publish an event to all current subscribers.

        Returns the number of handlers that completed without raising.
        """
        payload = payload if payload is not None else {}
        # Snapshot: subscriptions made during dispatch apply to the next publish
        handlers = list(self._subscribers.get(event_name, []))

        level = logging.INFO if self.debug else logging.DEBUG
        logger.log(level, "Event %s %s (%d handler(s))", event_name, payload, len(handlers))

        # Observers first, so a trace lists events in publish order
        for observer in list(self._observers):
            self._safe_dispatch(event_name, lambda p, o=observer: o(event_name, p), payload)

        completed = 0
        for handler in handlers:
            if self._safe_dispatch(event_name, handler, payload):
                completed += 1

        return completed

    def _safe_dispatch(
        self,
        event_name: str,
        handler: EventHandler,
        payload: EventPayload,
    ) -> bool:
        """Run one handler, isolating its failure from the rest of the dispatch."""
        try:
            handler(payload)
            return True
        except Exception:
            self.failures += 1
            handler_name = getattr(handler, "__qualname__", repr(handler))
            logger.exception("Handler %s failed for event %s", handler_name, event_name)
            return False

    def subscriber_count(self, event_name: str) -> int:
        return len(self._subscribers.get(event_name, []))

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def clear(self) -> None:
        """Remove all subscriptions and observers."""
        self._subscribers.clear()
        self._observers.clear()
