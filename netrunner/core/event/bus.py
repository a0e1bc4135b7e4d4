"""
EventBus: in-process publish/subscribe for engine domain events.

Purpose
-------
Let services announce state changes ("action.started", "action.resolved",
"loadout.changed", "character.leveled_up", ...) without knowing who listens.
Host applications subscribe to drive notifications, analytics or UI refresh.

Responsibilities
----------------
- Register listeners by exact event name or `prefix.*` wildcard (`*` = all).
- Deliver payloads to listeners in subscription order.
- Support both sync and async callbacks.
- Isolate listener failures: one failing listener is logged and does not
  stop delivery to the rest or propagate into the publishing service.

Non-Responsibilities
--------------------
- Durable delivery or replay. Events are published after the store
  transaction commits; a crash between commit and publish loses the event.

Thread Safety
-------------
Designed for single-threaded asyncio usage. All methods must be called from
the same event loop.

Examples
--------
>>> bus = EventBus()
>>> bus.subscribe("action.*", on_action_event)
>>> await bus.publish("action.resolved", {"action_id": 12, "status": "success"})
"""

from __future__ import annotations

import inspect
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from netrunner.core.logging.logger import get_logger

logger = get_logger(__name__)

EventPayload = Dict[str, Any]
CallbackType = Callable[[EventPayload], Union[Any, Awaitable[Any]]]


@dataclass(slots=True)
class EventListener:
    event_name: str
    callback: CallbackType
    identifier: str
    once: bool = False

    def matches(self, event_name: str) -> bool:
        if self.event_name == "*" or self.event_name == event_name:
            return True
        if self.event_name.endswith(".*"):
            return event_name.startswith(self.event_name[:-1])
        return False


class EventBus:
    """Instance-scoped event bus; create one per engine wiring."""

    def __init__(self) -> None:
        self._listeners: List[EventListener] = []
        self._published = 0
        self._listener_errors = 0

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event name or wildcard pattern.

        Returns
        -------
        str:
            The listener identifier (for unsubscribing later).
        """
        if not callable(callback):
            raise ValueError(f"Listener for '{event_name}' is not callable")

        listener = EventListener(
            event_name=event_name,
            callback=callback,
            identifier=identifier or f"{getattr(callback, '__name__', 'listener')}-{uuid.uuid4().hex[:8]}",
            once=once,
        )
        self._listeners.append(listener)

        logger.debug(
            "EventBus: subscribed listener",
            extra={"event_name": event_name, "listener_id": listener.identifier, "once": once},
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        before = len(self._listeners)
        self._listeners = [
            listener
            for listener in self._listeners
            if not (listener.event_name == event_name and listener.identifier == identifier)
        ]
        removed = len(self._listeners) < before
        if removed:
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )
        return removed

    def clear(self) -> None:
        total = len(self._listeners)
        self._listeners.clear()
        logger.info("EventBus: cleared all listeners", extra={"previous_listener_count": total})

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> List[Any]:
        """
        Publish an event to all matching listeners.

        Returns the results of listeners that completed successfully.
        """
        self._published += 1

        listeners = [listener for listener in self._listeners if listener.matches(event_name)]
        if not listeners:
            logger.debug("EventBus: no listeners for event", extra={"event_name": event_name})
            return []

        # Prune once-listeners before delivery so re-entrant publishes skip them.
        once_ids = {id(listener) for listener in listeners if listener.once}
        if once_ids:
            self._listeners = [listener for listener in self._listeners if id(listener) not in once_ids]

        results: List[Any] = []
        for listener in listeners:
            try:
                result = listener.callback(data)
                if inspect.isawaitable(result):
                    result = await result
                results.append(result)
            except Exception as exc:
                self._listener_errors += 1
                logger.error(
                    "EventBus: listener failed",
                    extra={
                        "event_name": event_name,
                        "listener_id": listener.identifier,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )

        return results

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return len(self._listeners)
        return sum(1 for listener in self._listeners if listener.matches(event_name))

    def get_metrics(self) -> Dict[str, int]:
        return {
            "listeners": len(self._listeners),
            "published": self._published,
            "listener_errors": self._listener_errors,
        }
