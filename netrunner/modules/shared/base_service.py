"""
Base Service Foundation

Purpose
-------
Common base for the engine's services. Services hold the game rules that
span several domain models, run them inside one store transaction, and
publish domain events once the transaction has committed.

Design Notes
------------
This base class provides:
- Typed config reads (get_int, get_float)
- Event emission, including draining domain events recorded on aggregates
- Structured error logging (`log_error`)
- Injectable clock

What this class does NOT do:
- Open transactions (each service receives its store explicitly)
- Contain game-specific logic

Usage
-----
    class RegenerationService(BaseService):
        def __init__(self, store, stats, config_manager, event_bus, logger):
            super().__init__(config_manager, event_bus, logger)
            self.store = store
            self.stats = stats
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Optional

from netrunner.domain.models.base import utc_now

if TYPE_CHECKING:
    from logging import Logger

    from netrunner.core.config.manager import ConfigManager
    from netrunner.core.event.bus import EventBus
    from netrunner.domain.models.base import DomainEvent

Clock = Callable[[], datetime]


class BaseService:
    """
    Base class for all engine services.

    Args:
        config_manager: Game balance configuration
        event_bus: Event bus for cross-module notifications
        logger: Structured logger instance
        clock: Returns the current UTC time; overridable in tests
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger
        self._clock: Clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    def get_int(self, key: str, default: int) -> int:
        return self._config.get_int(key, default)

    def get_float(self, key: str, default: float) -> float:
        return self._config.get_float(key, default)

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Publish a domain event on the bus."""
        await self._events.publish(event_type, {**data, **(context or {})})

    async def emit_domain_events(self, events: Iterable[DomainEvent]) -> None:
        """Publish events drained from aggregates after commit."""
        for event in events:
            await self.emit_event(event.event_name, event.payload)

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        """Log a failed operation with its traceback. Callers re-raise."""
        self.log.error(
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
            exc_info=True,
        )
