"""
Service Container

Purpose
-------
Wire the engine's services around one store, one ConfigManager and one
EventBus, in dependency order, and expose them as properties.

Responsibilities
----------------
- Build every engine service with constructor injection
- Share one clock and one random source across services
- Minimal observability (init timing, health snapshot)

Non-Responsibilities
--------------------
- Opening or closing the store / database (owned by the caller)
- Business logic

Initialization Order
--------------------
    1. StatService
    2. RegenerationService, ProgressionService, LoadoutService
    3. ConsumableService
    4. OutcomeResolver + ActionSlotManager

Usage
-----
    container = ServiceContainer(store, config_manager, event_bus)
    container.initialize()
    await container.actions.start_action(7, ActionKind.ZONE_SCOUT)
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, TypeVar

from netrunner.core.logging.logger import get_logger
from netrunner.modules.actions.slot_manager import ActionSlotManager
from netrunner.modules.consumables.service import ConsumableService
from netrunner.modules.loadout.service import LoadoutService
from netrunner.modules.outcome.resolver import OutcomeResolver, OutcomeSettings, RandomSource
from netrunner.modules.progression.service import ProgressionService
from netrunner.modules.regeneration.service import RegenerationService
from netrunner.modules.stats.service import StatService

if TYPE_CHECKING:
    from logging import Logger

    from netrunner.core.config.manager import ConfigManager
    from netrunner.core.event.bus import EventBus
    from netrunner.modules.shared.base_service import Clock
    from netrunner.store.base import EngineStore

S = TypeVar("S")


class ServiceContainer:
    def __init__(
        self,
        store: EngineStore,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Optional[Logger] = None,
        rng: Optional[RandomSource] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._logger = logger or get_logger(__name__)
        self._rng = rng
        self._clock = clock

        self._services: Dict[str, Any] = {}
        self._service_init_times: Dict[str, float] = {}
        self._initialized = False

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def initialize(self) -> None:
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        init_start = time.perf_counter()
        try:
            stats = self._create("stats", lambda log: StatService(
                self._store, self._config_manager, self._event_bus, log, clock=self._clock
            ), StatService)
            regeneration = self._create("regeneration", lambda log: RegenerationService(
                self._store, stats, self._config_manager, self._event_bus, log, clock=self._clock
            ), RegenerationService)
            progression = self._create("progression", lambda log: ProgressionService(
                self._store, stats, self._config_manager, self._event_bus, log, clock=self._clock
            ), ProgressionService)
            self._create("loadout", lambda log: LoadoutService(
                self._store, stats, self._config_manager, self._event_bus, log, clock=self._clock
            ), LoadoutService)
            self._create("consumables", lambda log: ConsumableService(
                self._store, regeneration, self._config_manager, self._event_bus, log, clock=self._clock
            ), ConsumableService)

            resolver = OutcomeResolver(OutcomeSettings.from_config(self._config_manager), rng=self._rng)
            self._create("actions", lambda log: ActionSlotManager(
                self._store,
                stats,
                regeneration,
                progression,
                self._config_manager,
                self._event_bus,
                log,
                resolver=resolver,
                clock=self._clock,
            ), ActionSlotManager)

        except Exception as e:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(e)},
            )
            raise

        self._initialized = True
        self._logger.info(
            "Service container initialized",
            extra={
                "total_time_seconds": round(time.perf_counter() - init_start, 3),
                "service_count": len(self._services),
            },
        )

    def _create(self, name: str, factory: Callable[[Logger], S], cls: type) -> S:
        start = time.perf_counter()
        instance = factory(get_logger(f"{cls.__module__}.{cls.__name__}"))
        self._services[name] = instance
        self._service_init_times[name] = time.perf_counter() - start
        self._logger.debug(f"Initialized {name} in {self._service_init_times[name]:.3f}s")
        return instance

    def health_check(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "service_count": len(self._services),
            "services": sorted(self._services),
        }

    def _get(self, name: str) -> Any:
        if not self._initialized:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._services[name]

    # ========================================================================
    # Services
    # ========================================================================

    @property
    def stats(self) -> StatService:
        return self._get("stats")

    @property
    def regeneration(self) -> RegenerationService:
        return self._get("regeneration")

    @property
    def progression(self) -> ProgressionService:
        return self._get("progression")

    @property
    def loadout(self) -> LoadoutService:
        return self._get("loadout")

    @property
    def consumables(self) -> ConsumableService:
        return self._get("consumables")

    @property
    def actions(self) -> ActionSlotManager:
        return self._get("actions")
