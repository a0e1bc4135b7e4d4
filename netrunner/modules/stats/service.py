"""
Stat service.

Purpose
-------
Owns the recompute operation: derive tech stats and pool maxima for a
character, write the display snapshot, cap every pool at its new max and
persist the pools.

Recompute runs at three triggers only: an equip change (LoadoutService), a
level or attribute change (ProgressionService) and a regeneration tick
(RegenerationService). Those services call `recompute_in` inside their own
transaction; `recompute` is the standalone entry point.

Dependencies
------------
- EngineStore: characters, baselines, loadouts, pools
- DerivedStatCalculator: pure stat math
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from netrunner.core.logging import LogContext
from netrunner.domain.models.character import Character
from netrunner.domain.models.equipment import Loadout
from netrunner.domain.models.pools import PoolState
from netrunner.modules.shared.base_service import BaseService, Clock
from netrunner.modules.stats.calculator import DerivedStatCalculator, DerivedStats
from netrunner.store.base import require_baseline, require_character, require_pools

if TYPE_CHECKING:
    from logging import Logger

    from netrunner.core.config.manager import ConfigManager
    from netrunner.core.event.bus import EventBus
    from netrunner.store.base import EngineStore, EngineTransaction


class StatService(BaseService):
    def __init__(
        self,
        store: EngineStore,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        calculator: Optional[DerivedStatCalculator] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, clock)
        self.store = store
        self.calculator = calculator or DerivedStatCalculator()

    async def get_stats(self, character_id: int) -> DerivedStats:
        """Compute current derived stats without writing anything."""
        async with self.store.transaction() as tx:
            return await self.calculate_in(tx, await require_character(tx, character_id))

    async def recompute(self, character_id: int) -> DerivedStats:
        """Recompute and persist maxima for one character."""
        with LogContext(character_id=character_id, operation="recompute_stats"):
            try:
                async with self.store.transaction() as tx:
                    character = await require_character(tx, character_id)
                    pools = await require_pools(tx, character_id)
                    stats = await self.recompute_in(tx, character, pools)
                    await tx.save_pools(pools)

                self.log.info(
                    "Stats recomputed",
                    extra={"character_id": character_id, "maxima": stats.to_snapshot()["maxima"]},
                )
                return stats

            except Exception as e:
                self.log_error("recompute_stats", e, character_id=character_id)
                raise

    async def calculate_in(
        self,
        tx: EngineTransaction,
        character: Character,
        loadout: Optional[Loadout] = None,
    ) -> DerivedStats:
        baseline = await require_baseline(tx, character.class_id)
        if loadout is None:
            loadout = await tx.get_loadout(character.id)
        return self.calculator.calculate(character, baseline, loadout)

    async def recompute_in(
        self,
        tx: EngineTransaction,
        character: Character,
        pools: PoolState,
        loadout: Optional[Loadout] = None,
    ) -> DerivedStats:
        """
        Apply fresh maxima and snapshot to `pools` (already locked).

        The caller saves `pools` before its transaction ends.
        """
        stats = await self.calculate_in(tx, character, loadout)
        capped = pools.set_maxima(stats.maxima)
        pools.stat_snapshot = stats.to_snapshot()

        if capped:
            self.log.debug(
                "Pools capped at new maxima",
                extra={
                    "character_id": character.id,
                    "capped": {pool.value: amount for pool, amount in capped.items()},
                },
            )
        return stats
