"""
Regeneration service.

Purpose
-------
Bring a character's pools up to date with elapsed time. This is the
"regeneration tick" recompute trigger: when at least one interval has
elapsed, maxima are recomputed inside the same transaction before the tick
deltas are applied.

Every engine operation that reads balances (starting actions, using
consumables) regenerates first through `regenerate_in`, under the same pool
lock.

Configuration
-------------
    regeneration.tick_minutes
    regeneration.tick_amount
    regeneration.load_tick_amount
    regeneration.max_intervals
    regeneration.load_pools.<thermal|neural>.growth_per_action
    regeneration.load_pools.<thermal|neural>.decay
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from netrunner.core.logging import LogContext
from netrunner.domain.enums import LOAD_POOLS
from netrunner.domain.models.character import Character
from netrunner.domain.models.pools import PoolState
from netrunner.modules.regeneration.scheduler import (
    LoadPoolTuning,
    RegenerationResult,
    RegenerationScheduler,
    RegenerationSettings,
)
from netrunner.modules.shared import constants
from netrunner.modules.shared.base_service import BaseService, Clock
from netrunner.store.base import require_character, require_pools

if TYPE_CHECKING:
    from logging import Logger

    from netrunner.core.config.manager import ConfigManager
    from netrunner.core.event.bus import EventBus
    from netrunner.modules.stats.service import StatService
    from netrunner.store.base import EngineStore, EngineTransaction


class RegenerationService(BaseService):
    def __init__(
        self,
        store: EngineStore,
        stats: StatService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, clock)
        self.store = store
        self.stats = stats
        self.scheduler = RegenerationScheduler(self._load_settings())

    def _load_settings(self) -> RegenerationSettings:
        tick_amount = self.get_int("regeneration.tick_amount", constants.TICK_AMOUNT)
        load_tick_amount = self.get_int("regeneration.load_tick_amount", constants.LOAD_TICK_AMOUNT)
        load_pools = {
            pool: LoadPoolTuning(
                growth_per_action=self.get_int(
                    f"regeneration.load_pools.{pool.value}.growth_per_action", load_tick_amount
                ),
                decay=self.get_int(f"regeneration.load_pools.{pool.value}.decay", tick_amount),
            )
            for pool in LOAD_POOLS
        }
        return RegenerationSettings(
            tick=timedelta(minutes=self.get_int("regeneration.tick_minutes", constants.TICK_MINUTES)),
            tick_amount=tick_amount,
            max_intervals=self.get_int("regeneration.max_intervals", constants.MAX_INTERVALS),
            load_pools=load_pools,
        )

    async def regenerate(self, character_id: int) -> RegenerationResult:
        """
        Regenerate one character's pools in their own transaction.

        Zero elapsed intervals write nothing.
        """
        with LogContext(character_id=character_id, operation="regenerate"):
            try:
                async with self.store.transaction() as tx:
                    pools = await require_pools(tx, character_id)
                    character = await require_character(tx, character_id)
                    result = await self.regenerate_in(tx, character, pools)
                    if result.needs_write:
                        await tx.save_pools(pools)

                if result.intervals:
                    self.log.info(
                        "Pools regenerated",
                        extra={
                            "character_id": character_id,
                            "intervals": result.intervals,
                            "active_load_actions": result.active_load_actions,
                        },
                    )
                return result

            except Exception as e:
                self.log_error("regenerate", e, character_id=character_id)
                raise

    async def regenerate_in(
        self,
        tx: EngineTransaction,
        character: Character,
        pools: PoolState,
    ) -> RegenerationResult:
        """
        Regenerate `pools` (already locked) in place.

        The caller saves `pools` when the result carries intervals or a reset
        checkpoint.
        """
        now = self.now()
        active = await tx.count_active_load_actions(character.id, now)
        plan = self.scheduler.plan(pools.last_regeneration, now, active)

        if plan.has_effect:
            await self.stats.recompute_in(tx, character, pools)

        result = self.scheduler.apply(pools, plan, now)
        if plan.reset_checkpoint:
            self.log.debug(
                "Regeneration checkpoint reset",
                extra={"character_id": character.id, "checkpoint": now.isoformat()},
            )
        return result
