"""
Loadout service.

Purpose
-------
Equip, unequip and upgrade hardware, and equip or unequip amplifiers. Every
change is an equip-change recompute trigger: maxima are re-derived and
current pool values capped in the same transaction.

Rules
-----
- one hardware item at a time; swapping or removing it auto-unequips
  amplifiers above the new tier (all of them when hardware is removed)
- amplifiers need hardware, may not exceed its tier, and fill at most
  `equipment.max_amplifiers` slots
- equipping an amplifier that is already equipped changes nothing
- upgrades that would pass `equipment.max_upgrade_level` are rejected

Events
------
- loadout.changed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

from netrunner.core.logging import LogContext
from netrunner.domain.models.base import validate_positive
from netrunner.domain.models.equipment import AmplifierItem, Loadout
from netrunner.modules.shared import constants
from netrunner.modules.shared.base_service import BaseService, Clock
from netrunner.modules.shared.exceptions import InvalidOperationError, NotFoundError
from netrunner.store.base import require_character, require_pools

if TYPE_CHECKING:
    from logging import Logger

    from netrunner.core.config.manager import ConfigManager
    from netrunner.core.event.bus import EventBus
    from netrunner.modules.stats.calculator import DerivedStats
    from netrunner.modules.stats.service import StatService
    from netrunner.store.base import EngineStore, EngineTransaction


LoadoutMutation = Callable[["EngineTransaction", Loadout], Awaitable[Optional[List[AmplifierItem]]]]


@dataclass(frozen=True)
class LoadoutChange:
    operation: str
    changed: bool
    hardware_id: Optional[int]
    amplifier_ids: List[int]
    removed_amplifier_ids: List[int] = field(default_factory=list)
    maxima: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "changed": self.changed,
            "hardware_id": self.hardware_id,
            "amplifier_ids": list(self.amplifier_ids),
            "removed_amplifier_ids": list(self.removed_amplifier_ids),
            "maxima": dict(self.maxima),
        }


class LoadoutService(BaseService):
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

    @property
    def max_amplifiers(self) -> int:
        return self.get_int("equipment.max_amplifiers", constants.MAX_AMPLIFIERS)

    @property
    def max_upgrade_level(self) -> int:
        return self.get_int("equipment.max_upgrade_level", constants.MAX_UPGRADE_LEVEL)

    # ------------------------------------------------------------------ #
    # Hardware
    # ------------------------------------------------------------------ #

    async def equip_hardware(self, character_id: int, hardware_id: int) -> LoadoutChange:
        async def change(tx: EngineTransaction, loadout: Loadout) -> List[AmplifierItem]:
            hardware = await tx.get_hardware(character_id, hardware_id)
            if hardware is None:
                raise NotFoundError("HardwareItem", hardware_id)
            return loadout.equip_hardware(hardware)

        return await self._apply(character_id, "equip_hardware", change)

    async def unequip_hardware(self, character_id: int) -> LoadoutChange:
        async def change(tx: EngineTransaction, loadout: Loadout) -> List[AmplifierItem]:
            return loadout.unequip_hardware()

        return await self._apply(character_id, "unequip_hardware", change)

    async def upgrade_hardware(self, character_id: int, hardware_id: int, levels: int = 1) -> LoadoutChange:
        """
        Raise an owned hardware item's upgrade level.

        The item need not be equipped; the recompute runs either way.
        """
        validate_positive(levels, "levels")
        cap = self.max_upgrade_level

        async def change(tx: EngineTransaction, loadout: Loadout) -> List[AmplifierItem]:
            hardware = await tx.get_hardware(character_id, hardware_id)
            if hardware is None:
                raise NotFoundError("HardwareItem", hardware_id)
            if hardware.upgrade_level + levels > cap:
                raise InvalidOperationError(
                    "upgrade_hardware",
                    f"upgrade level {hardware.upgrade_level + levels} exceeds maximum {cap}",
                )
            hardware.upgrade_level += levels
            await tx.save_hardware(character_id, hardware)
            if loadout.hardware is not None and loadout.hardware.id == hardware_id:
                loadout.hardware = hardware
            return []

        return await self._apply(character_id, "upgrade_hardware", change)

    # ------------------------------------------------------------------ #
    # Amplifiers
    # ------------------------------------------------------------------ #

    async def equip_amplifier(self, character_id: int, amplifier_id: int) -> LoadoutChange:
        max_slots = self.max_amplifiers

        async def change(tx: EngineTransaction, loadout: Loadout) -> Optional[List[AmplifierItem]]:
            amplifier = await tx.get_amplifier(character_id, amplifier_id)
            if amplifier is None:
                raise NotFoundError("AmplifierItem", amplifier_id)
            if not loadout.equip_amplifier(amplifier, max_slots):
                return None
            return []

        return await self._apply(character_id, "equip_amplifier", change)

    async def unequip_amplifier(self, character_id: int, amplifier_id: int) -> LoadoutChange:
        async def change(tx: EngineTransaction, loadout: Loadout) -> List[AmplifierItem]:
            loadout.unequip_amplifier(amplifier_id)
            return []

        return await self._apply(character_id, "unequip_amplifier", change)

    # ------------------------------------------------------------------ #
    # Shared flow
    # ------------------------------------------------------------------ #

    async def _apply(self, character_id: int, operation: str, change: LoadoutMutation) -> LoadoutChange:
        """
        Run one loadout mutation and the recompute in a single transaction.

        `change` returns the auto-unequipped amplifiers, or None when the
        request was a no-op (nothing is written and no event is emitted).
        """
        with LogContext(character_id=character_id, operation=operation):
            try:
                async with self.store.transaction() as tx:
                    pools = await require_pools(tx, character_id)
                    character = await require_character(tx, character_id)
                    loadout = await tx.get_loadout(character_id)

                    removed = await change(tx, loadout)
                    if removed is None:
                        return self._describe(operation, False, loadout, [], None)

                    await tx.save_loadout(loadout)
                    stats = await self.stats.recompute_in(tx, character, pools, loadout)
                    await tx.save_pools(pools)

                result = self._describe(operation, True, loadout, removed, stats)
                await self.emit_event("loadout.changed", {"character_id": character_id, **result.to_dict()})
                self.log.info(
                    "Loadout changed",
                    extra={"character_id": character_id, **result.to_dict(), "success": True},
                )
                return result

            except Exception as e:
                self.log_error(operation, e, character_id=character_id)
                raise

    @staticmethod
    def _describe(
        operation: str,
        changed: bool,
        loadout: Loadout,
        removed: List[AmplifierItem],
        stats: Optional[DerivedStats],
    ) -> LoadoutChange:
        return LoadoutChange(
            operation=operation,
            changed=changed,
            hardware_id=loadout.hardware.id if loadout.hardware else None,
            amplifier_ids=[amp.id for amp in loadout.amplifiers],
            removed_amplifier_ids=[amp.id for amp in removed],
            maxima={pool.value: value for pool, value in stats.maxima.items()} if stats else {},
        )
