"""
Consumable service.

Purpose
-------
Apply instant pool effects from a consumable item. Effects come from a
closed set (`ConsumableEffectKind`): restore_* and increase_* add to their
pool, reduce_* subtract; every result is clamped to [0, max].

Pools are regenerated first under the same lock so an effect never lands on
stale balances. Inventory bookkeeping (removing the used item) belongs to
the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple, Union

from netrunner.core.logging import LogContext
from netrunner.domain.enums import ConsumableEffectKind, PoolName
from netrunner.domain.models.base import validate_non_negative
from netrunner.modules.shared.base_service import BaseService, Clock
from netrunner.modules.shared.exceptions import ValidationError
from netrunner.store.base import require_character, require_pools

if TYPE_CHECKING:
    from logging import Logger

    from netrunner.core.config.manager import ConfigManager
    from netrunner.core.event.bus import EventBus
    from netrunner.modules.regeneration.service import RegenerationService
    from netrunner.store.base import EngineStore


@dataclass(frozen=True)
class ConsumableEffect:
    kind: ConsumableEffectKind
    amount: int

    def __post_init__(self) -> None:
        validate_non_negative(self.amount, "amount")

    @property
    def pool(self) -> PoolName:
        return self.kind.pool

    @property
    def delta(self) -> int:
        return self.kind.sign * self.amount

    @classmethod
    def parse(cls, kind: Union[ConsumableEffectKind, str], amount: int) -> "ConsumableEffect":
        parsed = ConsumableEffectKind.parse(kind)
        if parsed is None:
            raise ValidationError("effect", f"unknown consumable effect {kind!r}")
        return cls(parsed, amount)


@dataclass(frozen=True)
class ConsumableResult:
    before: Dict[PoolName, int]
    after: Dict[PoolName, int]

    @property
    def changes(self) -> Dict[PoolName, int]:
        return {pool: self.after[pool] - self.before[pool] for pool in self.after}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "before": {pool.value: value for pool, value in self.before.items()},
            "after": {pool.value: value for pool, value in self.after.items()},
        }


EffectInput = Union[ConsumableEffect, Tuple[Union[ConsumableEffectKind, str], int]]


class ConsumableService(BaseService):
    def __init__(
        self,
        store: EngineStore,
        regeneration: RegenerationService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, clock)
        self.store = store
        self.regeneration = regeneration

    async def use_consumable(self, character_id: int, effects: Iterable[EffectInput]) -> ConsumableResult:
        """
        Apply `effects` to the character's pools.

        Returns the values of the affected pools before and after.

        Raises:
            ValidationError: Unknown effect or negative amount
            NotFoundError: Character or pools missing
        """
        parsed = self._parse_effects(effects)
        if not parsed:
            raise ValidationError("effects", "a consumable needs at least one effect")

        with LogContext(character_id=character_id, operation="use_consumable"):
            try:
                async with self.store.transaction() as tx:
                    pools = await require_pools(tx, character_id)
                    character = await require_character(tx, character_id)
                    await self.regeneration.regenerate_in(tx, character, pools)

                    touched = list(dict.fromkeys(effect.pool for effect in parsed))
                    before = {pool: pools.value(pool) for pool in touched}
                    for effect in parsed:
                        pools.apply_delta(effect.pool, effect.delta)
                    after = {pool: pools.value(pool) for pool in touched}

                    await tx.save_pools(pools)

                result = ConsumableResult(before=before, after=after)
                self.log.info(
                    "Consumable used",
                    extra={"character_id": character_id, **result.to_dict(), "success": True},
                )
                return result

            except Exception as e:
                self.log_error("use_consumable", e, character_id=character_id)
                raise

    @staticmethod
    def _parse_effects(effects: Iterable[EffectInput]) -> List[ConsumableEffect]:
        parsed: List[ConsumableEffect] = []
        for effect in effects:
            if isinstance(effect, ConsumableEffect):
                parsed.append(effect)
            else:
                kind, amount = effect
                parsed.append(ConsumableEffect.parse(kind, amount))
        return parsed
