"""
Progression service.

Purpose
-------
Experience, level-ups and attribute point allocation. Both level changes
and attribute changes are recompute triggers: pool maxima are re-derived in
the same transaction.

Leveling
--------
Cumulative curve: reaching level L+1 needs total XP of at least
sum(floor(base_xp * growth^(n-1)) for n in 1..L). XP is never consumed.
Each level gained grants `points_per_level` unallocated points.

Configuration
-------------
    progression.base_xp
    progression.growth
    progression.max_level
    progression.points_per_level

Events
------
- character.leveled_up
- character.points_allocated
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Union

from netrunner.core.logging import LogContext
from netrunner.domain.enums import Attribute
from netrunner.domain.models.character import Attributes, Character, LevelCurve
from netrunner.domain.models.pools import PoolState
from netrunner.modules.shared import constants
from netrunner.modules.shared.base_service import BaseService, Clock
from netrunner.modules.shared.exceptions import ValidationError
from netrunner.store.base import require_character, require_pools

if TYPE_CHECKING:
    from logging import Logger

    from netrunner.core.config.manager import ConfigManager
    from netrunner.core.event.bus import EventBus
    from netrunner.modules.stats.service import StatService
    from netrunner.store.base import EngineStore, EngineTransaction


@dataclass(frozen=True)
class ExperienceAward:
    xp_awarded: int
    experience: int
    level: int
    levels_gained: int
    unallocated_points: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xp_awarded": self.xp_awarded,
            "experience": self.experience,
            "level": self.level,
            "levels_gained": self.levels_gained,
            "unallocated_points": self.unallocated_points,
        }


class ProgressionService(BaseService):
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
    def curve(self) -> LevelCurve:
        return LevelCurve(
            base_xp=self.get_int("progression.base_xp", constants.BASE_XP),
            growth=self.get_float("progression.growth", constants.XP_GROWTH),
            max_level=self.get_int("progression.max_level", constants.MAX_LEVEL),
            points_per_level=self.get_int("progression.points_per_level", constants.POINTS_PER_LEVEL),
        )

    # ------------------------------------------------------------------ #
    # Experience
    # ------------------------------------------------------------------ #

    async def award_experience(self, character_id: int, xp: int) -> ExperienceAward:
        """Add XP to a character, applying any level-ups."""
        with LogContext(character_id=character_id, operation="award_experience"):
            try:
                async with self.store.transaction() as tx:
                    pools = await require_pools(tx, character_id)
                    character = await require_character(tx, character_id, for_update=True)
                    award = await self.award_in(tx, character, pools, xp)
                    await tx.save_character(character)
                    await tx.save_pools(pools)

                await self.emit_domain_events(character.clear_domain_events())
                self.log.info(
                    "Experience awarded",
                    extra={"character_id": character_id, **award.to_dict(), "success": True},
                )
                return award

            except Exception as e:
                self.log_error("award_experience", e, character_id=character_id, xp=xp)
                raise

    async def award_in(
        self,
        tx: EngineTransaction,
        character: Character,
        pools: PoolState,
        xp: int,
    ) -> ExperienceAward:
        """
        Apply XP to `character` in place, recomputing maxima on level change.

        The caller saves the character and pools, then publishes the
        character's domain events after commit.
        """
        self.validate_xp(xp)
        gained = character.add_experience(xp, self.curve)
        if gained:
            await self.stats.recompute_in(tx, character, pools)
        return ExperienceAward(
            xp_awarded=xp,
            experience=character.experience,
            level=character.level,
            levels_gained=gained,
            unallocated_points=character.unallocated_points,
        )

    @staticmethod
    def validate_xp(xp: int) -> None:
        if isinstance(xp, bool) or not isinstance(xp, int) or xp < 0:
            raise ValidationError("xp", f"xp must be a non-negative integer, got {xp!r}")

    # ------------------------------------------------------------------ #
    # Attribute allocation
    # ------------------------------------------------------------------ #

    async def allocate_points(
        self,
        character_id: int,
        allocations: Mapping[Union[Attribute, str], int],
    ) -> Attributes:
        """
        Spend unallocated points on attributes and recompute maxima.

        Raises:
            ValidationError: Unknown attribute or non-positive amount
            InsufficientResourcesError: Total exceeds unallocated points
        """
        parsed = self._parse_allocations(allocations)

        with LogContext(character_id=character_id, operation="allocate_points"):
            try:
                async with self.store.transaction() as tx:
                    pools = await require_pools(tx, character_id)
                    character = await require_character(tx, character_id, for_update=True)
                    attributes = character.allocate_points(parsed)
                    await self.stats.recompute_in(tx, character, pools)
                    await tx.save_character(character)
                    await tx.save_pools(pools)

                await self.emit_domain_events(character.clear_domain_events())
                self.log.info(
                    "Attribute points allocated",
                    extra={
                        "character_id": character_id,
                        "allocations": {attr.value: amount for attr, amount in parsed.items()},
                        "remaining_points": character.unallocated_points,
                        "success": True,
                    },
                )
                return attributes

            except Exception as e:
                self.log_error("allocate_points", e, character_id=character_id)
                raise

    @staticmethod
    def _parse_allocations(allocations: Mapping[Union[Attribute, str], int]) -> Dict[Attribute, int]:
        parsed: Dict[Attribute, int] = {}
        for key, amount in allocations.items():
            attribute = Attribute.parse(key)
            if attribute is None:
                raise ValidationError("allocations", f"unknown attribute {key!r}")
            parsed[attribute] = parsed.get(attribute, 0) + amount
        return parsed
