"""
Outcome Resolver

Purpose
-------
Decide how a due action turns out: success or failure, the reward category
rolled from a weighted distribution, XP earned, the penalty vector on
failure and whether a critical failure surfaces an encounter.

The resolver only rolls and describes. ActionSlotManager applies the outcome
(pool changes, cooldown, XP) inside its transaction.

Success Model
-------------
Breach actions (the actions with a difficulty) roll against

    60 + decryption/10 + interface + cache/20
       - max(0, target_level - character_level) * 10
       - difficulty * 5

rounded half-up and clamped to [15, 95]. Success when
`rng.random() * 100 < rate`. Other actions always succeed.

Failure
-------
- critical when `rng.random() < critical_failure_chance` (0.15)
- penalty vector: stamina -10, consciousness -20, charge -15,
  neural +10, thermal +10
- XP = floor(base_xp * 0.25)
- critical failures surface an encounter
- a cooldown is written on the target

Randomness
----------
All rolls come from the injected `rng` (`random()` and `randint()`), which
defaults to `secrets.SystemRandom()`. Roll order: success, critical (failure
only), breach XP, reward category (success only).
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Protocol

from netrunner.core.logging import get_logger
from netrunner.domain.enums import (
    ActionKind,
    Attribute,
    DiscoveryBonus,
    PoolName,
    ResultStatus,
    RewardCategory,
    RiskLevel,
    TechStat,
)
from netrunner.domain.models.action import ActionContext, ActionRecord
from netrunner.domain.models.character import Character
from netrunner.modules.shared import constants, formulas

if TYPE_CHECKING:
    from netrunner.core.config.manager import ConfigManager
    from netrunner.modules.stats.calculator import DerivedStats

logger = get_logger(__name__)


class RandomSource(Protocol):
    def random(self) -> float: ...

    def randint(self, a: int, b: int) -> int: ...


# ============================================================================
# SETTINGS
# ============================================================================


@dataclass(frozen=True)
class SuccessModel:
    base: float = constants.SUCCESS_BASE
    decryption_divisor: float = constants.SUCCESS_DECRYPTION_DIVISOR
    cache_divisor: float = constants.SUCCESS_CACHE_DIVISOR
    level_penalty: float = constants.SUCCESS_LEVEL_PENALTY
    difficulty_penalty: float = constants.SUCCESS_DIFFICULTY_PENALTY
    floor: int = constants.SUCCESS_FLOOR
    ceiling: int = constants.SUCCESS_CEILING


@dataclass(frozen=True)
class RewardModel:
    """`mode` is "dynamic" (formula weights) or "fixed" (`fixed_weights`)."""

    mode: str = constants.REWARD_MODE
    base_discovery: int = constants.REWARD_BASE_DISCOVERY
    base_item: int = constants.REWARD_BASE_ITEM
    base_encounter: int = constants.REWARD_BASE_ENCOUNTER
    category_cap: int = constants.REWARD_CATEGORY_CAP
    fixed_weights: Mapping[RewardCategory, float] = field(
        default_factory=lambda: {
            RewardCategory(name): weight for name, weight in constants.FIXED_REWARD_WEIGHTS.items()
        }
    )


@dataclass(frozen=True)
class OutcomeSettings:
    success: SuccessModel = field(default_factory=SuccessModel)
    rewards: RewardModel = field(default_factory=RewardModel)
    critical_failure_chance: float = constants.CRITICAL_FAILURE_CHANCE
    failure_xp_fraction: float = constants.FAILURE_XP_FRACTION
    cooldown: timedelta = timedelta(seconds=constants.COOLDOWN_SECONDS)
    penalties: Mapping[PoolName, int] = field(
        default_factory=lambda: {PoolName(name): delta for name, delta in constants.FAILURE_PENALTIES.items()}
    )
    xp_rewards: Mapping[ActionKind, int] = field(
        default_factory=lambda: {ActionKind(name): xp for name, xp in constants.XP_REWARDS.items()}
    )
    breach_xp_min: int = constants.BREACH_XP_MIN
    breach_xp_max: int = constants.BREACH_XP_MAX

    @classmethod
    def from_config(cls, config: ConfigManager) -> "OutcomeSettings":
        """Read `outcome.*` keys, falling back to the constants."""
        penalties = config.get("outcome.failure.penalties", constants.FAILURE_PENALTIES)
        xp_rewards = config.get("outcome.xp.rewards", constants.XP_REWARDS)
        fixed = config.get("outcome.rewards.fixed_weights", constants.FIXED_REWARD_WEIGHTS)

        return cls(
            success=SuccessModel(
                base=config.get_float("outcome.success.base", constants.SUCCESS_BASE),
                decryption_divisor=config.get_float(
                    "outcome.success.decryption_divisor", constants.SUCCESS_DECRYPTION_DIVISOR
                ),
                cache_divisor=config.get_float("outcome.success.cache_divisor", constants.SUCCESS_CACHE_DIVISOR),
                level_penalty=config.get_float("outcome.success.level_penalty", constants.SUCCESS_LEVEL_PENALTY),
                difficulty_penalty=config.get_float(
                    "outcome.success.difficulty_penalty", constants.SUCCESS_DIFFICULTY_PENALTY
                ),
                floor=config.get_int("outcome.success.floor", constants.SUCCESS_FLOOR),
                ceiling=config.get_int("outcome.success.ceiling", constants.SUCCESS_CEILING),
            ),
            rewards=RewardModel(
                mode=str(config.get("outcome.rewards.mode", constants.REWARD_MODE)),
                base_discovery=config.get_int("outcome.rewards.base_discovery", constants.REWARD_BASE_DISCOVERY),
                base_item=config.get_int("outcome.rewards.base_item", constants.REWARD_BASE_ITEM),
                base_encounter=config.get_int("outcome.rewards.base_encounter", constants.REWARD_BASE_ENCOUNTER),
                category_cap=config.get_int("outcome.rewards.category_cap", constants.REWARD_CATEGORY_CAP),
                fixed_weights={RewardCategory(name): float(weight) for name, weight in fixed.items()},
            ),
            critical_failure_chance=config.get_float(
                "outcome.failure.critical_chance", constants.CRITICAL_FAILURE_CHANCE
            ),
            failure_xp_fraction=config.get_float("outcome.failure.xp_fraction", constants.FAILURE_XP_FRACTION),
            cooldown=timedelta(seconds=config.get_int("outcome.failure.cooldown_seconds", constants.COOLDOWN_SECONDS)),
            penalties={PoolName(name): int(delta) for name, delta in penalties.items()},
            xp_rewards={ActionKind(name): int(xp) for name, xp in xp_rewards.items()},
            breach_xp_min=config.get_int("outcome.xp.breach_min", constants.BREACH_XP_MIN),
            breach_xp_max=config.get_int("outcome.xp.breach_max", constants.BREACH_XP_MAX),
        )


# ============================================================================
# RESULTS
# ============================================================================


@dataclass(frozen=True)
class SuccessChance:
    rate: int
    risk: RiskLevel


@dataclass(frozen=True)
class Outcome:
    """
    Rolled outcome of one action.

    `penalties` is the unclamped vector to apply; the clamped changes that
    were actually applied are reported separately by the slot manager.
    """

    status: ResultStatus
    xp: int
    reward_category: Optional[RewardCategory] = None
    success_rate: Optional[int] = None
    risk_level: Optional[RiskLevel] = None
    critical: bool = False
    encounter: bool = False
    penalties: Mapping[PoolName, int] = field(default_factory=dict)
    reward_weights: Mapping[RewardCategory, float] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status is ResultStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "xp": self.xp,
            "reward_category": self.reward_category.value if self.reward_category else None,
            "success_rate": self.success_rate,
            "risk_level": self.risk_level.value if self.risk_level else None,
            "critical": self.critical,
            "encounter": self.encounter,
            "penalties": {pool.value: delta for pool, delta in self.penalties.items()},
            "reward_weights": {category.value: weight for category, weight in self.reward_weights.items()},
        }


# ============================================================================
# RESOLVER
# ============================================================================


class OutcomeResolver:
    def __init__(
        self,
        settings: Optional[OutcomeSettings] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.settings = settings or OutcomeSettings()
        self.rng: RandomSource = rng or secrets.SystemRandom()

    def success_chance(
        self,
        kind: ActionKind,
        context: ActionContext,
        character: Character,
        stats: DerivedStats,
    ) -> Optional[SuccessChance]:
        """Success rate and risk band, or None for actions that cannot fail."""
        if not kind.is_breach:
            return None

        model = self.settings.success
        rate = formulas.breach_success_rate(
            decryption=stats.tech_stat(TechStat.DECRYPTION),
            interface=character.attributes.get(Attribute.INTERFACE),
            cache=stats.tech_stat(TechStat.CACHE),
            character_level=character.level,
            target_level=context.target_level,
            difficulty=context.difficulty,
            base=model.base,
            decryption_divisor=model.decryption_divisor,
            cache_divisor=model.cache_divisor,
            level_penalty=model.level_penalty,
            difficulty_penalty=model.difficulty_penalty,
            floor=model.floor,
            ceiling=model.ceiling,
        )
        return SuccessChance(rate=rate, risk=formulas.risk_level(rate))

    def reward_weights(self, context: ActionContext, stats: DerivedStats) -> Dict[RewardCategory, float]:
        rewards = self.settings.rewards
        if rewards.mode == "fixed":
            return dict(rewards.fixed_weights)
        return dict(
            formulas.reward_weights(
                undiscovered_fraction=context.undiscovered_fraction,
                zone_bonus=stats.discovery.get(DiscoveryBonus.DISCOVERY_ZONE, 0),
                item_bonus=stats.discovery.get(DiscoveryBonus.DISCOVERY_ITEM, 0),
                base_discovery=rewards.base_discovery,
                base_item=rewards.base_item,
                base_encounter=rewards.base_encounter,
                category_cap=rewards.category_cap,
            )
        )

    def base_xp(self, kind: ActionKind) -> int:
        """Success-path XP; breaches draw uniformly from [min, max]."""
        if kind.is_breach:
            return self.rng.randint(self.settings.breach_xp_min, self.settings.breach_xp_max)
        return int(self.settings.xp_rewards.get(kind, 0))

    def roll_reward(self, weights: Mapping[RewardCategory, float]) -> RewardCategory:
        total = sum(weight for weight in weights.values() if weight > 0)
        return formulas.roll_weighted(weights, self.rng.random() * total)

    def resolve(self, action: ActionRecord, character: Character, stats: DerivedStats) -> Outcome:
        chance = self.success_chance(action.kind, action.context, character, stats)
        succeeded = chance is None or self.rng.random() * 100 < chance.rate
        rate = chance.rate if chance else None
        risk = chance.risk if chance else None

        if succeeded:
            xp = self.base_xp(action.kind)
            weights = self.reward_weights(action.context, stats)
            category = self.roll_reward(weights)
            return Outcome(
                status=ResultStatus.SUCCESS,
                xp=xp,
                reward_category=category,
                success_rate=rate,
                risk_level=risk,
                encounter=category is RewardCategory.ENCOUNTER,
                reward_weights=weights,
            )

        critical = self.rng.random() < self.settings.critical_failure_chance
        xp = formulas.failure_reward(self.base_xp(action.kind), self.settings.failure_xp_fraction)
        logger.debug(
            "Action failed",
            extra={"action_id": action.id, "success_rate": rate, "critical": critical},
        )
        return Outcome(
            status=ResultStatus.CRITICAL_FAILURE if critical else ResultStatus.FAILURE,
            xp=xp,
            reward_category=RewardCategory.ENCOUNTER if critical else RewardCategory.NOTHING,
            success_rate=rate,
            risk_level=risk,
            critical=critical,
            encounter=critical,
            penalties=dict(self.settings.penalties),
        )
