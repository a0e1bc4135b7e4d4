"""
Closed enumerations for the engine's stat, pool and action vocabulary.

Every cost, effect, modifier target and action kind is one of these members.
Content data arriving as strings is parsed through `parse()` helpers, so an
unknown key is either rejected (costs, effects, allocations) or explicitly
ignored (amplifier targets).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple, Type, TypeVar

E = TypeVar("E", bound="StrEnum")


class StrEnum(str, Enum):
    """String-valued enum with a lenient parser."""

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls: Type[E], value: object) -> Optional[E]:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


# ============================================================================
# ATTRIBUTES & STATS
# ============================================================================


class Attribute(StrEnum):
    """The six base attributes of a character."""

    COGNITION = "cognition"
    INSIGHT = "insight"
    INTERFACE = "interface"
    POWER = "power"
    RESILIENCE = "resilience"
    AGILITY = "agility"


class TechStat(StrEnum):
    """Derived tech stats (class baseline + hardware + amplifiers)."""

    CLOCK_SPEED = "clock_speed"
    COOLING = "cooling"
    SIGNAL_NOISE = "signal_noise"
    LATENCY = "latency"
    DECRYPTION = "decryption"
    CACHE = "cache"


class HardwareStat(StrEnum):
    """Stats a hardware item (deck) contributes."""

    PROCESSOR = "processor"
    HEAT_SINK = "heat_sink"
    MEMORY = "memory"
    LIFI = "lifi"
    ENCRYPTION = "encryption"
    CELL_CAPACITY = "cell_capacity"


class DiscoveryBonus(StrEnum):
    """Gear bonuses that shift the reward distribution."""

    DISCOVERY_ZONE = "discovery_zone"
    DISCOVERY_ITEM = "discovery_item"


# ============================================================================
# POOLS
# ============================================================================


class PoolName(StrEnum):
    CONSCIOUSNESS = "consciousness"
    STAMINA = "stamina"
    CHARGE = "charge"
    BANDWIDTH = "bandwidth"
    THERMAL = "thermal"
    NEURAL = "neural"


REGENERATING_POOLS: Tuple[PoolName, ...] = (
    PoolName.CONSCIOUSNESS,
    PoolName.STAMINA,
    PoolName.CHARGE,
    PoolName.BANDWIDTH,
)

LOAD_POOLS: Tuple[PoolName, ...] = (
    PoolName.THERMAL,
    PoolName.NEURAL,
)


# ============================================================================
# ACTIONS & OUTCOMES
# ============================================================================


class ActionKind(StrEnum):
    CITY_EXPLORE = "city_explore"
    ZONE_SCOUT = "zone_scout"
    ZONE_BREACH_PHYSICAL = "zone_breach_physical"
    ZONE_BREACH_REMOTE = "zone_breach_remote"
    GRID_SCAN = "grid_scan"

    @property
    def is_breach(self) -> bool:
        return self in (ActionKind.ZONE_BREACH_PHYSICAL, ActionKind.ZONE_BREACH_REMOTE)

    @property
    def generates_load(self) -> bool:
        """Unresolved, not-yet-due actions of this kind grow the load pools."""
        return self is ActionKind.ZONE_BREACH_PHYSICAL


class ResultStatus(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"
    CRITICAL_FAILURE = "critical_failure"
    DISMISSED = "dismissed"


class RewardCategory(StrEnum):
    NOTHING = "nothing"
    DISCOVERY = "discovery"
    ITEM = "item"
    ENCOUNTER = "encounter"


class RiskLevel(StrEnum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class ConsumableEffectKind(StrEnum):
    RESTORE_STAMINA = "restore_stamina"
    RESTORE_CONSCIOUSNESS = "restore_consciousness"
    RESTORE_CHARGE = "restore_charge"
    RESTORE_BANDWIDTH = "restore_bandwidth"
    REDUCE_THERMAL = "reduce_thermal"
    REDUCE_NEURAL = "reduce_neural"
    INCREASE_THERMAL = "increase_thermal"
    INCREASE_NEURAL = "increase_neural"

    @property
    def pool(self) -> PoolName:
        return PoolName(self.value.split("_", 1)[1])

    @property
    def sign(self) -> int:
        return -1 if self.value.startswith("reduce_") else 1
