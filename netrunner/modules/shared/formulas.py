"""
Netrunner Game Formulas

Purpose
-------
Pure calculation functions for the engine's probabilistic and progression
rules: the leveling curve, breach success rate and risk band, and the
dynamically weighted reward distribution.

Design Notes
------------
- Pure functions only: no side effects, no config access, no store access.
  Services read tunables from ConfigManager and pass them in.
- Deterministic: randomness stays in the caller, which passes the roll.
- Integers throughout where the game displays integers; `floor`, not
  banker's rounding, wherever a fractional value is truncated.

Usage
-----
    from netrunner.modules.shared.formulas import breach_success_rate

    rate = breach_success_rate(decryption=40, interface=3, cache=20,
                               character_level=1, target_level=5, difficulty=2)
"""

from __future__ import annotations

import math
from typing import Dict, Mapping, Sequence, Tuple, TypeVar

from netrunner.domain.enums import RewardCategory, RiskLevel

K = TypeVar("K")


def clamp(value: int, lower: int, upper: int) -> int:
    """Clamp `value` into [lower, upper]. `upper` below `lower` yields `lower`."""
    return max(lower, min(upper, value))


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ============================================================================
# PROGRESSION
# ============================================================================


def xp_for_level(level: int, base_xp: int = 100, growth: float = 1.5) -> int:
    """
    XP needed to advance from `level` to `level + 1`.

    Example:
        >>> xp_for_level(1)
        100
        >>> xp_for_level(3)
        225
    """
    return math.floor(base_xp * growth ** (level - 1))


def total_xp_for_level(level: int, base_xp: int = 100, growth: float = 1.5) -> int:
    """Total XP required to reach `level` from level 1."""
    return sum(xp_for_level(n, base_xp, growth) for n in range(1, level))


def level_for_experience(
    experience: int,
    base_xp: int = 100,
    growth: float = 1.5,
    max_level: int = 100,
) -> int:
    """
    Level reached with `experience` total XP (XP is never consumed).

    Example:
        >>> level_for_experience(99)
        1
        >>> level_for_experience(250)
        3
    """
    level = 1
    required = 0
    while level < max_level:
        required += xp_for_level(level, base_xp, growth)
        if required > experience:
            break
        level += 1
    return level


# ============================================================================
# SUCCESS MODEL
# ============================================================================


def breach_success_rate(
    *,
    decryption: int,
    interface: int,
    cache: int,
    character_level: int,
    target_level: int,
    difficulty: int,
    base: float = 60.0,
    decryption_divisor: float = 10.0,
    cache_divisor: float = 20.0,
    level_penalty: float = 10.0,
    difficulty_penalty: float = 5.0,
    floor: int = 15,
    ceiling: int = 95,
) -> int:
    """
    Bounded linear success model, as a whole percentage.

        base + decryption/10 + interface + cache/20
             - max(0, target_level - character_level) * 10
             - difficulty * 5

    rounded half-up, then clamped to [floor, ceiling] so no attempt is ever
    guaranteed or impossible.

    Example:
        >>> breach_success_rate(decryption=10, interface=1, cache=0,
        ...                     character_level=1, target_level=5, difficulty=2)
        15
    """
    level_diff = max(0, target_level - character_level)
    raw = (
        base
        + decryption / decryption_divisor
        + interface
        + cache / cache_divisor
        - level_diff * level_penalty
        - difficulty * difficulty_penalty
    )
    return clamp(round_half_up(raw), floor, ceiling)


def risk_level(success_rate: float) -> RiskLevel:
    """Risk band shown alongside a success rate."""
    if success_rate >= 75:
        return RiskLevel.LOW
    if success_rate >= 50:
        return RiskLevel.MODERATE
    if success_rate >= 30:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def failure_reward(base_reward: int, fraction: float = 0.25) -> int:
    """Consolation reward on failure: floor(base * fraction)."""
    return math.floor(base_reward * fraction)


# ============================================================================
# REWARD DISTRIBUTION
# ============================================================================


def reward_weights(
    *,
    undiscovered_fraction: float,
    zone_bonus: int = 0,
    item_bonus: int = 0,
    base_discovery: int = 30,
    base_item: int = 10,
    base_encounter: int = 35,
    category_cap: int = 70,
) -> Dict[RewardCategory, int]:
    """
    Dynamic reward-category weights in whole percent.

    - discovery shrinks as the discoverable pool is used up and grows with
      gear `discovery_zone` bonuses
    - item grows with gear `discovery_item` bonuses
    - each non-"nothing" weight is clamped to [0, category_cap]
    - if they exceed 100 together they are scaled down (floored)
    - "nothing" absorbs the remainder, so the total is always exactly 100

    Example:
        >>> reward_weights(undiscovered_fraction=1.0)[RewardCategory.NOTHING]
        25
    """
    fraction = min(1.0, max(0.0, undiscovered_fraction))
    weights: Dict[RewardCategory, int] = {
        RewardCategory.DISCOVERY: clamp(
            round_half_up(base_discovery * fraction) + zone_bonus, 0, category_cap
        ),
        RewardCategory.ITEM: clamp(base_item + item_bonus, 0, category_cap),
        RewardCategory.ENCOUNTER: clamp(base_encounter, 0, category_cap),
    }

    total = sum(weights.values())
    if total > 100:
        weights = {category: math.floor(weight * 100 / total) for category, weight in weights.items()}
        total = sum(weights.values())

    return {RewardCategory.NOTHING: 100 - total, **weights}


def roll_weighted(weights: Mapping[K, float], roll: float) -> K:
    """
    Pick a key from cumulative weights given `roll` in [0, sum(weights)).

    Keys are walked in mapping order; a roll at or past the total falls to
    the last key with a positive weight.
    """
    ordered: Sequence[Tuple[K, float]] = [(key, weight) for key, weight in weights.items() if weight > 0]
    if not ordered:
        raise ValueError("at least one positive weight is required")

    cumulative = 0.0
    for key, weight in ordered:
        cumulative += weight
        if roll < cumulative:
            return key
    return ordered[-1][0]
