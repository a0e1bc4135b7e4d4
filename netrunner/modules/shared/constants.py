"""
Netrunner Engine Domain Constants

Purpose
-------
Fallback values for every game-balance tunable. The live values are read
from the YAML files under `config/` through ConfigManager; these constants
are only used when a key is absent, so the engine still runs with an empty
config directory.

IMPORTANT:
GAMEPLAY constants only. Infrastructure settings (database URL, pool sizes,
log level) live in `netrunner.core.config.Config`.

Design Notes
------------
- Values are annotated with typing.Final
- Grouped by engine component
- No side effects at import time
"""

from __future__ import annotations

from typing import Dict, Final

# ============================================================================
# REGENERATION
# ============================================================================

TICK_MINUTES: Final[int] = 15
TICK_AMOUNT: Final[int] = 5
LOAD_TICK_AMOUNT: Final[int] = 15
MAX_INTERVALS: Final[int] = 96  # 24h of ticks

# ============================================================================
# ACTIONS
# ============================================================================

# Fallback catalogue, same shape as config/actions.yaml.
DEFAULT_ACTION_CATALOGUE: Final[Dict[str, Dict]] = {
    "city_explore": {
        "duration_minutes": 60,
        "cost": {"stamina": 25, "bandwidth": 1, "min_consciousness_percent": 0.5},
    },
    "zone_scout": {
        "duration_minutes": 30,
        "cost": {"stamina": 20, "bandwidth": 1, "min_consciousness_percent": 0.5},
    },
    "zone_breach_physical": {
        "duration_minutes": 60,
        "cost": {"charge": 15, "stamina": 15, "bandwidth": 1},
    },
    "zone_breach_remote": {
        "duration_minutes": 30,
        "cost": {"charge": 10, "bandwidth": 1},
    },
    "grid_scan": {
        "duration_minutes": 15,
        "cost": {"charge": 10, "bandwidth": 1, "thermal_capacity": 5, "neural_capacity": 5},
    },
}

# ============================================================================
# OUTCOME
# ============================================================================

SUCCESS_BASE: Final[float] = 60.0
SUCCESS_DECRYPTION_DIVISOR: Final[float] = 10.0
SUCCESS_CACHE_DIVISOR: Final[float] = 20.0
SUCCESS_LEVEL_PENALTY: Final[float] = 10.0
SUCCESS_DIFFICULTY_PENALTY: Final[float] = 5.0
SUCCESS_FLOOR: Final[int] = 15
SUCCESS_CEILING: Final[int] = 95

CRITICAL_FAILURE_CHANCE: Final[float] = 0.15
FAILURE_XP_FRACTION: Final[float] = 0.25
COOLDOWN_SECONDS: Final[int] = 60

FAILURE_PENALTIES: Final[Dict[str, int]] = {
    "stamina": -10,
    "consciousness": -20,
    "charge": -15,
    "neural": 10,
    "thermal": 10,
}

XP_REWARDS: Final[Dict[str, int]] = {
    "city_explore": 75,
    "zone_scout": 50,
    "grid_scan": 50,
}
BREACH_XP_MIN: Final[int] = 50
BREACH_XP_MAX: Final[int] = 75

REWARD_MODE: Final[str] = "dynamic"
REWARD_BASE_DISCOVERY: Final[int] = 30
REWARD_BASE_ITEM: Final[int] = 10
REWARD_BASE_ENCOUNTER: Final[int] = 35
REWARD_CATEGORY_CAP: Final[int] = 70

FIXED_REWARD_WEIGHTS: Final[Dict[str, float]] = {
    "nothing": 35.7,
    "discovery": 28.6,
    "encounter": 35.7,
}

# ============================================================================
# PROGRESSION
# ============================================================================

BASE_XP: Final[int] = 100
XP_GROWTH: Final[float] = 1.5
MAX_LEVEL: Final[int] = 100
POINTS_PER_LEVEL: Final[int] = 2

# ============================================================================
# EQUIPMENT
# ============================================================================

MAX_AMPLIFIERS: Final[int] = 3
MAX_UPGRADE_LEVEL: Final[int] = 10
