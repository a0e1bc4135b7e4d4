"""
Resource pool state for one character.

`PoolState` holds the persisted current value of all six pools, their derived
maxima, the regeneration checkpoint and the display snapshot of the last stat
recompute. Every mutation goes through `set_current` / `apply_delta` /
`set_maxima`, which clamp to `0 <= current <= max`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from netrunner.domain.enums import LOAD_POOLS, PoolName
from netrunner.modules.shared.formulas import clamp


def _zeroes() -> Dict[PoolName, int]:
    return {pool: 0 for pool in PoolName}


@dataclass
class PoolState:
    character_id: int
    current: Dict[PoolName, int] = field(default_factory=_zeroes)
    maxima: Dict[PoolName, int] = field(default_factory=_zeroes)
    last_regeneration: Optional[datetime] = None
    stat_snapshot: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.current = {pool: int(self.current.get(pool, 0)) for pool in PoolName}
        self.maxima = {pool: max(0, int(self.maxima.get(pool, 0))) for pool in PoolName}
        self.clamp_all()

    def value(self, pool: PoolName) -> int:
        return self.current[pool]

    def max_of(self, pool: PoolName) -> int:
        return self.maxima[pool]

    def headroom(self, pool: PoolName) -> int:
        return self.maxima[pool] - self.current[pool]

    def set_current(self, pool: PoolName, value: int) -> int:
        """Set a pool (clamped); returns the stored value."""
        self.current[pool] = clamp(int(value), 0, self.maxima[pool])
        return self.current[pool]

    def apply_delta(self, pool: PoolName, delta: int) -> int:
        """Add `delta` (clamped); returns the change actually applied."""
        before = self.current[pool]
        after = self.set_current(pool, before + delta)
        return after - before

    def set_maxima(self, maxima: Mapping[PoolName, int]) -> Dict[PoolName, int]:
        """
        Replace maxima and cap current values at them.

        Returns `{pool: amount_removed}` for pools whose current value was
        capped down.
        """
        capped: Dict[PoolName, int] = {}
        for pool in PoolName:
            self.maxima[pool] = max(0, int(maxima.get(pool, 0)))
            if self.current[pool] > self.maxima[pool]:
                capped[pool] = self.current[pool] - self.maxima[pool]
                self.current[pool] = self.maxima[pool]
        return capped

    def clamp_all(self) -> None:
        for pool in PoolName:
            self.current[pool] = clamp(self.current[pool], 0, self.maxima[pool])

    def fill(self) -> None:
        """Set every regenerating pool to max and every load pool to zero."""
        for pool in PoolName:
            self.current[pool] = 0 if pool in LOAD_POOLS else self.maxima[pool]

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        return {
            pool.value: {"current": self.current[pool], "max": self.maxima[pool]}
            for pool in PoolName
        }
