"""
Regeneration scheduling.

Purpose
-------
Turn wall-clock time since the last regeneration checkpoint into whole ticks
and the pool deltas they produce. Pure: planning and applying never touch the
store; RegenerationService wraps them in a transaction.

Rules
-----
- intervals = floor((now - checkpoint) / tick), capped at `max_intervals`
- missing checkpoint or negative elapsed time: reset the checkpoint, no deltas
- zero intervals: nothing to do, nothing to write
- regenerating pools: `+intervals * tick_amount`
- load pools with N active load actions: `+intervals * load_tick_amount * N`,
  otherwise `-intervals * decay_amount`
- every result clamped to [0, max]; the checkpoint moves to `now`
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Mapping, Optional

from netrunner.domain.enums import LOAD_POOLS, REGENERATING_POOLS, PoolName
from netrunner.domain.models.pools import PoolState


@dataclass(frozen=True)
class LoadPoolTuning:
    """Per-pool growth/decay constants for one load pool."""

    growth_per_action: int
    decay: int


@dataclass(frozen=True)
class RegenerationSettings:
    tick: timedelta = timedelta(minutes=15)
    tick_amount: int = 5
    max_intervals: int = 96
    load_pools: Mapping[PoolName, LoadPoolTuning] = field(
        default_factory=lambda: {pool: LoadPoolTuning(growth_per_action=15, decay=5) for pool in LOAD_POOLS}
    )

    def load_tuning(self, pool: PoolName) -> LoadPoolTuning:
        return self.load_pools[pool]


@dataclass(frozen=True)
class RegenerationPlan:
    """
    What a regeneration pass will do.

    `reset_checkpoint` marks the missing/negative-elapsed cases, which write
    only the checkpoint.
    """

    intervals: int
    active_load_actions: int
    reset_checkpoint: bool = False

    @property
    def has_effect(self) -> bool:
        return self.intervals > 0

    @property
    def needs_write(self) -> bool:
        return self.has_effect or self.reset_checkpoint


@dataclass(frozen=True)
class RegenerationResult:
    intervals: int
    deltas: Dict[PoolName, int]
    values: Dict[PoolName, int]
    checkpoint: Optional[datetime]
    next_tick_at: Optional[datetime]
    active_load_actions: int = 0
    needs_write: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "intervals": self.intervals,
            "deltas": {pool.value: delta for pool, delta in self.deltas.items()},
            "values": {pool.value: value for pool, value in self.values.items()},
            "checkpoint": self.checkpoint.isoformat() if self.checkpoint else None,
            "next_tick_at": self.next_tick_at.isoformat() if self.next_tick_at else None,
            "active_load_actions": self.active_load_actions,
        }


class RegenerationScheduler:
    def __init__(self, settings: Optional[RegenerationSettings] = None) -> None:
        self.settings = settings or RegenerationSettings()

    def plan(self, checkpoint: Optional[datetime], now: datetime, active_load_actions: int = 0) -> RegenerationPlan:
        if checkpoint is None:
            return RegenerationPlan(intervals=0, active_load_actions=active_load_actions, reset_checkpoint=True)

        elapsed = now - checkpoint
        if elapsed < timedelta(0):
            return RegenerationPlan(intervals=0, active_load_actions=active_load_actions, reset_checkpoint=True)

        intervals = elapsed // self.settings.tick
        intervals = min(intervals, self.settings.max_intervals)
        return RegenerationPlan(intervals=intervals, active_load_actions=active_load_actions)

    def deltas(self, plan: RegenerationPlan) -> Dict[PoolName, int]:
        """Unclamped deltas per pool for a plan."""
        intervals = plan.intervals
        deltas = {pool: intervals * self.settings.tick_amount for pool in REGENERATING_POOLS}
        for pool in LOAD_POOLS:
            tuning = self.settings.load_tuning(pool)
            if plan.active_load_actions > 0:
                deltas[pool] = intervals * tuning.growth_per_action * plan.active_load_actions
            else:
                deltas[pool] = -intervals * tuning.decay
        return deltas

    def apply(self, pools: PoolState, plan: RegenerationPlan, now: datetime) -> RegenerationResult:
        """
        Apply `plan` to `pools` in place and move the checkpoint.

        Returns the clamped change per pool. With no effect the pools are left
        untouched, and the checkpoint only moves when the plan resets it.
        """
        applied: Dict[PoolName, int] = {pool: 0 for pool in PoolName}

        if plan.has_effect:
            for pool, delta in self.deltas(plan).items():
                applied[pool] = pools.apply_delta(pool, delta)

        if plan.needs_write:
            pools.last_regeneration = now

        checkpoint = pools.last_regeneration
        return RegenerationResult(
            intervals=plan.intervals,
            deltas=applied,
            values=dict(pools.current),
            checkpoint=checkpoint,
            next_tick_at=checkpoint + self.settings.tick if checkpoint else None,
            active_load_actions=plan.active_load_actions,
            needs_write=plan.needs_write,
        )
