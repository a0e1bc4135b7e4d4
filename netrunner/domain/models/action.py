"""
Action Domain Models.

Purpose
-------
Value objects and records for time-delayed actions ("jobs"): the cost vector
paid to start one, the target context it runs against, the persisted action
record and the per-target cooldown written after a failure.

Responsibilities
----------------
- Validate cost vectors (non-negative amounts, percent in [0, 1]).
- Answer time questions about a record (due, remaining, active load).
- Carry the stored outcome of a resolved action for idempotent re-reads.

Non-Responsibilities
--------------------
- Resource checks and slot accounting (ActionSlotManager)
- Outcome rolls (OutcomeResolver)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional

from netrunner.domain.enums import ActionKind, PoolName, ResultStatus
from netrunner.domain.models.base import validate_non_negative, validate_range
from netrunner.modules.shared.exceptions import ValidationError


# ============================================================================
# COST VECTOR
# ============================================================================


@dataclass(frozen=True)
class ResourceCost:
    """
    Closed cost vector for starting an action.

    Attributes
    ----------
    stamina, charge, consciousness : int
        Amounts spent from the pool.
    bandwidth : int
        Concurrency slots consumed; always 1.
    min_consciousness_percent : float
        Floor requirement on consciousness as a fraction of its max. Not spent.
    thermal_capacity, neural_capacity : int
        Required free capacity in the load pool; added to it on start.
    """

    stamina: int = 0
    charge: int = 0
    consciousness: int = 0
    bandwidth: int = 1
    min_consciousness_percent: float = 0.0
    thermal_capacity: int = 0
    neural_capacity: int = 0

    def __post_init__(self) -> None:
        for name in ("stamina", "charge", "consciousness", "thermal_capacity", "neural_capacity"):
            validate_non_negative(getattr(self, name), name)
        if self.bandwidth != 1:
            raise ValidationError("bandwidth", f"an action always takes exactly one bandwidth slot, got {self.bandwidth!r}")
        validate_range(self.min_consciousness_percent, 0.0, 1.0, "min_consciousness_percent")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ResourceCost":
        """Build from config data; unknown keys are rejected."""
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValidationError("cost", f"unknown cost fields: {', '.join(sorted(unknown))}")
        values: Dict[str, Any] = dict(data)
        if "min_consciousness_percent" in values:
            values["min_consciousness_percent"] = float(values["min_consciousness_percent"])
        return cls(**values)

    @property
    def spent(self) -> Dict[PoolName, int]:
        """Pools debited on start, bandwidth included."""
        return {
            PoolName.STAMINA: self.stamina,
            PoolName.CHARGE: self.charge,
            PoolName.CONSCIOUSNESS: self.consciousness,
            PoolName.BANDWIDTH: self.bandwidth,
        }

    @property
    def load(self) -> Dict[PoolName, int]:
        """Load pools filled on start."""
        return {
            PoolName.THERMAL: self.thermal_capacity,
            PoolName.NEURAL: self.neural_capacity,
        }


# ============================================================================
# CONTEXT
# ============================================================================


@dataclass(frozen=True)
class ActionContext:
    """
    What an action runs against.

    `undiscovered_fraction` is supplied by the content layer (share of the
    target's discoverables not yet found) and feeds the reward weights.
    """

    target_id: Optional[str] = None
    target_level: int = 1
    difficulty: int = 0
    undiscovered_fraction: float = 1.0

    def __post_init__(self) -> None:
        validate_non_negative(self.target_level, "target_level")
        validate_non_negative(self.difficulty, "difficulty")
        validate_range(self.undiscovered_fraction, 0.0, 1.0, "undiscovered_fraction")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "target_level": self.target_level,
            "difficulty": self.difficulty,
            "undiscovered_fraction": self.undiscovered_fraction,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ActionContext":
        data = data or {}
        return cls(
            target_id=data.get("target_id"),
            target_level=int(data.get("target_level", 1)),
            difficulty=int(data.get("difficulty", 0)),
            undiscovered_fraction=float(data.get("undiscovered_fraction", 1.0)),
        )


# ============================================================================
# RECORDS
# ============================================================================


@dataclass
class ActionRecord:
    """
    One in-flight or resolved action. Records are never deleted.

    `result_status` is None while pending and terminal once set.
    """

    character_id: int
    kind: ActionKind
    start_time: datetime
    end_time: datetime
    context: ActionContext = field(default_factory=ActionContext)
    id: Optional[int] = None
    result_status: Optional[ResultStatus] = None
    outcome: Optional[Dict[str, Any]] = None
    resolved_at: Optional[datetime] = None

    @property
    def is_resolved(self) -> bool:
        return self.result_status is not None

    @property
    def is_dismissed(self) -> bool:
        return self.result_status is ResultStatus.DISMISSED

    def is_due(self, now: datetime) -> bool:
        return now >= self.end_time

    def remaining_seconds(self, now: datetime) -> float:
        return max(0.0, (self.end_time - now).total_seconds())

    def is_active_load(self, now: datetime) -> bool:
        """Unresolved load-generating action still running at `now`."""
        return self.kind.generates_load and not self.is_resolved and self.end_time > now

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time


@dataclass
class CooldownRecord:
    """Per-target lockout. Active while `until > now`; expires naturally."""

    character_id: int
    target_id: str
    until: datetime
    id: Optional[int] = None

    def is_active(self, now: datetime) -> bool:
        return self.until > now

    def remaining_seconds(self, now: datetime) -> float:
        return max(0.0, (self.until - now).total_seconds())
