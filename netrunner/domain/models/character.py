"""
Character Domain Model.

Purpose
-------
Rich domain model for a character: six base attributes, level, experience,
unallocated attribute points and the class archetype that supplies baseline
tech stats.

Responsibilities
----------------
- Validate attributes (non-negative integers).
- Experience gain and multi-level level-up against a `LevelCurve`.
- Attribute point allocation against the unallocated pool.
- Record domain events for level-ups and allocations.

Non-Responsibilities
--------------------
- Derived stats and pool maxima (DerivedStatCalculator)
- Persistence (store adapters)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

from netrunner.domain.models.base import AggregateRoot, validate_non_negative, validate_positive
from netrunner.domain.enums import Attribute, TechStat
from netrunner.modules.shared.exceptions import InsufficientResourcesError, ValidationError
from netrunner.modules.shared.formulas import level_for_experience


# ============================================================================
# VALUE OBJECTS
# ============================================================================


@dataclass(frozen=True)
class Attributes:
    """The six base attributes. Immutable; changes produce a new instance."""

    cognition: int = 1
    insight: int = 1
    interface: int = 1
    power: int = 1
    resilience: int = 1
    agility: int = 1

    def __post_init__(self) -> None:
        for attribute in Attribute:
            validate_non_negative(getattr(self, attribute.value), attribute.value)

    def get(self, attribute: Attribute) -> int:
        return getattr(self, attribute.value)

    def with_added(self, allocations: Mapping[Attribute, int]) -> "Attributes":
        changes = {attr.value: self.get(attr) + amount for attr, amount in allocations.items()}
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, int]:
        return {attribute.value: self.get(attribute) for attribute in Attribute}


@dataclass(frozen=True)
class ClassBaseline:
    """
    Class archetype supplying baseline tech stats.

    Missing stats default to 0.
    """

    class_id: int
    name: str
    tech: Mapping[TechStat, int] = field(default_factory=dict)

    def base(self, stat: TechStat) -> int:
        return int(self.tech.get(stat, 0))


@dataclass(frozen=True)
class LevelCurve:
    """Cumulative XP curve parameters."""

    base_xp: int = 100
    growth: float = 1.5
    max_level: int = 100
    points_per_level: int = 2


# ============================================================================
# AGGREGATE ROOT
# ============================================================================


class Character(AggregateRoot):
    """
    Character aggregate.

    Examples
    --------
    >>> character = Character(1, class_id=1, attributes=Attributes(cognition=10, resilience=10))
    >>> character.add_experience(250, LevelCurve())
    2
    >>> character.unallocated_points
    4
    """

    def __init__(
        self,
        character_id: int,
        *,
        class_id: int,
        attributes: Optional[Attributes] = None,
        level: int = 1,
        experience: int = 0,
        unallocated_points: int = 0,
        name: str = "",
    ) -> None:
        super().__init__(character_id)
        validate_positive(level, "level")
        validate_non_negative(experience, "experience")
        validate_non_negative(unallocated_points, "unallocated_points")

        self.class_id = class_id
        self.attributes = attributes or Attributes()
        self.level = level
        self.experience = experience
        self.unallocated_points = unallocated_points
        self.name = name

    def __repr__(self) -> str:
        return f"Character(id={self.id}, level={self.level}, xp={self.experience})"

    # ------------------------------------------------------------------ #
    # Progression
    # ------------------------------------------------------------------ #

    def add_experience(self, amount: int, curve: LevelCurve) -> int:
        """
        Add XP and apply every level-up it unlocks.

        Returns the number of levels gained (0 if none).
        """
        validate_non_negative(amount, "experience")
        self.experience += amount

        new_level = level_for_experience(
            self.experience, curve.base_xp, curve.growth, curve.max_level
        )
        gained = max(0, new_level - self.level)
        if gained:
            old_level = self.level
            self.level = new_level
            points = gained * curve.points_per_level
            self.unallocated_points += points
            self.add_domain_event(
                "character.leveled_up",
                {
                    "character_id": self.id,
                    "old_level": old_level,
                    "new_level": new_level,
                    "levels_gained": gained,
                    "points_awarded": points,
                },
            )
        return gained

    def allocate_points(self, allocations: Mapping[Attribute, int]) -> Attributes:
        """
        Spend unallocated points on attributes.

        All amounts must be positive and the total must not exceed the
        unallocated pool. Nothing changes if any check fails.
        """
        if not allocations:
            raise ValidationError("allocations", "at least one attribute must be allocated")
        for attribute, amount in allocations.items():
            if not isinstance(attribute, Attribute):
                raise ValidationError("allocations", f"unknown attribute {attribute!r}")
            validate_positive(amount, attribute.value)

        total = sum(allocations.values())
        if total > self.unallocated_points:
            raise InsufficientResourcesError("attribute_points", total, self.unallocated_points)

        self.attributes = self.attributes.with_added(allocations)
        self.unallocated_points -= total
        self.add_domain_event(
            "character.points_allocated",
            {
                "character_id": self.id,
                "allocations": {attr.value: amount for attr, amount in allocations.items()},
                "remaining_points": self.unallocated_points,
            },
        )
        return self.attributes
