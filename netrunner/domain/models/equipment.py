"""
Equipment domain models: hardware, software amplifiers and the loadout.

Purpose
-------
Represent the modifier sources a character can equip and enforce the
loadout invariants:

- at most one hardware item (deck) is equipped
- at most `max_amplifiers` amplifiers (slimsoft) are equipped
- an amplifier requires equipped hardware and may not exceed its tier
- changing or removing hardware auto-unequips incompatible amplifiers

Numeric contribution of these items is computed by the ModifierAggregator;
this module only holds data and equip rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from netrunner.domain.models.base import validate_non_negative, validate_positive
from netrunner.domain.enums import HardwareStat
from netrunner.modules.shared.exceptions import InvalidOperationError


@dataclass
class HardwareItem:
    """
    An owned hardware item.

    `upgrade_level` is per owned copy and adds uniformly to every stat.
    """

    id: int
    name: str
    tier: int
    stats: Mapping[HardwareStat, int] = field(default_factory=dict)
    upgrade_level: int = 0

    def __post_init__(self) -> None:
        validate_positive(self.tier, "tier")
        validate_non_negative(self.upgrade_level, "upgrade_level")
        for stat, value in self.stats.items():
            validate_non_negative(value, stat.value)

    def base(self, stat: HardwareStat) -> int:
        return int(self.stats.get(stat, 0))


@dataclass(frozen=True)
class AmplifierEffect:
    """
    One effect of an amplifier.

    `target` is kept as raw content text so new stat names in item data do
    not break older engines; the aggregator ignores targets it does not know.
    For percentage effects `value` is a whole percent (20 = +20%).
    """

    target: str
    value: int
    is_percentage: bool = False


@dataclass(frozen=True)
class AmplifierItem:
    id: int
    name: str
    tier: int
    effects: Tuple[AmplifierEffect, ...] = ()

    def __post_init__(self) -> None:
        validate_positive(self.tier, "tier")


@dataclass
class Loadout:
    """What a character currently has equipped."""

    character_id: int
    hardware: Optional[HardwareItem] = None
    amplifiers: List[AmplifierItem] = field(default_factory=list)

    @property
    def hardware_tier(self) -> int:
        return self.hardware.tier if self.hardware else 0

    def has_amplifier(self, amplifier_id: int) -> bool:
        return any(amp.id == amplifier_id for amp in self.amplifiers)

    def equip_hardware(self, hardware: HardwareItem) -> List[AmplifierItem]:
        """Swap in `hardware`; returns amplifiers auto-unequipped by the tier change."""
        self.hardware = hardware
        return self._drop_incompatible_amplifiers()

    def unequip_hardware(self) -> List[AmplifierItem]:
        """Remove hardware; every amplifier goes with it."""
        if self.hardware is None:
            raise InvalidOperationError("unequip_hardware", "no hardware is equipped")
        self.hardware = None
        return self._drop_incompatible_amplifiers()

    def equip_amplifier(self, amplifier: AmplifierItem, max_amplifiers: int) -> bool:
        """
        Equip `amplifier`. Returns False when it was already equipped.

        Raises InvalidOperationError when a loadout rule would be broken.
        """
        if self.has_amplifier(amplifier.id):
            return False
        if self.hardware is None:
            raise InvalidOperationError("equip_amplifier", "hardware must be equipped first")
        if amplifier.tier > self.hardware.tier:
            raise InvalidOperationError(
                "equip_amplifier",
                f"amplifier tier {amplifier.tier} exceeds hardware tier {self.hardware.tier}",
            )
        if len(self.amplifiers) >= max_amplifiers:
            raise InvalidOperationError(
                "equip_amplifier", f"all {max_amplifiers} amplifier slots are in use"
            )
        self.amplifiers.append(amplifier)
        return True

    def unequip_amplifier(self, amplifier_id: int) -> AmplifierItem:
        for index, amp in enumerate(self.amplifiers):
            if amp.id == amplifier_id:
                return self.amplifiers.pop(index)
        raise InvalidOperationError("unequip_amplifier", f"amplifier {amplifier_id} is not equipped")

    def _drop_incompatible_amplifiers(self) -> List[AmplifierItem]:
        tier = self.hardware_tier
        kept = [amp for amp in self.amplifiers if self.hardware is not None and amp.tier <= tier]
        removed = [amp for amp in self.amplifiers if amp not in kept]
        self.amplifiers = kept
        return removed
