"""
Modifier aggregation.

Purpose
-------
Collect every equipment-sourced modifier on a loadout into flat integer
deltas: the hardware contribution per hardware stat, amplifier deltas per
hardware stat and per tech stat, and the discovery bonuses that shift the
reward distribution.

Rules
-----
- Hardware delta for stat s = `base[s] + upgrade_level` (0 without hardware).
- Flat amplifier effect: `+value`.
- Percentage amplifier effect: `floor(hardware_delta * value / 100)`, where
  the hardware delta is the one feeding the targeted stat. Percentages never
  compound on other amplifier output, so equip order does not matter.
- Targets outside the known stat vocabulary are ignored with a debug log.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from netrunner.core.logging import get_logger
from netrunner.domain.enums import DiscoveryBonus, HardwareStat, TechStat
from netrunner.domain.models.equipment import AmplifierEffect, Loadout

logger = get_logger(__name__)

# Hardware stats feeding each tech stat. Also the base for percentage
# amplifier effects aimed at the tech stat.
TECH_STAT_SOURCES: Mapping[TechStat, Tuple[HardwareStat, ...]] = {
    TechStat.CLOCK_SPEED: (HardwareStat.PROCESSOR,),
    TechStat.COOLING: (HardwareStat.HEAT_SINK,),
    TechStat.CACHE: (HardwareStat.MEMORY,),
    TechStat.LATENCY: (HardwareStat.LIFI,),
    TechStat.SIGNAL_NOISE: (HardwareStat.MEMORY, HardwareStat.LIFI),
    TechStat.DECRYPTION: (HardwareStat.ENCRYPTION,),
}


def _zero_map(enum_cls) -> Dict:
    return {member: 0 for member in enum_cls}


@dataclass(frozen=True)
class ModifierSet:
    """Aggregated equipment deltas for one loadout."""

    hardware: Dict[HardwareStat, int] = field(default_factory=lambda: _zero_map(HardwareStat))
    amplifier_hardware: Dict[HardwareStat, int] = field(default_factory=lambda: _zero_map(HardwareStat))
    amplifier_tech: Dict[TechStat, int] = field(default_factory=lambda: _zero_map(TechStat))
    discovery: Dict[DiscoveryBonus, int] = field(default_factory=lambda: _zero_map(DiscoveryBonus))
    ignored_targets: Tuple[str, ...] = ()

    def hardware_total(self, stat: HardwareStat) -> int:
        """Hardware delta plus amplifier delta for a hardware stat."""
        return self.hardware[stat] + self.amplifier_hardware[stat]

    def tech_delta(self, stat: TechStat) -> int:
        return self.amplifier_tech[stat]

    def discovery_bonus(self, bonus: DiscoveryBonus) -> int:
        return self.discovery[bonus]


class ModifierAggregator:
    """Pure aggregation of a loadout into a `ModifierSet`."""

    def aggregate(self, loadout: Optional[Loadout]) -> ModifierSet:
        hardware = self.hardware_deltas(loadout)
        amp_hardware = _zero_map(HardwareStat)
        amp_tech = _zero_map(TechStat)
        discovery = _zero_map(DiscoveryBonus)
        ignored = []

        amplifiers = loadout.amplifiers if loadout is not None else []
        for amplifier in amplifiers:
            for effect in amplifier.effects:
                hw_stat = HardwareStat.parse(effect.target)
                if hw_stat is not None:
                    amp_hardware[hw_stat] += self._effect_delta(effect, hardware[hw_stat])
                    continue

                tech_stat = TechStat.parse(effect.target)
                if tech_stat is not None:
                    base = sum(hardware[source] for source in TECH_STAT_SOURCES[tech_stat])
                    amp_tech[tech_stat] += self._effect_delta(effect, base)
                    continue

                bonus = DiscoveryBonus.parse(effect.target)
                if bonus is not None:
                    # No hardware base: percentage discovery effects add nothing.
                    discovery[bonus] += self._effect_delta(effect, 0)
                    continue

                ignored.append(effect.target)
                logger.debug(
                    "Ignoring amplifier effect with unknown target",
                    extra={"amplifier_id": amplifier.id, "target": effect.target},
                )

        return ModifierSet(
            hardware=hardware,
            amplifier_hardware=amp_hardware,
            amplifier_tech=amp_tech,
            discovery=discovery,
            ignored_targets=tuple(ignored),
        )

    @staticmethod
    def hardware_deltas(loadout: Optional[Loadout]) -> Dict[HardwareStat, int]:
        deltas = _zero_map(HardwareStat)
        if loadout is None or loadout.hardware is None:
            return deltas
        hw = loadout.hardware
        for stat in HardwareStat:
            deltas[stat] = hw.base(stat) + hw.upgrade_level
        return deltas

    @staticmethod
    def _effect_delta(effect: AmplifierEffect, base: int) -> int:
        if effect.is_percentage:
            return math.floor(base * effect.value / 100)
        return effect.value
