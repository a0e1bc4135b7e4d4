"""
Derived stat calculation.

Purpose
-------
Combine base attributes, class baseline tech stats and aggregated equipment
modifiers into the six tech stats and the maximum of every resource pool.

Formulas
--------
Integers throughout; division is floor division. `hw.X` is the hardware
delta for X including amplifier deltas on X (0 without hardware).

    clock_speed  = base + hw.processor          (+ amp clock_speed)
    cooling      = base + hw.heat_sink          (+ amp cooling)
    cache        = base + hw.memory             (+ amp cache)
    latency      = base + hw.lifi               (+ amp latency)
    signal_noise = base + hw.memory + hw.lifi   (+ amp signal_noise)
    decryption   = base + hw.encryption         (+ amp decryption)

    max_consciousness = cognition * resilience
    max_stamina       = power * resilience
    max_charge        = clock_speed + hw.cell_capacity
    max_thermal       = clock_speed + cooling
    max_neural        = clock_speed + cooling
    max_bandwidth     = ((hw.processor + hw.memory) * (clock_speed + cache))
                        // (max(latency, 1) * max(hw.lifi, 1))

The calculator is pure: same inputs, same outputs, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from netrunner.domain.enums import DiscoveryBonus, HardwareStat, PoolName, TechStat
from netrunner.domain.models.character import ClassBaseline, Character
from netrunner.domain.models.equipment import Loadout
from netrunner.modules.stats.modifiers import TECH_STAT_SOURCES, ModifierAggregator, ModifierSet


@dataclass(frozen=True)
class DerivedStats:
    """Result of one stat computation."""

    tech: Dict[TechStat, int]
    maxima: Dict[PoolName, int]
    hardware: Dict[HardwareStat, int]
    discovery: Dict[DiscoveryBonus, int]

    def tech_stat(self, stat: TechStat) -> int:
        return self.tech[stat]

    def max_of(self, pool: PoolName) -> int:
        return self.maxima[pool]

    def to_snapshot(self) -> Dict[str, Any]:
        """Display snapshot persisted with the pools."""
        return {
            "tech": {stat.value: value for stat, value in self.tech.items()},
            "hardware": {stat.value: value for stat, value in self.hardware.items()},
            "discovery": {bonus.value: value for bonus, value in self.discovery.items()},
            "maxima": {pool.value: value for pool, value in self.maxima.items()},
        }


class DerivedStatCalculator:
    def __init__(self, aggregator: Optional[ModifierAggregator] = None) -> None:
        self.aggregator = aggregator or ModifierAggregator()

    def calculate(
        self,
        character: Character,
        baseline: ClassBaseline,
        loadout: Optional[Loadout],
    ) -> DerivedStats:
        return self.calculate_from_modifiers(character, baseline, self.aggregator.aggregate(loadout))

    def calculate_from_modifiers(
        self,
        character: Character,
        baseline: ClassBaseline,
        modifiers: ModifierSet,
    ) -> DerivedStats:
        hw = {stat: modifiers.hardware_total(stat) for stat in HardwareStat}

        tech = {
            stat: baseline.base(stat)
            + sum(hw[source] for source in TECH_STAT_SOURCES[stat])
            + modifiers.tech_delta(stat)
            for stat in TechStat
        }

        attrs = character.attributes
        clock = tech[TechStat.CLOCK_SPEED]
        cooling = tech[TechStat.COOLING]
        cache = tech[TechStat.CACHE]
        latency = tech[TechStat.LATENCY]

        bandwidth_numerator = (hw[HardwareStat.PROCESSOR] + hw[HardwareStat.MEMORY]) * (clock + cache)
        bandwidth_divisor = max(latency, 1) * max(hw[HardwareStat.LIFI], 1)

        maxima = {
            PoolName.CONSCIOUSNESS: attrs.cognition * attrs.resilience,
            PoolName.STAMINA: attrs.power * attrs.resilience,
            PoolName.CHARGE: clock + hw[HardwareStat.CELL_CAPACITY],
            PoolName.BANDWIDTH: bandwidth_numerator // bandwidth_divisor,
            PoolName.THERMAL: clock + cooling,
            PoolName.NEURAL: clock + cooling,
        }
        maxima = {pool: max(0, value) for pool, value in maxima.items()}

        return DerivedStats(
            tech=tech,
            maxima=maxima,
            hardware=hw,
            discovery=dict(modifiers.discovery),
        )
