"""
Unit tests for ModifierAggregator, DerivedStatCalculator and StatService.

Testing Strategy
----------------
- Aggregator and calculator are pure: no store, no services
- Worked numbers for each formula, then the order-independence and
  forward-compatibility rules
- StatService runs over the in-memory store
"""

import pytest

from netrunner.domain.enums import DiscoveryBonus, HardwareStat, PoolName, TechStat
from netrunner.domain.models.character import Attributes, Character, ClassBaseline
from netrunner.domain.models.equipment import Loadout
from netrunner.modules.shared.exceptions import NotFoundError
from netrunner.modules.stats.calculator import DerivedStatCalculator
from netrunner.modules.stats.modifiers import ModifierAggregator
from netrunner.store.memory import InMemoryTransaction
from tests.factories import DECKER, DEFAULT_ATTRIBUTES, make_amplifier, make_hardware


def _character(attributes: Attributes = DEFAULT_ATTRIBUTES) -> Character:
    return Character(7, class_id=DECKER.class_id, attributes=attributes)


def _bare_hardware(**stats):
    values = {stat.value: 0 for stat in HardwareStat}
    values.update(stats)
    return make_hardware(**values)


# ============================================================================
# MODIFIER AGGREGATION
# ============================================================================


@pytest.mark.unit
class TestModifierAggregator:
    def test_no_loadout_yields_zero_deltas(self):
        modifiers = ModifierAggregator().aggregate(None)

        assert all(value == 0 for value in modifiers.hardware.values())
        assert all(value == 0 for value in modifiers.amplifier_tech.values())

    def test_upgrade_level_adds_to_every_hardware_stat(self):
        hardware = _bare_hardware(processor=5)
        hardware.upgrade_level = 2

        deltas = ModifierAggregator.hardware_deltas(Loadout(7, hardware=hardware))

        assert deltas[HardwareStat.PROCESSOR] == 7
        assert deltas[HardwareStat.HEAT_SINK] == 2
        assert deltas[HardwareStat.CELL_CAPACITY] == 2

    def test_flat_and_percentage_effects(self):
        loadout = Loadout(
            7,
            hardware=_bare_hardware(processor=20, memory=10),
            amplifiers=[
                make_amplifier(1, effects=[("processor", 50, True)]),
                make_amplifier(2, effects=[("memory", 3, False)]),
            ],
        )

        modifiers = ModifierAggregator().aggregate(loadout)

        assert modifiers.hardware_total(HardwareStat.PROCESSOR) == 30
        assert modifiers.hardware_total(HardwareStat.MEMORY) == 13

    def test_percentages_are_floored(self):
        loadout = Loadout(
            7,
            hardware=_bare_hardware(processor=7),
            amplifiers=[make_amplifier(1, effects=[("processor", 20, True)])],
        )

        # floor(7 * 20 / 100) = 1
        assert ModifierAggregator().aggregate(loadout).hardware_total(HardwareStat.PROCESSOR) == 8

    def test_percentages_never_compound_on_other_amplifiers(self):
        """Equip order does not change the result."""
        hardware = _bare_hardware(processor=20)
        pct = make_amplifier(1, effects=[("processor", 50, True)])
        flat = make_amplifier(2, effects=[("processor", 3, False)])
        pct_again = make_amplifier(3, effects=[("processor", 25, True)])

        first = ModifierAggregator().aggregate(Loadout(7, hardware=hardware, amplifiers=[pct, flat, pct_again]))
        second = ModifierAggregator().aggregate(Loadout(7, hardware=hardware, amplifiers=[pct_again, flat, pct]))

        # 20 + 10 + 3 + 5
        assert first.hardware_total(HardwareStat.PROCESSOR) == 38
        assert second.hardware_total(HardwareStat.PROCESSOR) == 38

    def test_tech_stat_percentage_uses_its_hardware_sources(self):
        loadout = Loadout(
            7,
            hardware=_bare_hardware(memory=10, lifi=30),
            amplifiers=[make_amplifier(1, effects=[("signal_noise", 10, True), ("cache", 5, False)])],
        )

        modifiers = ModifierAggregator().aggregate(loadout)

        assert modifiers.tech_delta(TechStat.SIGNAL_NOISE) == 4
        assert modifiers.tech_delta(TechStat.CACHE) == 5

    def test_discovery_bonuses(self):
        loadout = Loadout(
            7,
            hardware=_bare_hardware(),
            amplifiers=[
                make_amplifier(1, effects=[("discovery_zone", 5, False), ("discovery_item", 50, True)]),
            ],
        )

        modifiers = ModifierAggregator().aggregate(loadout)

        assert modifiers.discovery_bonus(DiscoveryBonus.DISCOVERY_ZONE) == 5
        # Percentage discovery effects have no hardware base.
        assert modifiers.discovery_bonus(DiscoveryBonus.DISCOVERY_ITEM) == 0

    def test_unknown_targets_are_ignored(self):
        loadout = Loadout(
            7,
            hardware=_bare_hardware(processor=5),
            amplifiers=[make_amplifier(1, effects=[("charisma", 99, False), ("processor", 1, False)])],
        )

        modifiers = ModifierAggregator().aggregate(loadout)

        assert modifiers.ignored_targets == ("charisma",)
        assert modifiers.hardware_total(HardwareStat.PROCESSOR) == 6


# ============================================================================
# DERIVED STATS
# ============================================================================


@pytest.mark.unit
class TestDerivedStatCalculator:
    def test_attribute_maxima_and_processor_bonus(self):
        """cognition 10 x resilience 10 = 100; baseline clock 20 + processor 5 = 25."""
        character = _character(Attributes(cognition=10, resilience=10))
        loadout = Loadout(7, hardware=_bare_hardware(processor=5))

        stats = DerivedStatCalculator().calculate(character, DECKER, loadout)

        assert stats.max_of(PoolName.CONSCIOUSNESS) == 100
        assert stats.tech_stat(TechStat.CLOCK_SPEED) == 25

    def test_full_stat_surface(self):
        stats = DerivedStatCalculator().calculate(_character(), DECKER, Loadout(7, hardware=make_hardware()))

        assert stats.tech == {
            TechStat.CLOCK_SPEED: 25,
            TechStat.COOLING: 15,
            TechStat.SIGNAL_NOISE: 15,
            TechStat.LATENCY: 12,
            TechStat.DECRYPTION: 20,
            TechStat.CACHE: 15,
        }
        assert stats.maxima == {
            PoolName.CONSCIOUSNESS: 100,
            PoolName.STAMINA: 100,
            PoolName.CHARGE: 35,
            PoolName.BANDWIDTH: 3,
            PoolName.THERMAL: 40,
            PoolName.NEURAL: 40,
        }

    def test_no_hardware_means_no_bandwidth(self):
        stats = DerivedStatCalculator().calculate(_character(), DECKER, Loadout(7))

        assert stats.max_of(PoolName.BANDWIDTH) == 0
        assert stats.max_of(PoolName.CHARGE) == 20
        assert stats.max_of(PoolName.THERMAL) == 30

    def test_latency_and_lifi_are_floored_at_one_as_divisors(self):
        baseline = ClassBaseline(2, "raw", {TechStat.CLOCK_SPEED: 20, TechStat.CACHE: 10})
        loadout = Loadout(7, hardware=_bare_hardware(processor=5, memory=5))

        stats = DerivedStatCalculator().calculate(_character(), baseline, loadout)

        # (5 + 5) * (25 + 15) // (1 * 1)
        assert stats.max_of(PoolName.BANDWIDTH) == 400

    def test_maxima_never_negative(self):
        loadout = Loadout(
            7,
            hardware=_bare_hardware(),
            amplifiers=[make_amplifier(1, effects=[("clock_speed", -100, False)])],
        )

        stats = DerivedStatCalculator().calculate(_character(), DECKER, loadout)

        assert stats.tech_stat(TechStat.CLOCK_SPEED) == -80
        assert stats.max_of(PoolName.CHARGE) == 0
        assert stats.max_of(PoolName.THERMAL) == 0

    def test_identical_inputs_give_identical_outputs(self):
        calculator = DerivedStatCalculator()
        loadout = Loadout(
            7,
            hardware=make_hardware(),
            amplifiers=[make_amplifier(1, effects=[("processor", 40, True), ("decryption", 4, False)])],
        )

        first = calculator.calculate(_character(), DECKER, loadout)
        second = calculator.calculate(_character(), DECKER, loadout)

        assert first == second
        assert first.to_snapshot() == second.to_snapshot()

    def test_snapshot_uses_plain_keys(self):
        snapshot = DerivedStatCalculator().calculate(_character(), DECKER, Loadout(7)).to_snapshot()

        assert snapshot["maxima"]["consciousness"] == 100
        assert snapshot["tech"]["clock_speed"] == 20


# ============================================================================
# STAT SERVICE
# ============================================================================


@pytest.mark.unit
class TestStatService:
    async def test_get_stats_reads_without_writing(self, engine, seed, mocker):
        seed(7, hardware=make_hardware())
        save_spy = mocker.spy(InMemoryTransaction, "save_pools")

        stats = await engine.stats.get_stats(7)

        assert stats.max_of(PoolName.CHARGE) == 35
        assert stats.tech_stat(TechStat.DECRYPTION) == 20
        save_spy.assert_not_called()

    async def test_recompute_caps_pools_at_new_maxima(self, engine, seed, store):
        """Test a recompute after the loadout lost its hardware caps charge and bandwidth."""
        # Arrange
        seed(7, hardware=make_hardware())
        store.set_loadout(Loadout(7))

        # Act
        stats = await engine.stats.recompute(7)

        # Assert
        assert stats.max_of(PoolName.CHARGE) == 20
        async with store.transaction() as tx:
            pools = await tx.get_pools(7)
        assert pools.value(PoolName.CHARGE) == 20
        assert pools.value(PoolName.BANDWIDTH) == 0
        assert pools.stat_snapshot["maxima"]["charge"] == 20

    async def test_recompute_unknown_character(self, engine):
        with pytest.raises(NotFoundError):
            await engine.stats.recompute(99)
