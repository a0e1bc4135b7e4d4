"""
Unit tests for ProgressionService.

Test Coverage
-------------
- XP awards on the cumulative curve, single and multi-level
- Level-ups and attribute allocation both recompute pool maxima
- Validation: negative or non-integer XP, unknown attributes, overspending
"""

import pytest

from netrunner.domain.enums import Attribute, PoolName
from netrunner.modules.shared.exceptions import InsufficientResourcesError, NotFoundError, ValidationError
from tests.factories import make_hardware


@pytest.mark.unit
class TestAwardExperience:
    async def test_level_up_grants_points_and_emits(self, engine, seed, store, recorder):
        seed()

        award = await engine.progression.award_experience(7, 100)

        character = store.peek_character(7)
        assert award.levels_gained == 1
        assert character.level == 2
        assert character.unallocated_points == 2
        assert recorder.payloads("character.leveled_up") == [
            {
                "character_id": 7,
                "old_level": 1,
                "new_level": 2,
                "levels_gained": 1,
                "points_awarded": 2,
            }
        ]

    async def test_multi_level_gain(self, engine, seed, store):
        seed()

        award = await engine.progression.award_experience(7, 250)

        assert award.level == 3
        assert award.levels_gained == 2
        assert store.peek_character(7).unallocated_points == 4

    async def test_xp_accumulates_without_level(self, engine, seed, store, recorder):
        seed(experience=40)

        award = await engine.progression.award_experience(7, 50)

        assert award.experience == 90
        assert award.levels_gained == 0
        assert store.peek_character(7).level == 1
        assert recorder.names() == []

    async def test_level_up_recomputes_maxima(self, engine, seed, store):
        seed(hardware=make_hardware())
        pools = store.peek_pools(7)
        pools.set_maxima({pool: 10 for pool in PoolName})
        store.set_pools(pools)

        await engine.progression.award_experience(7, 100)

        assert store.peek_pools(7).max_of(PoolName.STAMINA) == 100

    @pytest.mark.parametrize("xp", [-5, 2.5, True, "10"])
    async def test_invalid_xp(self, engine, seed, store, xp):
        seed()

        with pytest.raises(ValidationError):
            await engine.progression.award_experience(7, xp)

        assert store.peek_character(7).experience == 0

    async def test_unknown_character(self, engine):
        with pytest.raises(NotFoundError):
            await engine.progression.award_experience(999, 10)


@pytest.mark.unit
class TestAllocatePoints:
    async def test_allocation_recomputes_maxima(self, engine, seed, store, recorder):
        seed(unallocated_points=3)

        attributes = await engine.progression.allocate_points(7, {"resilience": 2})

        character = store.peek_character(7)
        pools = store.peek_pools(7)
        assert attributes.resilience == 12
        assert character.unallocated_points == 1
        assert pools.max_of(PoolName.STAMINA) == 120
        assert pools.max_of(PoolName.CONSCIOUSNESS) == 120
        assert pools.value(PoolName.STAMINA) == 100
        assert recorder.payloads("character.points_allocated")[0]["remaining_points"] == 1

    async def test_enum_and_text_keys_combine(self, engine, seed):
        seed(unallocated_points=3)

        attributes = await engine.progression.allocate_points(7, {Attribute.POWER: 1, "power": 2})

        assert attributes.power == 13

    async def test_unknown_attribute(self, engine, seed, store):
        seed(unallocated_points=3)

        with pytest.raises(ValidationError):
            await engine.progression.allocate_points(7, {"charisma": 1})

        assert store.peek_character(7).unallocated_points == 3

    async def test_overspending(self, engine, seed, store):
        seed(unallocated_points=1)

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await engine.progression.allocate_points(7, {"cognition": 2})

        assert exc_info.value.resource == "attribute_points"
        assert store.peek_character(7).attributes.cognition == 10

    @pytest.mark.parametrize("allocations", [{}, {"agility": 0}, {"agility": -1}])
    async def test_invalid_allocations(self, engine, seed, allocations):
        seed(unallocated_points=3)
        with pytest.raises(ValidationError):
            await engine.progression.allocate_points(7, allocations)
