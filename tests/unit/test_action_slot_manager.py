"""
Unit tests for ActionSlotManager.

Test Coverage
-------------
- Starting: cost debit, slot accounting, every requirement check, all-or-nothing
- Targets: one in-flight action per target, cooldown after failure
- Resolving: success and failure paths, penalties, XP, level-ups, GRID_SCAN flush
- Exactly-once: repeated and concurrent resolves, dismissals
- Queries: active action listing and success preview

Regeneration ticks are stretched to a day in this module so pools move only
through the actions under test.
"""

import asyncio
from datetime import timedelta

import pytest

from netrunner.core.services.container import ServiceContainer
from netrunner.domain.enums import ActionKind, PoolName, ResultStatus, RewardCategory, RiskLevel
from netrunner.domain.models.character import Attributes
from netrunner.domain.models.action import ActionContext, ResourceCost
from netrunner.modules.actions.slot_manager import StartedAction
from netrunner.modules.shared.exceptions import (
    ActionConflictError,
    ActionNotReadyError,
    CooldownActiveError,
    InsufficientResourcesError,
    NotFoundError,
    ValidationError,
)
from tests.factories import START, make_hardware

BREACH_TARGET = ActionContext(target_id="zone-1", target_level=1, difficulty=0)


@pytest.fixture
def engine(store, config_manager, event_bus, recorder, rng, clock):
    config_manager.set_override("regeneration.tick_minutes", 24 * 60)
    container = ServiceContainer(store, config_manager, event_bus, rng=rng, clock=clock)
    container.initialize()
    return container


@pytest.fixture
def runner(seed):
    """Decker with the default deck: 3 bandwidth, 100 stamina, 35 charge."""
    return seed(hardware=make_hardware())


async def _start_due(engine, clock, kind=ActionKind.ZONE_SCOUT, context=None, character_id=7):
    started = await engine.actions.start_action(character_id, kind, context)
    clock.advance(minutes=60)
    return started.action


# ============================================================================
# START
# ============================================================================


@pytest.mark.unit
class TestStartAction:
    async def test_debits_cost_and_takes_a_slot(self, engine, runner, store, recorder):
        started = await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)

        pools = store.peek_pools(7)
        assert pools.value(PoolName.STAMINA) == 80
        assert pools.value(PoolName.BANDWIDTH) == 2
        assert started.action.id is not None
        assert started.action.end_time == START + timedelta(minutes=30)
        assert started.pools["stamina"] == {"current": 80, "max": 100}
        assert recorder.names() == ["action.started"]
        assert recorder.payloads("action.started")[0]["kind"] == "zone_scout"

    async def test_kind_may_be_given_as_text(self, engine, runner):
        started = await engine.actions.start_action(7, "Zone_Scout")
        assert started.action.kind is ActionKind.ZONE_SCOUT

    async def test_unknown_kind(self, engine, runner):
        with pytest.raises(ValidationError):
            await engine.actions.start_action(7, "teleport")

    async def test_load_action_fills_load_pools(self, engine, runner, store):
        await engine.actions.start_action(7, ActionKind.GRID_SCAN)

        pools = store.peek_pools(7)
        assert pools.value(PoolName.THERMAL) == 5
        assert pools.value(PoolName.NEURAL) == 5
        assert pools.value(PoolName.CHARGE) == 25

    async def test_slot_budget_is_all_or_nothing(self, engine, runner, store):
        """Three slots fill; the fourth start fails and changes nothing."""
        for _ in range(3):
            await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)
        before = store.peek_pools(7)

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)

        assert exc_info.value.resource == "action_slots"
        assert exc_info.value.required == 4
        assert exc_info.value.current == 3
        assert store.peek_pools(7) == before
        assert before.value(PoolName.STAMINA) == 40
        assert before.value(PoolName.BANDWIDTH) == 0
        assert len(store.peek_actions(7)) == 3

    async def test_concurrent_starts_take_the_last_slot_once(self, engine, runner, store):
        for _ in range(2):
            await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)

        results = await asyncio.gather(
            engine.actions.start_action(7, ActionKind.ZONE_SCOUT),
            engine.actions.start_action(7, ActionKind.ZONE_SCOUT),
            return_exceptions=True,
        )

        started = [result for result in results if isinstance(result, StartedAction)]
        refused = [result for result in results if isinstance(result, InsufficientResourcesError)]
        assert len(started) == 1
        assert len(refused) == 1
        assert refused[0].resource == "action_slots"
        assert len(store.peek_actions(7)) == 3
        assert store.peek_pools(7).value(PoolName.BANDWIDTH) == 0

    async def test_no_hardware_means_no_slots(self, engine, seed):
        seed()

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)

        assert exc_info.value.resource == "action_slots"

    async def test_insufficient_pool(self, engine, seed, store):
        seed(hardware=make_hardware(), current={PoolName.STAMINA: 10})

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)

        assert exc_info.value.resource == "stamina"
        assert exc_info.value.required == 20
        assert exc_info.value.current == 10
        assert store.peek_actions(7) == []
        assert store.peek_pools(7).value(PoolName.BANDWIDTH) == 3

    async def test_consciousness_percent_floor(self, engine, seed):
        seed(hardware=make_hardware(), current={PoolName.CONSCIOUSNESS: 49})

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await engine.actions.start_action(7, ActionKind.CITY_EXPLORE)

        assert exc_info.value.resource == "consciousness"
        assert exc_info.value.required == 50

    async def test_consciousness_floor_is_not_spent(self, engine, seed, store):
        seed(hardware=make_hardware(), current={PoolName.CONSCIOUSNESS: 50})

        await engine.actions.start_action(7, ActionKind.CITY_EXPLORE)

        assert store.peek_pools(7).value(PoolName.CONSCIOUSNESS) == 50

    async def test_load_capacity(self, engine, seed):
        seed(hardware=make_hardware(), current={PoolName.THERMAL: 38})

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await engine.actions.start_action(7, ActionKind.GRID_SCAN)

        assert exc_info.value.resource == "thermal_capacity"
        assert exc_info.value.required == 5
        assert exc_info.value.current == 2

    async def test_explicit_cost_vector(self, engine, runner, store):
        await engine.actions.start_action(
            7, ActionKind.ZONE_SCOUT, cost=ResourceCost(stamina=3, charge=4, consciousness=5)
        )

        pools = store.peek_pools(7)
        assert pools.value(PoolName.STAMINA) == 97
        assert pools.value(PoolName.CHARGE) == 31
        assert pools.value(PoolName.CONSCIOUSNESS) == 95

    async def test_target_with_unresolved_action_conflicts(self, engine, runner, store):
        await engine.actions.start_action(7, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)

        with pytest.raises(ActionConflictError):
            await engine.actions.start_action(7, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)

        assert store.peek_pools(7).value(PoolName.CHARGE) == 25

    async def test_unknown_character(self, engine):
        with pytest.raises(NotFoundError):
            await engine.actions.start_action(999, ActionKind.ZONE_SCOUT)


# ============================================================================
# RESOLVE
# ============================================================================


@pytest.mark.unit
class TestResolveAction:
    async def test_scout_success(self, engine, runner, store, clock, rng, recorder):
        action = await _start_due(engine, clock)
        rng.queue(0.99)

        resolution = await engine.actions.resolve_action(7, action.id)

        assert resolution.status is ResultStatus.SUCCESS
        assert resolution.already_resolved is False
        assert resolution.outcome["xp"] == 50
        assert resolution.outcome["reward_category"] == "encounter"
        assert resolution.outcome["encounter"] is True
        assert resolution.outcome["applied"] == {"bandwidth": 1}
        assert store.peek_pools(7).value(PoolName.BANDWIDTH) == 3
        assert store.peek_character(7).experience == 50
        assert recorder.names() == ["action.started", "action.resolved"]
        assert recorder.payloads("action.resolved")[0]["status"] == "success"

    async def test_breach_failure_applies_penalties_and_cooldown(self, engine, runner, store, clock, rng):
        action = await _start_due(engine, clock, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)
        rng.queue(0.99, 0.5)

        resolution = await engine.actions.resolve_action(7, action.id)

        assert resolution.status is ResultStatus.FAILURE
        assert resolution.outcome["reward_category"] == "nothing"
        assert resolution.outcome["critical"] is False
        # floor(50 * 0.25)
        assert resolution.outcome["xp"] == 12
        assert resolution.outcome["applied"] == {
            "bandwidth": 1,
            "stamina": -10,
            "consciousness": -20,
            "charge": -15,
            "neural": 10,
            "thermal": 10,
        }

        pools = store.peek_pools(7)
        assert pools.value(PoolName.STAMINA) == 90
        assert pools.value(PoolName.CONSCIOUSNESS) == 80
        assert pools.value(PoolName.CHARGE) == 10
        assert pools.value(PoolName.THERMAL) == 10
        assert pools.value(PoolName.NEURAL) == 10
        assert store.peek_character(7).experience == 12

        cooldowns = store.peek_cooldowns(7)
        assert len(cooldowns) == 1
        assert cooldowns[0].target_id == "zone-1"
        assert cooldowns[0].until == clock() + timedelta(seconds=60)
        assert resolution.outcome["cooldown_until"] == cooldowns[0].until.isoformat()

    async def test_critical_failure_surfaces_encounter(self, engine, runner, clock, rng, recorder):
        action = await _start_due(engine, clock, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)
        rng.queue(0.99, 0.05)

        resolution = await engine.actions.resolve_action(7, action.id)

        assert resolution.status is ResultStatus.CRITICAL_FAILURE
        assert resolution.outcome["critical"] is True
        assert resolution.outcome["reward_category"] == RewardCategory.ENCOUNTER.value
        assert recorder.payloads("action.resolved")[0]["encounter"] is True

    async def test_penalties_clamp_at_zero(self, engine, seed, store, clock, rng):
        seed(hardware=make_hardware(), current={PoolName.STAMINA: 5})
        action = await _start_due(engine, clock, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)
        rng.queue(0.99, 0.5)

        resolution = await engine.actions.resolve_action(7, action.id)

        assert resolution.outcome["applied"]["stamina"] == -5
        assert store.peek_pools(7).value(PoolName.STAMINA) == 0

    async def test_failure_without_target_writes_no_cooldown(self, engine, runner, store, clock, rng):
        action = await _start_due(engine, clock, ActionKind.ZONE_BREACH_REMOTE)
        rng.queue(0.99, 0.5)

        resolution = await engine.actions.resolve_action(7, action.id)

        assert resolution.status is ResultStatus.FAILURE
        assert resolution.outcome["cooldown_until"] is None
        assert store.peek_cooldowns(7) == []

    async def test_cooldown_blocks_retry_until_expiry(self, engine, runner, clock, rng):
        action = await _start_due(engine, clock, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)
        rng.queue(0.99, 0.5)
        await engine.actions.resolve_action(7, action.id)

        with pytest.raises(CooldownActiveError) as exc_info:
            await engine.actions.start_action(7, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)
        assert exc_info.value.remaining_seconds == 60
        assert exc_info.value.target_id == "zone-1"

        clock.advance(seconds=61)
        started = await engine.actions.start_action(7, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)
        assert started.action.context.target_id == "zone-1"

    @pytest.mark.parametrize(
        "roll,status",
        [(0.1499, ResultStatus.SUCCESS), (0.15, ResultStatus.FAILURE)],
    )
    async def test_floor_rate_is_a_strict_threshold(self, engine, seed, clock, rng, roll, status):
        """Rate 13.75 rounds to 14 and clamps to the floor of 15."""
        seed(
            attributes=Attributes(cognition=10, interface=1, power=10, resilience=10),
            hardware=make_hardware(),
        )
        context = ActionContext(target_id="zone-9", target_level=5, difficulty=2)
        action = await _start_due(engine, clock, ActionKind.ZONE_BREACH_REMOTE, context)
        rng.queue(roll, 0.5)

        resolution = await engine.actions.resolve_action(7, action.id)

        assert resolution.status is status
        assert resolution.outcome["success_rate"] == 15
        assert resolution.outcome["risk_level"] == "critical"

    async def test_grid_scan_flushes_load_pools(self, engine, seed, store, clock):
        seed(hardware=make_hardware(), current={PoolName.THERMAL: 30, PoolName.NEURAL: 30})
        action = await _start_due(engine, clock, ActionKind.GRID_SCAN)

        resolution = await engine.actions.resolve_action(7, action.id)

        pools = store.peek_pools(7)
        assert pools.value(PoolName.THERMAL) == 0
        assert pools.value(PoolName.NEURAL) == 0
        assert resolution.outcome["applied"]["thermal"] == -35
        assert resolution.outcome["applied"]["neural"] == -35

    async def test_level_up_on_resolution(self, engine, seed, store, clock, recorder):
        seed(hardware=make_hardware(), experience=90)
        action = await _start_due(engine, clock)

        resolution = await engine.actions.resolve_action(7, action.id)

        character = store.peek_character(7)
        assert character.level == 2
        assert character.unallocated_points == 2
        assert resolution.outcome["experience"]["levels_gained"] == 1
        assert recorder.names() == ["action.started", "character.leveled_up", "action.resolved"]

    async def test_not_ready(self, engine, runner, store, clock):
        started = await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)
        clock.advance(minutes=10)

        with pytest.raises(ActionNotReadyError) as exc_info:
            await engine.actions.resolve_action(7, started.action.id)

        assert exc_info.value.remaining_seconds == 1200
        assert store.peek_actions(7)[0].result_status is None

    async def test_unknown_action(self, engine, runner):
        with pytest.raises(NotFoundError):
            await engine.actions.resolve_action(7, 999)

    async def test_action_of_another_character(self, engine, seed, clock):
        seed(7, hardware=make_hardware())
        seed(8, hardware=make_hardware())
        action = await _start_due(engine, clock)

        with pytest.raises(ActionConflictError):
            await engine.actions.resolve_action(8, action.id)


# ============================================================================
# EXACTLY-ONCE RESOLUTION
# ============================================================================


@pytest.mark.unit
class TestExactlyOnce:
    async def _two_scouts(self, engine, clock):
        first = await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)
        await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)
        clock.advance(minutes=30)
        return first.action

    async def test_repeat_resolve_returns_stored_outcome(self, engine, runner, store, clock, recorder):
        action = await self._two_scouts(engine, clock)

        first = await engine.actions.resolve_action(7, action.id)
        second = await engine.actions.resolve_action(7, action.id)

        assert second.already_resolved is True
        assert second.status is first.status
        assert second.outcome == first.outcome
        assert store.peek_character(7).experience == 50
        assert store.peek_pools(7).value(PoolName.BANDWIDTH) == 2
        assert recorder.names().count("action.resolved") == 1

    async def test_concurrent_resolves_apply_once(self, engine, runner, store, clock):
        action = await self._two_scouts(engine, clock)

        results = await asyncio.gather(
            engine.actions.resolve_action(7, action.id),
            engine.actions.resolve_action(7, action.id),
        )

        assert sorted(result.already_resolved for result in results) == [False, True]
        assert store.peek_character(7).experience == 50
        assert store.peek_pools(7).value(PoolName.BANDWIDTH) == 2

    async def test_dismiss_acknowledges_a_resolved_action_once(self, engine, runner, store, clock, recorder):
        action = await self._two_scouts(engine, clock)
        resolution = await engine.actions.resolve_action(7, action.id)
        pools_before = store.peek_pools(7)

        first = await engine.actions.dismiss_action(7, action.id)
        second = await engine.actions.dismiss_action(7, action.id)
        resolved = await engine.actions.resolve_action(7, action.id)

        assert first.status is ResultStatus.DISMISSED
        assert first.already_resolved is False
        assert first.outcome == resolution.outcome
        assert second.already_resolved is True
        assert second.status is ResultStatus.DISMISSED
        assert resolved.already_resolved is True
        assert resolved.status is ResultStatus.DISMISSED
        assert store.peek_pools(7) == pools_before
        assert store.peek_character(7).experience == 50
        assert recorder.payloads("action.dismissed") == [
            {
                "character_id": 7,
                "action_id": action.id,
                "kind": "zone_scout",
                "resolved_status": resolution.status.value,
            }
        ]

    async def test_dismiss_of_unresolved_action_is_refused(self, engine, runner, store, clock, rng):
        """A due breach cannot be dismissed to skip its roll, penalties or cooldown."""
        action = await _start_due(engine, clock, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)
        pools_before = store.peek_pools(7)

        with pytest.raises(ActionConflictError):
            await engine.actions.dismiss_action(7, action.id)

        assert store.peek_pools(7) == pools_before
        assert store.peek_actions(7)[0].result_status is None
        with pytest.raises(ActionConflictError):
            await engine.actions.start_action(7, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)

        rng.queue(0.99, 0.5)
        resolution = await engine.actions.resolve_action(7, action.id)
        assert resolution.status is ResultStatus.FAILURE
        with pytest.raises(CooldownActiveError):
            await engine.actions.start_action(7, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)

    async def test_dismiss_requires_a_due_action(self, engine, runner):
        started = await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)

        with pytest.raises(ActionNotReadyError):
            await engine.actions.dismiss_action(7, started.action.id)


# ============================================================================
# QUERIES
# ============================================================================


@pytest.mark.unit
class TestQueries:
    async def test_list_active_actions_oldest_first(self, engine, runner, clock):
        scout = await engine.actions.start_action(7, ActionKind.ZONE_SCOUT)
        clock.advance(minutes=1)
        breach = await engine.actions.start_action(7, ActionKind.ZONE_BREACH_REMOTE, BREACH_TARGET)

        active = await engine.actions.list_active_actions(7)
        assert [action.id for action in active] == [scout.action.id, breach.action.id]

        clock.advance(minutes=60)
        await engine.actions.resolve_action(7, scout.action.id)

        active = await engine.actions.list_active_actions(7)
        assert [action.id for action in active] == [breach.action.id]

    async def test_list_for_unknown_character(self, engine):
        with pytest.raises(NotFoundError):
            await engine.actions.list_active_actions(999)

    async def test_preview_success(self, engine, runner):
        # 60 + 20/10 + 3 + 15/20 = 65.75
        chance = await engine.actions.preview_success(7, ActionKind.ZONE_BREACH_PHYSICAL, BREACH_TARGET)

        assert chance.rate == 66
        assert chance.risk is RiskLevel.MODERATE

    async def test_non_breach_actions_cannot_fail(self, engine, runner):
        assert await engine.actions.preview_success(7, ActionKind.ZONE_SCOUT) is None
