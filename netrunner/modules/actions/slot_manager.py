"""
Action Slot Manager

Purpose
-------
Start, resolve and dismiss time-delayed actions. The bandwidth pool is the
concurrency semaphore: starting an action takes one slot together with its
resource cost, and resolving it gives the slot back. Dismissal only
acknowledges a resolved action and changes no balances.

Responsibilities
----------------
- Regenerate before reading balances
- Check every requirement before any write; nothing changes on failure
- Enforce per-target cooldowns and one in-flight action per target
- Apply rolled outcomes (pool changes, XP, cooldown) atomically
- Guarantee each action resolves once, even under concurrent calls

Transaction discipline
----------------------
Each operation runs in one store transaction. The character's pool row is
locked first, then the action record. The terminal status is written with a
compare-and-swap; a caller that loses the swap writes nothing and returns the
stored outcome with `already_resolved=True`.

Events
------
- action.started
- action.resolved
- action.dismissed
- character.leveled_up (from XP awarded on resolution)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from netrunner.core.logging import LogContext
from netrunner.domain.enums import LOAD_POOLS, ActionKind, PoolName, ResultStatus
from netrunner.domain.models.action import ActionContext, ActionRecord, CooldownRecord, ResourceCost
from netrunner.domain.models.pools import PoolState
from netrunner.modules.actions.costs import ActionCatalogue
from netrunner.modules.outcome.resolver import OutcomeResolver, OutcomeSettings, SuccessChance
from netrunner.modules.shared.base_service import BaseService, Clock
from netrunner.modules.shared.exceptions import (
    ActionConflictError,
    ActionNotReadyError,
    CooldownActiveError,
    InsufficientResourcesError,
    NotFoundError,
    ValidationError,
)
from netrunner.store.base import require_character, require_pools

if TYPE_CHECKING:
    from datetime import datetime
    from logging import Logger

    from netrunner.core.config.manager import ConfigManager
    from netrunner.core.event.bus import EventBus
    from netrunner.modules.progression.service import ProgressionService
    from netrunner.modules.regeneration.service import RegenerationService
    from netrunner.modules.stats.service import StatService
    from netrunner.store.base import EngineStore, EngineTransaction


@dataclass(frozen=True)
class StartedAction:
    action: ActionRecord
    pools: Dict[str, Dict[str, int]]
    cost: ResourceCost


@dataclass(frozen=True)
class ActionResolution:
    """
    Result of resolving or dismissing an action.

    `outcome` is the payload stored on the record; repeated calls return the
    same payload with `already_resolved=True`.
    """

    action_id: int
    kind: ActionKind
    status: ResultStatus
    outcome: Dict[str, Any] = field(default_factory=dict)
    already_resolved: bool = False

    @classmethod
    def from_record(cls, action: ActionRecord, already_resolved: bool = True) -> "ActionResolution":
        return cls(
            action_id=action.id,
            kind=action.kind,
            status=action.result_status,
            outcome=dict(action.outcome or {}),
            already_resolved=already_resolved,
        )


class ActionSlotManager(BaseService):
    def __init__(
        self,
        store: EngineStore,
        stats: StatService,
        regeneration: RegenerationService,
        progression: ProgressionService,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        resolver: Optional[OutcomeResolver] = None,
        catalogue: Optional[ActionCatalogue] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, clock)
        self.store = store
        self.stats = stats
        self.regeneration = regeneration
        self.progression = progression
        self.resolver = resolver or OutcomeResolver(OutcomeSettings.from_config(config_manager))
        self.catalogue = catalogue or ActionCatalogue.from_config(config_manager)

    # ------------------------------------------------------------------ #
    # Start
    # ------------------------------------------------------------------ #

    async def start_action(
        self,
        character_id: int,
        kind: Union[ActionKind, str],
        context: Optional[ActionContext] = None,
        cost: Optional[ResourceCost] = None,
    ) -> StartedAction:
        """
        Reserve resources and a bandwidth slot, and create the action record.

        Raises:
            ValidationError: Unknown action kind
            NotFoundError: Character or pools missing
            InsufficientResourcesError: First unmet requirement
            CooldownActiveError: Target is cooling down
            ActionConflictError: Target already has an unresolved action
        """
        action_kind = self._parse_kind(kind)
        context = context or ActionContext()
        cost = cost or self.catalogue.cost(action_kind)

        with LogContext(character_id=character_id, operation="start_action"):
            try:
                async with self.store.transaction() as tx:
                    pools = await require_pools(tx, character_id)
                    character = await require_character(tx, character_id)
                    await self.regeneration.regenerate_in(tx, character, pools)

                    now = self.now()
                    await self._check_requirements(tx, character_id, pools, cost)
                    if context.target_id is not None:
                        await self._check_target(tx, character_id, action_kind, context.target_id, now)

                    for pool, amount in cost.spent.items():
                        pools.apply_delta(pool, -amount)
                    for pool, amount in cost.load.items():
                        pools.apply_delta(pool, amount)

                    record = await tx.add_action(
                        ActionRecord(
                            character_id=character_id,
                            kind=action_kind,
                            start_time=now,
                            end_time=now + self.catalogue.duration(action_kind),
                            context=context,
                        )
                    )
                    await tx.save_pools(pools)

                await self.emit_event(
                    "action.started",
                    {
                        "character_id": character_id,
                        "action_id": record.id,
                        "kind": action_kind.value,
                        "target_id": context.target_id,
                        "end_time": record.end_time.isoformat(),
                    },
                )
                self.log.info(
                    "Action started",
                    extra={
                        "character_id": character_id,
                        "action_id": record.id,
                        "kind": action_kind.value,
                        "target_id": context.target_id,
                        "success": True,
                    },
                )
                return StartedAction(action=record, pools=pools.snapshot(), cost=cost)

            except Exception as e:
                self.log_error("start_action", e, character_id=character_id, kind=action_kind.value)
                raise

    async def _check_requirements(
        self,
        tx: EngineTransaction,
        character_id: int,
        pools: PoolState,
        cost: ResourceCost,
    ) -> None:
        for pool in (PoolName.STAMINA, PoolName.CHARGE, PoolName.CONSCIOUSNESS):
            required = cost.spent[pool]
            if pools.value(pool) < required:
                raise InsufficientResourcesError(pool.value, required, pools.value(pool))

        for pool, amount in cost.load.items():
            if pools.headroom(pool) < amount:
                raise InsufficientResourcesError(f"{pool.value}_capacity", amount, pools.headroom(pool))

        floor = int(pools.max_of(PoolName.CONSCIOUSNESS) * cost.min_consciousness_percent)
        if pools.value(PoolName.CONSCIOUSNESS) < floor:
            raise InsufficientResourcesError(
                PoolName.CONSCIOUSNESS.value, floor, pools.value(PoolName.CONSCIOUSNESS)
            )

        unresolved = await tx.count_unresolved_actions(character_id)
        max_slots = pools.max_of(PoolName.BANDWIDTH)
        if unresolved >= max_slots:
            raise InsufficientResourcesError("action_slots", unresolved + 1, max_slots)

        bandwidth = pools.value(PoolName.BANDWIDTH)
        if bandwidth < cost.bandwidth:
            raise InsufficientResourcesError(PoolName.BANDWIDTH.value, cost.bandwidth, bandwidth)

    async def _check_target(
        self,
        tx: EngineTransaction,
        character_id: int,
        kind: ActionKind,
        target_id: str,
        now: datetime,
    ) -> None:
        cooldown = await tx.get_active_cooldown(character_id, target_id, now)
        if cooldown is not None:
            raise CooldownActiveError(kind.value, cooldown.remaining_seconds(now), target_id=target_id)

        existing = await tx.find_unresolved_action_for_target(character_id, target_id)
        if existing is not None:
            raise ActionConflictError(
                "target already has an unresolved action",
                action_id=existing.id,
                target_id=target_id,
            )

    # ------------------------------------------------------------------ #
    # Resolve
    # ------------------------------------------------------------------ #

    async def resolve_action(self, character_id: int, action_id: int) -> ActionResolution:
        """
        Roll and apply the outcome of a due action.

        Resolving an already-resolved action returns its stored outcome.

        Raises:
            NotFoundError: No such action
            ActionConflictError: Action belongs to another character
            ActionNotReadyError: Action end time not reached
        """
        with LogContext(character_id=character_id, action_id=action_id, operation="resolve_action"):
            try:
                async with self.store.transaction() as tx:
                    pools = await require_pools(tx, character_id)
                    action = await self._load_action(tx, character_id, action_id)
                    if action.is_resolved:
                        return ActionResolution.from_record(action)

                    character = await require_character(tx, character_id, for_update=True)
                    await self.regeneration.regenerate_in(tx, character, pools)
                    now = self.now()
                    stats = await self.stats.calculate_in(tx, character)
                    outcome = self.resolver.resolve(action, character, stats)

                    applied: Dict[PoolName, int] = {pool: 0 for pool in PoolName}
                    applied[PoolName.BANDWIDTH] += pools.apply_delta(PoolName.BANDWIDTH, 1)
                    for pool, delta in outcome.penalties.items():
                        applied[pool] += pools.apply_delta(pool, delta)
                    if action.kind is ActionKind.GRID_SCAN:
                        for pool in LOAD_POOLS:
                            applied[pool] += pools.apply_delta(pool, -pools.value(pool))

                    award = await self.progression.award_in(tx, character, pools, outcome.xp)

                    cooldown_until = None
                    if not outcome.succeeded and action.context.target_id is not None:
                        cooldown_until = now + self.resolver.settings.cooldown

                    payload = {
                        **outcome.to_dict(),
                        "applied": {pool.value: delta for pool, delta in applied.items() if delta},
                        "experience": award.to_dict(),
                        "cooldown_until": cooldown_until.isoformat() if cooldown_until else None,
                    }

                    won = await tx.mark_action_resolved(action_id, outcome.status, payload, now)
                    if not won:
                        stored = await tx.get_action(action_id)
                        return ActionResolution.from_record(stored)

                    await tx.save_pools(pools)
                    await tx.save_character(character)
                    if cooldown_until is not None:
                        await tx.add_cooldown(
                            CooldownRecord(
                                character_id=character_id,
                                target_id=action.context.target_id,
                                until=cooldown_until,
                            )
                        )

                await self.emit_domain_events(character.clear_domain_events())
                await self.emit_event(
                    "action.resolved",
                    {
                        "character_id": character_id,
                        "action_id": action_id,
                        "kind": action.kind.value,
                        "status": outcome.status.value,
                        "reward_category": payload["reward_category"],
                        "xp": outcome.xp,
                        "encounter": outcome.encounter,
                    },
                )
                self.log.info(
                    "Action resolved",
                    extra={
                        "character_id": character_id,
                        "action_id": action_id,
                        "kind": action.kind.value,
                        "status": outcome.status.value,
                        "xp": outcome.xp,
                        "success": True,
                    },
                )
                return ActionResolution(
                    action_id=action_id,
                    kind=action.kind,
                    status=outcome.status,
                    outcome=payload,
                )

            except Exception as e:
                self.log_error("resolve_action", e, character_id=character_id, action_id=action_id)
                raise

    # ------------------------------------------------------------------ #
    # Dismiss
    # ------------------------------------------------------------------ #

    async def dismiss_action(self, character_id: int, action_id: int) -> ActionResolution:
        """
        Acknowledge a resolved action, moving it to `dismissed`.

        Pools, XP and cooldowns are left as resolution wrote them, and the
        stored outcome is kept. Dismissing a dismissed action returns it
        with `already_resolved=True`.

        Raises:
            NotFoundError: No such action
            ActionConflictError: Action belongs to another character, or is
                due but not yet resolved
            ActionNotReadyError: Action end time not reached
        """
        with LogContext(character_id=character_id, action_id=action_id, operation="dismiss_action"):
            try:
                async with self.store.transaction() as tx:
                    action = await self._load_action(tx, character_id, action_id)
                    if not action.is_resolved:
                        raise ActionConflictError(
                            "action must be resolved before dismissal", action_id=action_id
                        )
                    if action.is_dismissed:
                        return ActionResolution.from_record(action)

                    won = await tx.mark_action_dismissed(action_id)
                    if not won:
                        stored = await tx.get_action(action_id)
                        return ActionResolution.from_record(stored)

                await self.emit_event(
                    "action.dismissed",
                    {
                        "character_id": character_id,
                        "action_id": action_id,
                        "kind": action.kind.value,
                        "resolved_status": action.result_status.value,
                    },
                )
                self.log.info(
                    "Action dismissed",
                    extra={
                        "character_id": character_id,
                        "action_id": action_id,
                        "resolved_status": action.result_status.value,
                        "success": True,
                    },
                )
                return ActionResolution(
                    action_id=action_id,
                    kind=action.kind,
                    status=ResultStatus.DISMISSED,
                    outcome=dict(action.outcome or {}),
                )

            except Exception as e:
                self.log_error("dismiss_action", e, character_id=character_id, action_id=action_id)
                raise

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    async def list_active_actions(self, character_id: int) -> List[ActionRecord]:
        """Unresolved actions for a character, oldest first."""
        async with self.store.transaction() as tx:
            await require_character(tx, character_id)
            return await tx.list_actions(character_id, unresolved_only=True)

    async def preview_success(
        self,
        character_id: int,
        kind: Union[ActionKind, str],
        context: Optional[ActionContext] = None,
    ) -> Optional[SuccessChance]:
        """Success rate and risk band for an action, None if it cannot fail."""
        action_kind = self._parse_kind(kind)
        async with self.store.transaction() as tx:
            character = await require_character(tx, character_id)
            stats = await self.stats.calculate_in(tx, character)
        return self.resolver.success_chance(action_kind, context or ActionContext(), character, stats)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _parse_kind(kind: Union[ActionKind, str]) -> ActionKind:
        parsed = ActionKind.parse(kind)
        if parsed is None:
            raise ValidationError("kind", f"unknown action kind {kind!r}")
        return parsed

    async def _load_action(self, tx: EngineTransaction, character_id: int, action_id: int) -> ActionRecord:
        action = await tx.get_action(action_id, for_update=True)
        if action is None:
            raise NotFoundError("ActionRecord", action_id)
        if action.character_id != character_id:
            raise ActionConflictError("action belongs to another character", action_id=action_id)
        if not action.is_resolved:
            now = self.now()
            if not action.is_due(now):
                raise ActionNotReadyError(action_id, action.end_time, action.remaining_seconds(now))
        return action
