"""
In-memory store.

Purpose
-------
A complete `EngineStore` held in process memory, for tests and for embedding
the engine without a database.

Design Notes
------------
- One `asyncio.Lock` serializes transactions, which covers every row lock.
- Each transaction snapshots the whole state and restores it if the block
  raises, so a failed operation leaves nothing behind.
- Reads return copies and writes store copies, matching the detach semantics
  of a database row: mutating a returned object changes nothing until saved.
- Loadouts are kept as item ids and rebuilt on read, so an upgraded hardware
  item is seen through the loadout immediately.
"""

from __future__ import annotations

import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from netrunner.core.logging import get_logger
from netrunner.domain.enums import ActionKind, ResultStatus
from netrunner.domain.models.action import ActionRecord, CooldownRecord
from netrunner.domain.models.character import Character, ClassBaseline
from netrunner.domain.models.equipment import AmplifierItem, HardwareItem, Loadout
from netrunner.domain.models.pools import PoolState

logger = get_logger(__name__)


@dataclass
class _LoadoutRow:
    hardware_id: Optional[int] = None
    amplifier_ids: List[int] = field(default_factory=list)


@dataclass
class _State:
    characters: Dict[int, Character] = field(default_factory=dict)
    baselines: Dict[int, ClassBaseline] = field(default_factory=dict)
    hardware: Dict[Tuple[int, int], HardwareItem] = field(default_factory=dict)
    amplifiers: Dict[Tuple[int, int], AmplifierItem] = field(default_factory=dict)
    loadouts: Dict[int, _LoadoutRow] = field(default_factory=dict)
    pools: Dict[int, PoolState] = field(default_factory=dict)
    actions: Dict[int, ActionRecord] = field(default_factory=dict)
    cooldowns: List[CooldownRecord] = field(default_factory=list)
    next_action_id: int = 1
    next_cooldown_id: int = 1


def _detached(character: Character) -> Character:
    clone = copy.deepcopy(character)
    clone.clear_domain_events()
    return clone


class InMemoryTransaction:
    """Transaction view over the store state. Valid only inside its block."""

    def __init__(self, state: _State) -> None:
        self._state = state

    # ------------------------------------------------------------------ #
    # Characters
    # ------------------------------------------------------------------ #

    async def get_character(self, character_id: int, for_update: bool = False) -> Optional[Character]:
        character = self._state.characters.get(character_id)
        return _detached(character) if character is not None else None

    async def save_character(self, character: Character) -> None:
        self._state.characters[character.id] = _detached(character)

    async def get_class_baseline(self, class_id: int) -> Optional[ClassBaseline]:
        return self._state.baselines.get(class_id)

    # ------------------------------------------------------------------ #
    # Loadout and owned items
    # ------------------------------------------------------------------ #

    async def get_loadout(self, character_id: int) -> Loadout:
        row = self._state.loadouts.get(character_id, _LoadoutRow())
        hardware = None
        if row.hardware_id is not None:
            hardware = copy.deepcopy(self._state.hardware.get((character_id, row.hardware_id)))
        amplifiers = [
            self._state.amplifiers[(character_id, amp_id)]
            for amp_id in row.amplifier_ids
            if (character_id, amp_id) in self._state.amplifiers
        ]
        return Loadout(character_id=character_id, hardware=hardware, amplifiers=amplifiers)

    async def save_loadout(self, loadout: Loadout) -> None:
        self._state.loadouts[loadout.character_id] = _LoadoutRow(
            hardware_id=loadout.hardware.id if loadout.hardware else None,
            amplifier_ids=[amp.id for amp in loadout.amplifiers],
        )

    async def get_hardware(self, character_id: int, hardware_id: int) -> Optional[HardwareItem]:
        item = self._state.hardware.get((character_id, hardware_id))
        return copy.deepcopy(item) if item is not None else None

    async def save_hardware(self, character_id: int, hardware: HardwareItem) -> None:
        self._state.hardware[(character_id, hardware.id)] = copy.deepcopy(hardware)

    async def get_amplifier(self, character_id: int, amplifier_id: int) -> Optional[AmplifierItem]:
        return self._state.amplifiers.get((character_id, amplifier_id))

    # ------------------------------------------------------------------ #
    # Pools
    # ------------------------------------------------------------------ #

    async def get_pools(self, character_id: int, for_update: bool = False) -> Optional[PoolState]:
        pools = self._state.pools.get(character_id)
        return copy.deepcopy(pools) if pools is not None else None

    async def save_pools(self, pools: PoolState) -> None:
        self._state.pools[pools.character_id] = copy.deepcopy(pools)

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    async def count_unresolved_actions(self, character_id: int) -> int:
        return sum(
            1
            for action in self._state.actions.values()
            if action.character_id == character_id and not action.is_resolved
        )

    async def count_active_load_actions(self, character_id: int, now: datetime) -> int:
        return sum(
            1
            for action in self._state.actions.values()
            if action.character_id == character_id and action.is_active_load(now)
        )

    async def find_unresolved_action_for_target(
        self, character_id: int, target_id: str
    ) -> Optional[ActionRecord]:
        for action in self._state.actions.values():
            if (
                action.character_id == character_id
                and not action.is_resolved
                and action.context.target_id == target_id
            ):
                return copy.deepcopy(action)
        return None

    async def add_action(self, action: ActionRecord) -> ActionRecord:
        stored = replace(copy.deepcopy(action), id=self._state.next_action_id)
        self._state.next_action_id += 1
        self._state.actions[stored.id] = stored
        return copy.deepcopy(stored)

    async def get_action(self, action_id: int, for_update: bool = False) -> Optional[ActionRecord]:
        action = self._state.actions.get(action_id)
        return copy.deepcopy(action) if action is not None else None

    async def list_actions(
        self,
        character_id: int,
        *,
        unresolved_only: bool = False,
        kind: Optional[ActionKind] = None,
    ) -> List[ActionRecord]:
        found = [
            copy.deepcopy(action)
            for action in self._state.actions.values()
            if action.character_id == character_id
            and (not unresolved_only or not action.is_resolved)
            and (kind is None or action.kind is kind)
        ]
        return sorted(found, key=lambda action: (action.start_time, action.id))

    async def mark_action_resolved(
        self,
        action_id: int,
        status: ResultStatus,
        outcome: Dict[str, Any],
        resolved_at: datetime,
    ) -> bool:
        action = self._state.actions.get(action_id)
        if action is None or action.is_resolved:
            return False
        action.result_status = status
        action.outcome = copy.deepcopy(outcome)
        action.resolved_at = resolved_at
        return True

    async def mark_action_dismissed(self, action_id: int) -> bool:
        action = self._state.actions.get(action_id)
        if action is None or not action.is_resolved or action.is_dismissed:
            return False
        action.result_status = ResultStatus.DISMISSED
        return True

    # ------------------------------------------------------------------ #
    # Cooldowns
    # ------------------------------------------------------------------ #

    async def get_active_cooldown(
        self, character_id: int, target_id: str, now: datetime
    ) -> Optional[CooldownRecord]:
        active = [
            cooldown
            for cooldown in self._state.cooldowns
            if cooldown.character_id == character_id
            and cooldown.target_id == target_id
            and cooldown.is_active(now)
        ]
        if not active:
            return None
        return copy.deepcopy(max(active, key=lambda cooldown: cooldown.until))

    async def add_cooldown(self, cooldown: CooldownRecord) -> CooldownRecord:
        stored = replace(cooldown, id=self._state.next_cooldown_id)
        self._state.next_cooldown_id += 1
        self._state.cooldowns.append(stored)
        return replace(stored)


class InMemoryStore:
    """
    `EngineStore` backed by dictionaries.

    Seed it with the `add_*` helpers before running engine operations:

        store = InMemoryStore()
        store.add_class_baseline(ClassBaseline(1, "decker", {TechStat.CLOCK_SPEED: 20}))
        store.add_character(Character(7, class_id=1))
    """

    def __init__(self) -> None:
        self._state = _State()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryTransaction]:
        async with self._lock:
            snapshot = copy.deepcopy(self._state)
            try:
                yield InMemoryTransaction(self._state)
            except Exception:
                self._state = snapshot
                logger.debug("In-memory transaction rolled back")
                raise

    # ------------------------------------------------------------------ #
    # Seeding
    # ------------------------------------------------------------------ #

    def add_class_baseline(self, baseline: ClassBaseline) -> None:
        self._state.baselines[baseline.class_id] = baseline

    def add_character(self, character: Character, pools: Optional[PoolState] = None) -> None:
        self._state.characters[character.id] = _detached(character)
        self._state.pools[character.id] = copy.deepcopy(pools) if pools else PoolState(character.id)

    def add_hardware(self, character_id: int, hardware: HardwareItem) -> None:
        self._state.hardware[(character_id, hardware.id)] = copy.deepcopy(hardware)

    def add_amplifier(self, character_id: int, amplifier: AmplifierItem) -> None:
        self._state.amplifiers[(character_id, amplifier.id)] = amplifier

    def set_pools(self, pools: PoolState) -> None:
        self._state.pools[pools.character_id] = copy.deepcopy(pools)

    def set_loadout(self, loadout: Loadout) -> None:
        if loadout.hardware is not None:
            self.add_hardware(loadout.character_id, loadout.hardware)
        for amplifier in loadout.amplifiers:
            self.add_amplifier(loadout.character_id, amplifier)
        self._state.loadouts[loadout.character_id] = _LoadoutRow(
            hardware_id=loadout.hardware.id if loadout.hardware else None,
            amplifier_ids=[amp.id for amp in loadout.amplifiers],
        )

    def add_action(self, action: ActionRecord) -> ActionRecord:
        """Seed an action record directly (no resource accounting)."""
        stored = replace(copy.deepcopy(action), id=self._state.next_action_id)
        self._state.next_action_id += 1
        self._state.actions[stored.id] = stored
        return copy.deepcopy(stored)

    # ------------------------------------------------------------------ #
    # Inspection
    # ------------------------------------------------------------------ #

    def peek_pools(self, character_id: int) -> PoolState:
        return copy.deepcopy(self._state.pools[character_id])

    def peek_character(self, character_id: int) -> Character:
        return _detached(self._state.characters[character_id])

    def peek_actions(self, character_id: int) -> List[ActionRecord]:
        return [
            copy.deepcopy(action)
            for action in self._state.actions.values()
            if action.character_id == character_id
        ]

    def peek_cooldowns(self, character_id: int) -> List[CooldownRecord]:
        return [replace(c) for c in self._state.cooldowns if c.character_id == character_id]
