"""
Store protocol.

Purpose
-------
The persistence contract the engine runs against. Every service receives an
`EngineStore` through its constructor and performs each read-then-write
inside one `transaction()`; an exception inside the block rolls back every
write made through the transaction.

Locking
-------
`get_pools(..., for_update=True)` takes the per-character lock (a row lock
in SQL). Services always lock pools before touching an action record.

Resolution
----------
`mark_action_resolved` is a compare-and-swap: it sets the terminal status
only if the action is still unresolved and returns whether it won.
`mark_action_dismissed` is the second swap, from a rolled outcome to
`dismissed`; the stored outcome is kept.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, AsyncContextManager, Dict, List, Optional, Protocol

from netrunner.domain.enums import ActionKind, ResultStatus
from netrunner.domain.models.action import ActionRecord, CooldownRecord
from netrunner.domain.models.character import Character, ClassBaseline
from netrunner.domain.models.equipment import AmplifierItem, HardwareItem, Loadout
from netrunner.domain.models.pools import PoolState
from netrunner.modules.shared.exceptions import NotFoundError


class EngineTransaction(Protocol):
    # Characters
    async def get_character(self, character_id: int, for_update: bool = False) -> Optional[Character]: ...

    async def save_character(self, character: Character) -> None: ...

    async def get_class_baseline(self, class_id: int) -> Optional[ClassBaseline]: ...

    # Loadout and owned items
    async def get_loadout(self, character_id: int) -> Loadout: ...

    async def save_loadout(self, loadout: Loadout) -> None: ...

    async def get_hardware(self, character_id: int, hardware_id: int) -> Optional[HardwareItem]: ...

    async def save_hardware(self, character_id: int, hardware: HardwareItem) -> None: ...

    async def get_amplifier(self, character_id: int, amplifier_id: int) -> Optional[AmplifierItem]: ...

    # Pools
    async def get_pools(self, character_id: int, for_update: bool = False) -> Optional[PoolState]: ...

    async def save_pools(self, pools: PoolState) -> None: ...

    # Actions
    async def count_unresolved_actions(self, character_id: int) -> int: ...

    async def count_active_load_actions(self, character_id: int, now: datetime) -> int: ...

    async def find_unresolved_action_for_target(
        self, character_id: int, target_id: str
    ) -> Optional[ActionRecord]: ...

    async def add_action(self, action: ActionRecord) -> ActionRecord: ...

    async def get_action(self, action_id: int, for_update: bool = False) -> Optional[ActionRecord]: ...

    async def list_actions(
        self,
        character_id: int,
        *,
        unresolved_only: bool = False,
        kind: Optional[ActionKind] = None,
    ) -> List[ActionRecord]: ...

    async def mark_action_resolved(
        self,
        action_id: int,
        status: ResultStatus,
        outcome: Dict[str, Any],
        resolved_at: datetime,
    ) -> bool: ...

    async def mark_action_dismissed(self, action_id: int) -> bool: ...

    # Cooldowns
    async def get_active_cooldown(
        self, character_id: int, target_id: str, now: datetime
    ) -> Optional[CooldownRecord]: ...

    async def add_cooldown(self, cooldown: CooldownRecord) -> CooldownRecord: ...


class EngineStore(Protocol):
    def transaction(self) -> AsyncContextManager[EngineTransaction]: ...


# ============================================================================
# LOOKUP HELPERS
# ============================================================================


async def require_character(
    tx: EngineTransaction, character_id: int, for_update: bool = False
) -> Character:
    character = await tx.get_character(character_id, for_update=for_update)
    if character is None:
        raise NotFoundError("Character", character_id)
    return character


async def require_baseline(tx: EngineTransaction, class_id: int) -> ClassBaseline:
    baseline = await tx.get_class_baseline(class_id)
    if baseline is None:
        raise NotFoundError("ClassBaseline", class_id)
    return baseline


async def require_pools(tx: EngineTransaction, character_id: int) -> PoolState:
    """Lock and return the character's pool row."""
    pools = await tx.get_pools(character_id, for_update=True)
    if pools is None:
        raise NotFoundError("PoolState", character_id)
    return pools
