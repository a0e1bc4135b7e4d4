"""
PostgreSQL store.

Purpose
-------
`EngineStore` backed by SQLAlchemy async sessions. Each `transaction()` is
one `DatabaseService.get_transaction()` block: it commits when the service
operation returns and rolls back when it raises.

Design Notes
------------
- Rows never leave the transaction. Every read converts the row into a
  domain object and every save copies the domain object back onto the row.
- `get_pools(..., for_update=True)` issues SELECT ... FOR UPDATE on the
  character's pool row; that row is the per-character lock.
- `mark_action_resolved` is a conditional UPDATE (WHERE result_status IS
  NULL) and reports whether exactly one row changed.
- `mark_action_dismissed` is the same kind of UPDATE from a rolled status to
  `dismissed`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from netrunner.core.database.service import DatabaseService
from netrunner.core.logging import get_logger
from netrunner.database.models import (
    ActionRecordRow,
    AmplifierRow,
    CharacterLoadoutRow,
    CharacterPoolsRow,
    CharacterRow,
    ClassBaselineRow,
    CooldownRecordRow,
    HardwareRow,
)
from netrunner.domain.enums import ActionKind, Attribute, HardwareStat, PoolName, ResultStatus, TechStat
from netrunner.domain.models.action import ActionContext, ActionRecord, CooldownRecord
from netrunner.domain.models.character import Attributes, Character, ClassBaseline
from netrunner.domain.models.equipment import AmplifierEffect, AmplifierItem, HardwareItem, Loadout
from netrunner.domain.models.pools import PoolState
from netrunner.modules.shared.base_repository import BaseRepository

logger = get_logger(__name__)


# ============================================================================
# ROW <-> DOMAIN CONVERSION
# ============================================================================


def _to_character(row: CharacterRow) -> Character:
    return Character(
        row.id,
        class_id=row.class_id,
        attributes=Attributes(**{attr.value: getattr(row, attr.value) for attr in Attribute}),
        level=row.level,
        experience=row.experience,
        unallocated_points=row.unallocated_points,
        name=row.name,
    )


def _to_baseline(row: ClassBaselineRow) -> ClassBaseline:
    tech: Dict[TechStat, int] = {}
    for key, value in (row.tech or {}).items():
        stat = TechStat.parse(key)
        if stat is not None:
            tech[stat] = int(value)
    return ClassBaseline(class_id=row.class_id, name=row.name, tech=tech)


def _to_hardware(row: HardwareRow) -> HardwareItem:
    return HardwareItem(
        id=row.id,
        name=row.name,
        tier=row.tier,
        stats={stat: getattr(row, stat.value) for stat in HardwareStat},
        upgrade_level=row.upgrade_level,
    )


def _to_amplifier(row: AmplifierRow) -> AmplifierItem:
    effects = tuple(
        AmplifierEffect(
            target=str(effect.get("target", "")),
            value=int(effect.get("value", 0)),
            is_percentage=bool(effect.get("is_percentage", False)),
        )
        for effect in (row.effects or [])
    )
    return AmplifierItem(id=row.id, name=row.name, tier=row.tier, effects=effects)


def _to_pools(row: CharacterPoolsRow) -> PoolState:
    return PoolState(
        character_id=row.character_id,
        current={pool: getattr(row, pool.value) for pool in PoolName},
        maxima={pool: getattr(row, f"max_{pool.value}") for pool in PoolName},
        last_regeneration=row.last_regeneration,
        stat_snapshot=dict(row.stat_snapshot or {}),
    )


def _to_action(row: ActionRecordRow) -> ActionRecord:
    status = ResultStatus.parse(row.result_status) if row.result_status else None
    return ActionRecord(
        id=row.id,
        character_id=row.character_id,
        kind=ActionKind(row.kind),
        start_time=row.start_time,
        end_time=row.end_time,
        context=ActionContext(
            target_id=row.target_id,
            target_level=row.target_level,
            difficulty=row.difficulty,
            undiscovered_fraction=row.undiscovered_fraction,
        ),
        result_status=status,
        outcome=dict(row.outcome) if row.outcome is not None else None,
        resolved_at=row.resolved_at,
    )


def _to_cooldown(row: CooldownRecordRow) -> CooldownRecord:
    return CooldownRecord(
        id=row.id, character_id=row.character_id, target_id=row.target_id, until=row.until
    )


# ============================================================================
# TRANSACTION
# ============================================================================


class SqlAlchemyTransaction:
    """`EngineTransaction` over one open session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.characters = BaseRepository(CharacterRow, logger)
        self.baselines = BaseRepository(ClassBaselineRow, logger)
        self.hardware = BaseRepository(HardwareRow, logger)
        self.amplifiers = BaseRepository(AmplifierRow, logger)
        self.loadouts = BaseRepository(CharacterLoadoutRow, logger)
        self.pools = BaseRepository(CharacterPoolsRow, logger)
        self.actions = BaseRepository(ActionRecordRow, logger)
        self.cooldowns = BaseRepository(CooldownRecordRow, logger)

    # ------------------------------------------------------------------ #
    # Characters
    # ------------------------------------------------------------------ #

    async def get_character(self, character_id: int, for_update: bool = False) -> Optional[Character]:
        row = await self.characters.get(self.session, character_id, for_update=for_update)
        return _to_character(row) if row is not None else None

    async def save_character(self, character: Character) -> None:
        row = await self.characters.get(self.session, character.id)
        if row is None:
            row = self.characters.add(self.session, CharacterRow(id=character.id))
        row.name = character.name
        row.class_id = character.class_id
        for attribute in Attribute:
            setattr(row, attribute.value, character.attributes.get(attribute))
        row.level = character.level
        row.experience = character.experience
        row.unallocated_points = character.unallocated_points
        await self.characters.flush(self.session)

    async def get_class_baseline(self, class_id: int) -> Optional[ClassBaseline]:
        row = await self.baselines.find_one_where(self.session, ClassBaselineRow.class_id == class_id)
        return _to_baseline(row) if row is not None else None

    # ------------------------------------------------------------------ #
    # Loadout and owned items
    # ------------------------------------------------------------------ #

    async def get_loadout(self, character_id: int) -> Loadout:
        row = await self.loadouts.find_one_where(
            self.session, CharacterLoadoutRow.character_id == character_id
        )
        if row is None:
            return Loadout(character_id=character_id)

        hardware = None
        if row.hardware_id is not None:
            hardware = await self.get_hardware(character_id, row.hardware_id)

        amplifiers: List[AmplifierItem] = []
        for amplifier_id in row.amplifier_ids or []:
            amplifier = await self.get_amplifier(character_id, amplifier_id)
            if amplifier is not None:
                amplifiers.append(amplifier)
        return Loadout(character_id=character_id, hardware=hardware, amplifiers=amplifiers)

    async def save_loadout(self, loadout: Loadout) -> None:
        row = await self.loadouts.find_one_where(
            self.session, CharacterLoadoutRow.character_id == loadout.character_id
        )
        if row is None:
            row = self.loadouts.add(self.session, CharacterLoadoutRow(character_id=loadout.character_id))
        row.hardware_id = loadout.hardware.id if loadout.hardware else None
        row.amplifier_ids = [amp.id for amp in loadout.amplifiers]
        await self.loadouts.flush(self.session)

    async def get_hardware(self, character_id: int, hardware_id: int) -> Optional[HardwareItem]:
        row = await self.hardware.find_one_where(
            self.session, HardwareRow.id == hardware_id, HardwareRow.character_id == character_id
        )
        return _to_hardware(row) if row is not None else None

    async def save_hardware(self, character_id: int, hardware: HardwareItem) -> None:
        row = await self.hardware.find_one_where(
            self.session, HardwareRow.id == hardware.id, HardwareRow.character_id == character_id
        )
        if row is None:
            row = self.hardware.add(self.session, HardwareRow(id=hardware.id, character_id=character_id))
        row.name = hardware.name
        row.tier = hardware.tier
        row.upgrade_level = hardware.upgrade_level
        for stat in HardwareStat:
            setattr(row, stat.value, hardware.base(stat))
        await self.hardware.flush(self.session)

    async def get_amplifier(self, character_id: int, amplifier_id: int) -> Optional[AmplifierItem]:
        row = await self.amplifiers.find_one_where(
            self.session, AmplifierRow.id == amplifier_id, AmplifierRow.character_id == character_id
        )
        return _to_amplifier(row) if row is not None else None

    # ------------------------------------------------------------------ #
    # Pools
    # ------------------------------------------------------------------ #

    async def get_pools(self, character_id: int, for_update: bool = False) -> Optional[PoolState]:
        row = await self.pools.find_one_where(
            self.session, CharacterPoolsRow.character_id == character_id, for_update=for_update
        )
        return _to_pools(row) if row is not None else None

    async def save_pools(self, pools: PoolState) -> None:
        row = await self.pools.find_one_where(
            self.session, CharacterPoolsRow.character_id == pools.character_id
        )
        if row is None:
            row = self.pools.add(self.session, CharacterPoolsRow(character_id=pools.character_id))
        for pool in PoolName:
            setattr(row, pool.value, pools.value(pool))
            setattr(row, f"max_{pool.value}", pools.max_of(pool))
        row.last_regeneration = pools.last_regeneration
        row.stat_snapshot = dict(pools.stat_snapshot)
        await self.pools.flush(self.session)

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    async def count_unresolved_actions(self, character_id: int) -> int:
        return await self.actions.count(
            self.session,
            ActionRecordRow.character_id == character_id,
            ActionRecordRow.result_status.is_(None),
        )

    async def count_active_load_actions(self, character_id: int, now: datetime) -> int:
        load_kinds = [kind.value for kind in ActionKind if kind.generates_load]
        return await self.actions.count(
            self.session,
            ActionRecordRow.character_id == character_id,
            ActionRecordRow.result_status.is_(None),
            ActionRecordRow.kind.in_(load_kinds),
            ActionRecordRow.end_time > now,
        )

    async def find_unresolved_action_for_target(
        self, character_id: int, target_id: str
    ) -> Optional[ActionRecord]:
        row = await self.actions.find_one_where(
            self.session,
            ActionRecordRow.character_id == character_id,
            ActionRecordRow.target_id == target_id,
            ActionRecordRow.result_status.is_(None),
        )
        return _to_action(row) if row is not None else None

    async def add_action(self, action: ActionRecord) -> ActionRecord:
        row = self.actions.add(
            self.session,
            ActionRecordRow(
                character_id=action.character_id,
                kind=action.kind.value,
                start_time=action.start_time,
                end_time=action.end_time,
                target_id=action.context.target_id,
                target_level=action.context.target_level,
                difficulty=action.context.difficulty,
                undiscovered_fraction=action.context.undiscovered_fraction,
                result_status=action.result_status.value if action.result_status else None,
                outcome=action.outcome,
                resolved_at=action.resolved_at,
            ),
        )
        await self.actions.flush(self.session)
        return _to_action(row)

    async def get_action(self, action_id: int, for_update: bool = False) -> Optional[ActionRecord]:
        row = await self.actions.get(self.session, action_id, for_update=for_update)
        return _to_action(row) if row is not None else None

    async def list_actions(
        self,
        character_id: int,
        *,
        unresolved_only: bool = False,
        kind: Optional[ActionKind] = None,
    ) -> List[ActionRecord]:
        conditions = [ActionRecordRow.character_id == character_id]
        if unresolved_only:
            conditions.append(ActionRecordRow.result_status.is_(None))
        if kind is not None:
            conditions.append(ActionRecordRow.kind == kind.value)

        rows = await self.actions.find_many_where(
            self.session,
            *conditions,
            order_by=(ActionRecordRow.start_time, ActionRecordRow.id),
        )
        return [_to_action(row) for row in rows]

    async def mark_action_resolved(
        self,
        action_id: int,
        status: ResultStatus,
        outcome: Dict[str, Any],
        resolved_at: datetime,
    ) -> bool:
        stmt = (
            update(ActionRecordRow)
            .where(ActionRecordRow.id == action_id, ActionRecordRow.result_status.is_(None))
            .values(result_status=status.value, outcome=outcome, resolved_at=resolved_at)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        won = result.rowcount == 1
        logger.debug(
            "Conditional action resolve",
            extra={"action_id": action_id, "status": status.value, "won": won},
        )
        return won

    async def mark_action_dismissed(self, action_id: int) -> bool:
        stmt = (
            update(ActionRecordRow)
            .where(
                ActionRecordRow.id == action_id,
                ActionRecordRow.result_status.is_not(None),
                ActionRecordRow.result_status != ResultStatus.DISMISSED.value,
            )
            .values(result_status=ResultStatus.DISMISSED.value)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    # ------------------------------------------------------------------ #
    # Cooldowns
    # ------------------------------------------------------------------ #

    async def get_active_cooldown(
        self, character_id: int, target_id: str, now: datetime
    ) -> Optional[CooldownRecord]:
        rows = await self.cooldowns.find_many_where(
            self.session,
            CooldownRecordRow.character_id == character_id,
            CooldownRecordRow.target_id == target_id,
            CooldownRecordRow.until > now,
            order_by=(CooldownRecordRow.until.desc(),),
            limit=1,
        )
        return _to_cooldown(rows[0]) if rows else None

    async def add_cooldown(self, cooldown: CooldownRecord) -> CooldownRecord:
        row = self.cooldowns.add(
            self.session,
            CooldownRecordRow(
                character_id=cooldown.character_id,
                target_id=cooldown.target_id,
                until=cooldown.until,
            ),
        )
        await self.cooldowns.flush(self.session)
        return _to_cooldown(row)


# ============================================================================
# STORE
# ============================================================================


class SqlAlchemyStore:
    """
    `EngineStore` over a `DatabaseService`.

    Usage
    -----
    >>> db = DatabaseService(Config.DATABASE_URL)
    >>> await db.initialize()
    >>> container = ServiceContainer(SqlAlchemyStore(db), config_manager, event_bus)
    """

    def __init__(self, database: DatabaseService) -> None:
        self.database = database

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlAlchemyTransaction]:
        async with self.database.get_transaction() as session:
            yield SqlAlchemyTransaction(session)
