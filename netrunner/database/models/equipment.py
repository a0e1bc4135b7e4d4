"""
Owned equipment and loadout tables.

- `hardware`: owned hardware copies with their upgrade level
- `amplifiers`: owned amplifiers with their effect list
- `character_loadouts`: one row per character; equipped hardware id and
  amplifier ids
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from netrunner.core.database.base import Base, IdMixin, TimestampMixin


class HardwareRow(IdMixin, TimestampMixin, Base):
    __tablename__ = "hardware"
    __table_args__ = (Index("ix_hardware_character_id", "character_id"),)

    character_id: Mapped[int] = mapped_column(ForeignKey("characters.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    upgrade_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    processor: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    heat_sink: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    memory: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lifi: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    encryption: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cell_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AmplifierRow(IdMixin, TimestampMixin, Base):
    """`effects` is a list of {"target", "value", "is_percentage"} objects."""

    __tablename__ = "amplifiers"
    __table_args__ = (Index("ix_amplifiers_character_id", "character_id"),)

    character_id: Mapped[int] = mapped_column(ForeignKey("characters.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    effects: Mapped[List[Dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)


class CharacterLoadoutRow(TimestampMixin, Base):
    __tablename__ = "character_loadouts"

    character_id: Mapped[int] = mapped_column(
        ForeignKey("characters.id", ondelete="CASCADE"), primary_key=True
    )
    hardware_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("hardware.id", ondelete="SET NULL"), nullable=True
    )
    amplifier_ids: Mapped[List[int]] = mapped_column(JSONB, nullable=False, default=list)
