"""
Character and class archetype tables.

Anemic schemas only; the rules live in `netrunner.domain.models.character`.
The SQL store converts rows to domain objects and back at save time.
"""

from __future__ import annotations

from typing import Dict

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from netrunner.core.database.base import Base, IdMixin, TimestampMixin


class ClassBaselineRow(Base):
    """
    Class archetype supplying baseline tech stats.

    `tech` maps tech stat names (clock_speed, cooling, ...) to integers.
    """

    __tablename__ = "class_baselines"

    class_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    tech: Mapped[Dict[str, int]] = mapped_column(JSONB, nullable=False, default=dict)


class CharacterRow(IdMixin, TimestampMixin, Base):
    """
    Character attributes and progression.

    Indexes:
        - class_id
        - level
    """

    __tablename__ = "characters"
    __table_args__ = (
        Index("ix_characters_class_id", "class_id"),
        Index("ix_characters_level", "level"),
    )

    name: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    class_id: Mapped[int] = mapped_column(ForeignKey("class_baselines.class_id"), nullable=False)

    # ========================================================================
    # ATTRIBUTES
    # ========================================================================

    cognition: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    insight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    interface: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    power: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    resilience: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    agility: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # ========================================================================
    # PROGRESSION
    # ========================================================================

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    experience: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    unallocated_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<CharacterRow(id={self.id}, level={self.level})>"
