"""
Action and cooldown tables.

Both are append-only audit trails: action records are never deleted and
their `result_status` only ever goes from NULL to a terminal value, which the
store enforces with a conditional UPDATE. Cooldowns expire by time.

Indexes:
    - action_records (character_id, result_status): unresolved counts
    - action_records (character_id, target_id): per-target conflicts
    - cooldown_records (character_id, target_id, until): active lookups
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from netrunner.core.database.base import Base, IdMixin


class ActionRecordRow(IdMixin, Base):
    __tablename__ = "action_records"
    __table_args__ = (
        Index("ix_action_records_character_status", "character_id", "result_status"),
        Index("ix_action_records_character_target", "character_id", "target_id"),
    )

    character_id: Mapped[int] = mapped_column(ForeignKey("characters.id", ondelete="CASCADE"), nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Context
    target_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    target_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    undiscovered_fraction: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    # Resolution
    result_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    outcome: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class CooldownRecordRow(IdMixin, Base):
    __tablename__ = "cooldown_records"
    __table_args__ = (
        Index("ix_cooldown_records_lookup", "character_id", "target_id", "until"),
    )

    character_id: Mapped[int] = mapped_column(ForeignKey("characters.id", ondelete="CASCADE"), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
