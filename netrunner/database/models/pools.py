"""
Resource pool table.

One row per character holding the current value and derived max of every
pool, the regeneration checkpoint and the display snapshot from the last
recompute. This row is the per-character lock target (SELECT ... FOR UPDATE).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from netrunner.core.database.base import Base, TimestampMixin


class CharacterPoolsRow(TimestampMixin, Base):
    __tablename__ = "character_pools"

    character_id: Mapped[int] = mapped_column(
        ForeignKey("characters.id", ondelete="CASCADE"), primary_key=True
    )

    # ========================================================================
    # CURRENT VALUES
    # ========================================================================

    consciousness: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stamina: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    charge: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bandwidth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    thermal: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    neural: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ========================================================================
    # DERIVED MAXIMA
    # ========================================================================

    max_consciousness: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_stamina: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_charge: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_bandwidth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_thermal: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_neural: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_regeneration: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    stat_snapshot: Mapped[Dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
