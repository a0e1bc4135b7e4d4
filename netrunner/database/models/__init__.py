"""
SQLAlchemy table models for the PostgreSQL store.

Importing this package registers every table on `Base.metadata`.
"""

from .actions import ActionRecordRow, CooldownRecordRow
from .character import CharacterRow, ClassBaselineRow
from .equipment import AmplifierRow, CharacterLoadoutRow, HardwareRow
from .pools import CharacterPoolsRow

__all__ = [
    "ActionRecordRow",
    "AmplifierRow",
    "CharacterLoadoutRow",
    "CharacterPoolsRow",
    "CharacterRow",
    "ClassBaselineRow",
    "CooldownRecordRow",
    "HardwareRow",
]
