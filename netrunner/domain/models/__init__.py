"""
Domain models package for the Netrunner engine.

Purpose
-------
Rich domain models holding the engine's game rules and state transitions:
characters and their progression, equipment and loadout invariants, resource
pools and action records.

Design Notes
------------
Domain models are separate from database models:
- Database models (netrunner/database/models/): anemic SQLAlchemy schemas
- Domain models (netrunner/domain/models/): rich objects with business logic

Store adapters convert between the two.
"""

from .base import (
    AggregateRoot,
    DomainEvent,
    Entity,
    utc_now,
    validate_non_negative,
    validate_positive,
    validate_range,
)
from .character import Attributes, Character, ClassBaseline, LevelCurve
from .equipment import AmplifierEffect, AmplifierItem, HardwareItem, Loadout
from .pools import PoolState
from .action import ActionContext, ActionRecord, CooldownRecord, ResourceCost

__all__ = [
    # Base classes
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "utc_now",
    "validate_non_negative",
    "validate_positive",
    "validate_range",
    # Character
    "Attributes",
    "Character",
    "ClassBaseline",
    "LevelCurve",
    # Equipment
    "AmplifierEffect",
    "AmplifierItem",
    "HardwareItem",
    "Loadout",
    # Pools & actions
    "PoolState",
    "ActionContext",
    "ActionRecord",
    "CooldownRecord",
    "ResourceCost",
]
