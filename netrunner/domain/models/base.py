"""
Base domain model classes for the Netrunner engine.

Purpose
-------
Foundational abstractions for the engine's domain models: identity-bearing
entities that collect domain events, and shared validation helpers.

Non-Responsibilities
--------------------
- Persistence (handled by store adapters)
- Database schema (handled by the SQLAlchemy models)
- Service orchestration (handled by the service layer)

Design Patterns
---------------
- **Entity**: objects with identity that persist over time
- **Aggregate Root**: consistency boundary for domain operations
- **Domain Events**: state changes recorded on the model, published by the
  service after the store transaction commits
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from netrunner.modules.shared.exceptions import ValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# DOMAIN EVENTS
# ============================================================================


@dataclass
class DomainEvent:
    """
    A domain event that has occurred.

    Attributes
    ----------
    event_name : str
        Event name (e.g., "character.leveled_up")
    payload : Dict[str, Any]
        Event payload with relevant data
    occurred_at : datetime
        When the event occurred (UTC)
    """

    event_name: str
    payload: Dict[str, Any]
    occurred_at: datetime = field(default_factory=utc_now)


# ============================================================================
# ENTITY
# ============================================================================


class Entity(ABC):
    """
    Base class for entities with identity.

    Two entities with the same ID are the same entity, even if their
    attributes differ.
    """

    def __init__(self, entity_id: int) -> None:
        self._id = entity_id
        self._domain_events: List[DomainEvent] = []

    @property
    def id(self) -> int:
        return self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash((self.__class__.__name__, self.id))

    def add_domain_event(self, event_name: str, payload: Dict[str, Any]) -> None:
        self._domain_events.append(DomainEvent(event_name=event_name, payload=payload))

    def clear_domain_events(self) -> List[DomainEvent]:
        """Clear and return all pending domain events."""
        events = self._domain_events.copy()
        self._domain_events.clear()
        return events

    def get_pending_events(self) -> List[DomainEvent]:
        return self._domain_events.copy()


class AggregateRoot(Entity):
    """
    Base class for aggregate roots.

    All changes to the aggregate go through its methods so invariants are
    checked in one place.
    """


# ============================================================================
# VALIDATION
# ============================================================================


def validate_non_negative(value: int, field_name: str) -> None:
    """Raise ValidationError unless `value` is an int >= 0."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(field_name, f"{field_name} must be a non-negative integer, got {value!r}")


def validate_positive(value: int, field_name: str) -> None:
    """Raise ValidationError unless `value` is an int > 0."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(field_name, f"{field_name} must be a positive integer, got {value!r}")


def validate_range(value: float, min_val: float, max_val: float, field_name: str) -> None:
    """Raise ValidationError unless `min_val <= value <= max_val`."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not (min_val <= value <= max_val):
        raise ValidationError(
            field_name,
            f"{field_name} must be between {min_val} and {max_val}, got {value!r}",
        )
