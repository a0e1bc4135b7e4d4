"""Action catalogue and the concurrency-gated action slot manager."""

from .costs import ActionCatalogue, ActionSpec
from .slot_manager import ActionResolution, ActionSlotManager, StartedAction

__all__ = [
    "ActionCatalogue",
    "ActionSpec",
    "ActionResolution",
    "ActionSlotManager",
    "StartedAction",
]
