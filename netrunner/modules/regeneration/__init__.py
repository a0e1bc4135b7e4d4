"""Time-based pool regeneration."""

from .scheduler import (
    LoadPoolTuning,
    RegenerationPlan,
    RegenerationResult,
    RegenerationScheduler,
    RegenerationSettings,
)
from .service import RegenerationService

__all__ = [
    "LoadPoolTuning",
    "RegenerationPlan",
    "RegenerationResult",
    "RegenerationScheduler",
    "RegenerationSettings",
    "RegenerationService",
]
