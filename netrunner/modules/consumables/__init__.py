"""Instant pool effects from consumable items."""

from .service import ConsumableEffect, ConsumableResult, ConsumableService

__all__ = ["ConsumableEffect", "ConsumableResult", "ConsumableService"]
