"""Hardware and amplifier loadout management."""

from .service import LoadoutChange, LoadoutService

__all__ = ["LoadoutChange", "LoadoutService"]
