"""Derived stats: modifier aggregation, stat calculation and recompute."""

from .calculator import DerivedStatCalculator, DerivedStats
from .modifiers import ModifierAggregator, ModifierSet
from .service import StatService

__all__ = [
    "DerivedStatCalculator",
    "DerivedStats",
    "ModifierAggregator",
    "ModifierSet",
    "StatService",
]
