"""Probabilistic action outcome resolution."""

from .resolver import (
    Outcome,
    OutcomeResolver,
    OutcomeSettings,
    RandomSource,
    RewardModel,
    SuccessChance,
    SuccessModel,
)

__all__ = [
    "Outcome",
    "OutcomeResolver",
    "OutcomeSettings",
    "RandomSource",
    "RewardModel",
    "SuccessChance",
    "SuccessModel",
]
