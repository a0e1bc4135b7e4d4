"""Experience, leveling and attribute allocation."""

from .service import ExperienceAward, ProgressionService

__all__ = ["ExperienceAward", "ProgressionService"]
