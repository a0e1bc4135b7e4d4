"""
Configuration package.

- `Config`: static, environment-driven settings (python-dotenv).
- `ConfigManager`: YAML-backed balance values with dot-notation reads.
"""

from netrunner.core.config.config import Config, Environment
from netrunner.core.config.manager import ConfigManager

__all__ = ["Config", "ConfigManager", "Environment"]
