"""
ConfigManager: dot-notation access to tunable game balance.

Purpose
-------
- Provide hierarchical, dot-notation access to balance values
  (e.g. `"regeneration.tick_minutes"`).
- Back configuration with YAML defaults from the `config/` directory.
- Allow runtime overrides (tests, live tuning) layered over the defaults.

Responsibilities
----------------
- Load and deep-merge every `*.yaml` / `*.yml` file under the config directory.
- Serve reads from the merged tree, overrides first.
- Track simple read metrics (gets, hits, misses) for diagnostics.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; overrides are in-memory only.
- A ConfigManager is an ordinary instance handed to services at construction.
  Several can coexist (one per test, one per tenant).
- Missing keys return the caller's default. Callers always pass a
  `Final` fallback from the module's `constants.py`.

Usage
-----
>>> config = ConfigManager.from_directory(Config.CONFIG_DIR)
>>> tick = config.get("regeneration.tick_minutes", 15)
>>> config.set_override("outcome.failure.critical_chance", 0.0)
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

import yaml

from netrunner.core.exceptions import ConfigurationError
from netrunner.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


@dataclass(slots=True)
class ConfigMetrics:
    gets: int = 0
    hits: int = 0
    misses: int = 0
    overrides_set: int = 0


class ConfigManager:
    """
    Layered configuration: YAML defaults with in-memory overrides on top.

    Parameters
    ----------
    defaults:
        Already-parsed default tree. Use `from_directory` to load YAML.
    """

    def __init__(self, defaults: Optional[Mapping[str, Any]] = None) -> None:
        self._defaults: Dict[str, Any] = copy.deepcopy(dict(defaults or {}))
        self._overrides: Dict[str, Any] = {}
        self._metrics = ConfigMetrics()

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def from_directory(cls, config_dir: Path) -> "ConfigManager":
        """
        Load every YAML file under `config_dir` (recursively) into one tree.

        Files are merged in sorted path order so the result is stable.
        A missing directory yields an empty manager; every caller has a
        built-in fallback.
        """
        defaults: Dict[str, Any] = {}
        config_dir = Path(config_dir)

        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return cls(defaults)

        yaml_files = sorted(
            list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
        )
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.error(
                    "Failed to load YAML config",
                    extra={"file": str(yaml_file), "error": str(exc)},
                    exc_info=True,
                )
                raise ConfigurationError(str(yaml_file), f"unreadable YAML: {exc}") from exc

            if isinstance(data, dict):
                cls._deep_merge_dict(defaults, data)
                loaded_count += 1
                logger.debug(
                    "Loaded YAML config",
                    extra={"file": str(yaml_file.relative_to(config_dir))},
                )
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={
                        "file": str(yaml_file.relative_to(config_dir)),
                        "root_type": type(data).__name__,
                    },
                )

        logger.info(
            "YAML configs loaded",
            extra={"yaml_file_count": loaded_count, "top_level_keys": sorted(defaults)},
        )
        return cls(defaults)

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: Mapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    # =========================================================================
    # READS
    # =========================================================================

    @staticmethod
    def _lookup(tree: Mapping[str, Any], key: str) -> Any:
        value: Any = tree
        for part in key.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return _MISSING
            value = value[part]
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a value by dot-notation path.

        Overrides win over YAML defaults; a missing key returns `default`.
        """
        self._metrics.gets += 1

        value = self._lookup(self._overrides, key)
        if value is _MISSING:
            value = self._lookup(self._defaults, key)

        if value is _MISSING or value is None:
            self._metrics.misses += 1
            return default

        self._metrics.hits += 1
        return value

    def get_int(self, key: str, default: int) -> int:
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(key, f"expected an integer, got {value!r}") from exc

    def get_float(self, key: str, default: float) -> float:
        value = self.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(key, f"expected a number, got {value!r}") from exc

    def get_bool(self, key: str, default: bool) -> bool:
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        raise ConfigurationError(key, f"expected a boolean, got {value!r}")

    # =========================================================================
    # OVERRIDES
    # =========================================================================

    def set_override(self, key: str, value: Any) -> None:
        """Set a runtime override at a dot-notation path."""
        parts = key.split(".")
        node = self._overrides
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
        self._metrics.overrides_set += 1

        logger.info("Configuration override set", extra={"config_key": key})

    def clear_overrides(self) -> None:
        self._overrides.clear()

    def health_snapshot(self) -> Dict[str, Any]:
        return {
            "top_level_keys": len(self._defaults),
            "overrides": len(self._overrides),
            "gets": self._metrics.gets,
            "hits": self._metrics.hits,
            "misses": self._metrics.misses,
        }
