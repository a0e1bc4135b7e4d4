"""
Action catalogue.

Cost vector and duration for every action kind, read from `actions.catalogue`
in config (see config/actions.yaml). Unknown action kinds or cost fields in
config are configuration errors, not silently ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Mapping

from netrunner.core.exceptions import ConfigurationError
from netrunner.domain.enums import ActionKind
from netrunner.domain.models.action import ResourceCost
from netrunner.modules.shared import constants
from netrunner.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from netrunner.core.config.manager import ConfigManager


@dataclass(frozen=True)
class ActionSpec:
    kind: ActionKind
    cost: ResourceCost
    duration: timedelta


class ActionCatalogue:
    def __init__(self, specs: Mapping[ActionKind, ActionSpec]) -> None:
        missing = [kind.value for kind in ActionKind if kind not in specs]
        if missing:
            raise ConfigurationError("actions.catalogue", f"missing action kinds: {', '.join(missing)}")
        self._specs = dict(specs)

    def __getitem__(self, kind: ActionKind) -> ActionSpec:
        return self._specs[kind]

    def cost(self, kind: ActionKind) -> ResourceCost:
        return self._specs[kind].cost

    def duration(self, kind: ActionKind) -> timedelta:
        return self._specs[kind].duration

    @classmethod
    def from_mapping(cls, data: Mapping[str, Mapping[str, Any]]) -> "ActionCatalogue":
        specs: Dict[ActionKind, ActionSpec] = {}
        for name, entry in data.items():
            kind = ActionKind.parse(name)
            if kind is None:
                raise ConfigurationError("actions.catalogue", f"unknown action kind {name!r}")
            try:
                cost = ResourceCost.from_mapping(entry.get("cost", {}))
            except ValidationError as e:
                raise ConfigurationError(f"actions.catalogue.{name}.cost", e.message) from e
            specs[kind] = ActionSpec(
                kind=kind,
                cost=cost,
                duration=timedelta(minutes=float(entry.get("duration_minutes", 0))),
            )
        return cls(specs)

    @classmethod
    def from_config(cls, config: ConfigManager) -> "ActionCatalogue":
        """Config entries override the built-in catalogue per action kind."""
        merged: Dict[str, Mapping[str, Any]] = dict(constants.DEFAULT_ACTION_CATALOGUE)
        merged.update(config.get("actions.catalogue", {}) or {})
        return cls.from_mapping(merged)
