"""
Unit tests for the core infrastructure: EventBus, Config, ConfigManager,
ServiceContainer and the logging subsystem.
"""

import json
import logging

import pytest

from netrunner.core.config.config import Config
from netrunner.core.config.manager import ConfigManager
from netrunner.core.event.bus import EventBus
from netrunner.core.exceptions import ConfigurationError, ErrorSeverity
from netrunner.core.logging import (
    LogContext,
    LoggerConfig,
    clear_log_context,
    get_log_context,
    get_logging_health,
    setup_logging,
    shutdown_logging,
)
from netrunner.core.logging.logger import ContextFilter, JSONFormatter
from netrunner.core.services.container import ServiceContainer
from netrunner.modules.shared.exceptions import (
    CooldownActiveError,
    InsufficientResourcesError,
    get_error_severity,
    is_transient_error,
)


# ============================================================================
# EVENT BUS
# ============================================================================


@pytest.mark.unit
class TestEventBus:
    async def test_exact_and_wildcard_subscriptions(self):
        bus = EventBus()
        seen = []
        bus.subscribe("action.resolved", lambda data: seen.append(("exact", data["action_id"])))
        bus.subscribe("action.*", lambda data: seen.append(("prefix", data["action_id"])))
        bus.subscribe("*", lambda data: seen.append(("all", data["action_id"])))

        await bus.publish("action.resolved", {"action_id": 1})
        await bus.publish("loadout.changed", {"action_id": 2})

        assert seen == [("exact", 1), ("prefix", 1), ("all", 1), ("all", 2)]

    async def test_async_listeners_are_awaited(self):
        bus = EventBus()

        async def on_event(data):
            return data["value"] * 2

        bus.subscribe("x", on_event)

        assert await bus.publish("x", {"value": 21}) == [42]

    async def test_once_listener_fires_once(self):
        bus = EventBus()
        calls = []
        bus.subscribe("x", calls.append, once=True)

        await bus.publish("x", {"n": 1})
        await bus.publish("x", {"n": 2})

        assert calls == [{"n": 1}]
        assert bus.listener_count() == 0

    async def test_failing_listener_is_isolated(self):
        bus = EventBus()
        calls = []

        def broken(data):
            raise RuntimeError("listener bug")

        bus.subscribe("x", broken)
        bus.subscribe("x", calls.append)

        results = await bus.publish("x", {"n": 1})

        assert calls == [{"n": 1}]
        assert results == [None]
        assert bus.get_metrics()["listener_errors"] == 1

    def test_unsubscribe(self):
        bus = EventBus()
        identifier = bus.subscribe("x", print)

        assert bus.unsubscribe("x", identifier) is True
        assert bus.unsubscribe("x", identifier) is False

    def test_rejects_non_callable(self):
        with pytest.raises(ValueError):
            EventBus().subscribe("x", "not callable")


# ============================================================================
# CONFIGURATION
# ============================================================================


@pytest.mark.unit
class TestConfig:
    def test_malformed_environment_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("DATABASE_POOL_SIZE", "lots")
        monkeypatch.setenv("LOG_TO_FILE", "sometimes")
        try:
            Config.load()

            assert Config.DATABASE_POOL_SIZE == 10
            assert Config.LOG_TO_FILE is False
            assert {"DATABASE_POOL_SIZE", "LOG_TO_FILE"} <= set(Config.validation_errors())
        finally:
            monkeypatch.undo()
            Config.load()

    def test_environment_falls_back_to_development(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "moon-base")
        try:
            Config.load()
            assert Config.ENVIRONMENT == "development"
            assert Config.is_production() is False
        finally:
            monkeypatch.undo()
            Config.load()


@pytest.mark.unit
class TestConfigManager:
    def test_yaml_files_are_deep_merged(self, tmp_path):
        (tmp_path / "a.yaml").write_text("regeneration:\n  tick_minutes: 10\n")
        (tmp_path / "b.yaml").write_text("regeneration:\n  tick_amount: 3\n")

        config = ConfigManager.from_directory(tmp_path)

        assert config.get("regeneration.tick_minutes") == 10
        assert config.get("regeneration.tick_amount") == 3

    def test_missing_directory_yields_defaults_only(self, tmp_path):
        config = ConfigManager.from_directory(tmp_path / "nope")
        assert config.get("regeneration.tick_minutes", 15) == 15

    def test_unreadable_yaml(self, tmp_path):
        (tmp_path / "broken.yaml").write_text("regeneration: [unclosed\n")

        with pytest.raises(ConfigurationError):
            ConfigManager.from_directory(tmp_path)

    def test_override_wins_over_yaml(self, config_manager):
        config_manager.set_override("outcome.failure.cooldown_seconds", 5)

        assert config_manager.get_int("outcome.failure.cooldown_seconds", 60) == 5
        assert config_manager.get_float("outcome.failure.critical_chance", 0.0) == 0.15

    def test_clear_overrides(self, config_manager):
        config_manager.set_override("regeneration.tick_amount", 99)
        config_manager.clear_overrides()

        assert config_manager.get_int("regeneration.tick_amount", 0) == 5

    def test_typed_reads_reject_bad_values(self):
        config = ConfigManager({"progression": {"growth": "steep", "enabled": "yes"}})

        with pytest.raises(ConfigurationError):
            config.get_float("progression.growth", 1.5)
        with pytest.raises(ConfigurationError):
            config.get_bool("progression.enabled", True)

    def test_health_snapshot_counts_reads(self):
        config = ConfigManager({"a": {"b": 1}})
        config.get("a.b")
        config.get("a.c")

        snapshot = config.health_snapshot()
        assert snapshot["hits"] == 1
        assert snapshot["misses"] == 1


# ============================================================================
# SERVICE CONTAINER
# ============================================================================


@pytest.mark.unit
class TestServiceContainer:
    def test_services_need_initialize(self, store, config_manager, event_bus):
        container = ServiceContainer(store, config_manager, event_bus)

        with pytest.raises(RuntimeError):
            container.actions

    def test_health_check(self, engine):
        health = engine.health_check()

        assert health["initialized"] is True
        assert health["services"] == [
            "actions",
            "consumables",
            "loadout",
            "progression",
            "regeneration",
            "stats",
        ]

    def test_services_share_one_store(self, engine, store):
        assert engine.actions.store is store
        assert engine.actions.regeneration is engine.regeneration
        assert engine.consumables.regeneration is engine.regeneration

    def test_second_initialize_is_ignored(self, engine):
        actions = engine.actions
        engine.initialize()
        assert engine.actions is actions


# ============================================================================
# LOGGING CONTEXT
# ============================================================================


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "netrunner.modules.actions.slot_manager", logging.INFO, __file__, 1, "msg", None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestLogContext:
    def setup_method(self):
        clear_log_context()

    def test_scoped_fields_are_stamped_on_records(self):
        with LogContext(character_id=7, operation="start_action"):
            record = _record()
            ContextFilter().filter(record)

        assert record.character_id == "7"
        assert record.operation == "start_action"
        assert record.action_id == "N/A"
        assert record.component == "modules.actions.slot_manager"

    def test_scope_is_restored_on_exit(self):
        with LogContext(character_id=7):
            with LogContext(action_id=3) as inner:
                assert inner.context["character_id"] == "7"
            assert "action_id" not in get_log_context()
        assert get_log_context() == {}

    def test_extra_fields_survive_outside_a_scope(self):
        record = _record(action_id=12)
        ContextFilter().filter(record)
        assert record.action_id == 12

    def test_scope_wins_over_extra(self):
        with LogContext(action_id=5):
            record = _record(action_id=12)
            ContextFilter().filter(record)
        assert record.action_id == "5"

    def test_correlation_id_is_inherited(self):
        with LogContext(correlation_id="abc123"):
            with LogContext(operation="inner") as inner:
                assert inner.context["correlation_id"] == "abc123"

    def test_json_formatter_splits_context_and_extra(self):
        with LogContext(character_id=7, operation="resolve_action"):
            record = _record(status="success")
            ContextFilter().filter(record)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["character_id"] == "7"
        assert payload["operation"] == "resolve_action"
        assert payload["extra"] == {"status": "success"}
        assert "action_id" not in payload

    def test_setup_and_shutdown(self):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(LoggerConfig(level=logging.DEBUG, json_output=True))
            setup_logging()
            logging.getLogger("netrunner.tests").debug("hello")

            health = get_logging_health()
            assert health.initialized is True
            assert health.records_enqueued >= 2
        finally:
            shutdown_logging()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        assert get_logging_health().initialized is False


# ============================================================================
# ERROR HELPERS
# ============================================================================


@pytest.mark.unit
class TestErrorHelpers:
    def test_cooldowns_are_transient(self):
        error = CooldownActiveError("zone_breach_remote", 30.0, target_id="zone-1")

        assert is_transient_error(error) is True
        assert get_error_severity(error) is ErrorSeverity.DEBUG
        assert error.to_dict()["details"]["retry_after"] == 30.0

    def test_resource_errors_carry_the_deficit(self):
        error = InsufficientResourcesError("stamina", 20, 5)

        assert is_transient_error(error) is False
        assert error.details["deficit"] == 15
        assert error.error_code == "INSUFFICIENT_STAMINA"

    def test_unknown_errors_are_severe(self):
        assert is_transient_error(RuntimeError()) is False
        assert get_error_severity(RuntimeError()) is ErrorSeverity.ERROR
