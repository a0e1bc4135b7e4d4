"""
Core infrastructure layer for the Netrunner engine.

Purpose
-------
One import surface for the infrastructure the engine services are wired with:

- Configuration (Config, ConfigManager)
- Logging (get_logger, LogContext, setup_logging)
- Events (EventBus)
- Database (DatabaseService, declarative Base)
- Infrastructure exceptions

Non-Responsibilities
--------------------
- Game rules (see `netrunner.modules`)
- Any side effects beyond re-exports
"""

from netrunner.core.config import Config, ConfigManager
from netrunner.core.database import Base, DatabaseService
from netrunner.core.event import EventBus
from netrunner.core.exceptions import (
    ConfigurationError,
    DatabaseError,
    EngineInfrastructureException,
    ErrorSeverity,
)
from netrunner.core.logging import LogContext, get_logger, setup_logging, shutdown_logging

__all__ = [
    "Config",
    "ConfigManager",
    "Base",
    "DatabaseService",
    "EventBus",
    "ConfigurationError",
    "DatabaseError",
    "EngineInfrastructureException",
    "ErrorSeverity",
    "LogContext",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
]
