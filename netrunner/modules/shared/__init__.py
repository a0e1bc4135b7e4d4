"""
Netrunner Shared Module

Purpose
-------
Domain-level foundations for every engine module:
- Domain exceptions and error classification
- Base service and repository patterns
- Balance fallbacks and pure formulas

Architecture
------------
- BaseService: foundation for service classes (logging, config, events, clock)
- BaseRepository: type-safe SQLAlchemy access used by the SQL store
- Domain exceptions: expected, recoverable game-rule violations
- Formulas: pure calculation functions
- Constants: fallback balance values

Only the exceptions are re-exported here; import the other modules directly
so loading domain models never pulls in the service layer.

Usage
-----
    from netrunner.modules.shared import InsufficientResourcesError
    from netrunner.modules.shared.base_service import BaseService
"""

from .exceptions import (
    ActionConflictError,
    ActionNotReadyError,
    CooldownActiveError,
    EngineDomainException,
    InsufficientResourcesError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
    get_error_severity,
    is_transient_error,
)

__all__ = [
    "EngineDomainException",
    "ValidationError",
    "InsufficientResourcesError",
    "NotFoundError",
    "ActionConflictError",
    "ActionNotReadyError",
    "CooldownActiveError",
    "InvalidOperationError",
    "is_transient_error",
    "get_error_severity",
]
