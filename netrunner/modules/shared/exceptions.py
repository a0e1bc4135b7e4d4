"""
Domain exceptions for the Netrunner engine.

Purpose
-------
Define the structured exception hierarchy for game-rule outcomes that callers
are expected to branch on: invalid input, insufficient resources, conflicts
with in-flight or resolved actions, and missing records.

Error taxonomy
--------------
- Validation: `ValidationError`
- Insufficient resources: `InsufficientResourcesError`
- Conflict: `ActionConflictError`, `ActionNotReadyError`,
  `CooldownActiveError`, `InvalidOperationError`
- Not found: `NotFoundError`

All of these are local, expected and recoverable. None are raised after a
partial mutation: services raise inside the store transaction, which rolls
back.

Design Notes
------------
- All domain exceptions inherit from `EngineDomainException`.
- Each exception carries `message`, `details`, `severity`, `is_retryable`
  and `error_code`, and serializes via `to_dict()`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from netrunner.core.exceptions import ErrorSeverity


class EngineDomainException(Exception):
    """
    Base exception for all engine domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.INFO
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ValidationError(EngineDomainException):
    """
    Raised when input fails validation (negative cost, unknown pool,
    malformed allocation). Always raised before any mutation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class InsufficientResourcesError(EngineDomainException):
    """
    Raised when a pool, percentage floor, load capacity or the action-slot
    budget does not cover an action's cost.

    Args:
        resource: Name of the resource (pool name, or "action_slots")
        required: Amount required for the action
        current: Amount currently available
    """

    def __init__(self, resource: str, required: int, current: int) -> None:
        self.resource = resource
        self.required = required
        self.current = current
        super().__init__(
            f"Insufficient {resource}: need {required:,}, have {current:,}",
            details={
                "resource": resource,
                "required": required,
                "current": current,
                "deficit": required - current,
            },
            error_code=f"INSUFFICIENT_{resource.upper()}",
        )


class NotFoundError(EngineDomainException):
    """
    Raised when a referenced character, action record or modifier source
    does not exist.

    Args:
        resource_type: Type of resource (e.g., "Character", "ActionRecord")
        identifier: Optional identifier for the missing resource
    """

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ActionConflictError(EngineDomainException):
    """
    Raised when an action request conflicts with existing state: the record
    belongs to another character, the target already has an in-flight
    action, or a dismissal names an action that has not been resolved.

    Args:
        action_id: The action record involved, if any
        reason: Explanation of the conflict
    """

    def __init__(self, reason: str, action_id: Optional[int] = None, **context: Any) -> None:
        self.action_id = action_id
        self.reason = reason
        super().__init__(
            f"Action conflict: {reason}",
            details={"action_id": action_id, "reason": reason, **context},
            error_code="ACTION_CONFLICT",
        )


class ActionNotReadyError(EngineDomainException):
    """
    Raised when resolving or dismissing an action before its end time.

    Args:
        action_id: The pending action record
        ready_at: When the action becomes eligible for resolution
        remaining_seconds: Seconds until `ready_at`
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = True

    def __init__(self, action_id: int, ready_at: datetime, remaining_seconds: float) -> None:
        self.action_id = action_id
        self.ready_at = ready_at
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Action {action_id} is not ready: {remaining_seconds:.1f}s remaining",
            details={
                "action_id": action_id,
                "ready_at": ready_at.isoformat(),
                "retry_after": remaining_seconds,
            },
            error_code="ACTION_NOT_READY",
        )


class CooldownActiveError(EngineDomainException):
    """
    Raised when a target is under an active cooldown after a failed attempt.

    Args:
        action: Name of the action on cooldown
        remaining_seconds: Time remaining until cooldown expires
        target_id: The target the cooldown applies to
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = True

    def __init__(self, action: str, remaining_seconds: float, target_id: Optional[str] = None) -> None:
        self.action = action
        self.remaining_seconds = remaining_seconds
        self.target_id = target_id
        super().__init__(
            f"{action} is on cooldown: {remaining_seconds:.1f}s remaining",
            details={
                "action": action,
                "target_id": target_id,
                "remaining": remaining_seconds,
                "retry_after": remaining_seconds,
            },
            error_code="COOLDOWN_ACTIVE",
        )


class InvalidOperationError(EngineDomainException):
    """
    Raised when an operation violates a game rule, e.g. equipping an
    amplifier above the hardware tier.

    Args:
        action: Description of the invalid action
        reason: Explanation of why it's not allowed
    """

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """True if the error is retryable (cooldowns, not-yet-due actions)."""
    if isinstance(exc, EngineDomainException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    if isinstance(exc, EngineDomainException):
        return exc.severity
    return ErrorSeverity.ERROR
