"""
Domain exceptions for the Questline quest engine.

Purpose
-------
Define the structured, domain-specific exception hierarchy for quest logic.
Services raise these for business rule violations inside transactions (so
the transaction rolls back); the public service boundary converts them into
`QuestResult` values tagged with a `QuestErrorKind`.

Design Notes
------------
- All domain exceptions inherit from `QuestDomainException`.
- Each exception carries:
  - `kind`: the `QuestErrorKind` signalled to callers
  - `message`: human-readable description
  - `details`: additional structured context (dict-like)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning (e.g., double claims)
    INFO = "info"  # Normal operation (e.g., validation failures)
    WARNING = "warning"  # Concerning but handled (e.g., ledger failures)
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # System-level failures requiring immediate action


class QuestErrorKind(str, Enum):
    """Closed set of failure signals returned by quest operations."""

    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    TARGET_NOT_REACHED = "target_not_reached"
    ALREADY_CLAIMED = "already_claimed"
    GENERATION_CONFIG_ERROR = "generation_config_error"
    REWARD_GRANT_FAILED = "reward_grant_failed"
    INVALID_INPUT = "invalid_input"
    UNAUTHENTICATED = "unauthenticated"


class QuestDomainException(Exception):
    """
    Base exception for all quest domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise QuestDomainException(
        ...     "Quest cannot be updated",
        ...     {"quest_id": 12}
        ... )
    """

    KIND: QuestErrorKind = QuestErrorKind.INVALID_STATE
    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
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

    @property
    def kind(self) -> QuestErrorKind:
        return self.KIND

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_kind": self.kind.value,
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


class NotFoundError(QuestDomainException):
    """
    Raised when a requested resource does not exist for the caller.

    A quest owned by someone else is reported the same way, so callers can not
    probe for other owners' quest ids.

    Args:
        resource_type: Type of resource (e.g., "DailyQuest")
        identifier: Optional identifier for the missing resource
    """

    KIND = QuestErrorKind.NOT_FOUND
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={
                "resource_type": resource_type,
                "identifier": identifier,
            },
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class InvalidStateError(QuestDomainException):
    """
    Raised when a quest is not in a status that allows the operation.

    Args:
        action: Operation that was attempted (e.g., "claim_reward")
        reason: Why the current state forbids it
        current_status: Status the quest was found in, if known

    Example:
        >>> raise InvalidStateError("update_progress", "quest has expired", "active")
    """

    KIND = QuestErrorKind.INVALID_STATE
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(
        self,
        action: str,
        reason: str,
        current_status: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.action = action
        self.reason = reason
        self.current_status = current_status
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={
                "action": action,
                "reason": reason,
                "current_status": current_status,
                **(details or {}),
            },
            error_code=f"INVALID_{action.upper()}",
        )


class TargetNotReachedError(QuestDomainException):
    """Raised when completion is requested before progress reaches the target."""

    KIND = QuestErrorKind.TARGET_NOT_REACHED
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, quest_id: int, current_progress: int, target_count: int) -> None:
        self.quest_id = quest_id
        self.current_progress = current_progress
        self.target_count = target_count
        super().__init__(
            f"Quest {quest_id} target not reached: {current_progress}/{target_count}",
            details={
                "quest_id": quest_id,
                "current_progress": current_progress,
                "target_count": target_count,
                "remaining": target_count - current_progress,
            },
            error_code="QUEST_TARGET_NOT_REACHED",
        )


class AlreadyClaimedError(QuestDomainException):
    """
    Raised when a quest's reward has already been claimed.

    Expected under double-submits, so it is logged at debug level.
    """

    KIND = QuestErrorKind.ALREADY_CLAIMED
    DEFAULT_SEVERITY = ErrorSeverity.DEBUG

    def __init__(self, quest_id: int) -> None:
        self.quest_id = quest_id
        super().__init__(
            f"Reward for quest {quest_id} has already been claimed",
            details={"quest_id": quest_id},
            error_code="QUEST_ALREADY_CLAIMED",
        )


class GenerationConfigError(QuestDomainException):
    """
    Raised when the quest catalog or settings cannot produce a valid batch.

    Args:
        reason: What is wrong with the configuration
    """

    KIND = QuestErrorKind.GENERATION_CONFIG_ERROR
    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.reason = reason
        super().__init__(
            f"Quest generation misconfigured: {reason}",
            details={"reason": reason, **(details or {})},
            error_code="QUEST_GENERATION_CONFIG",
        )


class RewardGrantError(QuestDomainException):
    """
    Raised when the reward ledger refuses, fails or times out.

    The quest stays claimable, so the error is retryable.
    """

    KIND = QuestErrorKind.REWARD_GRANT_FAILED
    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, quest_id: int, reason: str, ledger: str = "coins") -> None:
        self.quest_id = quest_id
        self.reason = reason
        self.ledger = ledger
        super().__init__(
            f"Reward grant for quest {quest_id} failed: {reason}",
            details={"quest_id": quest_id, "reason": reason, "ledger": ledger},
            error_code="QUEST_REWARD_GRANT_FAILED",
        )


class ValidationError(QuestDomainException):
    """
    Raised when caller input fails validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    KIND = QuestErrorKind.INVALID_INPUT
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={
                "field": field,
                "validation_message": message,
            },
            error_code=f"VALIDATION_{field.upper()}",
        )


class UnauthenticatedError(QuestDomainException):
    """Raised when no current owner can be resolved for a request."""

    KIND = QuestErrorKind.UNAUTHENTICATED
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(
            "Authentication required",
            details={"action": action},
            error_code="UNAUTHENTICATED",
        )
