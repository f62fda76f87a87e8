"""
Base Service Foundation

Purpose
-------
Provides the foundational class for domain services in Questline.
Services implement business logic, manage transactions through
DatabaseService, enforce business rules, and emit domain events.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Event emission helpers
- Domain errors logged at the severity they declare

What this class does NOT do:
- Read configuration (services receive immutable settings objects)
- Manage database transactions (that's DatabaseService's job)
- Contain quest-specific logic

Usage
-----
    class DailyQuestService(BaseService):
        def __init__(self, settings, catalog, coin_ledger, event_bus, logger):
            super().__init__(event_bus, logger)
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from questline.modules.shared.exceptions import (
    ErrorSeverity,
    QuestDomainException,
)

if TYPE_CHECKING:
    from logging import Logger

    from questline.core.event.bus import EventBus


_SEVERITY_LEVELS = {
    ErrorSeverity.DEBUG: "debug",
    ErrorSeverity.INFO: "info",
    ErrorSeverity.WARNING: "warning",
    ErrorSeverity.ERROR: "error",
    ErrorSeverity.CRITICAL: "critical",
}


class BaseService:
    """
    Base class for domain services.

    Args:
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(self, event_bus: EventBus, logger: Logger) -> None:
        self._events = event_bus
        self.log = logger

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Emit a domain event for cross-module communication.

        Listener failures are isolated by the EventBus and never reach here.
        """
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log a service operation with structured context."""
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """Log a service error with full context."""
        self.log.error(
            f"Service error during {operation}: {str(error)}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
            exc_info=error,
        )

    def log_domain_error(
        self,
        operation: str,
        error: QuestDomainException,
        **context: Any,
    ) -> None:
        """Log an expected domain error at the severity it declares."""
        log_method = getattr(self.log, _SEVERITY_LEVELS[error.severity])
        log_method(
            f"Domain error during {operation}: {error.message}",
            extra={
                "operation": operation,
                "error_kind": error.kind.value,
                "error_code": error.error_code,
                "error_details": error.details,
                "is_retryable": error.is_retryable,
                **context,
            },
        )
