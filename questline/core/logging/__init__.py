"""
Questline logging: queued structured output plus per-task log context.
"""

from questline.core.logging.logger import (
    ConsoleFormatter,
    ContextFilter,
    JSONFormatter,
    LogContext,
    LoggingSettings,
    get_log_context,
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "LogContext",
    "get_log_context",
    "ContextFilter",
    "JSONFormatter",
    "ConsoleFormatter",
    "LoggingSettings",
]
