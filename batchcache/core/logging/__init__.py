"""
batchcache Logging Infrastructure

Exports the structured logging setup and batch log context helpers.
"""

from batchcache.core.logging.logger import (
    ContextFilter,
    JSONFormatter,
    LogContext,
    clear_log_context,
    get_log_context,
    get_logger,
    is_logging_configured,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "is_logging_configured",
    "get_logger",
    "LogContext",
    "get_log_context",
    "clear_log_context",
    "ContextFilter",
    "JSONFormatter",
]
