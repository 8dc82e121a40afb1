"""
Exceptions for batchcache.

Purpose
-------
Define the structured exception hierarchy for the batch entity cache. Two
families are kept apart so callers can tell a bug from a bad day:

- ``CacheUsageError``: programming errors (calling ``load`` before ``init``,
  mixing entity types in one ``upsert``, malformed relation params). Never
  retryable; fix the caller.
- ``StoreError``: failures of the persistent store during ``load`` or
  ``flush``. Retryable; ``load`` leaves its pending requests in place so the
  same call can simply be repeated.

Design Notes
------------
- All exceptions inherit from `BatchCacheException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Helper functions (`is_transient_error`, `get_error_severity`, `should_alert`)
  centralize common exception handling patterns.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _type_name(entity_type: Any) -> str:
    return getattr(entity_type, "__name__", str(entity_type))


class BatchCacheException(Exception):
    """
    Base exception for all batchcache errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise BatchCacheException(
        ...     "Store unavailable",
        ...     {"entity_type": "Token"}
        ... )
    """

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


# ============================================================================
# USAGE (PROGRAMMING) ERRORS
# ============================================================================


class CacheUsageError(BatchCacheException):
    """Base class for errors caused by calling the cache incorrectly."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False


class CacheNotInitializedError(CacheUsageError):
    """
    Raised when ``load`` or ``flush`` is called before ``init``.

    Args:
        operation: The cache operation that was attempted
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"EntityCache.{operation}() called before init(); "
            "call init(context, relation_params) once per cache instance",
            details={"operation": operation},
            error_code="CACHE_NOT_INITIALIZED",
        )


class CacheAlreadyInitializedError(CacheUsageError):
    """Raised when ``init`` is called a second time on one cache instance."""

    def __init__(self) -> None:
        super().__init__(
            "EntityCache.init() may only be called once per instance",
            error_code="CACHE_ALREADY_INITIALIZED",
        )


class EntityTypeMismatchError(CacheUsageError):
    """
    Raised when one ``upsert`` call mixes entities of different concrete types.

    Args:
        expected: The type of the first entity in the call
        found: The offending type
    """

    def __init__(self, expected: type, found: type) -> None:
        self.expected = expected
        self.found = found
        super().__init__(
            f"upsert() received mixed entity types: "
            f"{_type_name(expected)} and {_type_name(found)}",
            details={
                "expected": _type_name(expected),
                "found": _type_name(found),
            },
            error_code="ENTITY_TYPE_MISMATCH",
        )


class InvalidEntityError(CacheUsageError):
    """Raised when an entity has no usable ``id``."""

    def __init__(self, entity_type: type, reason: str) -> None:
        self.entity_type = entity_type
        super().__init__(
            f"Invalid {_type_name(entity_type)} entity: {reason}",
            details={"entity_type": _type_name(entity_type), "reason": reason},
            error_code="INVALID_ENTITY",
        )


class RelationConfigError(CacheUsageError):
    """Raised when relation params passed to ``init`` are malformed."""

    def __init__(self, message: str, entity_type: Any = None) -> None:
        self.entity_type = entity_type
        details = {"entity_type": _type_name(entity_type)} if entity_type else {}
        super().__init__(
            message,
            details=details,
            error_code="RELATION_CONFIG_ERROR",
        )


# ============================================================================
# STORE (DATA / I/O) ERRORS
# ============================================================================


class StoreError(BatchCacheException):
    """
    Raised when the persistent store fails during ``load`` or ``flush``.

    Args:
        entity_type: Entity type whose store call failed
        operation: Description of the store operation that failed
        original_error: The underlying exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        entity_type: Any,
        operation: str,
        original_error: Exception,
        error_code: str = "STORE_ERROR",
    ) -> None:
        self.entity_type = entity_type
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Store error during {operation} of {_type_name(entity_type)}: "
            f"{original_error}",
            details={
                "entity_type": _type_name(entity_type),
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code=error_code,
        )


class StoreReadError(StoreError):
    """A batched read failed; pending requests are kept for a retried ``load``."""

    def __init__(self, entity_type: Any, operation: str, original_error: Exception) -> None:
        super().__init__(entity_type, operation, original_error, "STORE_READ_ERROR")


class StoreWriteError(StoreError):
    """A batched write or delete for a single entity type failed."""

    def __init__(self, entity_type: Any, operation: str, original_error: Exception) -> None:
        super().__init__(entity_type, operation, original_error, "STORE_WRITE_ERROR")


class FlushError(BatchCacheException):
    """
    Raised when at least one entity type failed to persist during ``flush``.

    Other types may already be persisted; there is no cross-type transaction.
    Resident state is left as it was, so the caller decides whether to flush
    again.

    Args:
        failures: One StoreWriteError per failed entity type
        persisted: Entity types whose writes succeeded
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, failures: List[StoreWriteError], persisted: Iterable[Any]) -> None:
        self.failures = failures
        self.persisted = list(persisted)
        failed_names = [_type_name(f.entity_type) for f in failures]
        persisted_names = [_type_name(t) for t in self.persisted]
        super().__init__(
            f"Flush failed for {len(failures)} entity type(s): {', '.join(failed_names)}",
            details={
                "failed": failed_names,
                "persisted": persisted_names,
                "errors": [f.details for f in failures],
            },
            error_code="FLUSH_ERROR",
        )


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """Check if an exception represents an error that can be retried."""
    if isinstance(exc, BatchCacheException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Get the severity level of an exception for logging."""
    if isinstance(exc, BatchCacheException):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """Determine if an exception should trigger alerting."""
    severity = get_error_severity(exc)
    return severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
