"""Domain errors for storage, cache, queue and remote execution."""

from __future__ import annotations

from typing import Any

from noorsync.errors.base import ErrorCode, NoorError, with_context

# Validation Errors


class ValidationError(NoorError):
    """Raised for input validation failures.

    Examples:
        - Unknown operation type
        - Payload missing required columns
        - Negative TTL
    """

    default_message = "Validation error"
    default_code = ErrorCode.VAL_INVALID_INPUT

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        expected: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        """Initialize a validation error.

        Args:
            message: Human-readable error message.
            field: Name of the field that failed validation.
            value: The invalid value, recorded as a string.
            expected: Description of the expected value or format.
            code: Error code for programmatic handling.
            details: Additional context as key-value pairs.
            cause: Original exception that caused this error.
        """
        details = with_context(
            details,
            field=field,
            value=None if value is None else str(value),
            expected=expected,
        )
        super().__init__(message, code=code, details=details, cause=cause)


# Storage Errors


class StorageError(NoorError):
    """Raised by key-value stores when the underlying medium fails."""

    default_message = "Storage operation failed"
    default_code = ErrorCode.STO_READ_FAILED

    def __init__(
        self,
        message: str | None = None,
        *,
        key: str | None = None,
        operation: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        details = with_context(details, key=key, operation=operation)
        super().__init__(message, code=code, details=details, cause=cause)


# Cache Errors


class CacheError(NoorError):
    """Raised for cache entries that cannot be encoded or decoded."""

    default_message = "Cache entry error"
    default_code = ErrorCode.CCH_CORRUPT_ENTRY

    def __init__(
        self,
        message: str | None = None,
        *,
        key: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code=code, details=with_context(details, key=key), cause=cause)


# Queue Errors


class QueueError(NoorError):
    """Raised for offline queue persistence failures."""

    default_message = "Offline queue error"
    default_code = ErrorCode.QUE_PERSIST_FAILED

    def __init__(
        self,
        message: str | None = None,
        *,
        storage_key: str | None = None,
        queue_size: int | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        details = with_context(details, storage_key=storage_key, queue_size=queue_size)
        super().__init__(message, code=code, details=details, cause=cause)


# Remote Errors


class RemoteExecutionError(NoorError):
    """Raised when a queued operation cannot be applied to the remote store."""

    default_message = "Remote write failed"
    default_code = ErrorCode.RMT_WRITE_FAILED

    def __init__(
        self,
        message: str | None = None,
        *,
        operation_type: str | None = None,
        remote_code: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        details = with_context(details, operation_type=operation_type, remote_code=remote_code)
        super().__init__(message, code=code, details=details, cause=cause)
