"""Base error classes and error codes for noor-sync.

Contains the ErrorCode enum, the NoorError base class, ConfigurationError and
the with_context helper subclasses use to fold keyword fields into details.
All noor-sync exceptions inherit from NoorError.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standard error codes for noor-sync errors.

    These codes identify error types programmatically and are included
    in ``to_dict()`` output for logs and diagnostics.
    """

    # Configuration errors (CFG_*)
    CFG_INVALID = "CFG_INVALID"
    CFG_MISSING = "CFG_MISSING"

    # Validation errors (VAL_*)
    VAL_INVALID_INPUT = "VAL_INVALID_INPUT"
    VAL_TYPE_ERROR = "VAL_TYPE_ERROR"

    # Storage errors (STO_*)
    STO_READ_FAILED = "STO_READ_FAILED"
    STO_WRITE_FAILED = "STO_WRITE_FAILED"
    STO_DELETE_FAILED = "STO_DELETE_FAILED"

    # Cache errors (CCH_*)
    CCH_CORRUPT_ENTRY = "CCH_CORRUPT_ENTRY"
    CCH_SERIALIZE_FAILED = "CCH_SERIALIZE_FAILED"

    # Queue errors (QUE_*)
    QUE_LOAD_FAILED = "QUE_LOAD_FAILED"
    QUE_PERSIST_FAILED = "QUE_PERSIST_FAILED"

    # Remote errors (RMT_*)
    RMT_WRITE_FAILED = "RMT_WRITE_FAILED"
    RMT_UNKNOWN_OPERATION = "RMT_UNKNOWN_OPERATION"

    # Generic errors
    UNKNOWN = "UNKNOWN"


def with_context(details: dict[str, Any] | None, **fields: Any) -> dict[str, Any]:
    """Merge the non-None keyword fields into a copy of ``details``."""
    merged = dict(details or {})
    merged.update({name: value for name, value in fields.items() if value is not None})
    return merged


class NoorError(Exception):
    """Base exception for all noor-sync errors.

    ``str(error)`` is the message. ``code`` and ``details`` are for logs and
    the CLI; ``cause`` becomes ``__cause__``.
    """

    default_message: str = "An error occurred"
    default_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Structured form used for debug logging."""
        result: dict[str, Any] = {
            "error": type(self).__name__,
            "code": self.code.value,
            "detail": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(NoorError):
    """Missing or invalid settings, e.g. Supabase credentials."""

    default_message = "Configuration error"
    default_code = ErrorCode.CFG_INVALID

    def __init__(
        self,
        message: str | None = None,
        *,
        config_key: str | None = None,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message, code=code, details=with_context(details, config_key=config_key), cause=cause
        )
