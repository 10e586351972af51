"""Remote write execution contract."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of applying one queued operation to the remote store.

    Attributes:
        applied: True when the remote write took effect.
        duplicate: True when the remote store reports the write already exists.
        error: Description of the failure, if any.
    """

    applied: bool
    duplicate: bool = False
    error: str | None = None

    @classmethod
    def success(cls) -> ExecutionResult:
        return cls(applied=True)

    @classmethod
    def already_applied(cls) -> ExecutionResult:
        return cls(applied=False, duplicate=True)

    @classmethod
    def failed(cls, error: str | None = None) -> ExecutionResult:
        return cls(applied=False, duplicate=False, error=error)

    @property
    def settled(self) -> bool:
        """Whether the operation can leave the queue (applied or duplicate)."""
        return self.applied or self.duplicate


class RemoteExecutor(Protocol):
    """Applies a queued write to the remote store.

    Exceptions raised by an executor are treated by the queue as a
    transient failure, exactly like ``ExecutionResult.failed()``.
    """

    async def __call__(self, operation_type: str, payload: Mapping[str, Any]) -> ExecutionResult:
        """Apply ``payload`` for the given operation type."""
        ...
