"""Queued operation models.

Three kinds of remote write can be queued while offline. Callers describe a
write with a typed spec (``HistorySave``, ``ExamSave``, ``PreferencesSave``);
the queue stores it as a ``QueuedOperation`` whose ``data`` is the plain JSON
payload forwarded verbatim to the remote executor.

Payload models allow unknown fields so columns added on the backend can be
sent without a client release.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from noorsync.errors import ErrorCode, ValidationError

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class OperationType(StrEnum):
    """Kinds of remote write that can be queued."""

    HISTORY_SAVE = "history_save"
    EXAM_SAVE = "exam_save"
    PREFERENCES_SAVE = "preferences_save"


# =============================================================================
# Payload models
# =============================================================================


class HistoryEntry(BaseModel):
    """A content item the user has seen on a given day."""

    model_config = ConfigDict(extra="allow")

    user_id: str = Field(min_length=1)
    content_id: str = Field(min_length=1)
    content_type: Literal["verse", "hadith", "name_of_allah", "dua"]
    date: str
    id: str | None = None
    mood: str | None = None
    timestamp: str | None = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        if not _DATE_PATTERN.match(v):
            raise ValueError(f"date must be YYYY-MM-DD, got {v!r}")
        return v


class ExamSession(BaseModel):
    """A pre-exam encouragement session."""

    model_config = ConfigDict(extra="allow")

    user_id: str = Field(min_length=1)
    timing: Literal["today", "tomorrow", "this_week"]
    subject: str
    feeling: Literal["stressed", "anxious", "tired", "confident", "hopeful"]
    verse_id: str
    id: str | None = None
    exam_verse_category: str | None = None


class UserPreferences(BaseModel):
    """Per-user settings row, upserted on save."""

    model_config = ConfigDict(extra="allow")

    user_id: str = Field(min_length=1)
    settings: dict[str, Any] = Field(default_factory=dict)
    push_token: str | None = None
    updated_at: str | None = None


# =============================================================================
# Operation specs (tagged union on ``type``)
# =============================================================================


class _OperationSpecBase(BaseModel):
    def operation_type(self) -> OperationType:
        return OperationType(self.type)  # type: ignore[attr-defined]

    def payload(self) -> dict[str, Any]:
        """Return the JSON payload sent to the remote store."""
        return self.data.model_dump(mode="json", exclude_none=True)  # type: ignore[attr-defined]


class HistorySave(_OperationSpecBase):
    type: Literal["history_save"] = "history_save"
    data: HistoryEntry


class ExamSave(_OperationSpecBase):
    type: Literal["exam_save"] = "exam_save"
    data: ExamSession


class PreferencesSave(_OperationSpecBase):
    type: Literal["preferences_save"] = "preferences_save"
    data: UserPreferences


OperationSpec = Annotated[HistorySave | ExamSave | PreferencesSave, Field(discriminator="type")]

_spec_adapter: TypeAdapter[HistorySave | ExamSave | PreferencesSave] = TypeAdapter(OperationSpec)


def parse_operation_spec(raw: Mapping[str, Any]) -> HistorySave | ExamSave | PreferencesSave:
    """Parse ``{"type": ..., "data": {...}}`` into a typed operation spec.

    Raises:
        ValidationError: If the type is unknown or the payload is invalid.
    """
    try:
        return _spec_adapter.validate_python(dict(raw))
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(
            f"Invalid operation: {first.get('msg', e)}",
            field=location or None,
            code=ErrorCode.VAL_INVALID_INPUT,
            details={"errors": e.error_count()},
            cause=e,
        ) from e
    except (TypeError, ValueError) as e:
        raise ValidationError(
            "Operation must be a mapping", code=ErrorCode.VAL_TYPE_ERROR, cause=e
        ) from e


# =============================================================================
# Queue entries
# =============================================================================


def generate_operation_id(now: int) -> str:
    """Return an id of the form ``<epoch_ms>_<8 hex chars>``."""
    return f"{now}_{uuid.uuid4().hex[:8]}"


@dataclass
class QueuedOperation:
    """A pending remote write as stored in the offline queue."""

    id: str
    type: OperationType
    data: dict[str, Any]
    timestamp: int
    retry_count: int = 0
    next_attempt_at: int | None = None
    last_error: str | None = field(default=None, compare=False)

    @classmethod
    def create(cls, op_type: OperationType, data: dict[str, Any], now: int) -> QueuedOperation:
        return cls(id=generate_operation_id(now), type=op_type, data=data, timestamp=now)

    def copy(self) -> QueuedOperation:
        return replace(self, data=dict(self.data))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        result: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "data": self.data,
            "timestamp": self.timestamp,
            "retry_count": self.retry_count,
        }
        if self.next_attempt_at is not None:
            result["next_attempt_at"] = self.next_attempt_at
        if self.last_error is not None:
            result["last_error"] = self.last_error
        return result

    @classmethod
    def from_dict(cls, data: Any) -> QueuedOperation:
        """Deserialize from dictionary.

        Raises:
            KeyError: A required field is missing.
            TypeError: A field has the wrong type.
            ValueError: The operation type is unknown.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")

        op_id = data["id"]
        payload = data["data"]
        timestamp = data["timestamp"]
        retry_count = data.get("retry_count", 0)
        next_attempt_at = data.get("next_attempt_at")

        if not isinstance(op_id, str) or not op_id:
            raise TypeError("id must be a non-empty string")
        if not isinstance(payload, dict):
            raise TypeError("data must be an object")
        if not _is_int(timestamp):
            raise TypeError("timestamp must be an integer")
        if not _is_int(retry_count) or retry_count < 0:
            raise TypeError("retry_count must be a non-negative integer")
        if next_attempt_at is not None and not _is_int(next_attempt_at):
            raise TypeError("next_attempt_at must be an integer")

        return cls(
            id=op_id,
            type=OperationType(data["type"]),
            data=payload,
            timestamp=timestamp,
            retry_count=retry_count,
            next_attempt_at=next_attempt_at,
            last_error=data.get("last_error"),
        )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
