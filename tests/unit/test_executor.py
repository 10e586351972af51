"""Tests for noorsync/reliability/executor.py - Supabase remote executor."""

from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from contracts.remote import ExecutionResult
from noorsync.errors import ConfigurationError, ErrorCode
from noorsync.reliability import executor as executor_module
from noorsync.reliability.executor import SupabaseExecutor, create_supabase_executor
from noorsync.reliability.operations import OperationType


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def supabase_executor(client):
    return SupabaseExecutor(client)


class TestTableMapping:
    """Each operation type writes to its table."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "op_type,table,method",
        [
            (OperationType.HISTORY_SAVE, "history_entries", "insert"),
            (OperationType.EXAM_SAVE, "exam_sessions", "insert"),
            (OperationType.PREFERENCES_SAVE, "user_preferences", "upsert"),
        ],
    )
    async def test_writes_to_table(self, supabase_executor, client, op_type, table, method):
        payload = {"user_id": "u1"}

        result = await supabase_executor(op_type, payload)

        assert result == ExecutionResult.success()
        client.table.assert_called_once_with(table)
        write = getattr(client.table.return_value, method)
        write.assert_called_once_with(payload)
        write.return_value.execute.assert_called_once()

    @pytest.mark.asyncio
    async def test_accepts_plain_string_type(self, supabase_executor, client):
        result = await supabase_executor("exam_save", {"user_id": "u1"})
        assert result.applied


class TestFailures:
    """Test error classification."""

    @pytest.mark.asyncio
    async def test_unique_violation_is_already_applied(self, supabase_executor, client):
        client.table.return_value.insert.return_value.execute.side_effect = APIError(
            {"code": "23505", "message": "duplicate key value violates unique constraint"}
        )

        result = await supabase_executor(OperationType.HISTORY_SAVE, {"user_id": "u1"})

        assert result == ExecutionResult.already_applied()
        assert result.settled

    @pytest.mark.asyncio
    async def test_other_api_error_is_failure(self, supabase_executor, client):
        client.table.return_value.upsert.return_value.execute.side_effect = APIError(
            {"code": "42501", "message": "permission denied"}
        )

        result = await supabase_executor(OperationType.PREFERENCES_SAVE, {"user_id": "u1"})

        assert result.applied is False
        assert result.duplicate is False
        assert result.error == "permission denied"

    @pytest.mark.asyncio
    async def test_transport_error_is_failure(self, supabase_executor, client):
        client.table.return_value.insert.return_value.execute.side_effect = ConnectionError(
            "network unreachable"
        )

        result = await supabase_executor(OperationType.EXAM_SAVE, {"user_id": "u1"})

        assert result.settled is False
        assert "network unreachable" in result.error

    @pytest.mark.asyncio
    async def test_unknown_type_is_failure(self, supabase_executor, client):
        result = await supabase_executor("account_delete", {"user_id": "u1"})

        assert result.settled is False
        client.table.assert_not_called()


class TestCreateExecutor:
    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError) as exc_info:
            create_supabase_executor("https://example.supabase.co", None)

        assert exc_info.value.code == ErrorCode.CFG_MISSING
        assert exc_info.value.details["config_key"] == "remote.supabase_key"

    def test_builds_client(self, monkeypatch):
        fake_create = MagicMock()
        monkeypatch.setattr(executor_module, "create_client", fake_create)

        result = create_supabase_executor("https://example.supabase.co", "anon-key")

        assert isinstance(result, SupabaseExecutor)
        fake_create.assert_called_once_with("https://example.supabase.co", "anon-key")
