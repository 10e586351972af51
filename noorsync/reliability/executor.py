"""Supabase-backed remote executor.

Maps each queued operation type to a table write:

    history_save      -> insert into history_entries
    exam_save         -> insert into exam_sessions
    preferences_save  -> upsert into user_preferences

A unique-violation response (Postgres code 23505) means the row was already
written by an earlier attempt, so it is reported as ``already_applied`` and
the queue drops the operation without counting a failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client, create_client

from contracts.remote import ExecutionResult
from noorsync.errors import ConfigurationError, ErrorCode, RemoteExecutionError
from noorsync.reliability.operations import OperationType

logger = logging.getLogger(__name__)

DUPLICATE_KEY_CODE = "23505"

# Operation type -> (table, write method)
OPERATION_TABLES: dict[OperationType, tuple[str, str]] = {
    OperationType.HISTORY_SAVE: ("history_entries", "insert"),
    OperationType.EXAM_SAVE: ("exam_sessions", "insert"),
    OperationType.PREFERENCES_SAVE: ("user_preferences", "upsert"),
}


class SupabaseExecutor:
    """Applies queued operations through a Supabase client.

    The client is synchronous, so each write runs in a worker thread.
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    def _write_sync(self, operation_type: OperationType, payload: dict[str, Any]) -> None:
        table, method = OPERATION_TABLES[operation_type]
        query = self._client.table(table)
        if method == "upsert":
            query.upsert(payload).execute()
        else:
            query.insert(payload).execute()

    async def __call__(
        self, operation_type: str, payload: Mapping[str, Any]
    ) -> ExecutionResult:
        try:
            op_type = OperationType(operation_type)
        except ValueError:
            err = RemoteExecutionError(
                f"No table mapping for operation type {operation_type!r}",
                operation_type=str(operation_type),
                code=ErrorCode.RMT_UNKNOWN_OPERATION,
            )
            logger.error("%s", err)
            return ExecutionResult.failed(err.message)

        try:
            await asyncio.to_thread(self._write_sync, op_type, dict(payload))
        except APIError as e:
            if e.code == DUPLICATE_KEY_CODE:
                logger.info("%s row already exists, treating as applied", op_type)
                return ExecutionResult.already_applied()
            err = RemoteExecutionError(
                e.message or "Supabase rejected the write",
                operation_type=op_type,
                remote_code=e.code,
                cause=e,
            )
            logger.warning("%s failed: %s (code: %s)", op_type, err, e.code)
            return ExecutionResult.failed(err.message)
        except Exception as e:
            # Transport errors (timeouts, DNS, TLS) are retried by the queue
            logger.warning("%s failed: %s", op_type, e)
            return ExecutionResult.failed(f"{type(e).__name__}: {e}")

        logger.debug("%s applied", op_type)
        return ExecutionResult.success()


def create_supabase_executor(url: str | None, key: str | None) -> SupabaseExecutor:
    """Build an executor from project credentials.

    Raises:
        ConfigurationError: If the URL or key is missing.
    """
    if not url or not key:
        missing = "supabase_url" if not url else "supabase_key"
        raise ConfigurationError(
            "Supabase credentials are not configured",
            config_key=f"remote.{missing}",
            code=ErrorCode.CFG_MISSING,
        )
    return SupabaseExecutor(create_client(url, key))
