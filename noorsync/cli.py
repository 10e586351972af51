"""noor-sync CLI - administer the local cache and offline write queue.

Usage:
    noor-sync status                 Show queue size, connectivity and cache entries
    noor-sync sync                   Replay queued writes now (requires Supabase credentials)
    noor-sync clear-queue --yes      Discard every queued write
    noor-sync clear-cache            Remove all cached content
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any, NoReturn

from rich.console import Console
from rich.table import Table

from contracts.remote import ExecutionResult
from noorsync import __version__
from noorsync.config import NoorConfig, get_config, load_config
from noorsync.errors import ConfigurationError, NoorError
from noorsync.infrastructure.storage import SQLiteStore
from noorsync.reliability.offline import load_persisted_queue
from noorsync.services import SyncServices, create_sync_services
from noorsync.utils.logging import setup_logging

console = Console()
logger = logging.getLogger(__name__)


async def _remote_unavailable(operation_type: str, payload: Mapping[str, Any]) -> ExecutionResult:
    """Executor for commands that never replay operations."""
    return ExecutionResult.failed("remote not configured")


def _load_config(args: argparse.Namespace) -> NoorConfig:
    if args.config is not None:
        return load_config(Path(args.config).expanduser())
    return get_config()


def _local_services(config: NoorConfig) -> SyncServices:
    return create_sync_services(config, executor=_remote_unavailable)


def _format_noor_error(error: NoorError) -> None:
    console.print(f"[red]Error: {error.message}[/red]")
    if isinstance(error, ConfigurationError):
        key = error.details.get("config_key")
        if key:
            console.print(f"[yellow]Set {key} in ~/.noor/config.json[/yellow]")
        console.print("[yellow]Or export SUPABASE_URL and SUPABASE_KEY.[/yellow]")


async def _status(config: NoorConfig) -> int:
    services = _local_services(config)
    operations = await load_persisted_queue(
        services.store,
        storage_key=config.queue.storage_key,
        max_retries=config.queue.max_retries,
    )
    network = await services.monitor.fetch_current_status()
    keys = await services.store.get_all_keys()
    cache_entries = sum(1 for k in keys if k.startswith(config.cache.prefix))

    table = Table(title="noor-sync status")
    table.add_column("Item", style="cyan")
    table.add_column("Value")
    table.add_row("Store", config.storage.db_path)
    table.add_row("Queued operations", str(len(operations)))
    table.add_row("Online", "[green]yes[/green]" if network.is_online else "[red]no[/red]")
    table.add_row("Cache entries", str(cache_entries))
    if isinstance(services.store, SQLiteStore):
        store_stats = await services.store.stats()
        table.add_row("Store entries", str(store_stats["entries"]))
        table.add_row("Store size", f"{store_stats['size_bytes']} bytes")
    table.add_row(
        "Supabase",
        "configured" if config.remote.is_configured else "[yellow]not configured[/yellow]",
    )
    console.print(table)

    if operations:
        ops_table = Table(title="Queued operations")
        ops_table.add_column("ID", style="dim")
        ops_table.add_column("Type")
        ops_table.add_column("Retries", justify="right")
        ops_table.add_column("Last error")
        for op in operations:
            ops_table.add_row(op.id, op.type.value, str(op.retry_count), op.last_error or "")
        console.print(ops_table)
    return 0


async def _sync(config: NoorConfig) -> int:
    services = create_sync_services(config)
    queue = services.queue
    try:
        await queue.initialize()
        before = queue.get_status()
        if not before.is_online:
            console.print(
                f"[yellow]Offline: {before.queue_size} operations stay queued.[/yellow]"
            )
            return 1
        if before.queue_size == 0:
            console.print("[dim]Queue is empty, nothing to sync.[/dim]")
            return 0

        console.print(f"[bold]Syncing {before.queue_size} queued operations...[/bold]")
        # initialize() schedules the pass when online with pending work
        await queue.wait_until_idle()

        after = queue.get_status()
        synced = before.queue_size - after.queue_size
        console.print(f"[green]Synced or dropped {synced} operations.[/green]")
        if after.queue_size:
            console.print(f"[yellow]{after.queue_size} operations will be retried later.[/yellow]")
        return 0
    finally:
        await queue.close()


async def _clear_queue(config: NoorConfig) -> int:
    services = _local_services(config)
    discarded = await services.queue.clear_queue()
    console.print(f"[green]Discarded {discarded} queued operations.[/green]")
    return 0


async def _clear_cache(config: NoorConfig) -> int:
    services = _local_services(config)
    removed = await services.cache.clear()
    console.print(f"[green]Removed {removed} cache entries.[/green]")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show queue and cache status."""
    return asyncio.run(_status(_load_config(args)))


def cmd_sync(args: argparse.Namespace) -> int:
    """Replay queued operations against Supabase."""
    return asyncio.run(_sync(_load_config(args)))


def cmd_clear_queue(args: argparse.Namespace) -> int:
    """Discard every queued operation."""
    if not args.yes:
        console.print("[yellow]This discards unsynced writes. Re-run with --yes.[/yellow]")
        return 1
    return asyncio.run(_clear_queue(_load_config(args)))


def cmd_clear_cache(args: argparse.Namespace) -> int:
    """Remove cached content."""
    return asyncio.run(_clear_cache(_load_config(args)))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="noor-sync",
        description="Administer the noor-sync offline cache and write queue.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="enable debug logging",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="config file (default: ~/.noor/config.json)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", title="commands")

    status_parser = subparsers.add_parser("status", help="show queue and cache status")
    status_parser.set_defaults(func=cmd_status)

    sync_parser = subparsers.add_parser("sync", help="replay queued writes now")
    sync_parser.set_defaults(func=cmd_sync)

    clear_queue_parser = subparsers.add_parser("clear-queue", help="discard every queued write")
    clear_queue_parser.add_argument(
        "--yes", action="store_true", help="confirm that unsynced writes should be lost"
    )
    clear_queue_parser.set_defaults(func=cmd_clear_queue)

    clear_cache_parser = subparsers.add_parser("clear-cache", help="remove all cached content")
    clear_cache_parser.set_defaults(func=cmd_clear_cache)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. Uses sys.argv if None.

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        setup_logging(logging.DEBUG)
    else:
        setup_logging(_load_config(args).log_level)

    if args.command is None:
        parser.print_help()
        return 0

    result: int = args.func(args)
    return result


def run() -> NoReturn:
    """Entry point that handles errors and exit."""
    try:
        exit_code = main()
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        exit_code = 130
    except NoorError as e:
        _format_noor_error(e)
        logger.debug("noor-sync error: %s", e.to_dict(), exc_info=True)
        exit_code = 1
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        logger.exception("Unexpected error")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    run()
