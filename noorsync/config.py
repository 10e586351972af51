"""noor-sync Configuration System.

Loads and validates configuration from ~/.noor/config.json.
Uses Pydantic for schema validation with sensible defaults.

Supabase credentials can also come from the SUPABASE_URL and SUPABASE_KEY
environment variables, which take precedence over the file.

Usage:
    from noorsync.config import get_config, save_config

    config = get_config()
    print(config.queue.max_retries)

    # Modify and save
    config.queue.sweep_interval_seconds = 60.0
    save_config(config)
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from noorsync.utils.datetime_utils import days_to_ms

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".noor"
CONFIG_PATH = CONFIG_DIR / "config.json"

# Current config schema version for migration tracking
CONFIG_VERSION = 1

ENV_SUPABASE_URL = "SUPABASE_URL"
ENV_SUPABASE_KEY = "SUPABASE_KEY"


class StorageConfig(BaseModel):
    """Key-value store configuration.

    Attributes:
        db_path: SQLite file holding cache entries and the offline queue.
    """

    db_path: str = str(CONFIG_DIR / "store.db")


class CacheConfig(BaseModel):
    """TTL cache configuration.

    Attributes:
        prefix: Namespace prepended to every cache key in the store.
        default_ttl_ms: TTL used when a caller does not pass one.
    """

    prefix: str = Field(default="noor_cache_", min_length=1)
    default_ttl_ms: int = Field(default=days_to_ms(30), ge=0)


class QueueConfig(BaseModel):
    """Offline queue configuration.

    Attributes:
        storage_key: Store key holding the persisted queue.
        max_retries: Failed attempts before an operation is dropped.
        backoff_base_ms: Delay after the first failure. 0 disables backoff.
        backoff_max_ms: Upper bound for a single backoff delay.
        sweep_interval_seconds: Period of background drain attempts.
            Set to 0 to only drain on reconnect or on demand.
    """

    storage_key: str = Field(default="@noor_offline_queue", min_length=1)
    max_retries: int = Field(default=5, ge=1, le=20)
    backoff_base_ms: int = Field(default=2000, ge=0)
    backoff_max_ms: int = Field(default=300_000, ge=0)
    sweep_interval_seconds: float = Field(default=60.0, ge=0.0, le=3600.0)


class NetworkConfig(BaseModel):
    """Connectivity probe configuration.

    Attributes:
        probe_host: Host contacted to decide whether the device is online.
        probe_port: TCP port on the probe host.
        check_interval_seconds: Seconds between probes.
        timeout_seconds: Seconds before a probe counts as offline.
    """

    probe_host: str = "1.1.1.1"
    probe_port: int = Field(default=443, ge=1, le=65535)
    check_interval_seconds: float = Field(default=30.0, ge=1.0, le=3600.0)
    timeout_seconds: float = Field(default=3.0, ge=0.1, le=60.0)


class RemoteConfig(BaseModel):
    """Supabase project credentials.

    Attributes:
        supabase_url: Project URL.
        supabase_key: Anon or service key.
    """

    supabase_url: str | None = None
    supabase_key: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


class NoorConfig(BaseModel):
    """noor-sync configuration schema.

    Attributes:
        config_version: Schema version for migration tracking.
        log_level: Root logging level for the CLI.
        storage: Key-value store settings.
        cache: TTL cache settings.
        queue: Offline queue settings.
        network: Connectivity probe settings.
        remote: Supabase credentials.
    """

    config_version: int = CONFIG_VERSION
    log_level: str = "INFO"
    storage: StorageConfig = Field(default_factory=StorageConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)


# Module-level singleton with thread safety
_config: NoorConfig | None = None
_config_lock = threading.Lock()


def _apply_env_overrides(config: NoorConfig) -> NoorConfig:
    url = os.environ.get(ENV_SUPABASE_URL)
    key = os.environ.get(ENV_SUPABASE_KEY)
    if url:
        config.remote.supabase_url = url
    if key:
        config.remote.supabase_key = key
    return config


def load_config(config_path: Path | None = None) -> NoorConfig:
    """Load configuration from file, return defaults if missing/invalid.

    Args:
        config_path: Optional path to config file. Defaults to ~/.noor/config.json.

    Returns:
        NoorConfig instance with loaded or default values.
    """
    path = config_path or CONFIG_PATH

    if not path.exists():
        logger.debug("Config file not found at %s, using defaults", path)
        return _apply_env_overrides(NoorConfig())

    try:
        with path.open() as f:
            data: dict[str, Any] = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in config file %s: %s, using defaults", path, e)
        return _apply_env_overrides(NoorConfig())
    except OSError as e:
        logger.warning("Cannot read config file %s: %s, using defaults", path, e)
        return _apply_env_overrides(NoorConfig())

    try:
        config = NoorConfig.model_validate(data)
    except ValidationError as e:
        logger.warning("Config validation failed: %s, using defaults", e)
        return _apply_env_overrides(NoorConfig())

    if config.config_version != CONFIG_VERSION:
        logger.info(
            "Config version %d differs from %d, using file values as-is",
            config.config_version,
            CONFIG_VERSION,
        )
        config.config_version = CONFIG_VERSION
    return _apply_env_overrides(config)


def save_config(config: NoorConfig, config_path: Path | None = None) -> bool:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to config file. Defaults to ~/.noor/config.json.

    Returns:
        True if saved successfully, False otherwise.
    """
    path = config_path or CONFIG_PATH

    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("w") as f:
            json.dump(config.model_dump(), f, indent=2)

        # Owner-only, the file may hold the Supabase key
        os.chmod(path, 0o600)

        logger.debug("Configuration saved to %s", path)
        return True

    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        return False


def get_config() -> NoorConfig:
    """Get singleton configuration instance.

    Uses double-check locking for thread safety.

    Returns:
        Shared NoorConfig instance.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_config()
    return _config


def reset_config() -> None:
    """Reset singleton configuration for testing."""
    global _config
    with _config_lock:
        _config = None
