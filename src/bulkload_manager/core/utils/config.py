# -*- coding: utf-8 -*-

"""
Loader configuration: batching limits, polling and concurrency settings.
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Optional

import platformdirs

from ..batching.chunks import (DEFAULT_MAX_BYTES_PER_BATCH,
                               DEFAULT_MAX_ROWS_PER_BATCH, DEFAULT_SPOOL_LIMIT)
from ..batching.polling import DEFAULT_POLL_INTERVAL
from ..batching.utils import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_MAX_WAIT
from ..service.salesforce import DEFAULT_API_VERSION, DEFAULT_REQUEST_TIMEOUT
from .misc import mask_path, read_yaml


@dataclass(frozen=True)
class LoaderConfig:
    """
    Settings of a bulk load run.

    Attributes:
        max_bytes_per_batch (int): Maximum serialized size of a batch.
        max_rows_per_batch (int): Maximum number of data rows of a batch.
        poll_interval (float): Seconds between two batch status queries.
        max_wait (float | None): Give up waiting after this many seconds.
        max_workers (int): Concurrent batch submissions / result reads.
        status_retry_attempts (int): Attempts per remote read on transport errors.
        retry_max_wait (float): Maximum backoff between those attempts.
        spool_limit (int): Bytes of a staged chunk kept in memory.
        api_version (str): Remote bulk API version.
        request_timeout (float): Per-request HTTP timeout in seconds.
    """
    max_bytes_per_batch: int = DEFAULT_MAX_BYTES_PER_BATCH
    max_rows_per_batch: int = DEFAULT_MAX_ROWS_PER_BATCH
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_wait: Optional[float] = None
    max_workers: int = 1
    status_retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_max_wait: float = DEFAULT_RETRY_MAX_WAIT
    spool_limit: int = DEFAULT_SPOOL_LIMIT
    api_version: str = DEFAULT_API_VERSION
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self):
        self._check_arguments()

    def _check_arguments(self):
        for name in ('max_bytes_per_batch', 'max_rows_per_batch', 'max_workers',
                     'status_retry_attempts', 'spool_limit'):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        if self.retry_max_wait < 0:
            raise ValueError("retry_max_wait must be >= 0")
        if self.max_wait is not None and self.max_wait < 0:
            raise ValueError("max_wait must be >= 0 or null")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")

    def updated(self, **overrides) -> 'LoaderConfig':
        """Return a copy with the given fields replaced; None values are ignored."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return asdict(self)


def get_default_config_path() -> Path:
    """Platform-specific location of the user configuration file."""
    config_dir = platformdirs.user_config_dir("bulkload-manager", "bulkload")
    return Path(config_dir) / "config.yaml"


def load_config(path: Optional[str | Path] = None) -> LoaderConfig:
    """
    Load a `LoaderConfig` from a YAML file.

    Args:
        path: Configuration file. If None, the user configuration file is
            used when it exists, otherwise defaults are returned.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ValueError: If the file has unknown keys or invalid values.
    """
    if path is None:
        path = get_default_config_path()
        if not path.exists():
            logging.debug("No user configuration file found, using defaults")
            return LoaderConfig()
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    values = read_yaml(path) or {}
    if not isinstance(values, dict):
        raise ValueError(f"Configuration file must contain a mapping: {mask_path(path)}")

    known = {f.name for f in fields(LoaderConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys in {mask_path(path)}: {unknown}")

    logging.debug(f"Loaded configuration from {mask_path(path)}")
    return LoaderConfig(**values)
