"""Runtime configuration for the todosync client."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .remote import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Client settings with defaults suited to a local backend."""

    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    snapshot_path: Path = Path(".todosync/snapshot.json")
    log_level: str = "INFO"
    mark_all_concurrent: bool = False

    @classmethod
    def from_env(cls, base_url: Optional[str] = None, snapshot_path: Optional[Path] = None) -> "Settings":
        """Load settings from TODOSYNC_* variables; explicit arguments win."""
        raw_timeout = os.getenv("TODOSYNC_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
        try:
            timeout_seconds = float(raw_timeout)
        except ValueError as e:
            raise ValueError(f"TODOSYNC_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}") from e
        if timeout_seconds <= 0:
            raise ValueError(f"TODOSYNC_TIMEOUT_SECONDS must be positive, got {raw_timeout!r}")

        log_level = os.getenv("TODOSYNC_LOG_LEVEL", "INFO").strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"TODOSYNC_LOG_LEVEL must be a logging level name, got {log_level!r}")

        return cls(
            base_url=base_url or os.getenv("TODOSYNC_BASE_URL", DEFAULT_BASE_URL),
            timeout_seconds=timeout_seconds,
            snapshot_path=snapshot_path or Path(
                os.getenv("TODOSYNC_SNAPSHOT_PATH", ".todosync/snapshot.json")
            ),
            log_level=log_level,
            mark_all_concurrent=os.getenv("TODOSYNC_MARK_ALL_CONCURRENT", "").strip().lower() in _TRUTHY,
        )
