"""
Request Context and Configuration State for Logging.

The request id lives in a ContextVar so that every log line emitted
while serving a request (including from FastAPI's threadpool, which
copies the context) carries the same correlation id.

Environment Variables:
    - CARTESIA_GW_LOG_LEVEL: Log level (1-4 or name)
    - CARTESIA_GW_LOG_DIR: Directory for the JSONL log file
    - CARTESIA_GW_JSONL_FILE: JSONL filename (default cartesia-gateway.jsonl)
    - CARTESIA_GW_LOG_ROTATE_BYTES: Max file size before rotation
    - CARTESIA_GW_LOG_ROTATE_BACKUP: Number of rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

from .levels import LEVEL_NAMES, LogLevel

# "-" for log lines outside any request
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Return the request id of the current context, or "-"."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Bind a request id to the current context."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    """Current level as "MINIMAL", "NORMAL", "VERBOSE" or "DEBUG"."""
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging options from settings.yaml and the environment.

    Priority (highest first):
        1. CARTESIA_GW_* environment variables
        2. logging section of the settings file (CARTESIA_GW_SETTINGS)
        3. Defaults applied by configure_logging()

    Returns:
        Dictionary with the resolved logging options.
    """
    from cartesia_gateway.core.config import load_settings

    settings = load_settings(os.getenv("CARTESIA_GW_SETTINGS", "config/settings.yaml"))
    cfg: Dict[str, Any] = dict(settings.raw.get("logging", {}) or {})

    if os.getenv("CARTESIA_GW_LOG_LEVEL"):
        cfg["level"] = os.environ["CARTESIA_GW_LOG_LEVEL"]
    if os.getenv("CARTESIA_GW_LOG_DIR"):
        cfg["log_dir"] = os.environ["CARTESIA_GW_LOG_DIR"]
    if os.getenv("CARTESIA_GW_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["CARTESIA_GW_JSONL_FILE"]
    if os.getenv("CARTESIA_GW_LOG_ROTATE_BYTES", "").isdigit():
        cfg["rotate_max_bytes"] = int(os.environ["CARTESIA_GW_LOG_ROTATE_BYTES"])
    if os.getenv("CARTESIA_GW_LOG_ROTATE_BACKUP", "").isdigit():
        cfg["rotate_backup_count"] = int(os.environ["CARTESIA_GW_LOG_ROTATE_BACKUP"])

    return cfg
