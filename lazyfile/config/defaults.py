"""lazyfile config defaults.

No side effects on import. Values can be overridden via env.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env(name: str, default: str) -> str:
    if not name.startswith("LF_"):
        raise ValueError(f"Only LF_* env vars are allowed, got: {name}")
    return os.getenv(name, default)


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name, str(default))
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = _env(name, str(default))
    try:
        return int(raw)
    except Exception:
        return default


def _env_octal(name: str, default: int) -> int:
    """Parse a permission value written in octal (``644``, ``0644`` or ``0o644``)."""
    raw = _env(name, oct(default))
    try:
        value = int(raw.strip().lower().removeprefix("0o"), 8)
    except Exception:
        return default
    if value < 0 or value > 0o7777:
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = _env(name, str(default))
    try:
        return float(raw)
    except Exception:
        return default


def _env_time_seconds(name: str, default_seconds: float) -> float:
    """Parse time value with unit suffixes (s, ms, m) and return seconds."""
    raw = _env(name, str(default_seconds)).strip().lower()
    try:
        if raw.endswith("ms"):
            return float(raw[:-2]) / 1000.0
        if raw.endswith("s"):
            return float(raw[:-1])
        if raw.endswith("m"):
            return float(raw[:-1]) * 60.0
        return float(raw)
    except Exception:
        return default_seconds


def _env_optional(name: str) -> Optional[str]:
    raw = _env(name, "")
    return raw or None


@dataclass(frozen=True)
class FileDefaults:
    file_mode: int = _env_octal("LF_FILE_MODE", 0o644)
    dir_mode: int = _env_octal("LF_DIR_MODE", 0o755)
    buffer_size: int = max(1, _env_int("LF_BUFFER_SIZE", 8192))
    copy_chunk_size: int = max(1, _env_int("LF_COPY_CHUNK", 4096))


@dataclass(frozen=True)
class FlushDefaults:
    sync_attempts: int = max(1, _env_int("LF_SYNC_RETRIES", 3))
    backoff_seconds: float = _env_time_seconds("LF_SYNC_BACKOFF", 0.05)
    backoff_factor: float = _env_float("LF_SYNC_BACKOFF_FACTOR", 2.0)
    backoff_max_seconds: float = _env_time_seconds("LF_SYNC_BACKOFF_MAX", 1.0)


@dataclass(frozen=True)
class LogDefaults:
    log_dir: Optional[str] = _env_optional("LF_LOG_DIR")
    console: bool = _env_bool("LF_LOG_CONSOLE", False)
    max_log_size_mb: Optional[int] = (
        _env_int("LF_LOG_MAX_SIZE_MB", 0) or None
    )
    max_log_files: int = max(1, _env_int("LF_LOG_MAX_FILES", 5))


FILE = FileDefaults()
FLUSH = FlushDefaults()
LOG = LogDefaults()
