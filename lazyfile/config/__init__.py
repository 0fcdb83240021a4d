"""lazyfile configuration.

All settings are backed by environment variables following the LF_* naming
convention and are read once, at import time.

Example:
    >>> from lazyfile.config import FILE
    >>> oct(FILE.file_mode)
    '0o644'

Environment Variables:
    LF_FILE_MODE: Permission bits for created files, octal (default: 644)
    LF_DIR_MODE: Permission bits for created parent directories, octal (default: 755)
    LF_BUFFER_SIZE: Buffer size of buffered handles in bytes (default: 8192)
    LF_COPY_CHUNK: Chunk size of bulk transfers in bytes (default: 4096)
    LF_SYNC_RETRIES: Sync attempts made by a flush before giving up (default: 3)
    LF_SYNC_BACKOFF: Delay before the first sync retry, e.g. 50ms (default: 0.05)
    LF_SYNC_BACKOFF_FACTOR: Multiplier applied to the delay per retry (default: 2.0)
    LF_SYNC_BACKOFF_MAX: Upper bound for a single retry delay (default: 1.0)
    LF_LOG_DIR: Directory for JSONL logs written by create_logger (default: unset)
    LF_LOG_CONSOLE: Echo structured log lines to stdout (default: false)
    LF_LOG_MAX_SIZE_MB: Rotate log files above this size (default: unset)
    LF_LOG_MAX_FILES: Rotated log files to keep (default: 5)
"""

from __future__ import annotations

from lazyfile.config.defaults import FILE, FLUSH, LOG, FileDefaults, FlushDefaults, LogDefaults

__all__ = [
    "FILE",
    "FLUSH",
    "LOG",
    "FileDefaults",
    "FlushDefaults",
    "LogDefaults",
]
