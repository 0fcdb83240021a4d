"""JSON-lines logging for file handles.

A ``StructuredLogger`` is usually handed to a ``BasicFile`` as its observer:
the file reports every error it raises through ``observe()``. The error is
still raised to the caller; the log is a diagnostic side channel only.
"""

from __future__ import annotations

import json
import sys
import time
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, TextIO, Union

from lazyfile.errors import BasicFileError

from .redaction import DataRedactor


class LogLevel(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class RotatingJsonl:
    """Append-only ``.jsonl`` file rotated by size.

    Rotated generations are named ``name.1.jsonl`` (newest) up to
    ``name.<keep>.jsonl``; older ones are overwritten.
    """

    def __init__(self, path: Union[str, Path], max_bytes: Optional[int] = None, keep: int = 5) -> None:
        self.path = Path(path)
        self.max_bytes = max_bytes
        self.keep = max(1, keep)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh: Optional[TextIO] = open(self.path, "a", encoding="utf-8")

    def _generation(self, n: int) -> Path:
        return self.path.with_suffix(f".{n}{self.path.suffix}")

    def _needs_rotation(self) -> bool:
        return bool(self.max_bytes) and self.path.exists() and self.path.stat().st_size > self.max_bytes

    def _rotate(self) -> None:
        if self._fh is not None:
            self._fh.close()
        for n in range(self.keep - 1, 0, -1):
            older = self._generation(n)
            if older.exists():
                older.replace(self._generation(n + 1))
        self.path.replace(self._generation(1))
        self._fh = open(self.path, "a", encoding="utf-8")

    def write_line(self, line: str) -> None:
        if self._needs_rotation():
            self._rotate()
        if self._fh is not None:
            self._fh.write(line + "\n")
            self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


class StructuredLogger:
    """Structured logger with consistent entry format and path redaction.

    Args:
        component: Component identifier written into every entry
        session_id: Correlation id (random when omitted)
        output_file: Path of a rotating ``.jsonl`` file, or an open text stream
        enable_console: Echo entries to stdout
        redactor: Path redactor (default ``DataRedactor()``)
        max_log_size_mb: Rotate the file above this size (None = never)
        max_log_files: Rotated generations to keep
    """

    def __init__(
        self,
        component: str = "lazyfile",
        session_id: Optional[str] = None,
        output_file: Optional[Union[str, Path, TextIO]] = None,
        enable_console: bool = False,
        redactor: Optional[DataRedactor] = None,
        max_log_size_mb: Optional[int] = None,
        max_log_files: int = 5,
    ) -> None:
        self.component = component
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self.start_time = time.time()
        self.redactor = redactor or DataRedactor()
        self.console_enabled = enable_console
        self.error_count = 0

        self.file: Optional[RotatingJsonl] = None
        self.stream: Optional[TextIO] = None
        if isinstance(output_file, (str, Path)):
            max_bytes = max_log_size_mb * 1024 * 1024 if max_log_size_mb else None
            self.file = RotatingJsonl(output_file, max_bytes=max_bytes, keep=max_log_files)
        elif output_file is not None:
            self.stream = output_file

    def _entry(self, level: LogLevel, message: str, context: Dict[str, Any]) -> Dict[str, Any]:
        now = time.time()
        return {
            "timestamp": now,
            "iso_timestamp": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(now)) + "Z",
            "level": level.value,
            "component": self.component,
            "session_id": self.session_id,
            "session_time": now - self.start_time,
            "message": self.redactor.redact_string(message),
            **self.redactor.redact_dict(context),
        }

    def log(self, level: LogLevel, message: str, **context: Any) -> None:
        line = json.dumps(self._entry(level, message, context), default=str, separators=(",", ":"))
        if self.console_enabled:
            print(line, file=sys.stdout, flush=True)
        if self.file is not None:
            self.file.write_line(line)
        if self.stream is not None:
            self.stream.write(line + "\n")
            self.stream.flush()

    def debug(self, message: str, **context: Any) -> None:
        self.log(LogLevel.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.log(LogLevel.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self.log(LogLevel.WARNING, message, **context)

    def error(self, message: str, **context: Any) -> None:
        self.error_count += 1
        self.log(LogLevel.ERROR, message, **context)

    def critical(self, message: str, **context: Any) -> None:
        self.log(LogLevel.CRITICAL, message, **context)

    def observe(self, err: BaseException, **context: Any) -> None:
        """Record an error raised by a file operation at ERROR level.

        ``BasicFileError`` fields (op, path, cause, errno) become entry fields.
        """
        if isinstance(err, BasicFileError):
            context.setdefault("op", err.op)
            if err.path:
                context.setdefault("path", err.path)
            if err.cause is not None:
                context.setdefault("cause", repr(err.cause))
            if err.errno is not None:
                context.setdefault("errno", err.errno)
        self.error(str(err), error_type=type(err).__name__, **context)

    __call__ = observe

    def close(self) -> None:
        """Close the log file. Streams passed in by the caller stay open."""
        if self.file is not None:
            self.file.close()
            self.file = None


def create_logger(
    component: str = "lazyfile",
    session_id: Optional[str] = None,
    log_dir: Optional[Union[str, Path]] = None,
    **kwargs: Any,
) -> StructuredLogger:
    """Build a logger from ``LF_LOG_*`` settings.

    Entries go to ``<log_dir>/<component>_<session_id or "default">.jsonl``
    when a directory is given or ``LF_LOG_DIR`` is set.
    """
    from lazyfile.config import defaults

    log_dir = log_dir if log_dir is not None else defaults.LOG.log_dir
    kwargs.setdefault("enable_console", defaults.LOG.console)
    kwargs.setdefault("max_log_size_mb", defaults.LOG.max_log_size_mb)
    kwargs.setdefault("max_log_files", defaults.LOG.max_log_files)

    output_file = Path(log_dir) / f"{component}_{session_id or 'default'}.jsonl" if log_dir else None
    return StructuredLogger(component=component, session_id=session_id, output_file=output_file, **kwargs)
