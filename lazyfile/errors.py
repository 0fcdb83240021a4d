"""Error taxonomy for lazyfile.

Every public operation raises one of these to its caller. Each error carries
the operation name, the path it concerned and the underlying cause (usually an
``OSError``), so callers can branch on ``errno`` without parsing messages.
"""

from __future__ import annotations

import errno as _errno
from typing import Optional


class BasicFileError(Exception):
    """Base class for failures reported by a BasicFile.

    Attributes:
        op: Operation that failed (e.g. ``"open"``, ``"stat"``)
        path: Path associated with the error (if applicable)
        cause: Underlying exception, if any
    """

    def __init__(
        self,
        op: str,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
        message: Optional[str] = None,
    ) -> None:
        self.op = op
        self.path = path
        self.cause = cause
        self.message = message or (str(cause) if cause is not None else op)
        super().__init__(str(self))

    def __str__(self) -> str:
        base = f"{self.op}"
        if self.path:
            base = f"{base} {self.path}"
        return f"{base}: {self.message}"

    @property
    def errno(self) -> Optional[int]:
        return getattr(self.cause, "errno", None)

    @property
    def not_found(self) -> bool:
        """True when the cause says the file does not exist."""
        return isinstance(self.cause, FileNotFoundError) or self.errno == _errno.ENOENT


class PathError(BasicFileError, ValueError):
    """A name could not be resolved to an absolute path."""


class OpenError(BasicFileError):
    """No descriptor could be obtained (missing, denied, is a directory)."""


class CreateError(BasicFileError):
    """The file could not be created or truncated."""


class StatError(BasicFileError):
    """The metadata query failed."""


class SyncError(BasicFileError):
    """Persisting to stable storage failed after all retries."""

    def __init__(
        self,
        op: str,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
        attempts: int = 0,
    ) -> None:
        self.attempts = attempts
        super().__init__(op, path, cause, message=f"sync failed after {attempts} attempt(s): {cause}")


class LockedError(BasicFileError):
    """A flush was attempted while another flush was in progress."""

    def __init__(self, path: Optional[str] = None) -> None:
        super().__init__("flush", path, message="file is locked by a flush in progress")


class DeadlineExceededError(BasicFileError):
    """An operation started after its deadline. Distinct from storage failure."""

    def __init__(self, op: str, path: Optional[str] = None) -> None:
        super().__init__(op, path, message="deadline exceeded")


class TransferError(BasicFileError):
    """A bulk transfer stopped early.

    ``transferred`` holds the number of bytes moved before the failure.
    """

    def __init__(
        self,
        op: str,
        transferred: int,
        cause: Optional[BaseException] = None,
        path: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        self.transferred = transferred
        super().__init__(op, path, cause, message=message)


__all__ = [
    "BasicFileError",
    "PathError",
    "OpenError",
    "CreateError",
    "StatError",
    "SyncError",
    "LockedError",
    "DeadlineExceededError",
    "TransferError",
]
