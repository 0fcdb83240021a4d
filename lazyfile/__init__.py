"""lazyfile: a file handle that opens lazily, caches metadata and flushes under a lock."""

from .basic_file import BasicFile, DirEntry
from .core.flush import RetryPolicy
from .core.metadata import MetadataSnapshot
from .errors import (
    BasicFileError,
    CreateError,
    DeadlineExceededError,
    LockedError,
    OpenError,
    PathError,
    StatError,
    SyncError,
    TransferError,
)
from .textfile import TextFile

__version__ = "0.1.0"

__all__ = [
    "BasicFile",
    "BasicFileError",
    "CreateError",
    "DeadlineExceededError",
    "DirEntry",
    "LockedError",
    "MetadataSnapshot",
    "OpenError",
    "PathError",
    "RetryPolicy",
    "StatError",
    "SyncError",
    "TextFile",
    "TransferError",
]
