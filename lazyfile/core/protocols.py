"""Capability protocols implemented by ``BasicFile``."""

from __future__ import annotations

from typing import Optional, Protocol, Tuple, runtime_checkable

from .metadata import MetadataSnapshot


@runtime_checkable
class Reader(Protocol):
    """Sequential and positional reads."""

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes from the current offset (all if negative)."""
        ...

    def read_at(self, size: int, offset: int) -> bytes:
        """Read without moving the offset."""
        ...

    def seek(self, offset: int, whence: int = 0) -> int:
        ...

    def tell(self) -> int:
        ...


@runtime_checkable
class Writer(Protocol):
    """Sequential and positional writes."""

    def write(self, data: bytes) -> int:
        ...

    def write_string(self, text: str, encoding: str = "utf-8") -> int:
        ...

    def write_at(self, data: bytes, offset: int) -> int:
        ...

    def sync(self) -> None:
        """Commit written data to stable storage."""
        ...


@runtime_checkable
class MetadataProvider(Protocol):
    """Cached metadata access; every accessor goes through ``stat``."""

    def stat(self, force_refresh: bool = False) -> MetadataSnapshot:
        ...

    def invalidate(self) -> None:
        ...

    def size(self) -> int:
        ...

    def mode(self) -> int:
        ...

    def mod_time(self) -> float:
        ...

    def is_dir(self) -> bool:
        ...

    def is_regular(self) -> bool:
        ...


@runtime_checkable
class PathOperations(Protocol):
    """Decomposition of the canonical path."""

    def abs(self) -> str:
        ...

    def base(self) -> str:
        ...

    def dir(self) -> str:
        ...

    def ext(self) -> str:
        ...

    def split(self) -> Tuple[str, str]:
        ...


@runtime_checkable
class PlatformOperations(Protocol):
    """Permission, ownership, naming and descriptor operations."""

    def chmod(self, mode: int) -> None:
        ...

    def chown(self, uid: int, gid: int) -> None:
        ...

    def move(self, newpath: str) -> object:
        ...

    def remove(self) -> None:
        ...

    def truncate(self, size: int) -> None:
        ...

    def fileno(self) -> int:
        ...

    def set_deadline(self, timeout: Optional[float]) -> None:
        ...


__all__ = ["Reader", "Writer", "MetadataProvider", "PathOperations", "PlatformOperations"]
