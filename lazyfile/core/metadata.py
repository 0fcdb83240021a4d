"""Cached file metadata.

A ``MetadataCache`` holds at most one ``MetadataSnapshot`` for one identity.
The snapshot is trusted only while the dirty flag is unset; writers call
``invalidate()`` and the next ``stat()`` goes back to storage.
"""

from __future__ import annotations

import logging
import os
import stat as _stat
from dataclasses import dataclass, field
from typing import Callable, Optional

from lazyfile.errors import StatError

from .identity import FileIdentity, base

logger = logging.getLogger(__name__)

StatFn = Callable[[str], os.stat_result]


@dataclass(frozen=True)
class MetadataSnapshot:
    """Point-in-time copy of a file's metadata."""

    name: str
    size: int
    mode: int
    mtime: float
    mtime_ns: int
    is_dir: bool
    sys: os.stat_result = field(compare=False, repr=False)

    @classmethod
    def from_stat_result(cls, name: str, st: os.stat_result) -> "MetadataSnapshot":
        return cls(
            name=name,
            size=int(st.st_size),
            mode=int(st.st_mode),
            mtime=float(st.st_mtime),
            mtime_ns=int(st.st_mtime_ns),
            is_dir=_stat.S_ISDIR(st.st_mode),
            sys=st,
        )

    @property
    def is_regular(self) -> bool:
        return _stat.S_ISREG(self.mode)

    @property
    def perm(self) -> int:
        """Unix permission bits (``mode & 0o777``)."""
        return _stat.S_IMODE(self.mode) & 0o777

    @property
    def type_bits(self) -> int:
        """File type bits (``S_IFMT``)."""
        return _stat.S_IFMT(self.mode)

    @property
    def mode_string(self) -> str:
        """``ls -l`` style rendering, e.g. ``-rw-r--r--``."""
        return _stat.filemode(self.mode)


class MetadataCache:
    """Lazily queried, explicitly invalidated metadata for one identity.

    Args:
        identity: File whose metadata is cached
        stat_fn: Query function, ``os.stat`` by default
        on_query: Optional callback run after every storage query
    """

    def __init__(
        self,
        identity: FileIdentity,
        stat_fn: Optional[StatFn] = None,
        on_query: Optional[Callable[[], None]] = None,
    ) -> None:
        self.identity = identity
        self._stat_fn: StatFn = stat_fn or os.stat
        self._on_query = on_query
        self._snapshot: Optional[MetadataSnapshot] = None
        self._dirty = False
        self.queries = 0

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def cached(self) -> Optional[MetadataSnapshot]:
        """Last snapshot, possibly stale. Never queries storage."""
        return self._snapshot

    def stat(self, force_refresh: bool = False) -> MetadataSnapshot:
        """Return the cached snapshot, querying storage when needed.

        Raises:
            StatError: the query failed; the previous snapshot stays cached
                and the cache stays dirty.
        """
        if self._snapshot is not None and not self._dirty and not force_refresh:
            return self._snapshot

        path = self.identity.absolute
        self.queries += 1
        if self._on_query is not None:
            self._on_query()
        try:
            st = self._stat_fn(path)
        except OSError as exc:
            self._dirty = True
            raise StatError("stat", path, exc) from exc

        self._snapshot = MetadataSnapshot.from_stat_result(base(path), st)
        self._dirty = False
        logger.debug("stat %s size=%d mode=%o", path, self._snapshot.size, self._snapshot.mode)
        return self._snapshot

    def invalidate(self) -> None:
        self._dirty = True

    def clear(self) -> None:
        """Drop the snapshot entirely (used after a flush)."""
        self._snapshot = None
        self._dirty = False
