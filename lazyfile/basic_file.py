"""BasicFile: one lazily opened file behind a single object.

Typical use::

    f = BasicFile("notes.txt")
    f.create()
    f.write_string("hello")
    f.flush()            # sync, close, forget cached metadata
    f.read()             # reopens transparently -> b"hello"

Nothing touches storage until an operation needs it. Metadata comes from a
cache that writers invalidate; the descriptor is opened on first I/O and
released by ``flush``/``close``/``remove``/``move``. Every failure is raised
as a ``BasicFileError`` subclass; an optional observer (for instance a
``StructuredLogger``) sees each one as well.
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterator, Optional, Tuple, Union

from lazyfile.errors import BasicFileError, DeadlineExceededError, PathError, SyncError, TransferError

from .core import identity as paths
from .core.buffered import BufferedHandle, replicate
from .core.flush import FlushCoordinator, FlushState, RetryPolicy
from .core.identity import FileIdentity
from .core.lifecycle import AccessMode, HandleLifecycle, HandleState
from .core.metadata import MetadataCache, MetadataSnapshot, StatFn
from .logging.metrics import PerformanceMetrics

logger = logging.getLogger(__name__)

Observer = Callable[[BaseException], None]
PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class DirEntry:
    """Directory-entry view of a file, built from its current snapshot."""

    name: str
    type_bits: int
    snapshot: MetadataSnapshot

    def is_dir(self) -> bool:
        return self.snapshot.is_dir

    def is_file(self) -> bool:
        return self.snapshot.is_regular

    def info(self) -> MetadataSnapshot:
        return self.snapshot


class BasicFile:
    """Lazily opened file with cached metadata and lock-guarded flush.

    Args:
        name: Path as given by the caller; resolved to an absolute identity
        observer: Optional callable that receives every raised error
        metrics: Optional metrics collector
        stat_fn: Metadata query function (default ``os.stat``)
        retry_policy: Sync retry policy used by ``flush``
        file_mode: Permission bits for files this object creates
        buffer_size: Buffer size of buffered handles
        sleep: Sleep function used between sync retries

    Raises:
        PathError: ``name`` cannot be resolved
    """

    def __init__(
        self,
        name: PathLike,
        *,
        observer: Optional[Observer] = None,
        metrics: Optional[PerformanceMetrics] = None,
        stat_fn: Optional[StatFn] = None,
        retry_policy: Optional[RetryPolicy] = None,
        file_mode: Optional[int] = None,
        buffer_size: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._observer = observer
        self.metrics = metrics
        try:
            self.identity: FileIdentity = paths.resolve(name)
        except PathError as exc:
            self._report(exc)
            raise
        self._cache = MetadataCache(self.identity, stat_fn, on_query=lambda: self._count("stat_queries"))
        self._lifecycle = HandleLifecycle(
            self.identity, file_mode=file_mode, on_open=lambda _mode: self._count("opens")
        )
        self._flusher = FlushCoordinator(
            self._lifecycle,
            self._cache,
            policy=retry_policy,
            sleep=sleep,
            observer=self._report,
            on_retry=lambda _attempt, _exc: self._count("sync_retries"),
        )
        self._buffer_size = buffer_size
        self._read_deadline: Optional[float] = None
        self._write_deadline: Optional[float] = None

    # --- Plumbing ---

    def _count(self, name: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter(name)

    def _report(self, exc: BaseException) -> None:
        self._count("errors")
        if self._observer is not None:
            self._observer(exc)

    @contextmanager
    def _reporting(self) -> Iterator[None]:
        try:
            yield
        except BasicFileError as exc:
            self._report(exc)
            raise

    def _changed(self) -> None:
        """Hook run after anything that may change content. Subclasses drop derived caches here."""

    def _check_deadline(self, deadline: Optional[float], op: str) -> None:
        if deadline is not None and time.monotonic() > deadline:
            raise DeadlineExceededError(op, self.identity.absolute)

    def _same_file(self, other: "BasicFile") -> bool:
        if other is self or other.identity.absolute == self.identity.absolute:
            return True
        try:
            return os.path.samefile(self.identity.absolute, other.identity.absolute)
        except OSError:
            # a missing side cannot alias the other
            return False

    def _os_error(self, op: str, exc: OSError) -> BasicFileError:
        return BasicFileError(op, self.identity.absolute, exc)

    def _flush_pending(self, op: str) -> None:
        try:
            self._lifecycle.flush_buffer()
        except (OSError, ValueError) as exc:
            raise BasicFileError(op, self.identity.absolute, exc) from exc

    # --- Identity and path operations ---

    @property
    def provided_name(self) -> str:
        return self.identity.provided

    @property
    def name(self) -> str:
        """Base name of the absolute path."""
        return paths.base(self.identity.absolute)

    def abs(self) -> str:
        return self.identity.absolute

    def base(self) -> str:
        return paths.base(self.identity.absolute)

    def dir(self) -> str:
        return paths.dir(self.identity.absolute)

    def ext(self) -> str:
        return paths.ext(self.identity.absolute)

    def split(self) -> Tuple[str, str]:
        return paths.split(self.identity.absolute)

    # --- State ---

    @property
    def state(self) -> HandleState:
        return self._lifecycle.state

    @property
    def closed(self) -> bool:
        return self._lifecycle.state is HandleState.CLOSED

    @property
    def flush_state(self) -> FlushState:
        return self._flusher.state

    @property
    def last_flush(self) -> Optional[float]:
        """Wall-clock time of the last successful flush, if any."""
        return self._flusher.last_flush

    def locked(self) -> bool:
        return self._flusher.locked()

    # --- Core file access ---

    def open(self) -> "BasicFile":
        """Make sure a readable descriptor is held.

        Raises:
            OpenError: missing file, permission denied or a directory
        """
        with self._reporting():
            self._lifecycle.ensure_open(AccessMode.READ_ONLY)
        return self

    def create(self, make_parents: bool = False) -> "BasicFile":
        """Create or truncate the file and hold a read-write descriptor.

        Raises:
            CreateError: the file (or a parent directory) could not be created
        """
        with self._reporting():
            self._lifecycle.create(make_parents=make_parents)
        self._cache.clear()
        self._changed()
        return self

    def create_exclusive(self, make_parents: bool = False) -> "BasicFile":
        """Create the file, failing with ``CreateError`` if it exists."""
        with self._reporting():
            self._lifecycle.create_exclusive(make_parents=make_parents)
        self._cache.clear()
        self._changed()
        return self

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes from the current offset; all remaining if negative."""
        with self._reporting():
            self._check_deadline(self._read_deadline, "read")
            raw = self._lifecycle.ensure_open(AccessMode.READ_ONLY)
            try:
                data = raw.read(size)
            except OSError as exc:
                raise self._os_error("read", exc) from exc
        return data or b""

    def read_at(self, size: int, offset: int) -> bytes:
        """Read ``size`` bytes at ``offset`` without moving the file offset."""
        with self._reporting():
            self._check_deadline(self._read_deadline, "read")
            raw = self._lifecycle.ensure_open(AccessMode.READ_ONLY)
            try:
                return os.pread(raw.fileno(), size, offset)
            except OSError as exc:
                raise self._os_error("read_at", exc) from exc

    def write(self, data: bytes) -> int:
        """Write all of ``data`` at the current offset, creating the file if needed."""
        with self._reporting():
            self._check_deadline(self._write_deadline, "write")
            raw = self._lifecycle.ensure_open(AccessMode.READ_WRITE)
            view = memoryview(data)
            total = 0
            try:
                while view:
                    n = raw.write(view)
                    if not n:
                        raise BasicFileError("write", self.identity.absolute, message="short write")
                    total += n
                    view = view[n:]
            except OSError as exc:
                raise self._os_error("write", exc) from exc
            finally:
                if total:
                    self._cache.invalidate()
                    self._changed()
        return total

    def write_string(self, text: str, encoding: str = "utf-8") -> int:
        return self.write(text.encode(encoding))

    def write_at(self, data: bytes, offset: int) -> int:
        """Write all of ``data`` at ``offset`` without moving the file offset."""
        with self._reporting():
            self._check_deadline(self._write_deadline, "write")
            raw = self._lifecycle.ensure_open(AccessMode.READ_WRITE)
            self._flush_pending("write_at")
            view = memoryview(data)
            total = 0
            try:
                while view:
                    n = os.pwrite(raw.fileno(), view, offset + total)
                    if not n:
                        raise BasicFileError("write_at", self.identity.absolute, message="short write")
                    total += n
                    view = view[n:]
            except OSError as exc:
                raise self._os_error("write_at", exc) from exc
            finally:
                if total:
                    self._cache.invalidate()
                    self._changed()
        return total

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        with self._reporting():
            raw = self._lifecycle.ensure_open(AccessMode.READ_ONLY)
            try:
                return raw.seek(offset, whence)
            except OSError as exc:
                raise self._os_error("seek", exc) from exc

    def tell(self) -> int:
        """Current offset; 0 while closed (the next open starts at 0)."""
        if self._lifecycle.raw is None:
            return 0
        with self._reporting():
            raw = self._lifecycle.ensure_open(AccessMode.READ_ONLY)
            try:
                return raw.tell()
            except OSError as exc:
                raise self._os_error("tell", exc) from exc

    def close(self) -> None:
        """Release the descriptor. Cached metadata is kept."""
        with self._reporting():
            self._lifecycle.close()

    def sync(self) -> None:
        """Commit written data to stable storage once, without closing.

        Raises:
            SyncError: the sync failed
        """
        with self._reporting():
            try:
                self._lifecycle.sync()
            except (OSError, ValueError) as exc:
                raise SyncError("sync", self.identity.absolute, exc, attempts=1) from exc

    def flush(self, timeout: Optional[float] = None) -> None:
        """Sync, close the descriptor and clear cached metadata.

        The object stays usable; the next operation reopens the file.

        Args:
            timeout: Optional seconds after which no further sync attempt starts

        Raises:
            LockedError: another flush is in progress
            SyncError: sync kept failing after the configured retries
            DeadlineExceededError: ``timeout`` elapsed before sync succeeded
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        timer = (
            self.metrics.timed("flush_ms", path=self.identity.absolute)
            if self.metrics is not None
            else nullcontext()
        )
        with self._reporting(), timer:
            self._flusher.flush(deadline)
        self._count("flushes")
        self._changed()

    # --- Metadata ---

    def stat(self, force_refresh: bool = False) -> MetadataSnapshot:
        """Cached metadata; queried again when invalidated or forced.

        Raises:
            StatError: the query failed (e.g. the file was removed)
        """
        with self._reporting():
            return self._cache.stat(force_refresh=force_refresh)

    file_info = stat

    def invalidate(self) -> None:
        """Distrust cached metadata; the next ``stat`` queries storage."""
        self._cache.invalidate()
        self._changed()

    def size(self) -> int:
        return self.stat().size

    def mode(self) -> int:
        return self.stat().mode

    def mod_time(self) -> float:
        return self.stat().mtime

    def is_dir(self) -> bool:
        return self.stat().is_dir

    def is_regular(self) -> bool:
        return self.stat().is_regular

    def perm(self) -> int:
        return self.stat().perm

    def type_bits(self) -> int:
        return self.stat().type_bits

    def mode_string(self) -> str:
        return self.stat().mode_string

    def sys(self) -> os.stat_result:
        """The raw ``os.stat_result`` behind the snapshot."""
        return self.stat().sys

    def dir_entry(self) -> DirEntry:
        snapshot = self.stat()
        return DirEntry(name=snapshot.name, type_bits=snapshot.type_bits, snapshot=snapshot)

    # --- Platform operations ---

    def chmod(self, mode: int) -> None:
        with self._reporting():
            try:
                os.chmod(self.identity.absolute, mode)
            except OSError as exc:
                raise self._os_error("chmod", exc) from exc
        self._cache.invalidate()

    def chown(self, uid: int, gid: int) -> None:
        with self._reporting():
            try:
                os.chown(self.identity.absolute, uid, gid)
            except OSError as exc:
                raise self._os_error("chown", exc) from exc
        self._cache.invalidate()

    def move(self, newpath: PathLike) -> "BasicFile":
        """Rename the file and return a ``BasicFile`` for the new location.

        This object is left closed with no cached metadata; its identity
        still names the old path.
        """
        target = BasicFile(
            newpath,
            observer=self._observer,
            metrics=self.metrics,
            retry_policy=self._flusher.policy,
            file_mode=self._lifecycle.file_mode,
            buffer_size=self._buffer_size,
        )
        with self._reporting():
            self._lifecycle.close()
            try:
                os.rename(self.identity.absolute, target.abs())
            except OSError as exc:
                raise self._os_error("move", exc) from exc
        self._cache.clear()
        self._changed()
        return target

    rename = move

    def set_deadline(self, timeout: Optional[float]) -> None:
        """Fail reads and writes that start more than ``timeout`` seconds from now.

        ``None`` clears both deadlines.
        """
        self.set_read_deadline(timeout)
        self.set_write_deadline(timeout)

    def set_read_deadline(self, timeout: Optional[float]) -> None:
        self._read_deadline = time.monotonic() + timeout if timeout is not None else None

    def set_write_deadline(self, timeout: Optional[float]) -> None:
        self._write_deadline = time.monotonic() + timeout if timeout is not None else None

    def os_file(self):
        """The held raw descriptor object, or None while closed."""
        return self._lifecycle.raw

    def fileno(self) -> int:
        """Numeric descriptor, opening the file read-only if needed."""
        with self._reporting():
            return self._lifecycle.ensure_open(AccessMode.READ_ONLY).fileno()

    def syscall_conn(self):
        """Raw control access to the descriptor. Reserved; not supported."""
        raise NotImplementedError("syscall_conn is not supported")

    # --- Unix operations ---

    def link(self, newname: PathLike) -> None:
        with self._reporting():
            try:
                os.link(self.identity.absolute, newname)
            except OSError as exc:
                raise self._os_error("link", exc) from exc
        self._cache.invalidate()

    def symlink(self, newname: PathLike) -> None:
        """Create ``newname`` as a symbolic link pointing at this file."""
        with self._reporting():
            try:
                os.symlink(self.identity.absolute, newname)
            except OSError as exc:
                raise self._os_error("symlink", exc) from exc

    def readlink(self) -> str:
        with self._reporting():
            try:
                return os.readlink(self.identity.absolute)
            except OSError as exc:
                raise self._os_error("readlink", exc) from exc

    def remove(self) -> None:
        """Close the descriptor and delete the file.

        A failing close is reported and logged; the removal still happens and
        the object is closed either way.
        """
        try:
            self._lifecycle.close()
        except BasicFileError as exc:
            logger.warning("close before remove failed for %s: %s", self.identity.absolute, exc)
            self._report(exc)
        self._cache.clear()
        self._changed()
        with self._reporting():
            try:
                os.remove(self.identity.absolute)
            except OSError as exc:
                raise self._os_error("remove", exc) from exc

    def truncate(self, size: int) -> None:
        with self._reporting():
            self._flush_pending("truncate")
            try:
                os.truncate(self.identity.absolute, size)
            except OSError as exc:
                raise self._os_error("truncate", exc) from exc
        self._cache.invalidate()
        self._changed()

    # --- Buffered access ---

    def handle(self) -> BufferedHandle:
        """Buffered read-write stream over the descriptor.

        The file is marked stale: the next direct operation on this object
        flushes the handle's pending bytes, detaches it and reopens.
        """
        with self._reporting():
            raw = self._lifecycle.ensure_open(AccessMode.READ_WRITE)
        buffered = BufferedHandle(raw, self._lifecycle, buffer_size=self._buffer_size)
        self._lifecycle.mark_stale()
        self._cache.invalidate()
        self._changed()
        return buffered

    def write_to(self, sink: BinaryIO) -> int:
        """Stream from the current offset to EOF into ``sink``.

        Raises:
            TransferError: with ``transferred`` set to the bytes moved
        """
        with self._reporting():
            raw = self._lifecycle.ensure_open(AccessMode.READ_ONLY)
            start = raw.tell()
            buffered = BufferedHandle(raw, self._lifecycle, buffer_size=self._buffer_size)
            try:
                return buffered.write_all_to(sink)
            except TransferError as exc:
                # drop the read-ahead so the offset sits after the bytes moved
                buffered.close()
                raw.seek(start + exc.transferred)
                raise
            finally:
                buffered.close()

    def read_from(self, source: BinaryIO) -> int:
        """Write everything ``source`` yields at the current offset."""
        with self._reporting():
            raw = self._lifecycle.ensure_open(AccessMode.READ_WRITE)
            buffered = BufferedHandle(raw, self._lifecycle, buffer_size=self._buffer_size)
            try:
                return buffered.read_all_from(source)
            finally:
                buffered.close()
                self._cache.invalidate()
                self._changed()

    def copy_to(self, dst: Union["BasicFile", PathLike]) -> "BasicFile":
        """Replace ``dst`` with a byte-for-byte copy of this file.

        Returns:
            The destination ``BasicFile``

        Raises:
            BasicFileError: ``dst`` names this file; nothing is truncated
        """
        target = dst if isinstance(dst, BasicFile) else BasicFile(dst, observer=self._observer)
        with self._reporting():
            if self._same_file(target):
                raise BasicFileError(
                    "copy_to", self.identity.absolute, message="source and destination are the same file"
                )
            src_raw = self._lifecycle.ensure_open(AccessMode.READ_ONLY)
            self._flush_pending("copy_to")
        target.create()
        with target._reporting():
            dst_raw = target._lifecycle.ensure_open(AccessMode.READ_WRITE)
            replicate(dst_raw.fileno(), src_raw.fileno())
        target.invalidate()
        return target

    # --- Dunder ---

    def __enter__(self) -> "BasicFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identity.provided!r}, state={self.state.value})"

    def __str__(self) -> str:
        snapshot = self._cache.cached
        mode = snapshot.mode_string if snapshot is not None else "?"
        return f"{mode:>8} {self.name:>15}"
