"""Lazy ownership of one OS-level descriptor.

State machine::

    CLOSED --ensure_open/create--> OPEN --close--> CLOSED

plus a separate ``stale`` bit: while set, the next ``ensure_open`` replaces
the held descriptor with a fresh one (keeping the file offset). The bit does
not detect external changes; writers and buffered handles set it explicitly.
"""

from __future__ import annotations

import io
import logging
import os
from enum import Enum
from typing import Callable, Optional, Protocol

from lazyfile.config import defaults
from lazyfile.errors import BasicFileError, CreateError, OpenError

from .identity import FileIdentity

logger = logging.getLogger(__name__)


class HandleState(Enum):
    CLOSED = "closed"
    OPEN = "open"


class AccessMode(Enum):
    READ_ONLY = "r"
    READ_WRITE = "rw"


class _Detachable(Protocol):
    def flush(self) -> None: ...

    def detach(self) -> None: ...


class HandleLifecycle:
    """Open, reopen and close the descriptor of one identity.

    Args:
        identity: File the descriptor refers to
        file_mode: Permission bits for created files (default ``LF_FILE_MODE``)
        dir_mode: Permission bits for created parent directories (default ``LF_DIR_MODE``)
        on_open: Optional callback run after every successful open
    """

    def __init__(
        self,
        identity: FileIdentity,
        file_mode: Optional[int] = None,
        dir_mode: Optional[int] = None,
        on_open: Optional[Callable[[AccessMode], None]] = None,
    ) -> None:
        self.identity = identity
        self.file_mode = file_mode if file_mode is not None else defaults.FILE.file_mode
        self.dir_mode = dir_mode if dir_mode is not None else defaults.FILE.dir_mode
        self._on_open = on_open
        self._raw: Optional[io.FileIO] = None
        self._mode: Optional[AccessMode] = None
        self._stale = False
        self._buffered: Optional[_Detachable] = None
        self.opens = 0

    # --- State ---

    @property
    def state(self) -> HandleState:
        return HandleState.OPEN if self._raw is not None else HandleState.CLOSED

    @property
    def mode(self) -> Optional[AccessMode]:
        return self._mode

    @property
    def stale(self) -> bool:
        return self._stale

    @property
    def raw(self) -> Optional[io.FileIO]:
        """The held descriptor, or None while closed. Never opens."""
        return self._raw

    def mark_stale(self) -> None:
        self._stale = True

    # --- Opening ---

    def ensure_open(self, mode: AccessMode = AccessMode.READ_ONLY) -> io.FileIO:
        """Return a live descriptor able to serve ``mode``.

        Raises:
            OpenError: the file could not be opened
        """
        if self._raw is not None and not self._stale and self._serves(mode):
            return self._raw

        offset = None
        if self._raw is not None:
            if self._mode is AccessMode.READ_WRITE:
                mode = AccessMode.READ_WRITE
            offset = self._logical_offset()
            logger.debug("reopening %s (stale=%s, mode=%s)", self.identity.absolute, self._stale, mode.value)
            try:
                self.close()
            except BasicFileError as exc:
                raise OpenError("open", self.identity.absolute, exc.cause or exc) from exc

        if mode is AccessMode.READ_WRITE:
            flags = os.O_RDWR | os.O_CREAT
        else:
            flags = os.O_RDONLY
        raw = self._open_fd(flags, OpenError, "open")
        if offset:
            raw.seek(offset)
        self._install(raw, mode)
        return raw

    def create(self, make_parents: bool = False) -> io.FileIO:
        """Create or truncate the file and hold a fresh read-write descriptor.

        Raises:
            CreateError: the file or its parent directory could not be created
        """
        return self._create(os.O_RDWR | os.O_CREAT | os.O_TRUNC, make_parents)

    def create_exclusive(self, make_parents: bool = False) -> io.FileIO:
        """Like ``create`` but fails when the file already exists."""
        return self._create(os.O_RDWR | os.O_CREAT | os.O_EXCL, make_parents)

    def _create(self, flags: int, make_parents: bool) -> io.FileIO:
        path = self.identity.absolute
        if make_parents:
            parent = os.path.dirname(path)
            try:
                os.makedirs(parent, mode=self.dir_mode, exist_ok=True)
            except OSError as exc:
                raise CreateError("create", path, exc) from exc
        if self._raw is not None:
            try:
                self.close()
            except BasicFileError as exc:
                # content is about to be replaced
                logger.warning("close before create failed for %s: %s", path, exc)
        raw = self._open_fd(flags, CreateError, "create")
        self._install(raw, AccessMode.READ_WRITE)
        return raw

    def _open_fd(self, flags: int, error_cls: type[BasicFileError], op: str) -> io.FileIO:
        path = self.identity.absolute
        flags |= getattr(os, "O_CLOEXEC", 0)
        try:
            fd = os.open(path, flags, self.file_mode)
        except OSError as exc:
            raise error_cls(op, path, exc) from exc
        writable = bool(flags & (os.O_RDWR | os.O_WRONLY))
        try:
            # FileIO rejects directories with IsADirectoryError
            return io.FileIO(fd, "r+b" if writable else "rb", closefd=True)
        except OSError as exc:
            os.close(fd)
            raise error_cls(op, path, exc) from exc

    def _install(self, raw: io.FileIO, mode: AccessMode) -> None:
        self._raw = raw
        self._mode = mode
        self._stale = False
        self.opens += 1
        if self._on_open is not None:
            self._on_open(mode)

    def _serves(self, mode: AccessMode) -> bool:
        return mode is AccessMode.READ_ONLY or self._mode is AccessMode.READ_WRITE

    def _logical_offset(self) -> Optional[int]:
        raw = self._raw
        if raw is None:
            return None
        try:
            if self._buffered is not None:
                self._buffered.flush()
            return raw.tell()
        except (OSError, ValueError):
            return None

    # --- Buffered wrappers ---

    def attach_buffer(self, buffered: _Detachable) -> None:
        """Register the buffered wrapper of the held descriptor.

        Its pending bytes are pushed to the descriptor before the descriptor
        is synced, replaced or closed. A previously attached wrapper is
        detached first.
        """
        if self._buffered is not None and self._buffered is not buffered:
            self._buffered.detach()
        self._buffered = buffered

    def detach_buffer(self, buffered: _Detachable) -> None:
        if self._buffered is buffered:
            self._buffered = None

    def flush_buffer(self) -> None:
        """Push pending bytes of the attached wrapper, if any, to the descriptor."""
        if self._buffered is not None:
            self._buffered.flush()

    # --- Persistence and release ---

    def sync(self) -> None:
        """Push buffered bytes to the descriptor and fsync it.

        Raises ``OSError`` unchanged; callers decide how to retry and report.
        """
        raw = self._raw
        if raw is None:
            return
        if self._buffered is not None:
            self._buffered.flush()
        os.fsync(raw.fileno())

    def close(self) -> None:
        """Release the descriptor. The state is CLOSED afterwards even on error.

        Raises:
            BasicFileError: flushing the buffered wrapper or closing failed
        """
        raw, buffered = self._raw, self._buffered
        self._raw = None
        self._buffered = None
        self._mode = None
        self._stale = False
        if raw is None:
            return

        error: Optional[BaseException] = None
        if buffered is not None:
            try:
                buffered.detach()
            except (OSError, ValueError) as exc:
                error = exc
        try:
            raw.close()
        except OSError as exc:
            error = error or exc
        if error is not None:
            raise BasicFileError("close", self.identity.absolute, error) from error
        logger.debug("closed %s", self.identity.absolute)
