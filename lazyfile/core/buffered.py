"""Buffered stream access over a lifecycle-owned descriptor."""

from __future__ import annotations

import io
import os
from typing import BinaryIO, Optional, Union

from lazyfile.config import defaults
from lazyfile.errors import TransferError

from .lifecycle import HandleLifecycle


class BufferedHandle:
    """Buffered reader/writer over a raw descriptor it does not own.

    ``close()`` flushes and detaches the buffer; the descriptor stays open
    and owned by the lifecycle that produced it. Bulk transfers stream
    through ``chunk_size`` bytes at a time.
    """

    def __init__(
        self,
        raw: io.FileIO,
        lifecycle: Optional[HandleLifecycle] = None,
        buffer_size: Optional[int] = None,
        chunk_size: Optional[int] = None,
    ) -> None:
        size = buffer_size or defaults.FILE.buffer_size
        stream: Union[io.BufferedRandom, io.BufferedReader, io.BufferedWriter]
        if raw.readable() and raw.writable():
            stream = io.BufferedRandom(raw, size)
        elif raw.writable():
            stream = io.BufferedWriter(raw, size)
        else:
            stream = io.BufferedReader(raw, size)
        self._stream: Optional[Union[io.BufferedRandom, io.BufferedReader, io.BufferedWriter]] = stream
        self._lifecycle = lifecycle
        self.chunk_size = chunk_size or defaults.FILE.copy_chunk_size
        self.path = lifecycle.identity.absolute if lifecycle is not None else raw.name
        if lifecycle is not None:
            lifecycle.attach_buffer(self)

    @property
    def closed(self) -> bool:
        return self._stream is None

    def _live(self) -> Union[io.BufferedRandom, io.BufferedReader, io.BufferedWriter]:
        if self._stream is None:
            raise ValueError("I/O operation on closed buffered handle")
        return self._stream

    # --- Stream API ---

    def read(self, size: int = -1) -> bytes:
        return self._live().read(size)

    def readline(self, size: int = -1) -> bytes:
        return self._live().readline(size)

    def write(self, data: bytes) -> int:
        return self._live().write(data)

    def write_string(self, text: str, encoding: str = "utf-8") -> int:
        return self.write(text.encode(encoding))

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._live().seek(offset, whence)

    def tell(self) -> int:
        return self._live().tell()

    def flush(self) -> None:
        if self._stream is not None:
            self._stream.flush()

    def detach(self) -> None:
        """Flush pending bytes into the descriptor and drop the buffer."""
        stream = self._stream
        if stream is None:
            return
        self._stream = None
        stream.detach()

    def close(self) -> None:
        try:
            self.detach()
        finally:
            if self._lifecycle is not None:
                self._lifecycle.detach_buffer(self)

    def __enter__(self) -> "BufferedHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Bulk transfer ---

    def write_all_to(self, sink: BinaryIO) -> int:
        """Copy from the current position to EOF into ``sink``.

        Returns:
            Number of bytes transferred

        Raises:
            TransferError: reading, or writing to ``sink``, failed or came up
                short; ``transferred`` holds the bytes moved so far
        """
        stream = self._live()
        total = 0
        while True:
            try:
                chunk = stream.read(self.chunk_size)
            except OSError as exc:
                raise TransferError("write_to", total, exc, path=self.path) from exc
            if not chunk:
                return total
            try:
                n = sink.write(chunk)
            except (OSError, ValueError) as exc:
                raise TransferError("write_to", total, exc, path=self.path) from exc
            # sinks returning None took the whole chunk
            n = len(chunk) if n is None else n
            total += n
            if n < len(chunk):
                raise TransferError(
                    "write_to", total, path=self.path, message=f"short write: {n} of {len(chunk)} bytes"
                )

    def read_all_from(self, source: BinaryIO) -> int:
        """Append everything ``source`` yields at the current position.

        Returns:
            Number of bytes transferred

        Raises:
            TransferError: reading ``source`` or writing failed; ``transferred``
                holds the bytes written so far
        """
        stream = self._live()
        total = 0
        while True:
            try:
                chunk = source.read(self.chunk_size)
            except OSError as exc:
                raise TransferError("read_from", total, exc, path=self.path) from exc
            if not chunk:
                return total
            try:
                total += stream.write(chunk)
            except (OSError, ValueError) as exc:
                raise TransferError("read_from", total, exc, path=self.path) from exc


def replicate(dst_fd: int, src_fd: int, chunk_size: Optional[int] = None) -> int:
    """Copy ``src_fd`` onto ``dst_fd`` by position, leaving both offsets alone.

    Returns:
        Number of bytes copied

    Raises:
        TransferError: a positional read or write failed or wrote nothing
    """
    chunk = chunk_size or defaults.FILE.copy_chunk_size
    offset = 0
    while True:
        try:
            data = os.pread(src_fd, chunk, offset)
        except OSError as exc:
            raise TransferError("replicate", offset, exc) from exc
        if not data:
            return offset
        view = memoryview(data)
        while view:
            try:
                n = os.pwrite(dst_fd, view, offset)
            except OSError as exc:
                raise TransferError("replicate", offset, exc) from exc
            if n == 0:
                raise TransferError("replicate", offset, message="short write")
            offset += n
            view = view[n:]
