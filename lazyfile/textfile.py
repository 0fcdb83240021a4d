"""Text view over a BasicFile: decoded content split into lines, records and words."""

from __future__ import annotations

import os
from typing import Any, List, Optional

from lazyfile.config import defaults
from lazyfile.errors import BasicFileError

from .basic_file import BasicFile, PathLike
from .core.lifecycle import AccessMode


class TextFile(BasicFile):
    """``BasicFile`` specialised for text.

    The decoded content and its splits are computed on first use and dropped
    whenever the file is written, created, truncated, flushed or invalidated.

    Separators:
    - ``line_sep`` splits the text into lines (default ``"\\n"``; a trailing
      separator does not produce an empty last line and ``"\\r"`` before it is
      dropped).
    - ``record_sep`` splits each line into fields (default ``"\\t"``).
    - ``word_sep`` splits lines into words (default ``" "``); empty words are
      skipped.
    """

    def __init__(
        self,
        name: PathLike,
        *,
        encoding: str = "utf-8",
        line_sep: str = "\n",
        record_sep: str = "\t",
        word_sep: str = " ",
        **kwargs: Any,
    ) -> None:
        self.encoding = encoding
        self._line_sep = line_sep
        self._record_sep = record_sep
        self._word_sep = word_sep
        self._text: Optional[str] = None
        self._lines: Optional[List[str]] = None
        self._records: Optional[List[List[str]]] = None
        self._words: Optional[List[str]] = None
        super().__init__(name, **kwargs)

    def _changed(self) -> None:
        self._text = None
        self._drop_splits()

    def _drop_splits(self) -> None:
        self._lines = None
        self._records = None
        self._words = None

    @property
    def dirty(self) -> bool:
        """True when the decoded text has to be read again."""
        return self._text is None

    # --- Separators ---

    @property
    def line_sep(self) -> str:
        return self._line_sep

    @line_sep.setter
    def line_sep(self, sep: str) -> None:
        if not sep:
            raise ValueError("line separator must not be empty")
        self._line_sep = sep
        self._drop_splits()

    @property
    def record_sep(self) -> str:
        return self._record_sep

    @record_sep.setter
    def record_sep(self, sep: str) -> None:
        if not sep:
            raise ValueError("record separator must not be empty")
        self._record_sep = sep
        self._records = None

    @property
    def word_sep(self) -> str:
        return self._word_sep

    @word_sep.setter
    def word_sep(self, sep: str) -> None:
        if not sep:
            raise ValueError("word separator must not be empty")
        self._word_sep = sep
        self._words = None

    # --- Views ---

    def text(self) -> str:
        """Whole content decoded with ``encoding``. The file offset is not moved."""
        if self._text is None:
            chunk = defaults.FILE.buffer_size
            parts: List[bytes] = []
            offset = 0
            while True:
                data = self.read_at(chunk, offset)
                if not data:
                    break
                parts.append(data)
                offset += len(data)
            with self._reporting():
                try:
                    self._text = b"".join(parts).decode(self.encoding)
                except UnicodeDecodeError as exc:
                    raise BasicFileError("text", self.identity.absolute, exc) from exc
        return self._text

    def lines(self) -> List[str]:
        if self._lines is None:
            text = self.text()
            lines = text.split(self._line_sep) if text else []
            if lines and lines[-1] == "":
                lines.pop()
            if self._line_sep == "\n":
                lines = [line[:-1] if line.endswith("\r") else line for line in lines]
            self._lines = lines
        return self._lines

    def records(self) -> List[List[str]]:
        """Each line split into fields on ``record_sep``."""
        if self._records is None:
            self._records = [line.split(self._record_sep) for line in self.lines()]
        return self._records

    def words(self) -> List[str]:
        if self._words is None:
            self._words = [w for line in self.lines() for w in line.split(self._word_sep) if w]
        return self._words

    def append_line(self, line: str) -> int:
        """Write ``line`` plus the line separator at the end of the file, creating it if needed."""
        with self._reporting():
            self._lifecycle.ensure_open(AccessMode.READ_WRITE)
        self.seek(0, os.SEEK_END)
        return self.write_string(line + self._line_sep, self.encoding)
