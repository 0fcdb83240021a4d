"""Path identity: resolve user-supplied names to canonical absolute paths.

Pure string handling; the only filesystem query is reading the working
directory for relative names. Symlinks are not evaluated, so two identities
may name the same file (use ``fileops.same_file`` for that question).

Decomposition helpers follow these rules:

- ``base``: trailing separators are dropped before taking the last element.
  An empty path gives ``"."``; a path of only separators gives one separator.
- ``dir``: all but the last element, cleaned. An empty path gives ``"."``.
- ``ext``: suffix from the final dot of the final element, or ``""``.
- ``split``: splits right after the final separator, so ``dir + file == path``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Tuple, Union

from lazyfile.errors import PathError

SEP = os.sep
_SEPS = SEP + (os.altsep or "")


@dataclass(frozen=True, slots=True)
class FileIdentity:
    """The name a file was opened with plus its canonical absolute form.

    ``provided`` is what the caller passed; ``absolute`` is what every
    filesystem call uses.
    """

    provided: str
    absolute: str

    def __fspath__(self) -> str:
        return self.absolute

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.absolute


def _is_sep(c: str) -> bool:
    return c in _SEPS


def _last_sep(path: str) -> int:
    i = len(path) - 1
    while i >= 0 and not _is_sep(path[i]):
        i -= 1
    return i


def clean(path: str) -> str:
    """Lexically normalize ``path``; the empty path cleans to ``"."``."""
    if not path:
        return "."
    return os.path.normpath(path)


def resolve(
    name: Union[str, "os.PathLike[str]"],
    getcwd: Callable[[], str] = os.getcwd,
) -> FileIdentity:
    """Resolve ``name`` to a ``FileIdentity``.

    Raises:
        PathError: name is empty, not a text path, contains NUL, or the
            working directory cannot be read for a relative name.
    """
    try:
        raw = os.fspath(name)
    except TypeError as exc:
        raise PathError("resolve", repr(name), exc, message="path must be str or path-like") from exc
    if not isinstance(raw, str):
        raise PathError("resolve", repr(raw), message="byte paths are not supported")
    if not raw:
        raise PathError("resolve", raw, message="empty path")
    if "\x00" in raw:
        raise PathError("resolve", raw.replace("\x00", "\\x00"), message="NUL byte in path")

    if os.path.isabs(raw):
        return FileIdentity(provided=raw, absolute=clean(raw))

    try:
        cwd = getcwd()
    except OSError as exc:
        raise PathError("resolve", raw, exc, message=f"working directory unavailable: {exc}") from exc
    return FileIdentity(provided=raw, absolute=clean(os.path.join(cwd, raw)))


def base(path: str) -> str:
    """Return the last element of ``path``."""
    if not path:
        return "."
    stripped = path.rstrip(_SEPS)
    if not stripped:
        return SEP
    return stripped[_last_sep(stripped) + 1:]


def dir(path: str) -> str:  # noqa: A001 - mirrors base/ext/split naming
    """Return all but the last element of ``path``, cleaned."""
    head, _ = split(path)
    return clean(head)


def ext(path: str) -> str:
    """Return the extension of the final element, including the dot."""
    for i in range(len(path) - 1, -1, -1):
        c = path[i]
        if _is_sep(c):
            break
        if c == ".":
            return path[i:]
    return ""


def split(path: str) -> Tuple[str, str]:
    """Split ``path`` immediately after its final separator."""
    i = _last_sep(path)
    return path[: i + 1], path[i + 1:]


__all__ = ["FileIdentity", "SEP", "base", "clean", "dir", "ext", "resolve", "split"]
