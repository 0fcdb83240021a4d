"""One-shot helpers around BasicFile and plain paths."""

from __future__ import annotations

import errno
import logging
import os
import stat as _stat
from typing import Any

from lazyfile.errors import PathError, StatError

from .basic_file import BasicFile, PathLike
from .core.identity import base
from .core.metadata import MetadataSnapshot

logger = logging.getLogger(__name__)


def new_file(name: PathLike, **kwargs: Any) -> BasicFile:
    """Construct a ``BasicFile`` without touching storage."""
    return BasicFile(name, **kwargs)


def open_file(name: PathLike, **kwargs: Any) -> BasicFile:
    """Construct a ``BasicFile`` and open it read-only right away.

    Raises:
        OpenError: the file cannot be opened
    """
    return BasicFile(name, **kwargs).open()


def create(name: PathLike, make_parents: bool = False, **kwargs: Any) -> BasicFile:
    """Create or truncate ``name`` and return it opened read-write."""
    return BasicFile(name, **kwargs).create(make_parents=make_parents)


def create_safe(name: PathLike, make_parents: bool = False, **kwargs: Any) -> BasicFile:
    """Create ``name``, raising ``CreateError`` if it already exists."""
    return BasicFile(name, **kwargs).create_exclusive(make_parents=make_parents)


def stat(filename: PathLike) -> MetadataSnapshot:
    """Uncached metadata snapshot of ``filename``."""
    path = os.fspath(filename)
    try:
        st = os.stat(path)
    except OSError as exc:
        raise StatError("stat", path, exc) from exc
    return MetadataSnapshot.from_stat_result(base(path), st)


def exists(name: PathLike) -> bool:
    """True when ``name`` can be stat'ed."""
    try:
        os.stat(name)
    except (OSError, ValueError):
        return False
    return True


def not_exists(name: PathLike) -> bool:
    """True only when ``name`` is definitely absent.

    A path that cannot be checked (e.g. permission denied on a parent) is
    neither existing nor absent: both ``exists`` and ``not_exists`` are False.
    """
    try:
        os.stat(name)
    except FileNotFoundError:
        return True
    except OSError as exc:
        return exc.errno == errno.ENOTDIR
    except ValueError:
        return False
    return False


def regular_file_info(filename: PathLike) -> MetadataSnapshot:
    """Metadata of a readable regular file, following symlinks.

    Raises:
        StatError: the target is missing, a directory, not a regular file or
            not readable by others
    """
    path = os.fspath(filename)
    try:
        target = os.path.realpath(path, strict=True)
        st = os.stat(target)
    except OSError as exc:
        raise StatError("regular_file_info", path, exc) from exc

    if _stat.S_ISDIR(st.st_mode):
        raise StatError("regular_file_info", path, message="is a directory")
    if not _stat.S_ISREG(st.st_mode):
        raise StatError("regular_file_info", path, message="not a regular file")
    if not st.st_mode & _stat.S_IROTH:
        raise StatError("regular_file_info", path, message="not readable by others")
    logger.debug("regular file %s -> %s", path, target)
    return MetadataSnapshot.from_stat_result(base(target), st)


def mode(filename: PathLike) -> int:
    """Full ``st_mode`` of ``filename``."""
    return stat(filename).mode


def pwd() -> str:
    """Current working directory.

    Raises:
        PathError: the working directory cannot be read
    """
    try:
        return os.getcwd()
    except OSError as exc:
        raise PathError("pwd", cause=exc) from exc


def same_file(a: PathLike, b: PathLike) -> bool:
    """True when both names refer to the same device and inode."""
    try:
        return os.path.samefile(a, b)
    except OSError as exc:
        raise StatError("same_file", getattr(exc, "filename", None), exc) from exc


__all__ = [
    "new_file",
    "open_file",
    "create",
    "create_safe",
    "stat",
    "exists",
    "not_exists",
    "regular_file_info",
    "mode",
    "pwd",
    "same_file",
]
