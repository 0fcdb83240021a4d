from __future__ import annotations

import os
from pathlib import Path

import pytest

from lazyfile import BasicFile, fileops
from lazyfile.core.lifecycle import HandleState
from lazyfile.errors import CreateError, OpenError, PathError, StatError


def test_new_file_is_lazy(tmp_path: Path):
    f = fileops.new_file(tmp_path / "f")
    assert isinstance(f, BasicFile)
    assert f.state is HandleState.CLOSED
    assert not (tmp_path / "f").exists()


def test_new_file_rejects_empty_name():
    with pytest.raises(PathError):
        fileops.new_file("")


def test_open_file(tmp_path: Path):
    p = tmp_path / "f"
    with pytest.raises(OpenError):
        fileops.open_file(p)
    p.write_bytes(b"x")
    f = fileops.open_file(p)
    assert f.state is HandleState.OPEN
    f.close()


def test_create_and_create_safe(tmp_path: Path):
    p = tmp_path / "sub" / "f"
    f = fileops.create(p, make_parents=True)
    f.write(b"first")
    f.close()
    fileops.create(p).close()
    assert p.read_bytes() == b""

    with pytest.raises(CreateError):
        fileops.create_safe(p)
    fileops.create_safe(tmp_path / "fresh").close()


def test_stat_and_mode(tmp_path: Path):
    p = tmp_path / "f.txt"
    p.write_bytes(b"abc")
    snap = fileops.stat(p)
    assert snap.name == "f.txt"
    assert snap.size == 3
    assert fileops.mode(p) == p.stat().st_mode
    with pytest.raises(StatError):
        fileops.stat(tmp_path / "missing")
    with pytest.raises(StatError):
        fileops.mode(tmp_path / "missing")


def test_exists_and_not_exists(tmp_path: Path):
    p = tmp_path / "f"
    assert not fileops.exists(p)
    assert fileops.not_exists(p)
    p.write_bytes(b"")
    assert fileops.exists(p)
    assert not fileops.not_exists(p)
    # a regular file used as a directory component
    assert fileops.not_exists(p / "child")


def test_regular_file_info(tmp_path: Path):
    p = tmp_path / "f"
    p.write_bytes(b"data")
    p.chmod(0o644)
    link = tmp_path / "link"
    link.symlink_to(p)

    info = fileops.regular_file_info(link)
    assert info.name == "f"
    assert info.size == 4


@pytest.mark.parametrize("case", ["missing", "directory", "private", "fifo"])
def test_regular_file_info_rejections(tmp_path: Path, case):
    p = tmp_path / "target"
    if case == "directory":
        p.mkdir()
    elif case == "private":
        p.write_bytes(b"")
        p.chmod(0o600)
    elif case == "fifo":
        os.mkfifo(p, 0o644)
    with pytest.raises(StatError) as ei:
        fileops.regular_file_info(p)
    assert ei.value.op == "regular_file_info"


def test_pwd(workdir: Path):
    assert fileops.pwd() == str(workdir)


def test_same_file(tmp_path: Path):
    p = tmp_path / "f"
    p.write_bytes(b"")
    os.link(p, tmp_path / "hard")
    assert fileops.same_file(p, tmp_path / "hard")
    other = tmp_path / "g"
    other.write_bytes(b"")
    assert not fileops.same_file(p, other)
    with pytest.raises(StatError):
        fileops.same_file(p, tmp_path / "missing")
