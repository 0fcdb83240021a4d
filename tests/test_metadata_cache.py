from __future__ import annotations

import stat
from pathlib import Path

import pytest

from lazyfile.core.identity import resolve
from lazyfile.core.metadata import MetadataCache, MetadataSnapshot
from lazyfile.errors import StatError


def _cache(path: Path, stat_fn=None, on_query=None) -> MetadataCache:
    return MetadataCache(resolve(path), stat_fn, on_query=on_query)


def test_repeated_stat_uses_cache(tmp_path: Path, counting_stat):
    p = tmp_path / "f.bin"
    p.write_bytes(b"abc")
    cache = _cache(p, counting_stat)

    first = cache.stat()
    second = cache.stat()
    assert first is second
    assert first == second
    assert counting_stat.count == 1
    assert cache.queries == 1


def test_invalidate_forces_requery(tmp_path: Path, counting_stat):
    p = tmp_path / "f.bin"
    p.write_bytes(b"abc")
    cache = _cache(p, counting_stat)
    cache.stat()

    p.write_bytes(b"abcdef")
    assert cache.stat().size == 3  # still the cached view
    cache.invalidate()
    assert cache.dirty
    assert cache.stat().size == 6
    assert not cache.dirty
    assert counting_stat.count == 2


def test_force_refresh(tmp_path: Path, counting_stat):
    p = tmp_path / "f"
    p.write_bytes(b"")
    cache = _cache(p, counting_stat)
    cache.stat()
    cache.stat(force_refresh=True)
    assert counting_stat.count == 2


def test_on_query_callback(tmp_path: Path):
    p = tmp_path / "f"
    p.write_bytes(b"")
    seen = []
    cache = _cache(p, on_query=lambda: seen.append(1))
    cache.stat()
    cache.stat()
    assert seen == [1]


def test_failed_query_keeps_previous_snapshot(tmp_path: Path):
    p = tmp_path / "f"
    p.write_bytes(b"xy")
    cache = _cache(p)
    before = cache.stat()

    p.unlink()
    cache.invalidate()
    with pytest.raises(StatError) as ei:
        cache.stat()
    assert ei.value.not_found
    assert ei.value.op == "stat"
    assert cache.cached is before
    assert cache.dirty


def test_clear_drops_snapshot(tmp_path: Path):
    p = tmp_path / "f"
    p.write_bytes(b"")
    cache = _cache(p)
    cache.stat()
    cache.clear()
    assert cache.cached is None
    assert not cache.dirty


def test_snapshot_fields(tmp_path: Path):
    p = tmp_path / "data.txt"
    p.write_bytes(b"hello")
    p.chmod(0o640)
    snap = _cache(p).stat()

    assert isinstance(snap, MetadataSnapshot)
    assert snap.name == "data.txt"
    assert snap.size == 5
    assert snap.is_regular
    assert not snap.is_dir
    assert snap.perm == 0o640
    assert snap.type_bits == stat.S_IFREG
    assert snap.mode_string == "-rw-r-----"
    assert snap.sys.st_size == 5


def test_directory_snapshot(tmp_path: Path):
    snap = _cache(tmp_path).stat()
    assert snap.is_dir
    assert not snap.is_regular
    assert snap.type_bits == stat.S_IFDIR
