from __future__ import annotations

import os
import threading
import time
from pathlib import Path

import pytest

from lazyfile.core.flush import FlushCoordinator, FlushState, RetryPolicy
from lazyfile.core.identity import resolve
from lazyfile.core.lifecycle import AccessMode, HandleLifecycle, HandleState
from lazyfile.core.metadata import MetadataCache
from lazyfile.errors import DeadlineExceededError, LockedError, SyncError


def _parts(path: Path, **kwargs):
    ident = resolve(path)
    life = HandleLifecycle(ident)
    cache = MetadataCache(ident)
    return life, cache, FlushCoordinator(life, cache, **kwargs)


def test_retry_policy_delays():
    policy = RetryPolicy(attempts=5, backoff=0.1, factor=2.0, max_backoff=0.3)
    assert list(policy.delays()) == pytest.approx([0.1, 0.2, 0.3, 0.3])
    assert list(RetryPolicy(attempts=1).delays()) == []


@pytest.mark.parametrize("kwargs", [{"attempts": 0}, {"backoff": -1.0}, {"max_backoff": -1.0}])
def test_retry_policy_validation(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


def test_flush_syncs_closes_and_clears(tmp_path: Path):
    p = tmp_path / "f"
    life, cache, flusher = _parts(p, clock=lambda: 123.0)
    life.create().write(b"payload")
    cache.stat()

    flusher.flush()
    assert life.state is HandleState.CLOSED
    assert cache.cached is None
    assert flusher.last_flush == 123.0
    assert flusher.state is FlushState.IDLE
    assert p.read_bytes() == b"payload"


def test_flush_when_closed_is_harmless(tmp_path: Path):
    life, cache, flusher = _parts(tmp_path / "never-opened")
    flusher.flush()
    assert life.state is HandleState.CLOSED
    assert flusher.last_flush is not None


def test_concurrent_flush_fails_fast(tmp_path: Path, monkeypatch):
    life, cache, flusher = _parts(tmp_path / "f")
    life.create().write(b"x")

    entered = threading.Event()
    release = threading.Event()
    real_fsync = os.fsync

    def blocking_fsync(fd):
        entered.set()
        assert release.wait(5)
        real_fsync(fd)

    monkeypatch.setattr(os, "fsync", blocking_fsync)

    errors = []

    def first():
        try:
            flusher.flush()
        except Exception as exc:  # pragma: no cover - reported below
            errors.append(exc)

    t = threading.Thread(target=first)
    t.start()
    assert entered.wait(5)
    assert flusher.state is FlushState.FLUSHING

    start = time.monotonic()
    with pytest.raises(LockedError):
        flusher.flush()
    assert time.monotonic() - start < 1.0

    release.set()
    t.join(5)
    assert not errors
    assert flusher.state is FlushState.IDLE
    assert life.state is HandleState.CLOSED
    assert (tmp_path / "f").read_bytes() == b"x"


def test_reentrant_flush_raises_locked(tmp_path: Path, monkeypatch):
    life, cache, flusher = _parts(tmp_path / "f")
    life.create()
    inner = []

    def reentrant_fsync(fd):
        with pytest.raises(LockedError):
            flusher.flush()
        inner.append(True)

    monkeypatch.setattr(os, "fsync", reentrant_fsync)
    flusher.flush()
    assert inner == [True]
    assert not flusher.locked()


def test_sync_retries_then_succeeds(tmp_path: Path, monkeypatch, no_sleep):
    retries = []
    life, cache, flusher = _parts(
        tmp_path / "f",
        policy=RetryPolicy(attempts=3, backoff=0.01),
        sleep=no_sleep,
        on_retry=lambda attempt, exc: retries.append(attempt),
    )
    life.create()
    calls = []

    def flaky_fsync(fd):
        calls.append(fd)
        if len(calls) < 3:
            raise OSError(5, "EIO")

    monkeypatch.setattr(os, "fsync", flaky_fsync)
    flusher.flush()
    assert len(calls) == 3
    assert retries == [1, 2]
    assert no_sleep.delays == pytest.approx([0.01, 0.02])
    assert life.state is HandleState.CLOSED


def test_sync_exhaustion_raises_and_marks_stale(tmp_path: Path, monkeypatch, no_sleep):
    life, cache, flusher = _parts(tmp_path / "f", policy=RetryPolicy(attempts=2), sleep=no_sleep)
    life.create()
    cache.stat()

    def failing_fsync(fd):
        raise OSError(28, "ENOSPC")

    monkeypatch.setattr(os, "fsync", failing_fsync)
    with pytest.raises(SyncError) as ei:
        flusher.flush()
    assert ei.value.attempts == 2
    assert ei.value.errno == 28
    assert cache.dirty
    assert life.stale
    assert life.state is HandleState.OPEN
    assert not flusher.locked()
    assert flusher.last_flush is None

    monkeypatch.undo()
    flusher.flush()
    assert life.state is HandleState.CLOSED


def test_deadline_is_distinct_from_sync_failure(tmp_path: Path, monkeypatch):
    life, cache, flusher = _parts(tmp_path / "f", policy=RetryPolicy(attempts=5), sleep=lambda s: None)
    life.create()

    def failing_fsync(fd):
        raise OSError(5, "EIO")

    monkeypatch.setattr(os, "fsync", failing_fsync)
    with pytest.raises(DeadlineExceededError) as ei:
        flusher.flush(deadline=time.monotonic() - 1)
    assert not isinstance(ei.value, SyncError)
    assert life.stale
    assert not flusher.locked()
    life.close()


def test_close_failure_is_observed_not_raised(tmp_path: Path):
    seen = []
    life, cache, flusher = _parts(tmp_path / "f", observer=seen.append)
    life.create()

    class Boom:
        def flush(self):
            pass

        def detach(self):
            raise OSError(5, "EIO")

    life.attach_buffer(Boom())
    flusher.flush()
    assert life.state is HandleState.CLOSED
    assert len(seen) == 1
    assert seen[0].op == "close"


def test_default_policy_from_env(monkeypatch):
    import importlib

    monkeypatch.setenv("LF_SYNC_RETRIES", "7")
    from lazyfile.config import defaults as mod

    importlib.reload(mod)
    try:
        assert RetryPolicy.from_defaults().attempts == 7
    finally:
        monkeypatch.delenv("LF_SYNC_RETRIES")
        importlib.reload(mod)
