# tests/conftest.py
# Shared fixtures: isolated working directory and a counting stat double.

from __future__ import annotations

import os
from pathlib import Path
from typing import List

import pytest


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the test inside its own temporary working directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class CountingStat:
    """Wraps ``os.stat`` and records every queried path."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def __call__(self, path: str) -> os.stat_result:
        self.calls.append(path)
        return os.stat(path)

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture
def counting_stat() -> CountingStat:
    return CountingStat()


@pytest.fixture
def no_sleep():
    """Sleep double that records requested delays instead of sleeping."""
    delays: List[float] = []

    def _sleep(seconds: float) -> None:
        delays.append(seconds)

    _sleep.delays = delays  # type: ignore[attr-defined]
    return _sleep
