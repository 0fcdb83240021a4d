"""Lock-guarded flush: sync, close, clear caches.

Only one flush runs per file at a time. A second attempt, from another
thread or reentrantly from the same one, fails immediately with
``LockedError``; nothing queues or waits.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

from lazyfile.config import defaults
from lazyfile.errors import BasicFileError, DeadlineExceededError, LockedError, SyncError

from .lifecycle import HandleLifecycle, HandleState
from .metadata import MetadataCache

logger = logging.getLogger(__name__)


class FlushState(Enum):
    IDLE = "idle"
    FLUSHING = "flushing"


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff.

    ``attempts`` counts every try including the first; the delay before
    retry ``n`` (1-based) is ``backoff * factor ** (n - 1)``, capped at
    ``max_backoff``.
    """

    attempts: int = 3
    backoff: float = 0.05
    factor: float = 2.0
    max_backoff: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.backoff < 0 or self.max_backoff < 0:
            raise ValueError("backoff must be >= 0")

    @classmethod
    def from_defaults(cls) -> "RetryPolicy":
        cfg = defaults.FLUSH
        return cls(
            attempts=cfg.sync_attempts,
            backoff=cfg.backoff_seconds,
            factor=cfg.backoff_factor,
            max_backoff=cfg.backoff_max_seconds,
        )

    def delays(self) -> Iterator[float]:
        """Yield the sleep before each retry (``attempts - 1`` values)."""
        delay = self.backoff
        for _ in range(self.attempts - 1):
            yield min(delay, self.max_backoff)
            delay *= self.factor


class FlushCoordinator:
    """Persist, release and reset one file under a fail-fast lock.

    Args:
        lifecycle: Owner of the descriptor to sync and close
        cache: Metadata cache cleared by a successful flush
        policy: Sync retry policy (default from ``LF_SYNC_*``)
        sleep: Sleep function used between retries
        clock: Wall clock used for ``last_flush``
        observer: Optional callable receiving non-fatal errors (close failures)
        on_retry: Optional callback run before every sync retry
    """

    def __init__(
        self,
        lifecycle: HandleLifecycle,
        cache: MetadataCache,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        observer: Optional[Callable[[BaseException], None]] = None,
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
    ) -> None:
        self.lifecycle = lifecycle
        self.cache = cache
        self.policy = policy or RetryPolicy.from_defaults()
        self._sleep = sleep
        self._clock = clock
        self._observer = observer
        self._on_retry = on_retry
        self._lock = threading.Lock()
        self.last_flush: Optional[float] = None

    @property
    def state(self) -> FlushState:
        return FlushState.FLUSHING if self._lock.locked() else FlushState.IDLE

    def locked(self) -> bool:
        return self._lock.locked()

    def flush(self, deadline: Optional[float] = None) -> None:
        """Sync pending data, close the descriptor and clear cached metadata.

        Args:
            deadline: Optional ``time.monotonic()`` value; a sync attempt that
                would start after it raises ``DeadlineExceededError``.

        Raises:
            LockedError: another flush is in progress
            SyncError: every sync attempt failed
            DeadlineExceededError: the deadline passed before sync succeeded
        """
        path = self.lifecycle.identity.absolute
        if not self._lock.acquire(blocking=False):
            raise LockedError(path)
        try:
            if self.lifecycle.state is HandleState.OPEN:
                try:
                    self._sync_with_retry(deadline)
                except (SyncError, DeadlineExceededError):
                    # nothing cached may be trusted after a failed sync
                    self.cache.invalidate()
                    self.lifecycle.mark_stale()
                    raise

            try:
                self.lifecycle.close()
            except BasicFileError as exc:
                logger.warning("close during flush failed for %s: %s", path, exc)
                if self._observer is not None:
                    self._observer(exc)

            self.cache.clear()
            self.last_flush = self._clock()
            logger.debug("flushed %s", path)
        finally:
            self._lock.release()

    def _sync_with_retry(self, deadline: Optional[float]) -> None:
        path = self.lifecycle.identity.absolute
        delays = self.policy.delays()
        attempt = 0
        while True:
            if deadline is not None and time.monotonic() > deadline:
                raise DeadlineExceededError("flush", path)
            attempt += 1
            try:
                self.lifecycle.sync()
                return
            except (OSError, ValueError) as exc:
                delay = next(delays, None)
                if delay is None:
                    raise SyncError("sync", path, exc, attempts=attempt) from exc
                logger.debug("sync attempt %d failed for %s: %s", attempt, path, exc)
                if self._on_retry is not None:
                    self._on_retry(attempt, exc)
                self._sleep(delay)
