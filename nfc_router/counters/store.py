"""Rate-limit counter store abstraction + in-process implementation."""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class RateLimitRecord:
    count: int
    reset_at: float  # epoch seconds


@dataclass
class CounterOutcome:
    allowed: bool
    count: int
    reset_at: float


class CounterStore(ABC):
    """Abstract base for per-key fixed-window counters.

    Implementations must make `increment_and_check` atomic per key: N
    concurrent calls against a limit of M admit at most M per window.
    """

    @abstractmethod
    async def increment_and_check(
        self, key: str, limit: int, window_seconds: float, now: float
    ) -> CounterOutcome:
        """Consume one unit of quota for `key` if any is left.

        Raises CounterStoreError if the backing store is unreachable.
        """
        ...

    @abstractmethod
    async def reset(self, key: str) -> None:
        """Drop the window for `key`."""
        ...

    async def close(self) -> None:
        pass


class InMemoryCounterStore(CounterStore):
    """Process-local counters. Expired windows are reset lazily on access.

    Once the table holds SWEEP_THRESHOLD keys, expired windows are swept,
    at most once per window length, so idle identities do not accumulate.
    """

    SWEEP_THRESHOLD = 10_000

    def __init__(self):
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self._next_sweep_at = 0.0

    async def increment_and_check(
        self, key: str, limit: int, window_seconds: float, now: float
    ) -> CounterOutcome:
        with self._lock:
            if len(self._records) >= self.SWEEP_THRESHOLD and now >= self._next_sweep_at:
                self._sweep(now)
                self._next_sweep_at = now + window_seconds

            record = self._records.get(key)

            if record is None or now >= record.reset_at:
                record = RateLimitRecord(count=1, reset_at=now + window_seconds)
                self._records[key] = record
                return CounterOutcome(allowed=True, count=1, reset_at=record.reset_at)

            if record.count >= limit:
                return CounterOutcome(allowed=False, count=record.count, reset_at=record.reset_at)

            record.count += 1
            return CounterOutcome(allowed=True, count=record.count, reset_at=record.reset_at)

    async def reset(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def _sweep(self, now: float) -> None:
        expired = [key for key, record in self._records.items() if now >= record.reset_at]
        for key in expired:
            del self._records[key]
