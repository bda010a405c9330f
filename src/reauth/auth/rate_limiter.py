"""Per-target minimum-interval throttle for login attempts.

The limiter remembers when a login was last attempted for each target host
and refuses another one until ``interval_ms`` has elapsed. The attempt is
recorded *before* the login request is issued, so two overlapping slow
logins can never both pass the gate.

The orchestrator only consults the limiter while holding the per-host lock;
the internal lock additionally makes :meth:`RateLimiter.try_acquire` an
atomic check-and-record and keeps reads from unlocked callers consistent.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class RateLimiter:
    """Track the last login attempt per host and enforce a minimum gap.

    Args:
        interval_ms: Minimum milliseconds between two attempts for the same
            host. Mutable at runtime via :attr:`interval_ms`.
        clock: Monotonic clock returning seconds; injectable for tests.

    Example::

        limiter = RateLimiter(5000)
        if limiter.try_acquire("api.example.com"):
            ...  # perform the login
    """

    def __init__(
        self,
        interval_ms: int = 5000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._interval_ms = max(0, int(interval_ms))
        self._clock = clock
        self._last_attempt: dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def interval_ms(self) -> int:
        """The minimum interval in milliseconds."""
        return self._interval_ms

    @interval_ms.setter
    def interval_ms(self, value: int) -> None:
        self._interval_ms = max(0, int(value))

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _elapsed_ms(self, target: str) -> Optional[float]:
        last = self._last_attempt.get(target)
        if last is None:
            return None
        return self._now_ms() - last

    def is_allowed(self, target: str) -> bool:
        """Whether a login attempt for *target* is permitted right now."""
        elapsed = self._elapsed_ms(target)
        return elapsed is None or elapsed >= self._interval_ms

    def record_attempt(self, target: str) -> None:
        """Record that a login for *target* is starting now."""
        with self._lock:
            self._last_attempt[target] = self._now_ms()

    def try_acquire(self, target: str) -> bool:
        """Check and record in one step. Returns ``False`` if rate limited."""
        with self._lock:
            if not self.is_allowed(target):
                return False
            self._last_attempt[target] = self._now_ms()
            return True

    def remaining_wait_ms(self, target: str) -> int:
        """Milliseconds until *target* may log in again (``0`` if allowed now)."""
        elapsed = self._elapsed_ms(target)
        if elapsed is None:
            return 0
        return max(0, int(self._interval_ms - elapsed))

    def clear(self, target: str) -> None:
        """Forget the last attempt for *target*."""
        with self._lock:
            self._last_attempt.pop(target, None)

    def clear_all(self) -> None:
        """Forget every recorded attempt."""
        with self._lock:
            self._last_attempt.clear()
