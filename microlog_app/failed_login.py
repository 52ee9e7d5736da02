"""In-memory login throttling with a temporary lockout."""
from __future__ import annotations

import time
from collections import defaultdict
from typing import Callable, DefaultDict


class FailedLoginTracker:
    """Track login failures per identifier (username or remote address).

    After ``max_attempts`` consecutive failures the identifier is locked for
    ``lockout_seconds``. A lock that has run out clears the counter.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        lockout_seconds: int = 15 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._data: DefaultDict[str, int] = defaultdict(int)
        self._locked_until: dict[str, float] = {}

    def increment(self, key: str) -> int:
        self._data[key] += 1
        if self._data[key] >= self.max_attempts:
            self._locked_until[key] = self._clock() + self.lockout_seconds
        return self._data[key]

    def get_attempts(self, key: str) -> int:
        return self._data.get(key, 0)

    def remaining_attempts(self, key: str) -> int:
        return max(0, self.max_attempts - self.get_attempts(key))

    def lockout_remaining(self, key: str) -> float:
        """Seconds left on the lock for ``key``; 0 when not locked."""
        until = self._locked_until.get(key)
        if until is None:
            return 0
        remaining = until - self._clock()
        if remaining <= 0:
            self.reset(key)
            return 0
        return remaining

    def is_locked(self, key: str) -> bool:
        return self.lockout_remaining(key) > 0

    def reset(self, key: str) -> None:
        self._data.pop(key, None)
        self._locked_until.pop(key, None)
