"""Per-client sliding-window limiter for login and registration attempts.

Login records only failed attempts; registration records every attempt under
a separate ``register:`` key.
"""

from __future__ import annotations

import time
from collections.abc import Callable


class LoginRateLimiter:
    """Tracks attempt timestamps per client key and refuses once the window is full.

    One instance is created per app and stored on ``app.state``.
    """

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: dict[str, list[float]] = {}

    def _recent(self, key: str) -> list[float]:
        now = self._clock()
        attempts = [ts for ts in self._attempts.get(key, []) if now - ts < self.window_seconds]
        if attempts:
            self._attempts[key] = attempts
        else:
            self._attempts.pop(key, None)
        return attempts

    def is_blocked(self, key: str) -> bool:
        return len(self._recent(key)) >= self.max_attempts

    def record(self, key: str) -> None:
        attempts = self._recent(key)
        attempts.append(self._clock())
        self._attempts[key] = attempts

    def reset(self, key: str) -> None:
        self._attempts.pop(key, None)

    def retry_after(self, key: str) -> int:
        """Seconds until the oldest attempt in the window expires."""
        attempts = self._recent(key)
        if len(attempts) < self.max_attempts:
            return 0
        return max(1, int(self.window_seconds - (self._clock() - attempts[0])) + 1)
