from __future__ import annotations

import time
from typing import Callable


class Deadline:
    """Absolute point in (monotonic) time shared by the calls of one cycle."""

    def __init__(self, timeout_s: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.timeout_s = float(timeout_s)
        self.expires_at = clock() + self.timeout_s

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    def expired(self) -> bool:
        return self.remaining() <= 0.0
