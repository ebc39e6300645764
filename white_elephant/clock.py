"""
Time sources. Timeouts are evaluated lazily against ``now()`` on every action.
"""

from __future__ import annotations

import time
from dataclasses import dataclass


class SystemClock:
    def now(self) -> float:
        return time.time()


@dataclass
class ManualClock:
    """Clock driven by the caller; used by the simulation runner and tests."""

    current: float = 0.0

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self.current += seconds
        return self.current

    def set(self, timestamp: float) -> None:
        if timestamp < self.current:
            raise ValueError("cannot move the clock backwards")
        self.current = timestamp
