from __future__ import annotations

"""
Clock adapters.

The ledger never reads the wall clock directly; it asks an injected clock for
`now()` once per operation. Readings are integer UNIX seconds and must never
go backwards.
"""

import threading
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall-clock seconds, clamped so a stepped-back system clock never rewinds."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            t = int(time.time())
            if t < self._last:
                t = self._last
            self._last = t
            return t


class ManualClock:
    """Deterministic clock for tests, simulations and the CLI state file."""

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("start must be >= 0")
        self._t = int(start)

    def now(self) -> int:
        return self._t

    def set(self, t: int) -> int:
        t = int(t)
        if t < self._t:
            raise ValueError(f"clock cannot go backwards ({t} < {self._t})")
        self._t = t
        return self._t

    def advance(self, seconds: int) -> int:
        seconds = int(seconds)
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        self._t += seconds
        return self._t


__all__ = ["Clock", "SystemClock", "ManualClock"]
