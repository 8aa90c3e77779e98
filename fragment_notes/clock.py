"""Time and identifier sources used by the note store."""

from __future__ import annotations

import time
from typing import Protocol

from fragment_notes.models import iso_from_millis


class Clock(Protocol):
    def now(self) -> int: ...

    def now_iso(self) -> str: ...


class SystemClock:
    """Wall clock in epoch millis that never repeats a reading.

    Two mutations within the same millisecond still get increasing
    timestamps.
    """

    def __init__(self) -> None:
        self._last = 0

    def now(self) -> int:
        millis = time.time_ns() // 1_000_000
        if millis <= self._last:
            millis = self._last + 1
        self._last = millis
        return millis

    def now_iso(self) -> str:
        return iso_from_millis(self.now())


class TimestampIdSource:
    """Produces ids from a millisecond timestamp, bumped to stay unique."""

    def __init__(self) -> None:
        self._last = 0

    def __call__(self) -> str:
        value = time.time_ns() // 1_000_000
        if value <= self._last:
            value = self._last + 1
        self._last = value
        return str(value)
