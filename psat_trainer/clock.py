from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    The driver stamps actions and schedules delayed actions against this
    interface; nothing in the core reads real time.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


def ms_to_s(ms: int) -> float:
    return float(ms) / 1000.0


def minutes_to_ms(minutes: int) -> int:
    return int(minutes) * 60_000
