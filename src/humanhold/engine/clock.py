"""
Engine Clocks

Monotonic millisecond time source plus the short microsecond wait
primitive used for travel and bounce jitter.

Waits are bounded synchronous busy-waits: every effector call belonging
to a transition happens inside the call that triggered it, so the host
loop never observes a half-finished press or release.
"""

import time
from typing import List

U32_MASK = 0xFFFFFFFF


def elapsed_ms(now: int, then: int) -> int:
    """
    Wraparound-safe elapsed time between two 32-bit millisecond stamps.

    Args:
        now: Current timestamp
        then: Earlier timestamp

    Returns:
        Milliseconds from then to now, modulo 2^32
    """
    return (now - then) & U32_MASK


class MonotonicClock:
    """Host clock backed by time.monotonic_ns and a perf_counter busy-wait."""

    def __init__(self):
        self._origin_ns = time.monotonic_ns()

    def now_ms(self) -> int:
        """Milliseconds since clock creation, folded to 32 bits."""
        return ((time.monotonic_ns() - self._origin_ns) // 1_000_000) & U32_MASK

    def wait_us(self, us: int) -> None:
        """Spin for the given number of microseconds."""
        if us <= 0:
            return
        deadline = time.perf_counter_ns() + us * 1000
        while time.perf_counter_ns() < deadline:
            pass


class VirtualClock:
    """
    Simulated clock for dry runs and tests.

    Time only moves when advance() or wait_us() is called. Waits are
    tracked in microseconds so sub-millisecond jitter accumulates
    instead of being lost to rounding.
    """

    def __init__(self, start_ms: int = 0):
        self._now_us = start_ms * 1000
        self.waits: List[int] = []

    def now_ms(self) -> int:
        return (self._now_us // 1000) & U32_MASK

    def now_us(self) -> int:
        return self._now_us

    def set_ms(self, ms: int) -> None:
        """Jump to an absolute time (never backwards)."""
        target = ms * 1000
        if target > self._now_us:
            self._now_us = target

    def advance(self, ms: float) -> None:
        self._now_us += int(ms * 1000)

    def wait_us(self, us: int) -> None:
        self.waits.append(us)
        if us > 0:
            self._now_us += us
