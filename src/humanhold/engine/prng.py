"""
PRNG Core

xorshift128+ generator with two 64-bit words of state. Seeded once at
startup and re-mixed with fresh entropy every time a macro session
starts.
"""

import os
import time
import logging
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

U64_MASK = 0xFFFFFFFFFFFFFFFF
U32_MASK = 0xFFFFFFFF

DEFAULT_STATE = (0x243F6A8885A308D3, 0x13198A2E03707344)
FALLBACK_STATE = (0x0123456789ABCDEF, 0xFEDCBA9876543210)
MIX_PATTERN = 0xA5A5A5A5

# 2^24: float conversion keeps only the top 24 bits of each draw
UNIT_SCALE = float(1 << 24)


class Xorshift128Plus:
    """
    Deterministic 64-bit generator.

    The state is never allowed to be all zero; any operation that would
    leave it there installs a fixed non-zero fallback pair instead.
    """

    def __init__(self, state: Optional[Tuple[int, int]] = None):
        s0, s1 = state if state is not None else DEFAULT_STATE
        self.s0 = s0 & U64_MASK
        self.s1 = s1 & U64_MASK
        self._heal()

    @property
    def state(self) -> Tuple[int, int]:
        return self.s0, self.s1

    def _heal(self) -> None:
        if self.s0 == 0 and self.s1 == 0:
            logger.warning("PRNG state collapsed to zero, installing fallback")
            self.s0, self.s1 = FALLBACK_STATE

    def seed_mix(self, entropy: int) -> None:
        """
        Fold a 32-bit entropy value into the state.

        Args:
            entropy: Cheap entropy (clock, addresses); only the low 32 bits are used
        """
        s = entropy & U32_MASK
        mix = (s << 32) | (s ^ MIX_PATTERN)
        self.s0 ^= mix
        self.next_u64()
        self.s1 ^= mix >> 17
        self._heal()

    def next_u64(self) -> int:
        x = self.s0
        y = self.s1
        self.s0 = y
        x ^= (x << 23) & U64_MASK
        self.s1 = x ^ y ^ (x >> 17) ^ (y >> 26)
        return (self.s1 + y) & U64_MASK

    def next_f32_unit(self) -> float:
        """Uniform float in [0, 1) from the high 24 bits of a draw."""
        return (self.next_u64() >> 40) / UNIT_SCALE

    def next_u32_range(self, low: int, high: int) -> int:
        """
        Uniform integer in [low, high].

        Degenerate ranges (high <= low) return low unchanged.
        """
        if high <= low:
            return low
        return low + self.next_u64() % (high - low + 1)

    def one_in(self, n: int) -> bool:
        """True with probability 1/n. n <= 0 never fires, n == 1 always does."""
        if n <= 0:
            return False
        return self.next_u64() % n == 0

    def choice_index(self, count: int) -> int:
        """Index in [0, count) for choosing among count items."""
        if count <= 1:
            return 0
        return self.next_u64() % count


# Module-level anchor whose address stands in for the firmware's
# "address of the state word" entropy.
_ADDRESS_ANCHOR = object()


def clock_entropy() -> int:
    """Weak entropy: monotonic clock XOR an object address, folded to 32 bits."""
    value = time.monotonic_ns() ^ id(_ADDRESS_ANCHOR)
    return (value ^ (value >> 32)) & U32_MASK


def os_entropy() -> int:
    """32 bits from the operating system's CSPRNG."""
    return int.from_bytes(os.urandom(4), 'little')


ENTROPY_SOURCES = {
    'clock': clock_entropy,
    'os': os_entropy,
}


def get_entropy_source(name: str) -> Callable[[], int]:
    """
    Look up an entropy source by name.

    Args:
        name: 'clock' or 'os'

    Returns:
        Zero-argument callable returning a 32-bit integer
    """
    try:
        return ENTROPY_SOURCES[name]
    except KeyError:
        raise ValueError(
            f"Unknown entropy source {name!r}; expected one of {sorted(ENTROPY_SOURCES)}"
        ) from None
