"""
Gaussian Sampler

Box-Muller transform over the xorshift128+ unit-interval stream, plus
the microsecond human-delay helper built on top of it.
"""

import math

from .prng import Xorshift128Plus

# u1 at or below this would blow up the logarithm
U1_EPSILON = 1e-7

TWO_PI = 2.0 * math.pi


class GaussianSampler:
    """Draws normally distributed values from a shared PRNG."""

    def __init__(self, prng: Xorshift128Plus):
        self.prng = prng

    def normal(self, mean: float, stddev: float) -> float:
        """
        One Box-Muller sample.

        Args:
            mean: Distribution mean
            stddev: Standard deviation

        Returns:
            mean + z0 * stddev
        """
        u1 = self.prng.next_f32_unit()
        while u1 <= U1_EPSILON:
            u1 = self.prng.next_f32_unit()
        u2 = self.prng.next_f32_unit()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(TWO_PI * u2)
        return mean + z0 * stddev

    def floored(self, mean: float, stddev: float, floor: float) -> float:
        """Sample clamped from below at floor."""
        return max(floor, self.normal(mean, stddev))

    def delay_us(self, mean_us: float, stddev_us: float, max_us: int) -> int:
        """
        Jittered wait length in whole microseconds.

        Rounded to the nearest microsecond and clamped to [0, max_us];
        out-of-range samples are clamped, never wrapped.
        """
        d = int(round(self.normal(mean_us, stddev_us)))
        if d < 0:
            return 0
        if d > max_us:
            return max_us
        return d
