#!/usr/bin/env python3
"""
Test suite for the xorshift128+ PRNG core.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from humanhold.engine.prng import (
    Xorshift128Plus, DEFAULT_STATE, FALLBACK_STATE, MIX_PATTERN, U64_MASK,
    clock_entropy, os_entropy, get_entropy_source,
)


def _state_that_mixes_to_zero(entropy: int):
    """
    Build a state that seed_mix(entropy) would collapse to (0, 0).

    With s1 == 0 the mix leaves s0 == 0, so only s1 has to cancel:
    undo the two xorshift steps of next_u64 backwards.
    """
    s = entropy & 0xFFFFFFFF
    mix = (s << 32) | (s ^ MIX_PATTERN)
    m = mix >> 17
    # invert y = x ^ (x >> 17)
    x = m ^ (m >> 17) ^ (m >> 34) ^ (m >> 51)
    # invert x = x0 ^ (x0 << 23)
    x0 = (x ^ (x << 23) ^ (x << 46)) & U64_MASK
    return (x0 ^ mix, 0)


class TestXorshiftState:
    """Tests for generator state handling."""

    def test_default_state(self):
        """Test that a fresh generator starts from the fixed constants."""
        rng = Xorshift128Plus()
        assert rng.state == DEFAULT_STATE

    def test_zero_state_heals_on_construction(self):
        """Test that an all-zero state is replaced by the fallback pair."""
        rng = Xorshift128Plus((0, 0))
        assert rng.state == FALLBACK_STATE

    def test_seed_mix_heals_collapsed_state(self):
        """Test that a mix producing (0, 0) installs the fallback pair."""
        rng = Xorshift128Plus(_state_that_mixes_to_zero(0x1234))
        rng.seed_mix(0x1234)
        assert rng.state == FALLBACK_STATE

        rng.next_u64()
        assert rng.state != (0, 0)

    def test_seed_mix_never_leaves_zero(self):
        """Test seed mixing over many entropy values."""
        rng = Xorshift128Plus()
        for entropy in range(0, 1 << 32, 0x01010101):
            rng.seed_mix(entropy)
            assert rng.state != (0, 0)
            rng.next_u64()
            assert rng.state != (0, 0)

    def test_seed_mix_changes_state(self):
        """Test that mixing alters the state."""
        rng = Xorshift128Plus()
        before = rng.state
        rng.seed_mix(42)
        assert rng.state != before

    def test_seed_mix_uses_low_32_bits(self):
        """Test that only the low 32 bits of entropy matter."""
        a = Xorshift128Plus()
        b = Xorshift128Plus()
        a.seed_mix(0xDEADBEEF)
        b.seed_mix(0xABCD_0000_DEADBEEF)
        assert a.state == b.state


class TestXorshiftOutput:
    """Tests for generator outputs."""

    def test_deterministic_sequence(self):
        """Test that equal states produce equal sequences."""
        a = Xorshift128Plus((1, 2))
        b = Xorshift128Plus((1, 2))
        assert [a.next_u64() for _ in range(100)] == [b.next_u64() for _ in range(100)]

    def test_first_output_from_small_state(self):
        """Test one hand-computed step of the transform."""
        rng = Xorshift128Plus((1, 2))
        # x = 1 ^ (1 << 23); s1 = x ^ 2 ^ (x >> 17) ^ (2 >> 26)
        x = 1 ^ (1 << 23)
        expected_s1 = x ^ 2 ^ (x >> 17)
        assert rng.next_u64() == expected_s1 + 2
        assert rng.state == (2, expected_s1)

    def test_outputs_are_64_bit(self):
        """Test that outputs stay within 64 bits."""
        rng = Xorshift128Plus()
        for _ in range(1000):
            value = rng.next_u64()
            assert 0 <= value <= U64_MASK

    @pytest.mark.parametrize('seed', [1, 0xA5A5A5A5, 0xFFFFFFFF, 123456789])
    def test_unit_float_range(self, seed):
        """Test that unit floats stay in [0, 1) for 10,000 draws."""
        rng = Xorshift128Plus()
        rng.seed_mix(seed)
        for _ in range(10_000):
            value = rng.next_f32_unit()
            assert 0.0 <= value < 1.0

    def test_unit_float_has_24_bit_resolution(self):
        """Test that unit floats are multiples of 2^-24."""
        rng = Xorshift128Plus()
        for _ in range(100):
            value = rng.next_f32_unit()
            assert (value * (1 << 24)).is_integer()

    def test_range_degenerate(self):
        """Test that an empty or inverted range returns the minimum."""
        rng = Xorshift128Plus()
        assert rng.next_u32_range(5, 5) == 5
        assert rng.next_u32_range(10, 3) == 10

    def test_range_bounds_inclusive(self):
        """Test that both range ends are reachable and nothing else is."""
        rng = Xorshift128Plus()
        values = {rng.next_u32_range(30, 70) for _ in range(5000)}
        assert min(values) == 30
        assert max(values) == 70
        assert values <= set(range(30, 71))

    def test_one_in_edges(self):
        """Test disabled and certain probabilities."""
        rng = Xorshift128Plus()
        assert not any(rng.one_in(0) for _ in range(100))
        assert not any(rng.one_in(-3) for _ in range(100))
        assert all(rng.one_in(1) for _ in range(100))

    def test_one_in_frequency(self):
        """Test that one_in(10) fires roughly 10% of the time."""
        rng = Xorshift128Plus()
        hits = sum(rng.one_in(10) for _ in range(20_000))
        assert 1600 < hits < 2400

    def test_choice_index(self):
        """Test that choice indices cover the range."""
        rng = Xorshift128Plus()
        assert rng.choice_index(1) == 0
        assert {rng.choice_index(2) for _ in range(200)} == {0, 1}


class TestEntropySources:
    """Tests for entropy sources."""

    def test_clock_entropy_is_32_bit(self):
        """Test clock entropy range."""
        for _ in range(10):
            assert 0 <= clock_entropy() <= 0xFFFFFFFF

    def test_os_entropy_is_32_bit(self):
        """Test OS entropy range."""
        values = {os_entropy() for _ in range(10)}
        assert all(0 <= v <= 0xFFFFFFFF for v in values)
        assert len(values) > 1

    def test_lookup(self):
        """Test looking up sources by name."""
        assert get_entropy_source('clock') is clock_entropy
        assert get_entropy_source('os') is os_entropy
        with pytest.raises(ValueError):
            get_entropy_source('adc')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
