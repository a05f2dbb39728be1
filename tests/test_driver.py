#!/usr/bin/env python3
"""
Test suite for the scan-tick driver entry points.
"""

import sys
import pytest
from pathlib import Path
from unittest.mock import Mock

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from humanhold.engine.clock import VirtualClock
from humanhold.engine.driver import ScanTickDriver
from humanhold.engine.session import EngineConfig
from humanhold.errors import UnknownModeError
from humanhold.input.effectors import RecordingEffector


@pytest.fixture
def rig():
    """Driver on a virtual clock with a recording effector."""
    clock = VirtualClock()
    effector = RecordingEffector(time_source=clock.now_us)
    entropy = Mock(return_value=0x1234)
    driver = ScanTickDriver(
        effector=effector,
        clock=clock,
        config=EngineConfig(bounce_one_in=1),
        entropy_source=entropy,
    )
    return driver, effector, clock, entropy


class TestToggle:
    """Tests for toggle key handling."""

    def test_toggle_starts_idle_session(self, rig):
        """Test that a toggle from idle starts the mode."""
        driver, effector, _, entropy = rig
        driver.on_toggle_key_down('og')

        assert driver.active_mode == 'og'
        assert effector.asserted == {'up'}
        entropy.assert_called_once()

    def test_toggle_same_mode_stops(self, rig):
        """Test that toggling the running mode stops it."""
        driver, effector, _, _ = rig
        driver.on_toggle_key_down('og')
        driver.on_toggle_key_down('og')

        assert driver.active_mode is None
        assert effector.asserted == set()

    def test_toggle_other_mode_switches(self, rig):
        """Test stop-then-start when a different mode is running."""
        driver, effector, clock, entropy = rig
        driver.on_toggle_key_down('og', now_ms=0)
        clock.set_ms(1000)
        driver.on_scan_tick(1000)

        driver.on_toggle_key_down('extra')

        assert driver.active_mode == 'extra'
        assert effector.asserted == {'up'}
        assert effector.max_simultaneous == 1
        assert entropy.call_count == 2

        # Every key from the old mode went up before the new mode's first down
        last_down = max(i for i, a in enumerate(effector.history) if a.action == 'down')
        before = effector.history[:last_down]
        held = set()
        for action in before:
            if action.action == 'down':
                held.add(action.key)
            else:
                held.discard(action.key)
        assert held == set()

    def test_unknown_mode(self, rig):
        """Test that toggling an unregistered mode raises."""
        driver, effector, _, _ = rig
        with pytest.raises(UnknownModeError):
            driver.on_toggle_key_down('turbo')
        assert effector.history == []

    def test_session_change_callback(self, rig):
        """Test that the indicator hook sees every mode change."""
        driver, _, _, _ = rig
        changes = []
        driver.on_session_change = changes.append

        driver.on_toggle_key_down('og')
        driver.on_toggle_key_down('extra')
        driver.on_toggle_key_down('extra')

        assert changes == ['og', 'extra', None]


class TestScanTick:
    """Tests for scan ticks and forced stops."""

    def test_tick_idle_is_noop(self, rig):
        """Test that ticks while idle do nothing."""
        driver, effector, _, _ = rig
        driver.on_scan_tick(5000)
        assert effector.history == []

    def test_tick_reads_clock_when_now_omitted(self, rig):
        """Test that on_scan_tick falls back to the driver clock."""
        driver, _, clock, _ = rig
        driver.on_toggle_key_down('og')
        clock.set_ms(200_000)
        driver.on_scan_tick()
        assert driver.active_mode is None

    def test_timeout_notifies_idle(self, rig):
        """Test that a safety timeout reaches the indicator hook."""
        driver, effector, _, _ = rig
        changes = []
        driver.on_session_change = changes.append
        driver.on_toggle_key_down('og', now_ms=0)

        driver.on_scan_tick(150_001)

        assert changes == ['og', None]
        assert effector.asserted == set()

    def test_force_stop(self, rig):
        """Test that force_stop releases everything."""
        driver, effector, _, _ = rig
        driver.on_toggle_key_down('extra')
        driver.force_stop()

        assert driver.active_mode is None
        assert effector.asserted == set()

    def test_force_stop_idle(self, rig):
        """Test that force_stop while idle is harmless."""
        driver, effector, _, _ = rig
        driver.force_stop()
        assert effector.history == []


class TestDeterminism:
    """Tests for reproducible runs."""

    def _run(self, entropy):
        clock = VirtualClock()
        effector = RecordingEffector(time_source=clock.now_us)
        driver = ScanTickDriver(effector, clock, entropy_source=lambda: entropy)
        driver.on_toggle_key_down('og', now_ms=0)
        for t in range(1, 30_000, 3):
            clock.set_ms(t)
            driver.on_scan_tick(t)
        driver.force_stop()
        return [(a.time_us, a.action, a.key) for a in effector.history]

    def test_same_entropy_same_history(self):
        """Test that equal entropy gives identical key histories."""
        assert self._run(77) == self._run(77)

    def test_different_entropy_differs(self):
        """Test that different entropy changes the timing."""
        assert self._run(77) != self._run(78)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
