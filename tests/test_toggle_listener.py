#!/usr/bin/env python3
"""
Test suite for the toggle key listener.
"""

import sys
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from humanhold.input.toggle_listener import ToggleEvent, ToggleListener, key_to_string


class FakeCharKey:
    """Stand-in for pynput.keyboard.KeyCode."""

    def __init__(self, char):
        self.char = char


class FakeSpecialKey:
    """Stand-in for pynput.keyboard.Key members."""

    def __init__(self, name):
        self.name = name

    def __str__(self):
        return f"Key.{self.name}"


@pytest.fixture
def listener():
    return ToggleListener({'Pause': 'og', 'print_screen': 'extra'})


class TestKeyToString:
    """Tests for pynput key naming."""

    def test_char_key(self):
        """Test character keys are lower-cased."""
        assert key_to_string(FakeCharKey('A')) == 'a'

    def test_special_key(self):
        """Test special keys lose the Key. prefix."""
        assert key_to_string(FakeSpecialKey('pause')) == 'pause'
        assert key_to_string(FakeSpecialKey('print_screen')) == 'print_screen'

    def test_char_none_falls_back(self):
        """Test that a KeyCode without a char uses its string form."""
        key = FakeCharKey(None)
        assert key_to_string(key) == str(key).lower()


class TestToggleEvents:
    """Tests for edge detection and queueing."""

    def test_press_queues_event(self, listener):
        """Test that a toggle key press produces an event."""
        listener._on_press(FakeSpecialKey('pause'))
        assert listener.poll() == ToggleEvent(mode='og', key='pause')
        assert listener.poll() is None

    def test_autorepeat_suppressed(self, listener):
        """Test that repeats before release are ignored."""
        key = FakeSpecialKey('print_screen')
        listener._on_press(key)
        listener._on_press(key)
        listener._on_press(key)
        listener._on_release(key)
        listener._on_press(key)

        events = []
        while True:
            event = listener.poll()
            if event is None:
                break
            events.append(event)
        assert [e.mode for e in events] == ['extra', 'extra']

    def test_other_keys_ignored(self, listener):
        """Test that non-toggle keys produce nothing."""
        listener._on_press(FakeCharKey('a'))
        listener._on_press(FakeSpecialKey('space'))
        assert listener.poll() is None


class TestListenerLifecycle:
    """Tests for starting and stopping pynput."""

    def test_start_stop(self, listener):
        """Test that start() creates and starts a pynput listener."""
        pynput = MagicMock()
        with patch.dict(sys.modules, {'pynput': pynput, 'pynput.keyboard': pynput.keyboard}):
            listener.start()

            pynput.keyboard.Listener.assert_called_once_with(
                on_press=listener._on_press,
                on_release=listener._on_release,
            )
            instance = pynput.keyboard.Listener.return_value
            instance.start.assert_called_once()

            listener.stop()
            instance.stop.assert_called_once()
            assert listener.listener is None

    def test_stop_without_start(self, listener):
        """Test that stop() before start() is harmless."""
        listener.stop()
        assert listener.listener is None


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
