"""
Toggle Key Listener

Watches the local keyboard with pynput and reports key-down edges of the
configured toggle keys. Events are queued for the scan loop so the engine
is only ever touched from one thread.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Set

logger = logging.getLogger(__name__)


@dataclass
class ToggleEvent:
    """A toggle key went down."""
    mode: str
    key: str


def key_to_string(key) -> str:
    """Convert a pynput key to its lower-case name ('a', 'pause', 'print_screen')."""
    try:
        # Character key
        if key.char:
            return key.char.lower()
    except AttributeError:
        pass
    # Special key
    return str(key).replace('Key.', '').lower()


class ToggleListener:
    """
    Emits ToggleEvent on the down edge of each toggle key.

    Autorepeat presses are ignored until the key has been released.
    """

    def __init__(self, toggle_keys: Dict[str, str], events: 'queue.Queue' = None):
        """
        Initialize listener.

        Args:
            toggle_keys: Mapping of key name to mode name
            events: Queue receiving ToggleEvent objects
        """
        self.toggle_keys = {k.lower(): mode for k, mode in toggle_keys.items()}
        self.events = events if events is not None else queue.Queue()
        self.listener = None
        self._down: Set[str] = set()
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start listening to the keyboard."""
        from pynput import keyboard

        self.listener = keyboard.Listener(
            on_press=self._on_press,
            on_release=self._on_release
        )
        self.listener.start()
        logger.info(f"Listening for toggle keys: {', '.join(sorted(self.toggle_keys))}")

    def stop(self) -> None:
        """Stop listening."""
        if self.listener:
            self.listener.stop()
            self.listener = None
            logger.info("Toggle listener stopped")

    def _on_press(self, key) -> None:
        name = key_to_string(key)
        mode = self.toggle_keys.get(name)
        if mode is None:
            return

        with self._lock:
            if name in self._down:
                return
            self._down.add(name)

        logger.debug(f"Toggle key down: {name} -> {mode}")
        self.events.put(ToggleEvent(mode=mode, key=name))

    def _on_release(self, key) -> None:
        name = key_to_string(key)
        with self._lock:
            self._down.discard(name)

    def poll(self) -> Optional[ToggleEvent]:
        """Next pending event, or None."""
        try:
            return self.events.get_nowait()
        except queue.Empty:
            return None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
