"""
Key Effectors

The two primitives the engine drives: hold a key down, let it up.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)


class KeyEffector:
    """Interface for key assertion backends."""

    def key_down(self, key: str) -> None:
        raise NotImplementedError

    def key_up(self, key: str) -> None:
        raise NotImplementedError


class SenderEffector(KeyEffector):
    """
    Forwards holds and releases to a RemoteSender.

    A release that fails to send is retried once (the sender reconnects
    first when auto_reconnect is on); a release lost twice is logged as an
    error since the controller may still be holding the key.
    """

    def __init__(self, sender):
        self.sender = sender
        self.lost_releases = 0

    def key_down(self, key: str) -> None:
        self.sender.send_key(key, 'down')

    def key_up(self, key: str) -> None:
        if self.sender.send_key(key, 'up'):
            return

        logger.warning(f"Release of {key!r} not delivered, retrying")
        if not self.sender.send_key(key, 'up'):
            self.lost_releases += 1
            logger.error(f"Release of {key!r} lost, HID controller may still hold it")


class DryRunEffector(KeyEffector):
    """Logs what would be sent."""

    def key_down(self, key: str) -> None:
        logger.debug(f"Would hold: {key}")

    def key_up(self, key: str) -> None:
        logger.debug(f"Would release: {key}")


@dataclass
class KeyAction:
    """One recorded effector call."""
    time_us: int
    action: str  # 'down' or 'up'
    key: str


class RecordingEffector(KeyEffector):
    """
    Records every call with a timestamp and tracks the asserted set.

    Args:
        time_source: Callable returning the current time in microseconds
    """

    def __init__(self, time_source: Optional[Callable[[], int]] = None):
        self.time_source = time_source or (lambda: 0)
        self.history: List[KeyAction] = []
        self.asserted: Set[str] = set()
        self.max_simultaneous = 0

    def key_down(self, key: str) -> None:
        self.history.append(KeyAction(self.time_source(), 'down', key))
        self.asserted.add(key)
        self.max_simultaneous = max(self.max_simultaneous, len(self.asserted))

    def key_up(self, key: str) -> None:
        self.history.append(KeyAction(self.time_source(), 'up', key))
        self.asserted.discard(key)

    def clear(self) -> None:
        self.history.clear()
        self.asserted.clear()
        self.max_simultaneous = 0

    def hold_durations(self, min_ms: float = 0.0) -> Dict[str, List[float]]:
        """
        Down-to-up durations per key, in milliseconds.

        Args:
            min_ms: Ignore holds shorter than this (e.g. bounce pulses)

        Returns:
            Mapping of key to list of hold durations
        """
        pressed_at: Dict[str, int] = {}
        holds: Dict[str, List[float]] = defaultdict(list)
        for action in self.history:
            if action.action == 'down':
                pressed_at[action.key] = action.time_us
            elif action.key in pressed_at:
                duration = (action.time_us - pressed_at.pop(action.key)) / 1000.0
                if duration >= min_ms:
                    holds[action.key].append(duration)
        return dict(holds)
