"""
Host Input Module

Key effectors and toggle sources for the timing engine:
- TCP sender to a HID controller
- Dry-run and recording effectors
- pynput toggle key listener
"""

from .effectors import KeyEffector, SenderEffector, DryRunEffector, RecordingEffector
from .remote_sender import RemoteSender
from .toggle_listener import ToggleListener, ToggleEvent

__all__ = [
    'KeyEffector', 'SenderEffector', 'DryRunEffector', 'RecordingEffector',
    'RemoteSender', 'ToggleListener', 'ToggleEvent',
]
