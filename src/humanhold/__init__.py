"""
humanhold - human-like alternating key-hold macros.

A timing engine that alternates logical key holds with Gaussian jitter,
occasional release bounce and hold-splitting glitches, under a hard
safety timeout, plus the host glue to drive a remote HID controller.
"""

from .engine import (
    ScanTickDriver, MacroSession, EngineConfig,
    TimingPolicy, Phase, PolicyRegistry,
    Xorshift128Plus, GaussianSampler,
    MonotonicClock, VirtualClock,
)
from .errors import HumanholdError, ConfigError, UnknownModeError

__version__ = '0.1.0'

__all__ = [
    'ScanTickDriver', 'MacroSession', 'EngineConfig',
    'TimingPolicy', 'Phase', 'PolicyRegistry',
    'Xorshift128Plus', 'GaussianSampler',
    'MonotonicClock', 'VirtualClock',
    'HumanholdError', 'ConfigError', 'UnknownModeError',
]
