"""
Human-Like Hold Timing Engine

- xorshift128+ PRNG with entropy re-mixing
- Box-Muller Gaussian sampling
- Table-driven phase policies
- Macro session state machine with bounce, glitch and safety timeout
"""

from .clock import MonotonicClock, VirtualClock, elapsed_ms
from .prng import Xorshift128Plus
from .gaussian import GaussianSampler
from .policy import Phase, TimingPolicy, PolicyRegistry, OG_POLICY, EXTRA_POLICY
from .session import EngineConfig, MacroSession
from .driver import ScanTickDriver

__all__ = [
    'MonotonicClock', 'VirtualClock', 'elapsed_ms',
    'Xorshift128Plus', 'GaussianSampler',
    'Phase', 'TimingPolicy', 'PolicyRegistry', 'OG_POLICY', 'EXTRA_POLICY',
    'EngineConfig', 'MacroSession', 'ScanTickDriver',
]
