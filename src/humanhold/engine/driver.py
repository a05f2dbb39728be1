"""
Scan-Tick Driver

The three entry points a host calls into: toggle key-down edges, one
tick per scan iteration, and a forced stop on shutdown.
"""

import logging
from typing import Callable, Optional

from .clock import MonotonicClock
from .policy import PolicyRegistry
from .prng import Xorshift128Plus, get_entropy_source
from .session import EngineConfig, MacroSession

logger = logging.getLogger(__name__)


class ScanTickDriver:
    """
    Host-facing facade over a single MacroSession.

    Pressing a mode's toggle key while that mode runs stops it; pressing it
    while idle or while another mode runs starts it (stop-then-start, so
    the two modes never hold keys at the same time).
    """

    def __init__(
        self,
        effector,
        clock=None,
        policies: PolicyRegistry = None,
        config: EngineConfig = None,
        entropy_source: Callable[[], int] = None,
        prng: Xorshift128Plus = None
    ):
        """
        Initialize driver.

        Args:
            effector: Object with key_down(key) and key_up(key)
            clock: Object with now_ms() and wait_us(us)
            policies: Available timing policies (built-in modes if None)
            config: Engine behaviour configuration
            entropy_source: Callable returning 32 bits of seed material per start
            prng: Generator shared across sessions for the process lifetime
        """
        self.clock = clock or MonotonicClock()
        self.policies = policies or PolicyRegistry()
        self.config = config or EngineConfig()
        self.entropy_source = entropy_source or get_entropy_source(self.config.entropy)
        self.session = MacroSession(
            effector=effector,
            clock=self.clock,
            prng=prng,
            config=self.config,
        )

        # Called with the new mode name, or None when the session goes idle
        self.on_session_change: Optional[Callable[[Optional[str]], None]] = None

    @property
    def active_mode(self) -> Optional[str]:
        return self.session.mode

    def on_toggle_key_down(self, mode: str, now_ms: int = None) -> None:
        """
        Toggle mode on a key-down edge.

        Args:
            mode: Mode name
            now_ms: Event time (read from the clock if None)

        Raises:
            UnknownModeError: If mode is not registered
        """
        policy = self.policies.get(mode)
        before = self.session.mode

        if before == policy.name:
            self.session.stop()
        else:
            if now_ms is None:
                now_ms = self.clock.now_ms()
            self.session.start(policy, now_ms, self.entropy_source())

        self._notify(before)

    def on_scan_tick(self, now_ms: int = None) -> None:
        """Forward one scan iteration to the session."""
        if not self.session.active:
            return
        if now_ms is None:
            now_ms = self.clock.now_ms()
        before = self.session.mode
        self.session.tick(now_ms)
        self._notify(before)

    def force_stop(self) -> None:
        """Guarantee no key remains asserted (host shutdown or suspend)."""
        before = self.session.mode
        self.session.stop()
        self._notify(before)

    def _notify(self, before: Optional[str]) -> None:
        after = self.session.mode
        if after != before and self.on_session_change:
            self.on_session_change(after)
