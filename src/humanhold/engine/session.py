"""
Macro Session State Machine

Alternates the phases of one timing policy with human-like jitter:

- Gaussian hold durations with a hard floor
- Occasional release bounce (rapid re-press after a release)
- Occasional glitch split of a hold into two separate presses
- Unconditional safety timeout

Every exit from an active session (explicit stop, mode switch, timeout)
funnels through the same release routine before the session is idle.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..errors import ConfigError
from .clock import elapsed_ms
from .gaussian import GaussianSampler
from .policy import Phase, TimingPolicy
from .prng import Xorshift128Plus

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Timing engine behaviour. Probabilities are expressed as 1-in-N."""
    safety_timeout_ms: int = 150_000
    min_hold_ms: float = 50.0
    bounce_one_in: int = 10
    glitch_one_in: int = 20
    glitch_split_min_pct: int = 30
    glitch_split_max_pct: int = 70
    glitch_gap_mean_ms: float = 80.0
    glitch_gap_stddev_ms: float = 30.0
    glitch_gap_min_ms: float = 20.0
    travel_mean_us: float = 1500.0
    travel_stddev_us: float = 400.0
    bounce_off_mean_us: float = 500.0
    bounce_off_stddev_us: float = 200.0
    bounce_on_mean_us: float = 300.0
    bounce_on_stddev_us: float = 100.0
    max_wait_us: int = 60_000
    entropy: str = 'clock'  # 'clock' or 'os'

    def validate(self) -> None:
        if self.safety_timeout_ms <= 0:
            raise ConfigError("safety_timeout_ms must be positive", 'engine')
        if self.min_hold_ms < 0:
            raise ConfigError("min_hold_ms must not be negative", 'engine')
        if not 0 <= self.glitch_split_min_pct <= self.glitch_split_max_pct <= 100:
            raise ConfigError(
                "glitch split bounds must satisfy 0 <= min <= max <= 100", 'engine'
            )
        if self.max_wait_us < 0:
            raise ConfigError("max_wait_us must not be negative", 'engine')
        if self.entropy not in ('clock', 'os'):
            raise ConfigError(f"entropy must be 'clock' or 'os', got {self.entropy!r}", 'engine')


@dataclass
class GlitchSplit:
    """A hold split in two: the gap still to wait and the hold left afterwards."""
    gap_duration_ms: float
    remaining_hold_ms: float


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session for logging and inspection."""
    mode: Optional[str]
    phase_index: int
    held_keys: Tuple[str, ...]
    session_start_ms: int
    phase_start_ms: int
    target_hold_ms: float
    glitch_armed: bool
    glitch: Optional[GlitchSplit]


@dataclass
class SessionStats:
    """Counters for the current process."""
    sessions_started: int = 0
    timeouts: int = 0
    phases: int = 0
    bounces: int = 0
    glitches: int = 0


class MacroSession:
    """
    Owns the idle/active lifecycle of a macro.

    The session is driven entirely by start(), stop() and tick(); it issues
    key_down/key_up calls to its effector and waits through its clock.
    """

    def __init__(
        self,
        effector,
        clock,
        prng: Xorshift128Plus = None,
        config: EngineConfig = None
    ):
        """
        Initialize session.

        Args:
            effector: Object with key_down(key) and key_up(key)
            clock: Object with wait_us(us)
            prng: Shared generator (a fresh default-state one if None)
            config: Engine behaviour configuration
        """
        self.effector = effector
        self.clock = clock
        self.prng = prng or Xorshift128Plus()
        self.sampler = GaussianSampler(self.prng)
        self.config = config or EngineConfig()

        self.policy: Optional[TimingPolicy] = None
        self.phase_index = 0
        self._held: List[str] = []
        self.session_start_ms = 0
        self.phase_start_ms = 0
        self.target_hold_ms = 0.0
        self.glitch_armed = False
        self.glitch: Optional[GlitchSplit] = None

        self.stats = SessionStats()

    @property
    def active(self) -> bool:
        return self.policy is not None

    @property
    def mode(self) -> Optional[str]:
        return self.policy.name if self.policy else None

    @property
    def held_keys(self) -> Tuple[str, ...]:
        return tuple(self._held)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            mode=self.mode,
            phase_index=self.phase_index,
            held_keys=self.held_keys,
            session_start_ms=self.session_start_ms,
            phase_start_ms=self.phase_start_ms,
            target_hold_ms=self.target_hold_ms,
            glitch_armed=self.glitch_armed,
            glitch=self.glitch,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, policy: TimingPolicy, now_ms: int, entropy: int) -> None:
        """
        Start a session for policy, switching away from any running one.

        Args:
            policy: Timing policy for the new session
            now_ms: Current host time in milliseconds
            entropy: 32-bit seed material mixed into the PRNG
        """
        if self.active:
            logger.info(f"Switching macro {self.mode} -> {policy.name}")
            self.stop()

        self.prng.seed_mix(entropy)

        self.policy = policy
        self.phase_index = 0
        self.session_start_ms = now_ms
        self.stats.sessions_started += 1
        self._begin_phase(now_ms)

        logger.info(
            f"Macro {policy.name} started: {self._held[0]} for {self.target_hold_ms:.0f}ms"
        )

    def stop(self) -> None:
        """Release everything held and return to idle. No-op when idle."""
        if not self.active:
            return
        mode = self.mode
        self._release_all()
        logger.info(f"Macro {mode} stopped")

    def tick(self, now_ms: int) -> None:
        """
        Advance the session by at most one transition.

        Args:
            now_ms: Current host time in milliseconds
        """
        if not self.active:
            return

        if elapsed_ms(now_ms, self.session_start_ms) >= self.config.safety_timeout_ms:
            logger.warning(
                f"Macro {self.mode} hit safety timeout "
                f"({self.config.safety_timeout_ms / 1000:.0f}s), stopping"
            )
            self.stats.timeouts += 1
            self.stop()
            return

        elapsed = elapsed_ms(now_ms, self.phase_start_ms)

        if self.glitch is not None:
            if elapsed >= int(self.glitch.gap_duration_ms):
                self._end_glitch_gap(now_ms)
            return

        if not self._held:
            self.phase_index = self.policy.phase_after(self.phase_index)
            self._begin_phase(now_ms)
            return

        if elapsed < int(self.target_hold_ms):
            return

        self._release(self._held[0])

        if self.glitch_armed:
            self._enter_glitch_gap(now_ms)
            return

        self.phase_index = self.policy.phase_after(self.phase_index)
        self._begin_phase(now_ms)

    # ------------------------------------------------------------------
    # Phase handling
    # ------------------------------------------------------------------

    def _begin_phase(self, now_ms: int) -> None:
        phase = self.policy.phase(self.phase_index)
        self._press(phase.key)
        self.phase_start_ms = now_ms
        self._set_next_hold(phase)
        self.stats.phases += 1

    def _set_next_hold(self, phase: Phase) -> None:
        """Sample the hold for phase and decide up front whether it will glitch."""
        self.target_hold_ms = self.sampler.floored(
            phase.mean_ms, phase.stddev_ms, self.config.min_hold_ms
        )
        self.glitch_armed = self.prng.one_in(self.config.glitch_one_in)
        self.glitch = None

    def _enter_glitch_gap(self, now_ms: int) -> None:
        cfg = self.config
        ratio = self.prng.next_u32_range(
            cfg.glitch_split_min_pct, cfg.glitch_split_max_pct
        ) / 100.0
        remaining = self.target_hold_ms * (1.0 - ratio)
        gap = self.sampler.floored(
            cfg.glitch_gap_mean_ms, cfg.glitch_gap_stddev_ms, cfg.glitch_gap_min_ms
        )

        self.glitch = GlitchSplit(gap_duration_ms=gap, remaining_hold_ms=remaining)
        self.glitch_armed = False
        self.phase_start_ms = now_ms
        self.stats.glitches += 1

        logger.debug(f"Glitch split: gap {gap:.0f}ms, then {remaining:.0f}ms")

    def _end_glitch_gap(self, now_ms: int) -> None:
        # Only the after-gap portion is preserved; before + gap + after
        # need not sum to the originally sampled hold.
        remaining = self.glitch.remaining_hold_ms
        self.glitch = None

        if remaining <= 0:
            self.phase_index = self.policy.phase_after(self.phase_index)
            self._begin_phase(now_ms)
            return

        keys = self.policy.keys
        key = keys[self.prng.choice_index(len(keys))]
        self._press(key)
        self.phase_index = self.policy.phase_for_key(key)
        self.phase_start_ms = now_ms
        self.target_hold_ms = remaining
        self.glitch_armed = False

        logger.debug(f"Glitch re-press: {key} for {remaining:.0f}ms")

    # ------------------------------------------------------------------
    # Key effectors
    # ------------------------------------------------------------------

    def _human_delay(self, mean_us: float, stddev_us: float) -> None:
        self.clock.wait_us(
            self.sampler.delay_us(mean_us, stddev_us, self.config.max_wait_us)
        )

    def _press(self, key: str) -> None:
        """Travel delay, then assert."""
        cfg = self.config
        self._human_delay(cfg.travel_mean_us, cfg.travel_stddev_us)
        self.effector.key_down(key)
        self._held.append(key)

    def _release(self, key: str) -> None:
        """Deassert, occasionally followed by a bounce pulse."""
        cfg = self.config
        if key in self._held:
            self._held.remove(key)
        self.effector.key_up(key)
        if self.prng.one_in(cfg.bounce_one_in):
            self.stats.bounces += 1
            logger.debug(f"Bounce on {key}")
            self._human_delay(cfg.bounce_off_mean_us, cfg.bounce_off_stddev_us)
            self.effector.key_down(key)
            self._human_delay(cfg.bounce_on_mean_us, cfg.bounce_on_stddev_us)
            self.effector.key_up(key)

    def _release_all(self) -> None:
        try:
            for key in list(self._held):
                self._release(key)
        finally:
            self._held.clear()
            self.policy = None
            self.glitch = None
            self.glitch_armed = False
            self.target_hold_ms = 0.0
