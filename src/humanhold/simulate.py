"""
Offline Simulator

Runs one macro mode against a virtual clock and a recording effector,
then summarises the realised hold durations.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

import numpy as np

from .engine.clock import VirtualClock
from .engine.driver import ScanTickDriver
from .engine.policy import PolicyRegistry, TimingPolicy
from .engine.session import EngineConfig
from .input.effectors import RecordingEffector

logger = logging.getLogger(__name__)

# Bounce pulses last well under a millisecond; real holds never do.
BOUNCE_FILTER_MS = 5.0

# The virtual clock counts whole microseconds
MIN_STEP_MS = 0.001


@dataclass
class HoldStats:
    """Summary of hold durations for one key (ms)."""
    count: int
    mean: float
    std: float
    min: float
    p5: float
    p95: float
    max: float

    @classmethod
    def from_values(cls, values: List[float]) -> 'HoldStats':
        arr = np.asarray(values, dtype=float)
        return cls(
            count=int(arr.size),
            mean=float(arr.mean()),
            std=float(arr.std()),
            min=float(arr.min()),
            p5=float(np.percentile(arr, 5)),
            p95=float(np.percentile(arr, 95)),
            max=float(arr.max()),
        )


@dataclass
class SimulationReport:
    """Outcome of a simulated session."""
    mode: str
    seconds: float
    step_ms: float
    seed: int
    phases: int = 0
    bounces: int = 0
    glitches: int = 0
    timed_out: bool = False
    ended_clean: bool = True
    max_simultaneous: int = 0
    holds: Dict[str, HoldStats] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return asdict(self)


def simulate(
    policy: TimingPolicy,
    seconds: float = 60.0,
    step_ms: float = 1.0,
    seed: int = 0,
    config: Optional[EngineConfig] = None
) -> SimulationReport:
    """
    Simulate one session of policy.

    Args:
        policy: Mode to run
        seconds: Simulated wall time (the safety timeout still applies)
        step_ms: Scan interval of the simulated host
        seed: Entropy mixed in at session start
        config: Engine configuration

    Returns:
        SimulationReport with per-key hold statistics

    Raises:
        ValueError: If step_ms is below the 1us clock resolution
    """
    if step_ms < MIN_STEP_MS:
        raise ValueError(f"step_ms must be at least {MIN_STEP_MS}, got {step_ms}")

    config = config or EngineConfig()
    clock = VirtualClock()
    effector = RecordingEffector(time_source=clock.now_us)
    driver = ScanTickDriver(
        effector=effector,
        clock=clock,
        policies=PolicyRegistry([policy]),
        config=config,
        entropy_source=lambda: seed,
    )

    driver.on_toggle_key_down(policy.name, now_ms=clock.now_ms())
    end_us = int(seconds * 1_000_000)
    while driver.active_mode and clock.now_us() < end_us:
        clock.advance(step_ms)
        driver.on_scan_tick(clock.now_ms())
    driver.force_stop()

    stats = driver.session.stats
    report = SimulationReport(
        mode=policy.name,
        seconds=seconds,
        step_ms=step_ms,
        seed=seed,
        phases=stats.phases,
        bounces=stats.bounces,
        glitches=stats.glitches,
        timed_out=stats.timeouts > 0,
        ended_clean=not effector.asserted,
        max_simultaneous=effector.max_simultaneous,
    )
    for key, values in effector.hold_durations(min_ms=BOUNCE_FILTER_MS).items():
        report.holds[key] = HoldStats.from_values(values)

    logger.debug(f"Simulated {policy.name}: {report.phases} phases, {report.glitches} glitches")
    return report


def format_report(report: SimulationReport) -> str:
    """Human-readable report text."""
    lines = [
        f"Mode: {report.mode}  ({report.seconds:g}s simulated, {report.step_ms:g}ms scan, seed {report.seed})",
        f"Phases: {report.phases}  Bounces: {report.bounces}  Glitches: {report.glitches}",
        f"Timed out: {'yes' if report.timed_out else 'no'}  "
        f"Ended clean: {'yes' if report.ended_clean else 'NO'}  "
        f"Max keys held: {report.max_simultaneous}",
        "",
        f"{'key':<10}{'count':>7}{'mean':>10}{'std':>9}{'min':>9}{'p5':>9}{'p95':>9}{'max':>9}",
    ]
    for key, s in sorted(report.holds.items()):
        lines.append(
            f"{key:<10}{s.count:>7}{s.mean:>10.1f}{s.std:>9.1f}"
            f"{s.min:>9.1f}{s.p5:>9.1f}{s.p95:>9.1f}{s.max:>9.1f}"
        )
    return '\n'.join(lines)
