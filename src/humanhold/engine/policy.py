"""
Timing Policies

Declarative per-mode phase tables. A mode is pure data: an ordered,
cyclic list of (key, mean hold, stddev hold) phases and the toggle key
that starts and stops it.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from ..errors import ConfigError, UnknownModeError


@dataclass(frozen=True)
class Phase:
    """One step of a mode's cycle."""
    key: str
    mean_ms: float
    stddev_ms: float


@dataclass(frozen=True)
class TimingPolicy:
    """Ordered cyclic phase table for one macro mode."""
    name: str
    phases: Tuple[Phase, ...]
    toggle_key: Optional[str] = None

    def __post_init__(self):
        if not self.phases:
            raise ConfigError(f"mode {self.name!r} has no phases", 'modes')
        for phase in self.phases:
            if not phase.key:
                raise ConfigError(f"mode {self.name!r} has a phase without a key", 'modes')
            if phase.mean_ms <= 0:
                raise ConfigError(
                    f"mode {self.name!r}: mean_ms must be positive, got {phase.mean_ms}", 'modes'
                )
            if phase.stddev_ms < 0:
                raise ConfigError(
                    f"mode {self.name!r}: stddev_ms must not be negative, got {phase.stddev_ms}",
                    'modes'
                )

    def __len__(self) -> int:
        return len(self.phases)

    def phase(self, index: int) -> Phase:
        return self.phases[index % len(self.phases)]

    def phase_after(self, index: int) -> int:
        """Index of the phase following index; the last wraps to the first."""
        return (index + 1) % len(self.phases)

    @property
    def keys(self) -> Tuple[str, ...]:
        """Distinct keys in phase order."""
        seen: List[str] = []
        for phase in self.phases:
            if phase.key not in seen:
                seen.append(phase.key)
        return tuple(seen)

    def phase_for_key(self, key: str) -> int:
        """First phase index that holds key (0 if the key is not in the table)."""
        for i, phase in enumerate(self.phases):
            if phase.key == key:
                return i
        return 0

    @classmethod
    def from_dict(cls, name: str, data: Dict) -> 'TimingPolicy':
        """Build a policy from a config mapping with 'phases' and optional 'toggle_key'."""
        if not isinstance(data, dict):
            raise ConfigError(f"mode {name!r} must be a mapping", 'modes')
        raw_phases = data.get('phases') or []
        phases = []
        for raw in raw_phases:
            try:
                phases.append(Phase(
                    key=str(raw['key']),
                    mean_ms=float(raw['mean_ms']),
                    stddev_ms=float(raw.get('stddev_ms', 0.0)),
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigError(f"mode {name!r}: invalid phase {raw!r} ({e})", 'modes') from e
        return cls(name=name, phases=tuple(phases), toggle_key=data.get('toggle_key'))

    def to_dict(self) -> Dict:
        return {
            'toggle_key': self.toggle_key,
            'phases': [
                {'key': p.key, 'mean_ms': p.mean_ms, 'stddev_ms': p.stddev_ms}
                for p in self.phases
            ],
        }


# UP <-> RCTRL, original timings
OG_POLICY = TimingPolicy(
    name='og',
    phases=(
        Phase('up', 900.0, 250.0),
        Phase('rctrl', 4500.0, 700.0),
    ),
    toggle_key='pause',
)

# UP <-> A, alternate timings
EXTRA_POLICY = TimingPolicy(
    name='extra',
    phases=(
        Phase('up', 700.0, 200.0),
        Phase('a', 2150.0, 100.0),
    ),
    toggle_key='print_screen',
)

BUILTIN_POLICIES = (OG_POLICY, EXTRA_POLICY)


class PolicyRegistry:
    """Name -> TimingPolicy lookup, preserving registration order."""

    def __init__(self, policies=BUILTIN_POLICIES):
        self._policies: Dict[str, TimingPolicy] = {}
        for policy in policies:
            self.register(policy)

    def register(self, policy: TimingPolicy) -> None:
        self._policies[policy.name] = policy

    def get(self, name: str) -> TimingPolicy:
        try:
            return self._policies[name]
        except KeyError:
            raise UnknownModeError(name) from None

    def by_toggle_key(self, key: str) -> Optional[TimingPolicy]:
        """Policy whose toggle key is key, if any."""
        for policy in self._policies.values():
            if policy.toggle_key == key:
                return policy
        return None

    def names(self) -> List[str]:
        return list(self._policies)

    def __contains__(self, name: str) -> bool:
        return name in self._policies

    def __iter__(self) -> Iterator[TimingPolicy]:
        return iter(self._policies.values())

    def __len__(self) -> int:
        return len(self._policies)
