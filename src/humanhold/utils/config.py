"""
Configuration Management

Handles loading and validation of configuration from YAML files.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field, fields, asdict
from typing import Optional, Dict, Any, List, Union, get_args, get_origin, get_type_hints
import yaml

from ..errors import ConfigError
from ..engine.policy import BUILTIN_POLICIES, PolicyRegistry, TimingPolicy
from ..engine.session import EngineConfig

CONFIG_ENV_VAR = 'HUMANHOLD_CONFIG'


@dataclass
class HIDConfig:
    """HID controller connection configuration."""
    host: str = '192.168.100.1'
    keyboard_port: int = 8889
    timeout: float = 5.0
    auto_reconnect: bool = True


@dataclass
class HostConfig:
    """Scan loop configuration."""
    scan_interval_ms: float = 2.0
    dry_run: bool = False

    def validate(self) -> None:
        if self.scan_interval_ms <= 0:
            raise ConfigError("scan_interval_ms must be positive", 'host')


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = 'INFO'
    log_dir: Optional[str] = None
    colored: bool = True


def _default_modes() -> List[TimingPolicy]:
    return list(BUILTIN_POLICIES)


def _coerce(value: Any, expected, section: str, key: str) -> Any:
    """Check a scalar against its field annotation; ints are widened to float."""
    if get_origin(expected) is Union:
        if value is None and type(None) in get_args(expected):
            return None
        expected = next(t for t in get_args(expected) if t is not type(None))

    if expected is float and isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if expected is int and isinstance(value, int) and not isinstance(value, bool):
        return value
    if expected in (bool, str) and isinstance(value, expected):
        return value

    raise ConfigError(
        f"{key} must be {expected.__name__}, got {type(value).__name__} {value!r}", section
    )


def _section(cls, data: Any, name: str):
    """Build a dataclass section, rejecting unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError("section must be a mapping", name)
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"unknown keys: {', '.join(sorted(unknown))}", name)
    hints = get_type_hints(cls)
    values = {key: _coerce(value, hints[key], name, key) for key, value in data.items()}
    return cls(**values)


@dataclass
class Config:
    """Main configuration container."""
    engine: EngineConfig = field(default_factory=EngineConfig)
    modes: List[TimingPolicy] = field(default_factory=_default_modes)
    hid: HIDConfig = field(default_factory=HIDConfig)
    host: HostConfig = field(default_factory=HostConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create Config from dictionary."""
        unknown = set(data) - {'engine', 'modes', 'hid', 'host', 'logging'}
        if unknown:
            raise ConfigError(f"unknown sections: {', '.join(sorted(unknown))}")

        modes_data = data.get('modes')
        if modes_data is None:
            modes = _default_modes()
        elif isinstance(modes_data, dict):
            modes = [TimingPolicy.from_dict(name, body) for name, body in modes_data.items()]
        else:
            raise ConfigError("must be a mapping of mode name to definition", 'modes')

        try:
            config = cls(
                engine=_section(EngineConfig, data.get('engine'), 'engine'),
                modes=modes,
                hid=_section(HIDConfig, data.get('hid'), 'hid'),
                host=_section(HostConfig, data.get('host'), 'host'),
                logging=_section(LoggingConfig, data.get('logging'), 'logging'),
            )
            config.validate()
        except TypeError as e:
            raise ConfigError(str(e)) from e

        return config

    def validate(self) -> None:
        self.engine.validate()
        self.host.validate()
        if not self.modes:
            raise ConfigError("at least one mode is required", 'modes')
        toggles = [m.toggle_key for m in self.modes if m.toggle_key]
        if len(toggles) != len(set(toggles)):
            raise ConfigError("toggle keys must be unique across modes", 'modes')

    def registry(self) -> PolicyRegistry:
        """Policy registry for the configured modes."""
        return PolicyRegistry(self.modes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert Config to dictionary."""
        return {
            'engine': asdict(self.engine),
            'modes': {m.name: m.to_dict() for m in self.modes},
            'hid': asdict(self.hid),
            'host': asdict(self.host),
            'logging': asdict(self.logging),
        }


def default_config_paths() -> List[Path]:
    """Locations searched when no explicit config path is given."""
    paths = []
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        paths.append(Path(env_path))
    paths.extend([
        Path('config/humanhold.yaml'),
        Path.home() / '.config' / 'humanhold' / 'config.yaml',
        Path('/etc/humanhold/config.yaml'),
    ])
    return paths


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default locations.

    Returns:
        Config object with loaded settings.

    Raises:
        ConfigError: If the file is missing (when given explicitly) or invalid.
    """
    if config_path is not None:
        if not Path(config_path).exists():
            raise ConfigError(f"config file not found: {config_path}")
    else:
        for path in default_config_paths():
            if path.exists():
                config_path = str(path)
                break

    if config_path:
        with open(config_path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"invalid YAML in {config_path}: {e}") from e
        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"top level of {config_path} must be a mapping")
        return Config.from_dict(data or {})

    # Return default config
    return Config()


def save_config(config: Config, config_path: str) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Config object to save.
        config_path: Path to save the config file.
    """
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
