"""
Error Types

The timing engine itself is total and never raises; these cover the
configuration layer and mode lookups at the host boundary.
"""


class HumanholdError(Exception):
    """Base class for all humanhold errors."""


class ConfigError(HumanholdError):
    """Raised when a configuration file or section is invalid."""

    def __init__(self, message: str, section: str = None):
        if section:
            message = f"[{section}] {message}"
        super().__init__(message)
        self.section = section


class UnknownModeError(HumanholdError, KeyError):
    """Raised when a macro mode name is not registered."""

    def __init__(self, mode: str):
        super().__init__(mode)
        self.mode = mode

    def __str__(self):
        return f"Unknown macro mode: {self.mode!r}"
