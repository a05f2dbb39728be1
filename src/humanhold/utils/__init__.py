"""
Utilities Module

Common utilities:
- Configuration management
- Structured logging
"""

from .config import Config, load_config, save_config
from .logging import setup_logging

__all__ = ['Config', 'load_config', 'save_config', 'setup_logging']
