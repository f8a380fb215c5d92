"""
treefs Core Module

- Subsystem lifecycle base class
- Configuration loader
"""

from .subsystem import Subsystem, SubsystemState
from .config_loader import (
    ConfigLoader,
    Config,
    FilesystemConfig,
    LoggingConfig,
    ShellConfig,
    get_config,
    validate_config,
)

__all__ = [
    # Subsystem
    'Subsystem',
    'SubsystemState',
    # Config
    'ConfigLoader',
    'Config',
    'FilesystemConfig',
    'LoggingConfig',
    'ShellConfig',
    'get_config',
    'validate_config',
]
