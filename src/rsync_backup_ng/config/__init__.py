"""Configuration system for rsync-backup-ng.

This module provides TOML-based configuration loading, validation,
and schema definitions for backup runs.
"""

from .loader import ConfigError, find_config_file, load_config
from .schema import (
    Config,
    GlobalConfig,
    RsyncConfig,
    SSHConfig,
)

__all__ = [
    "GlobalConfig",
    "RsyncConfig",
    "SSHConfig",
    "Config",
    "load_config",
    "find_config_file",
    "ConfigError",
]
