"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import tomllib
from pathlib import Path
from typing import Any

from .schema import (
    Config,
    GlobalConfig,
    RsyncConfig,
    SSHConfig,
)


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "rsync-backup-ng" / "config.toml",
    Path("/etc/rsync-backup-ng/config.toml"),
]


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path).expanduser()
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _expect(data: dict[str, Any], key: str, kind: type | tuple, section: str) -> Any:
    value = data[key]
    # bool is a subclass of int, never accept it where a number is expected
    if isinstance(value, bool) and kind is not bool:
        raise ConfigError(f"[{section}] '{key}' must be {_kind_name(kind)}")
    if not isinstance(value, kind):
        raise ConfigError(f"[{section}] '{key}' must be {_kind_name(kind)}")
    return value


def _kind_name(kind: type | tuple) -> str:
    if isinstance(kind, tuple):
        return " or ".join(k.__name__ for k in kind)
    return kind.__name__


def _string_list(data: dict[str, Any], key: str, section: str) -> list[str]:
    if key not in data:
        return []
    value = _expect(data, key, list, section)
    if not all(isinstance(item, str) for item in value):
        raise ConfigError(f"[{section}] '{key}' must be a list of strings")
    return list(value)


def _parse_global(data: dict[str, Any]) -> GlobalConfig:
    """Parse global configuration from dict."""
    values = {}
    for key in ("log_file", "transaction_log"):
        if key in data:
            values[key] = _expect(data, key, str, "global")
    for key in ("atomic_pointer", "lock", "quiet", "verbose", "debug"):
        if key in data:
            values[key] = _expect(data, key, bool, "global")
    return GlobalConfig(**values)


def _parse_ssh(data: dict[str, Any]) -> SSHConfig:
    """Parse ssh configuration from dict."""
    port = None
    if "port" in data:
        port = _expect(data, "port", int, "ssh")
        if not 0 < port < 65536:
            raise ConfigError(f"[ssh] 'port' out of range: {port}")

    config = SSHConfig(port=port, options=_string_list(data, "options", "ssh"))
    for key in ("identity_file", "control_dir", "control_persist"):
        if key in data:
            setattr(config, key, _expect(data, key, str, "ssh"))
    for key in ("batch_mode", "multiplex"):
        if key in data:
            setattr(config, key, _expect(data, key, bool, "ssh"))
    return config


def _parse_rsync(data: dict[str, Any]) -> RsyncConfig:
    """Parse rsync configuration from dict."""
    config = RsyncConfig(args=_string_list(data, "args", "rsync"))
    for key in ("binary", "partial_dir", "exclude_from"):
        if key in data:
            setattr(config, key, _expect(data, key, str, "rsync"))
    if not config.partial_dir or "/" in config.partial_dir:
        raise ConfigError("[rsync] 'partial_dir' must be a plain directory name")
    return config


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []

    if config.global_config.quiet and (
        config.global_config.verbose or config.global_config.debug
    ):
        warnings.append("Both 'quiet' and 'verbose'/'debug' are set")

    if not config.ssh.batch_mode:
        warnings.append(
            "ssh batch_mode is disabled; runs may block on password prompts"
        )

    for arg in config.rsync.args:
        if arg.startswith("--link-dest") or arg.startswith("--partial-dir"):
            warnings.append(
                f"rsync argument '{arg}' overrides a value managed by rsync-backup-ng"
            )

    if config.rsync.exclude_from and not Path(config.rsync.exclude_from).expanduser().exists():
        warnings.append(f"Exclude file not found: {config.rsync.exclude_from}")

    return warnings


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    for section in ("global", "ssh", "rsync"):
        if not isinstance(data.get(section, {}), dict):
            raise ConfigError(f"'{section}' must be a table")

    config = Config(
        global_config=_parse_global(data.get("global", {})),
        ssh=_parse_ssh(data.get("ssh", {})),
        rsync=_parse_rsync(data.get("rsync", {})),
    )

    # Validate and collect warnings
    warnings = _validate_config(config)

    return config, warnings
