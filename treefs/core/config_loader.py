"""
treefs Configuration Loader

Settings come from three dataclass sections (``filesystem``, ``logging``,
``shell``) that a JSON file may override key by key:

    {
      "filesystem": {"max_children": 128, "max_open_files": 64},
      "logging": {"level": "DEBUG", "log_file": "treefs.log"},
      "shell": {"prompt": "$ "}
    }

Anything left out keeps its default. Limits are checked on load and on
every runtime ``set``.
"""

import json
import threading
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

from treefs.exceptions import ConfigLoadError, ConfigValidationError


@dataclass
class FilesystemConfig:
    """Bounds of the in-memory tree."""
    name_max: int = 31
    max_children: int = 64
    max_open_files: int = 32
    initial_capacity: int = 64
    max_file_size: int = 10 * 1024 * 1024


@dataclass
class LoggingConfig:
    """Where log records go and from which level on."""
    level: str = "WARNING"
    log_file: Optional[str] = None
    console_output: bool = True


@dataclass
class ShellConfig:
    """Interactive shell settings."""
    prompt: str = "fsh> "
    history_size: int = 1000


@dataclass
class Config:
    """All configuration sections."""
    filesystem: FilesystemConfig = field(default_factory=FilesystemConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)


_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_filesystem_config(config: FilesystemConfig) -> FilesystemConfig:
    """Every tree limit must be a positive integer."""
    for item in fields(FilesystemConfig):
        value = getattr(config, item.name)
        if not _is_count(value) or value <= 0:
            raise ConfigValidationError(
                f"filesystem.{item.name} must be a positive integer, got {value!r}",
                key=f"filesystem.{item.name}"
            )
    return config


def validate_config(config: Config) -> Config:
    """
    Check that every limit is usable.

    Raises:
        ConfigValidationError: On the first invalid value found
    """
    validate_filesystem_config(config.filesystem)

    if str(config.logging.level).upper() not in _LOG_LEVELS:
        raise ConfigValidationError(
            f"Unknown log level: {config.logging.level!r}",
            key="logging.level"
        )

    history = config.shell.history_size
    if not _is_count(history) or history < 0:
        raise ConfigValidationError(
            f"shell.history_size must be a non-negative integer, got {history!r}",
            key="shell.history_size"
        )

    return config


def _section(section_type: type, name: str, data: Any) -> Any:
    """Build one section from its JSON object, rejecting unknown keys."""
    if not isinstance(data, dict):
        raise ConfigValidationError(f"Section '{name}' must be an object", key=name)
    known = {item.name for item in fields(section_type)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigValidationError(
            f"Unknown setting: {name}.{unknown[0]}",
            key=f"{name}.{unknown[0]}"
        )
    return section_type(**data)


class ConfigLoader:
    """
    Process-wide configuration holder.

    Example:
        >>> loader = ConfigLoader()
        >>> loader.load('treefs.json').filesystem.max_children
        64
        >>> loader.get('shell.prompt')
        'fsh> '
    """

    _instance: Optional['ConfigLoader'] = None
    _lock = threading.Lock()

    _config: Config

    def __new__(cls) -> 'ConfigLoader':
        with cls._lock:
            if cls._instance is None:
                loader = super().__new__(cls)
                loader._config = Config()
                cls._instance = loader
            return cls._instance

    @property
    def config(self) -> Config:
        """The active configuration."""
        return self._config

    def load(self, config_path: str) -> Config:
        """
        Replace the active configuration with the contents of a JSON file.

        The active configuration is left alone if anything is wrong.

        Raises:
            ConfigLoadError: Missing, unreadable or non-JSON file
            ConfigValidationError: Unknown section or key, or a bad value
        """
        path = Path(config_path)
        try:
            text = path.read_text(encoding='utf-8')
        except FileNotFoundError as e:
            raise ConfigLoadError(
                f"Configuration file not found: {config_path}",
                config_path=config_path
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Cannot read configuration file: {e}",
                config_path=config_path
            ) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigLoadError(
                f"Invalid JSON in configuration file: {e}",
                config_path=config_path
            ) from e

        if not isinstance(data, dict):
            raise ConfigLoadError(
                "Configuration root must be a JSON object",
                config_path=config_path
            )

        self._config = validate_config(self.from_dict(data))
        return self._config

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Config:
        """Build a Config from nested dicts; missing keys keep their defaults."""
        sections = {item.name: item for item in fields(Config)}
        config = Config()
        for name, values in data.items():
            if name not in sections:
                raise ConfigValidationError(f"Unknown section: {name}", key=name)
            section_type = type(getattr(config, name))
            setattr(config, name, _section(section_type, name, values))
        return config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key such as ``'filesystem.max_children'``.

        Returns ``default`` for unknown keys.
        """
        value: Any = self._config
        for part in key.split('.'):
            if not hasattr(value, part):
                return default
            value = getattr(value, part)
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Change one setting at runtime.

        Filesystems created afterwards pick it up; nothing is written to
        disk. An invalid value is rolled back before the error is raised.
        """
        section_name, _, option = key.partition('.')
        section = getattr(self._config, section_name, None)
        if section is None or not option or not hasattr(section, option):
            raise ConfigValidationError(f"Invalid configuration key: {key}", key=key)

        previous = getattr(section, option)
        setattr(section, option, value)
        try:
            validate_config(self._config)
        except ConfigValidationError:
            setattr(section, option, previous)
            raise

    def reset(self) -> None:
        """Go back to the defaults."""
        self._config = Config()

    def to_dict(self) -> dict[str, Any]:
        """The active configuration as nested dicts."""
        return asdict(self._config)


def get_config() -> Config:
    """The active configuration of the process-wide loader."""
    return ConfigLoader().config
