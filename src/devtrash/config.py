"""Configuration management for devtrash."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .ignore import IgnoreMatcher

DEFAULT_MATCH_NAMES: tuple[str, ...] = ("node_modules", "target")
DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (".*",)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class SweepConfig:
    """Configuration for a devtrash session."""

    # Bare directory names treated as cleanup targets
    match_names: list[str] = field(default_factory=lambda: list(DEFAULT_MATCH_NAMES))

    # Glob patterns for directory names whose subtrees are never walked
    ignore_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))

    # Candidates older than this are pre-selected
    auto_select_days: int = 30

    # Control loop tick (seconds) and event budget per tick
    tick_interval: float = 0.1
    max_events_per_tick: int = 1000

    # Logging
    log_file: Path = field(default_factory=lambda: Path.home() / ".cache/devtrash/devtrash.log")
    log_level: str = "INFO"

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".config/devtrash/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> SweepConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration.

        Raises:
            ConfigError: If the file cannot be parsed or holds invalid values.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{config_path}: top level must be a mapping")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> SweepConfig:
        """Create config from dictionary."""
        config = cls()

        if "match_names" in data:
            config.match_names = _string_list(data["match_names"], "match_names")
        if "ignore_patterns" in data:
            config.ignore_patterns = _string_list(data["ignore_patterns"], "ignore_patterns")

        try:
            if "auto_select_days" in data:
                config.auto_select_days = int(data["auto_select_days"])
            if "tick_interval" in data:
                config.tick_interval = float(data["tick_interval"])
            if "max_events_per_tick" in data:
                config.max_events_per_tick = int(data["max_events_per_tick"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if not isinstance(logging_cfg, dict):
                raise ConfigError("logging must be a mapping")
            if "file" in logging_cfg:
                if not isinstance(logging_cfg["file"], str):
                    raise ConfigError("logging.file must be a string")
                config.log_file = Path(os.path.expanduser(logging_cfg["file"]))
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()

        config.validate()
        return config

    def validate(self) -> None:
        """Check settings that would otherwise fail later.

        Raises:
            ConfigError: On the first invalid setting.

        """
        if not self.match_names:
            raise ConfigError("match_names must not be empty")
        if self.tick_interval <= 0:
            raise ConfigError("tick_interval must be positive")
        if self.max_events_per_tick < 1:
            raise ConfigError("max_events_per_tick must be at least 1")
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {self.log_level}")
        # Compiling is the validation
        IgnoreMatcher(self.ignore_patterns)

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "match_names": list(self.match_names),
            "ignore_patterns": list(self.ignore_patterns),
            "auto_select_days": self.auto_select_days,
            "tick_interval": self.tick_interval,
            "max_events_per_tick": self.max_events_per_tick,
            "logging": {
                "file": str(self.log_file),
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def _string_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{key} must be a list of strings")
    return list(value)
