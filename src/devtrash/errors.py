"""Exception types raised by devtrash."""

from __future__ import annotations


class DevtrashError(Exception):
    """Base class for devtrash errors."""


class ConfigError(DevtrashError):
    """Invalid or unreadable configuration."""


class InvalidPatternError(ConfigError):
    """An ignore pattern could not be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid ignore pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason
