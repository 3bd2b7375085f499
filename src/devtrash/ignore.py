"""Glob matching of bare directory names against ignore patterns."""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable

from .errors import InvalidPatternError


def _check_pattern(pattern: str) -> None:
    """Reject patterns that would silently never match or mean something else.

    Raises:
        InvalidPatternError: If the pattern is malformed.

    """
    if not pattern:
        raise InvalidPatternError(pattern, "pattern is empty")
    if "/" in pattern:
        raise InvalidPatternError(pattern, "patterns match bare names and cannot contain '/'")
    if "**" in pattern and pattern != "**":
        raise InvalidPatternError(pattern, "'**' must be the whole pattern")

    i = 0
    while i < len(pattern):
        if pattern[i] == "[":
            j = i + 1
            if j < len(pattern) and pattern[j] == "!":
                j += 1
            # A leading ']' is a literal member of the class
            if j < len(pattern) and pattern[j] == "]":
                j += 1
            end = pattern.find("]", j)
            if end == -1:
                raise InvalidPatternError(pattern, "unterminated character class")
            i = end
        i += 1


class IgnoreMatcher:
    """Compiled set of case-sensitive shell-style patterns.

    Patterns are compiled once; ``matches`` tests a bare directory name,
    never a full path.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns: tuple[str, ...] = tuple(patterns)
        compiled: list[re.Pattern[str]] = []
        for pattern in self.patterns:
            _check_pattern(pattern)
            try:
                compiled.append(re.compile(fnmatch.translate(pattern)))
            except re.error as e:
                raise InvalidPatternError(pattern, str(e)) from e
        self._compiled = tuple(compiled)

    def matches(self, name: str) -> bool:
        """Return True if ``name`` matches any pattern."""
        return any(regex.match(name) for regex in self._compiled)

    def __len__(self) -> int:
        return len(self._compiled)

    def __repr__(self) -> str:
        return f"IgnoreMatcher({list(self.patterns)!r})"
