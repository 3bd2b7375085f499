"""Data types shared by the scanner, the result set and the workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class Candidate:
    """A discovered directory eligible for cleanup.

    ``path``, ``age_days`` and ``size_bytes`` are fixed at discovery;
    only ``selected`` changes afterwards.
    """

    path: Path
    age_days: int
    size_bytes: int
    selected: bool = False


@dataclass(frozen=True)
class PathEvent:
    """Progress: the walk is visiting ``path``."""

    path: Path


@dataclass(frozen=True)
class ResultEvent:
    """A matching directory was found."""

    candidate: Candidate


@dataclass(frozen=True)
class DoneEvent:
    """The walk finished or was cancelled. Always the last event of a scan."""

    cancelled: bool = False


ScanEvent = Union[PathEvent, ResultEvent, DoneEvent]


@dataclass(frozen=True)
class ScanStats:
    """Aggregates over the current result set."""

    total_count: int = 0
    selected_count: int = 0
    total_size: int = 0
    selected_size: int = 0


@dataclass(frozen=True)
class DeletionSummary:
    """Outcome of a trash batch. Only successful moves are counted."""

    count: int
    size_bytes: int
    failed: tuple[Path, ...] = field(default_factory=tuple)
