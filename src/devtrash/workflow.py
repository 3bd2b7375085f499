"""Scan / select / trash state machine driven by the foreground loop."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Union

from .models import Candidate, DeletionSummary, DoneEvent, PathEvent, ResultEvent, ScanStats
from .results import ResultSet
from .scanner import ScanEngine, ScanSession
from .trash import move_to_trash

if TYPE_CHECKING:
    from .config import SweepConfig

logger = logging.getLogger(__name__)

TrashFunc = Callable[[Path], bool]


class WorkflowState(str, Enum):
    """Phase of a devtrash session.

    Attributes:
        SCANNING: The walk is running; results stream in.
        STOPPING: Cancellation was confirmed; waiting for the walk's Done.
        SCAN_COMPLETE: Results are final and selectable.
        DELETION_COMPLETE: A trash batch ran; only acknowledgement remains.
    """

    SCANNING = "scanning"
    STOPPING = "stopping"
    SCAN_COMPLETE = "scan_complete"
    DELETION_COMPLETE = "deletion_complete"


class Intent(str, Enum):
    """Discrete user requests fed back by the UI."""

    NAVIGATE_UP = "navigate_up"
    NAVIGATE_DOWN = "navigate_down"
    TOGGLE = "toggle"
    SELECT_ALL = "select_all"
    DESELECT_ALL = "deselect_all"
    REQUEST_CLEAN = "request_clean"
    REQUEST_STOP = "request_stop"
    CONFIRM_YES = "confirm_yes"
    CONFIRM_NO = "confirm_no"
    QUIT = "quit"


@dataclass(frozen=True)
class StopScan:
    """Pending request to cancel the running scan."""

    @property
    def label(self) -> str:
        return "Stop the current scan"


@dataclass(frozen=True)
class DeleteSelected:
    """Pending request to trash the selected candidates."""

    count: int

    @property
    def label(self) -> str:
        return f"Move {self.count} selected items to trash"


Confirmation = Union[StopScan, DeleteSelected]


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of the workflow for one render."""

    state: WorkflowState
    root: Path
    current_path: Path | None
    candidates: tuple[Candidate, ...]
    stats: ScanStats
    cursor: int
    confirmation: str | None
    summary: DeletionSummary | None
    match_names: tuple[str, ...]
    ignore_patterns: tuple[str, ...]


class Workflow:
    """Owns the result set, the scan session and the confirmation gate.

    All methods run on the foreground thread. The only state shared with the
    scan worker is the session's queue and cancel flag.
    """

    def __init__(
        self,
        config: SweepConfig,
        root: Path,
        *,
        engine: ScanEngine | None = None,
        trash: TrashFunc = move_to_trash,
    ) -> None:
        """Initialize the workflow.

        Args:
            config: Session configuration.
            root: Directory to scan.
            engine: Scan engine; built from ``config`` if None. Building it
                compiles the ignore patterns, so config errors surface here.
            trash: Recoverable-delete primitive returning success.

        """
        self.config = config
        self.root = root
        self.engine = engine or ScanEngine.from_config(config)
        self._trash = trash

        self.state = WorkflowState.SCANNING
        self.results = ResultSet()
        self.cursor = 0
        self.current_path: Path | None = None
        self.pending: Confirmation | None = None
        self.summary: DeletionSummary | None = None
        self.should_exit = False
        self._session: ScanSession | None = None

    @property
    def session(self) -> ScanSession | None:
        return self._session

    def start_scan(self) -> None:
        """Begin a fresh scan, discarding previous results."""
        if self._session is not None:
            self._session.cancel()

        self.results.clear()
        self.cursor = 0
        self.current_path = None
        self.pending = None
        self.summary = None
        self.state = WorkflowState.SCANNING

        logger.info("Scanning %s", self.root)
        self._session = self.engine.start(self.root)

    def poll(self) -> int:
        """Fold pending scan events into the workflow without blocking.

        Returns:
            Number of events processed.

        """
        if self._session is None:
            return 0

        events = self._session.poll(self.config.max_events_per_tick)
        for event in events:
            if isinstance(event, PathEvent):
                self.current_path = event.path
            elif isinstance(event, ResultEvent):
                self.results.insert(event.candidate)
                logger.debug("Found %s", event.candidate.path)
            elif isinstance(event, DoneEvent):
                self._finish_scan(event)
                break
        return len(events)

    def handle(self, intent: Intent) -> None:
        """Apply one user intent."""
        if self.state is WorkflowState.DELETION_COMPLETE:
            if intent in (Intent.CONFIRM_YES, Intent.QUIT):
                self.should_exit = True
            return

        if self.pending is not None:
            if intent is Intent.CONFIRM_YES:
                self._accept()
            elif intent is Intent.CONFIRM_NO:
                self.pending = None
            return

        if self.state is WorkflowState.SCANNING:
            if intent is Intent.REQUEST_STOP:
                self.pending = StopScan()
            elif intent is Intent.QUIT:
                self._quit()
        elif self.state is WorkflowState.SCAN_COMPLETE:
            self._handle_results(intent)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            state=self.state,
            root=self.root,
            current_path=self.current_path,
            candidates=self.results.candidates,
            stats=self.results.stats,
            cursor=self.cursor,
            confirmation=self.pending.label if self.pending is not None else None,
            summary=self.summary,
            match_names=tuple(self.config.match_names),
            ignore_patterns=tuple(self.config.ignore_patterns),
        )

    def _handle_results(self, intent: Intent) -> None:
        if intent is Intent.NAVIGATE_UP:
            self.cursor = max(self.cursor - 1, 0)
        elif intent is Intent.NAVIGATE_DOWN:
            self.cursor = min(self.cursor + 1, max(len(self.results) - 1, 0))
        elif intent is Intent.TOGGLE:
            self.results.toggle(self.cursor)
        elif intent is Intent.SELECT_ALL:
            self.results.select_all()
        elif intent is Intent.DESELECT_ALL:
            self.results.deselect_all()
        elif intent is Intent.REQUEST_CLEAN:
            count = self.results.stats.selected_count
            if count > 0:
                self.pending = DeleteSelected(count)
        elif intent is Intent.QUIT:
            self._quit()

    def _accept(self) -> None:
        action = self.pending
        self.pending = None

        if isinstance(action, StopScan):
            if self.state is WorkflowState.SCANNING and self._session is not None:
                logger.info("Stopping scan of %s", self.root)
                self._session.cancel()
                self.state = WorkflowState.STOPPING
        elif isinstance(action, DeleteSelected):
            self.summary = self._trash_selected()
            self.state = WorkflowState.DELETION_COMPLETE

    def _finish_scan(self, event: DoneEvent) -> None:
        stats = self.results.stats
        logger.info(
            "Scan %s: %d directories, %d bytes",
            "stopped" if event.cancelled else "complete",
            stats.total_count,
            stats.total_size,
        )
        self.state = WorkflowState.SCAN_COMPLETE
        self.current_path = None
        self._session = None
        if isinstance(self.pending, StopScan):
            self.pending = None

    def _trash_selected(self) -> DeletionSummary:
        count = 0
        size = 0
        failed: list[Path] = []

        for candidate in self.results.selected():
            try:
                moved = self._trash(candidate.path)
            except Exception:
                logger.exception("Error trashing %s", candidate.path)
                moved = False

            if moved:
                count += 1
                size += candidate.size_bytes
            else:
                failed.append(candidate.path)

        if failed:
            logger.warning("%d directories could not be moved to trash", len(failed))
        logger.info("Moved %d directories to trash, freeing %d bytes", count, size)
        return DeletionSummary(count=count, size_bytes=size, failed=tuple(failed))

    def _quit(self) -> None:
        if self._session is not None:
            self._session.cancel()
        self.should_exit = True
