"""Tests for the scan / select / trash state machine."""

from __future__ import annotations

import os
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from devtrash.config import SweepConfig
from devtrash.models import Candidate, DeletionSummary, DoneEvent, PathEvent, ResultEvent
from devtrash.scanner import ScanSession
from devtrash.workflow import DeleteSelected, Intent, StopScan, Workflow, WorkflowState


class _FakeEngine:
    """Engine whose sessions are fed by the test instead of a thread."""

    def __init__(self) -> None:
        self.sessions: list[ScanSession] = []

    def start(self, root: Path) -> ScanSession:
        session = ScanSession(root)
        self.sessions.append(session)
        return session

    @property
    def session(self) -> ScanSession:
        return self.sessions[-1]


def _candidate(name: str, age_days: int, size_bytes: int) -> Candidate:
    return Candidate(
        path=Path("/work") / name / "node_modules",
        age_days=age_days,
        size_bytes=size_bytes,
        selected=age_days > 30,
    )


@pytest.fixture
def config(tmp_path: Path) -> SweepConfig:
    """Create a test configuration."""
    cfg = SweepConfig()
    cfg.log_file = tmp_path / "test.log"
    return cfg


@pytest.fixture
def engine() -> _FakeEngine:
    return _FakeEngine()


@pytest.fixture
def trash() -> MagicMock:
    """Trash primitive that always succeeds."""
    return MagicMock(return_value=True)


@pytest.fixture
def workflow(config: SweepConfig, engine: _FakeEngine, trash: MagicMock) -> Workflow:
    """Workflow with a scan started on the fake engine."""
    wf = Workflow(config, Path("/work"), engine=engine, trash=trash)  # type: ignore[arg-type]
    wf.start_scan()
    return wf


def _feed(workflow: Workflow, engine: _FakeEngine, *events: object) -> None:
    for event in events:
        engine.session.events.put(event)
    workflow.poll()


def _complete(workflow: Workflow, engine: _FakeEngine, *candidates: Candidate) -> None:
    """Deliver the candidates and a Done, leaving the workflow in SCAN_COMPLETE."""
    _feed(workflow, engine, *(ResultEvent(c) for c in candidates), DoneEvent())
    assert workflow.state is WorkflowState.SCAN_COMPLETE


class TestScanning:
    """Tests for event folding while scanning."""

    def test_initial_state(self, workflow: Workflow) -> None:
        """A started workflow is scanning with no results."""
        assert workflow.state is WorkflowState.SCANNING
        assert workflow.session is not None
        assert len(workflow.results) == 0

    def test_progress_updates_current_path(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """The latest Path event wins."""
        _feed(workflow, engine, PathEvent(Path("/work/a")), PathEvent(Path("/work/b")))

        assert workflow.current_path == Path("/work/b")

    def test_results_inserted_sorted(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Results are folded into the result set in age order."""
        _feed(
            workflow,
            engine,
            ResultEvent(_candidate("old", 60, 10)),
            ResultEvent(_candidate("new", 1, 20)),
        )

        assert [c.age_days for c in workflow.results] == [1, 60]
        assert workflow.results.stats.total_size == 30
        assert workflow.state is WorkflowState.SCANNING

    def test_done_completes_scan(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Done moves to SCAN_COMPLETE and drops the session."""
        _feed(workflow, engine, PathEvent(Path("/work/a")), DoneEvent())

        assert workflow.state is WorkflowState.SCAN_COMPLETE
        assert workflow.current_path is None
        assert workflow.session is None
        assert workflow.poll() == 0

    def test_poll_respects_tick_budget(
        self, config: SweepConfig, engine: _FakeEngine, trash: MagicMock
    ) -> None:
        """No more than max_events_per_tick events are folded per poll."""
        config.max_events_per_tick = 2
        wf = Workflow(config, Path("/work"), engine=engine, trash=trash)  # type: ignore[arg-type]
        wf.start_scan()
        for i in range(5):
            engine.session.events.put(PathEvent(Path(f"/work/{i}")))

        assert wf.poll() == 2
        assert wf.current_path == Path("/work/1")
        assert wf.poll() == 2
        assert wf.poll() == 1
        assert wf.poll() == 0

    def test_selection_ignored_while_scanning(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Selection intents do nothing until the scan is complete."""
        _feed(workflow, engine, ResultEvent(_candidate("a", 1, 10)))

        workflow.handle(Intent.TOGGLE)
        workflow.handle(Intent.SELECT_ALL)
        workflow.handle(Intent.REQUEST_CLEAN)

        assert workflow.results.stats.selected_count == 0
        assert workflow.pending is None

    def test_restart_clears_results(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Starting again cancels the old session and empties the results."""
        first = engine.session
        _feed(workflow, engine, ResultEvent(_candidate("a", 40, 10)))

        workflow.start_scan()

        assert first.cancel_requested
        assert engine.session is not first
        assert len(workflow.results) == 0
        assert workflow.state is WorkflowState.SCANNING


class TestStopScan:
    """Tests for the confirmed cancellation path."""

    def test_request_sets_confirmation(self, workflow: Workflow) -> None:
        """A stop request only asks for confirmation."""
        workflow.handle(Intent.REQUEST_STOP)

        assert workflow.pending == StopScan()
        assert workflow.snapshot().confirmation == "Stop the current scan"
        assert workflow.state is WorkflowState.SCANNING
        assert not workflow.session.cancel_requested

    def test_decline(self, workflow: Workflow) -> None:
        """Declining leaves the scan running."""
        workflow.handle(Intent.REQUEST_STOP)
        workflow.handle(Intent.CONFIRM_NO)

        assert workflow.pending is None
        assert workflow.state is WorkflowState.SCANNING
        assert not workflow.session.cancel_requested

    def test_accept_then_done(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Accepting signals the worker; its Done completes the scan."""
        session = engine.session
        workflow.handle(Intent.REQUEST_STOP)
        workflow.handle(Intent.CONFIRM_YES)

        assert session.cancel_requested
        assert workflow.state is WorkflowState.STOPPING

        for intent in Intent:
            workflow.handle(intent)
        assert workflow.state is WorkflowState.STOPPING
        assert workflow.pending is None
        assert not workflow.should_exit

        _feed(workflow, engine, DoneEvent(cancelled=True))
        assert workflow.state is WorkflowState.SCAN_COMPLETE

    def test_done_while_confirming(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """If the scan ends first, the stale stop confirmation is dropped."""
        workflow.handle(Intent.REQUEST_STOP)
        _feed(workflow, engine, DoneEvent())

        assert workflow.state is WorkflowState.SCAN_COMPLETE
        assert workflow.pending is None

    def test_confirmation_is_modal(self, workflow: Workflow) -> None:
        """While confirming, only yes and no are honored."""
        workflow.handle(Intent.REQUEST_STOP)

        workflow.handle(Intent.QUIT)
        workflow.handle(Intent.REQUEST_CLEAN)

        assert workflow.pending == StopScan()
        assert not workflow.should_exit

    def test_quit_while_scanning(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Quitting mid-scan cancels the worker and exits."""
        workflow.handle(Intent.QUIT)

        assert workflow.should_exit
        assert engine.session.cancel_requested


class TestSelection:
    """Tests for selection commands after the scan."""

    def test_navigation_clamped(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """The cursor never leaves the list."""
        _complete(workflow, engine, _candidate("a", 1, 1), _candidate("b", 2, 1))

        workflow.handle(Intent.NAVIGATE_UP)
        assert workflow.cursor == 0
        workflow.handle(Intent.NAVIGATE_DOWN)
        workflow.handle(Intent.NAVIGATE_DOWN)
        workflow.handle(Intent.NAVIGATE_DOWN)
        assert workflow.cursor == 1
        workflow.handle(Intent.NAVIGATE_UP)
        assert workflow.cursor == 0

    def test_navigation_on_empty_list(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Navigating and toggling an empty list is harmless."""
        _complete(workflow, engine)

        workflow.handle(Intent.NAVIGATE_DOWN)
        workflow.handle(Intent.TOGGLE)

        assert workflow.cursor == 0
        assert workflow.results.stats.selected_count == 0

    def test_toggle_at_cursor(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Toggle flips the row under the cursor without changing state."""
        _complete(workflow, engine, _candidate("a", 1, 5), _candidate("b", 2, 7))

        workflow.handle(Intent.NAVIGATE_DOWN)
        workflow.handle(Intent.TOGGLE)

        assert [c.selected for c in workflow.results] == [False, True]
        assert workflow.results.stats.selected_size == 7
        assert workflow.state is WorkflowState.SCAN_COMPLETE

    def test_select_and_deselect_all(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Bulk selection commands update the aggregates."""
        _complete(workflow, engine, _candidate("a", 1, 5), _candidate("b", 45, 7))

        workflow.handle(Intent.SELECT_ALL)
        assert workflow.results.stats.selected_count == 2
        workflow.handle(Intent.DESELECT_ALL)
        assert workflow.results.stats.selected_count == 0

    def test_clean_requires_selection(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """With nothing selected a clean request is ignored."""
        _complete(workflow, engine, _candidate("a", 1, 5))

        workflow.handle(Intent.REQUEST_CLEAN)

        assert workflow.pending is None

    def test_clean_label(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """The confirmation names the number of selected items."""
        _complete(workflow, engine, _candidate("a", 40, 5), _candidate("b", 45, 7))

        workflow.handle(Intent.REQUEST_CLEAN)

        assert workflow.pending == DeleteSelected(2)
        assert workflow.snapshot().confirmation == "Move 2 selected items to trash"

    def test_quit(self, workflow: Workflow, engine: _FakeEngine) -> None:
        """Quit ends the session from the results view."""
        _complete(workflow, engine)

        workflow.handle(Intent.QUIT)

        assert workflow.should_exit


class TestDeletion:
    """Tests for the confirmed trash batch."""

    def test_decline_has_no_side_effect(
        self, workflow: Workflow, engine: _FakeEngine, trash: MagicMock
    ) -> None:
        """Declining the clean request trashes nothing."""
        _complete(workflow, engine, _candidate("a", 40, 5))

        workflow.handle(Intent.REQUEST_CLEAN)
        workflow.handle(Intent.CONFIRM_NO)

        trash.assert_not_called()
        assert workflow.state is WorkflowState.SCAN_COMPLETE
        assert workflow.pending is None

    def test_accept_trashes_selected_only(
        self, workflow: Workflow, engine: _FakeEngine, trash: MagicMock
    ) -> None:
        """Only selected candidates are moved."""
        keep = _candidate("keep", 3, 100)
        stale = _candidate("stale", 50, 200)
        _complete(workflow, engine, keep, stale)

        workflow.handle(Intent.REQUEST_CLEAN)
        workflow.handle(Intent.CONFIRM_YES)

        trash.assert_called_once_with(stale.path)
        assert workflow.state is WorkflowState.DELETION_COMPLETE
        assert workflow.summary == DeletionSummary(count=1, size_bytes=200)

    def test_partial_failure(self, workflow: Workflow, engine: _FakeEngine, trash: MagicMock) -> None:
        """A failed move is excluded from the summary and does not stop the batch."""
        failing = _candidate("failing", 40, 1000)
        working = _candidate("working", 50, 300)
        _complete(workflow, engine, failing, working)
        trash.side_effect = lambda path: path != failing.path

        workflow.handle(Intent.REQUEST_CLEAN)
        workflow.handle(Intent.CONFIRM_YES)

        assert trash.call_count == 2
        assert workflow.summary is not None
        assert workflow.summary.count == 1
        assert workflow.summary.size_bytes == 300
        assert workflow.summary.failed == (failing.path,)

    def test_trash_exception_counts_as_failure(
        self, workflow: Workflow, engine: _FakeEngine, trash: MagicMock
    ) -> None:
        """A primitive that raises OSError is treated as a failed move."""
        _complete(workflow, engine, _candidate("a", 40, 5), _candidate("b", 41, 6))
        trash.side_effect = [OSError("busy"), True]

        workflow.handle(Intent.REQUEST_CLEAN)
        workflow.handle(Intent.CONFIRM_YES)

        assert workflow.summary == DeletionSummary(
            count=1, size_bytes=6, failed=(Path("/work/a/node_modules"),)
        )

    def test_unexpected_trash_error_does_not_abort_batch(
        self, workflow: Workflow, engine: _FakeEngine, trash: MagicMock
    ) -> None:
        """A non-OS error from the primitive fails one item, not the batch."""
        _complete(workflow, engine, _candidate("a", 40, 5), _candidate("b", 41, 6))
        trash.side_effect = [RuntimeError("backend crashed"), True]

        workflow.handle(Intent.REQUEST_CLEAN)
        workflow.handle(Intent.CONFIRM_YES)

        assert trash.call_count == 2
        assert workflow.state is WorkflowState.DELETION_COMPLETE
        assert workflow.summary == DeletionSummary(
            count=1, size_bytes=6, failed=(Path("/work/a/node_modules"),)
        )

    def test_only_acknowledgement_after_deletion(
        self, workflow: Workflow, engine: _FakeEngine, trash: MagicMock
    ) -> None:
        """After deletion every intent but yes and quit is ignored."""
        _complete(workflow, engine, _candidate("a", 40, 5))
        workflow.handle(Intent.REQUEST_CLEAN)
        workflow.handle(Intent.CONFIRM_YES)

        for intent in (Intent.TOGGLE, Intent.SELECT_ALL, Intent.REQUEST_CLEAN, Intent.CONFIRM_NO):
            workflow.handle(intent)
            assert not workflow.should_exit
        assert trash.call_count == 1

        workflow.handle(Intent.CONFIRM_YES)
        assert workflow.should_exit


class TestSnapshot:
    """Tests for the render view."""

    def test_snapshot_fields(self, workflow: Workflow, engine: _FakeEngine, config: SweepConfig) -> None:
        """The snapshot mirrors the workflow state."""
        _feed(workflow, engine, PathEvent(Path("/work/x")), ResultEvent(_candidate("a", 40, 9)))

        snapshot = workflow.snapshot()

        assert snapshot.state is WorkflowState.SCANNING
        assert snapshot.root == Path("/work")
        assert snapshot.current_path == Path("/work/x")
        assert len(snapshot.candidates) == 1
        assert snapshot.stats.selected_size == 9
        assert snapshot.confirmation is None
        assert snapshot.summary is None
        assert snapshot.match_names == tuple(config.match_names)
        assert snapshot.ignore_patterns == tuple(config.ignore_patterns)


class TestWithRealScan:
    """Workflow driven by the threaded scan engine."""

    @staticmethod
    def _poll_until(workflow: Workflow, state: WorkflowState, timeout: float = 10.0) -> None:
        deadline = time.monotonic() + timeout
        while workflow.state is not state:
            assert time.monotonic() < deadline, f"stuck in {workflow.state}"
            workflow.poll()
            time.sleep(0.01)

    def test_scan_select_and_trash(self, config: SweepConfig, tmp_path: Path, trash: MagicMock) -> None:
        """A full session from scan to deletion summary."""
        stale = tmp_path / "old" / "node_modules"
        stale.mkdir(parents=True)
        (stale / "index.js").write_bytes(b"x" * 64)
        stamp = time.time() - 90 * 86400
        os.utime(stale, (stamp, stamp))
        (tmp_path / "new" / "target").mkdir(parents=True)

        workflow = Workflow(config, tmp_path, trash=trash)
        workflow.start_scan()
        self._poll_until(workflow, WorkflowState.SCAN_COMPLETE)

        assert workflow.results.stats.total_count == 2
        assert workflow.results.stats.selected_count == 1

        workflow.handle(Intent.REQUEST_CLEAN)
        workflow.handle(Intent.CONFIRM_YES)

        trash.assert_called_once_with(stale)
        assert workflow.summary == DeletionSummary(count=1, size_bytes=64)

    def test_stop_always_completes(self, config: SweepConfig, tmp_path: Path, trash: MagicMock) -> None:
        """A confirmed stop reaches SCAN_COMPLETE without hanging."""
        for i in range(50):
            (tmp_path / f"p{i}" / "src" / "node_modules").mkdir(parents=True)

        workflow = Workflow(config, tmp_path, trash=trash)
        workflow.start_scan()
        workflow.handle(Intent.REQUEST_STOP)
        workflow.handle(Intent.CONFIRM_YES)

        assert workflow.state in (WorkflowState.STOPPING, WorkflowState.SCAN_COMPLETE)
        self._poll_until(workflow, WorkflowState.SCAN_COMPLETE)
        assert workflow.session is None
