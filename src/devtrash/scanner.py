"""Background directory walk that streams matches over a queue.

The walk runs on its own thread and is a pure producer: every visited
directory yields a ``PathEvent``, every match a ``ResultEvent``, and the
scan always ends with exactly one ``DoneEvent``. The consumer drains the
queue without blocking (see ``ScanSession.poll``) and stops the walk by
setting the session's cancel flag, which is checked before each entry.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from collections.abc import Callable, Collection, Iterable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from .ignore import IgnoreMatcher
from .models import SECONDS_PER_DAY, Candidate, DoneEvent, PathEvent, ResultEvent, ScanEvent
from .sizing import directory_size

if TYPE_CHECKING:
    from .config import SweepConfig

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def compute_age_days(mtime: float, now: float) -> int:
    """Whole days between ``mtime`` and ``now`` in epoch seconds, never negative."""
    elapsed = int(now) - int(max(mtime, 0.0))
    return max(elapsed, 0) // SECONDS_PER_DAY


def _list_dir(path: str) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(path) as it:
            return sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        logger.debug("Cannot list %s: %s", path, e)
        return []


class ScanSession:
    """Handle on one running scan: its event queue and its cancel flag."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.events: queue.Queue[ScanEvent] = queue.Queue()
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None

    def cancel(self) -> None:
        """Ask the walk to stop before its next entry."""
        self._cancel.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll(self, limit: int | None = None) -> list[ScanEvent]:
        """Drain pending events without blocking.

        Args:
            limit: Maximum number of events to take. None drains everything.

        Returns:
            Events in emission order, possibly empty.

        """
        drained: list[ScanEvent] = []
        while limit is None or len(drained) < limit:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                break
        return drained

    def iter_events(self, timeout: float | None = None) -> Iterator[ScanEvent]:
        """Block on the queue and yield events up to and including ``DoneEvent``.

        Only for non-interactive callers; the interactive loop uses ``poll``.

        Raises:
            queue.Empty: If no event arrives within ``timeout`` seconds.

        """
        while True:
            event = self.events.get(timeout=timeout)
            yield event
            if isinstance(event, DoneEvent):
                return

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _attach(self, thread: threading.Thread) -> None:
        self._thread = thread


class ScanEngine:
    """Finds directories whose bare name is in ``match_names``.

    Args:
        match_names: Directory names treated as cleanup targets.
        ignore_patterns: Glob patterns pruning whole subtrees. Compiled here,
            so a malformed pattern fails before any thread starts.
        auto_select_days: Candidates strictly older than this start selected.
        clock: Source of "now" in epoch seconds.

    """

    def __init__(
        self,
        match_names: Iterable[str],
        ignore_patterns: Iterable[str],
        *,
        auto_select_days: int = 30,
        clock: Clock = time.time,
    ) -> None:
        self.match_names: frozenset[str] = frozenset(match_names)
        self.matcher = IgnoreMatcher(ignore_patterns)
        self.auto_select_days = auto_select_days
        self._clock = clock

    @classmethod
    def from_config(cls, config: SweepConfig, *, clock: Clock = time.time) -> ScanEngine:
        return cls(
            config.match_names,
            config.ignore_patterns,
            auto_select_days=config.auto_select_days,
            clock=clock,
        )

    def start(self, root: Path | str) -> ScanSession:
        """Start walking ``root`` on a background thread.

        Returns:
            The session whose queue receives the scan's events.

        """
        session = ScanSession(Path(root).absolute())
        thread = threading.Thread(
            target=self._run,
            args=(session,),
            name=f"devtrash-scan:{session.root.name or session.root}",
            daemon=True,
        )
        session._attach(thread)
        logger.debug("Starting scan of %s", session.root)
        thread.start()
        return session

    def _run(self, session: ScanSession) -> None:
        emit = session.events.put
        found = 0
        try:
            for candidate in self._walk(session.root, session._cancel, emit):
                found += 1
                emit(ResultEvent(candidate))
        except Exception:
            logger.exception("Scan of %s aborted", session.root)
        finally:
            cancelled = session.cancel_requested
            logger.debug(
                "Scan of %s %s, %d candidates",
                session.root,
                "cancelled" if cancelled else "finished",
                found,
            )
            emit(DoneEvent(cancelled=cancelled))

    def _walk(
        self,
        root: Path,
        cancel: threading.Event,
        emit: Callable[[ScanEvent], None],
    ) -> Iterator[Candidate]:
        """Pre-order depth-first walk yielding candidates.

        Matched and ignored directories are leaves. The root is always
        descended into; the rules apply to what lies beneath it.
        """
        emit(PathEvent(root))
        stack: list[Iterator[os.DirEntry[str]]] = [iter(_list_dir(str(root)))]

        while stack:
            if cancel.is_set():
                return

            entry = next(stack[-1], None)
            if entry is None:
                stack.pop()
                continue

            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError as e:
                logger.debug("Skipping %s: %s", entry.path, e)
                continue

            path = Path(entry.path)
            emit(PathEvent(path))

            if self.matcher.matches(entry.name):
                continue

            if entry.name in self.match_names:
                yield self._make_candidate(entry, path)
                continue

            stack.append(iter(_list_dir(entry.path)))

    def _make_candidate(self, entry: os.DirEntry[str], path: Path) -> Candidate:
        try:
            mtime = entry.stat(follow_symlinks=False).st_mtime
        except OSError as e:
            logger.debug("No mtime for %s, treating as epoch: %s", path, e)
            mtime = 0.0

        age_days = compute_age_days(mtime, self._clock())
        return Candidate(
            path=path,
            age_days=age_days,
            size_bytes=directory_size(path),
            selected=age_days > self.auto_select_days,
        )


def start_scan(
    root: Path | str,
    match_names: Collection[str],
    ignore_patterns: Collection[str],
) -> ScanSession:
    """Start a scan with explicit rule lists and default selection age."""
    return ScanEngine(match_names, ignore_patterns).start(root)
