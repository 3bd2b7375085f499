"""Terminal rendering and key input for the interactive session."""

from __future__ import annotations

import logging
import os
import select
import sys
import time
from types import TracebackType
from typing import IO, Any

from rich import box
from rich.align import Align
from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

try:
    import termios
    import tty

    _HAS_TERMIOS = True
except ImportError:
    _HAS_TERMIOS = False

from .models import DeletionSummary
from .workflow import Intent, Snapshot, WorkflowState

logger = logging.getLogger(__name__)

SPINNER_CHARS = "⠁⠂⠄⡀⢀⠠⠐⠈"

HELP_TEXT = (
    "Esc: cancel/quit | ↑/↓: up/down | Space: toggle selection\n"
    "a/d: select/deselect all | c: clean selected"
)

HEADER_HEIGHT = 3
FOOTER_HEIGHT = 4

_GIB = 1024**3

_ESCAPE_SEQUENCES = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1bOA": "up",
    "\x1bOB": "down",
}


def format_size(size_bytes: int) -> str:
    """Format a byte count the way the candidate list shows it."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024**2:
        return f"{size_bytes // 1024} KB"
    if size_bytes < _GIB:
        return f"{size_bytes // 1024**2} MB"
    return f"{size_bytes / _GIB:.1f} GB"


def format_gb(size_bytes: int) -> str:
    return f"{size_bytes / _GIB:.2f} GB"


def intent_for_key(key: str, snapshot: Snapshot) -> Intent | None:
    """Map a key name to an intent given what is on screen.

    Args:
        key: Key name as returned by ``KeyReader.read_key``.
        snapshot: Current workflow view.

    Returns:
        The intent, or None if the key means nothing in this state.

    """
    state = snapshot.state

    if state is WorkflowState.DELETION_COMPLETE:
        if key in ("y", "Y", "enter"):
            return Intent.CONFIRM_YES
        if key in ("q", "esc"):
            return Intent.QUIT
        return None

    if snapshot.confirmation is not None:
        if key in ("y", "Y"):
            return Intent.CONFIRM_YES
        if key in ("n", "N", "esc"):
            return Intent.CONFIRM_NO
        return None

    if state is WorkflowState.SCANNING:
        if key == "esc":
            return Intent.REQUEST_STOP
        if key == "q":
            return Intent.QUIT
        return None

    if state is WorkflowState.SCAN_COMPLETE:
        return {
            "up": Intent.NAVIGATE_UP,
            "k": Intent.NAVIGATE_UP,
            "down": Intent.NAVIGATE_DOWN,
            "j": Intent.NAVIGATE_DOWN,
            "space": Intent.TOGGLE,
            "a": Intent.SELECT_ALL,
            "d": Intent.DESELECT_ALL,
            "c": Intent.REQUEST_CLEAN,
            "enter": Intent.REQUEST_CLEAN,
            "q": Intent.QUIT,
            "esc": Intent.QUIT,
        }.get(key)

    # Stopping: wait for the walk to finish
    return None


class KeyReader:
    """Reads single keypresses with a timeout.

    Puts the terminal in cbreak mode for the duration of the ``with`` block,
    so Ctrl-C still raises KeyboardInterrupt.
    """

    def __init__(self, stream: IO[Any] | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._fd: int | None = None
        self._eof = False
        self._saved: list | None = None

    def __enter__(self) -> KeyReader:
        try:
            self._fd = self._stream.fileno()
        except (AttributeError, OSError, ValueError):
            self._fd = None
            return self

        if _HAS_TERMIOS and os.isatty(self._fd):
            self._saved = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._saved is not None and self._fd is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
            self._saved = None

    def read_key(self, timeout: float) -> str | None:
        """Wait up to ``timeout`` seconds for a key.

        Returns:
            A single character, or one of "up", "down", "enter", "space",
            "esc"; None on timeout or when input is not readable. Once input
            is exhausted every call waits out ``timeout`` and returns None.

        """
        if self._fd is None or self._eof:
            time.sleep(timeout)
            return None
        if not self._ready(timeout):
            return None

        data = os.read(self._fd, 1)
        if not data:
            logger.debug("Key input closed")
            self._eof = True
            return None
        char = data.decode(errors="ignore")

        if char == "\x1b":
            sequence = char
            while len(sequence) < 3 and self._ready(0.01):
                sequence += os.read(self._fd, 1).decode(errors="ignore")
            return _ESCAPE_SEQUENCES.get(sequence, "esc" if sequence == "\x1b" else None)
        if char in ("\r", "\n"):
            return "enter"
        if char == " ":
            return "space"
        return char or None

    def _ready(self, timeout: float) -> bool:
        readable, _, _ = select.select([self._fd], [], [], timeout)
        return bool(readable)


def render(snapshot: Snapshot, frame: int = 0, height: int = 24) -> RenderableType:
    """Build the full-screen view for one tick."""
    layout = Layout()
    layout.split_column(
        Layout(_header(snapshot, frame), name="header", size=HEADER_HEIGHT),
        Layout(name="body"),
        Layout(_footer(snapshot), name="footer", size=FOOTER_HEIGHT),
    )
    layout["body"].split_row(
        Layout(name="rules", ratio=3),
        Layout(name="candidates", ratio=7),
    )
    layout["body"]["rules"].split_column(
        Layout(_name_list("Folders to clean", [f"[x] {n}" for n in snapshot.match_names])),
        Layout(_name_list("Ignore Patterns", list(snapshot.ignore_patterns))),
    )

    body_rows = max(height - HEADER_HEIGHT - FOOTER_HEIGHT - 2, 1)
    if snapshot.summary is not None:
        layout["body"]["candidates"].update(_summary_panel(snapshot.summary))
    else:
        layout["body"]["candidates"].update(_candidate_panel(snapshot, body_rows))
    return layout


def _header(snapshot: Snapshot, frame: int) -> Panel:
    state = snapshot.state
    if state is WorkflowState.SCANNING:
        title = f"Scanning: {snapshot.root}"
        spinner = SPINNER_CHARS[frame % len(SPINNER_CHARS)]
        current = str(snapshot.current_path) if snapshot.current_path else ""
        body = Text(f"{spinner} {current}", overflow="ellipsis", no_wrap=True)
    elif state is WorkflowState.STOPPING:
        title = f"Stopping: {snapshot.root}"
        body = Text("Please wait...")
    else:
        title = f"Scanned: {snapshot.root}"
        stats = snapshot.stats
        body = Text(
            f"Found {stats.total_count} folders ({format_gb(stats.total_size)}), "
            f"{stats.selected_count} selected"
        )
    return Panel(body, title=Text(title), title_align="left")


def _name_list(title: str, names: list[str]) -> Panel:
    return Panel(Text("\n".join(names)), title=title, title_align="left")


def _candidate_panel(snapshot: Snapshot, rows: int) -> Panel:
    stats = snapshot.stats
    title = "Directories to clean"
    if stats.selected_size > 0:
        title = f"{title}: {format_gb(stats.selected_size)} selected"

    candidates = snapshot.candidates
    if not candidates:
        message = ""
        if snapshot.state is WorkflowState.SCAN_COMPLETE:
            message = "No matching directories found"
        return Panel(Text(message, style="dim"), title=title, title_align="left")

    start = min(max(snapshot.cursor - rows + 1, 0), max(len(candidates) - rows, 0))
    table = Table(box=None, show_header=False, expand=True, pad_edge=False)
    table.add_column("sel", width=3, no_wrap=True)
    table.add_column("size", justify="right", width=8, no_wrap=True)
    table.add_column("age", justify="right", width=5, no_wrap=True)
    table.add_column("path", ratio=1, no_wrap=True, overflow="ellipsis")

    highlight = snapshot.state is WorkflowState.SCAN_COMPLETE
    for index in range(start, min(start + rows, len(candidates))):
        candidate = candidates[index]
        table.add_row(
            Text("[x]" if candidate.selected else "[ ]"),
            format_size(candidate.size_bytes),
            f"{candidate.age_days}d",
            Text(str(candidate.path)),
            style="reverse" if highlight and index == snapshot.cursor else None,
        )
    return Panel(table, title=title, title_align="left")


def _footer(snapshot: Snapshot) -> Panel:
    if snapshot.confirmation is not None:
        return Panel(
            Align.center(Text(f"{snapshot.confirmation}? (y/n)", style="bold")),
            title="Confirm Action",
            border_style="red",
            box=box.HEAVY,
        )
    return Panel(Text(HELP_TEXT), title="Instructions", title_align="left", border_style="blue")


def _summary_panel(summary: DeletionSummary) -> Panel:
    lines = [Text(f"Cleaned {summary.count} folders, freeing {format_gb(summary.size_bytes)}.")]
    if summary.failed:
        lines.append(Text(f"{len(summary.failed)} could not be moved to trash.", style="yellow"))
    lines.append(Text(""))
    lines.append(Text("Press 'y' or 'enter' to exit."))
    return Panel(
        Align.center(Group(*lines), vertical="middle"),
        title="Deletion Complete",
        border_style="green",
    )
