"""Logging setup and the foreground control loops."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler

from .models import DeletionSummary, DoneEvent, ResultEvent
from .results import ResultSet
from .scanner import ScanEngine
from .ui import KeyReader, intent_for_key, render
from .workflow import Workflow, WorkflowState

if TYPE_CHECKING:
    from .config import SweepConfig

LOGGER_NAME = "devtrash"


def setup_logging(
    config: SweepConfig,
    console: Console,
    *,
    console_level: int = logging.INFO,
) -> logging.Logger:
    """Set up the package logger.

    Args:
        config: Configuration with log file and level.
        console: Console shared with the live display.
        console_level: Threshold for the on-screen handler.

    Returns:
        Configured logger instance.

    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.log_level_value)

    # Clear existing handlers to avoid duplicates on repeated setup
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
    )
    console_handler.setLevel(console_level)
    logger.addHandler(console_handler)

    try:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_file)
    except OSError as e:
        logger.warning("Cannot open log file %s: %s", config.log_file, e)
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def run_interactive(config: SweepConfig, root: Path, console: Console) -> DeletionSummary | None:
    """Run the scan / select / trash session until the user leaves.

    Returns:
        The deletion summary if a trash batch ran, else None.

    """
    workflow = Workflow(config, root)
    workflow.start_scan()
    frame = 0

    with KeyReader() as keys, Live(
        render(workflow.snapshot(), frame, console.size.height),
        console=console,
        screen=True,
        auto_refresh=False,
    ) as live:
        while not workflow.should_exit:
            workflow.poll()
            snapshot = workflow.snapshot()
            live.update(render(snapshot, frame, console.size.height), refresh=True)

            key = keys.read_key(config.tick_interval)
            if key is not None and (intent := intent_for_key(key, snapshot)) is not None:
                workflow.handle(intent)

            if workflow.state is WorkflowState.SCANNING:
                frame += 1

    return workflow.summary


def collect_results(config: SweepConfig, root: Path) -> ResultSet:
    """Scan ``root`` to completion on the worker thread and gather the results."""
    session = ScanEngine.from_config(config).start(root)
    results = ResultSet()
    for event in session.iter_events():
        if isinstance(event, ResultEvent):
            results.insert(event.candidate)
        elif isinstance(event, DoneEvent):
            break
    session.join()
    return results
