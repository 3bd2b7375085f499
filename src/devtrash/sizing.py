"""Recursive directory size computation."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def directory_size(path: Path | str) -> int:
    """Sum the sizes of all files below ``path``.

    Metadata is read without following symlinks, so a link contributes its
    own size and linked directories are never descended. Unreadable
    directories and entries that fail on stat count as zero. Directories
    are visited from an explicit stack, so nesting depth is unbounded.

    Args:
        path: Directory to measure.

    Returns:
        Total size in bytes.

    """
    total = 0
    pending = [os.fspath(path)]

    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            pending.append(entry.path)
                        else:
                            total += entry.stat(follow_symlinks=False).st_size
                    except OSError as e:
                        logger.debug("Cannot stat %s: %s", entry.path, e)
        except OSError as e:
            logger.debug("Cannot list %s: %s", current, e)

    return total
