"""Move directories to the desktop trash."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from send2trash import send2trash

logger = logging.getLogger(__name__)


@dataclass
class TrashResult:
    """Result of a trash operation."""

    path: Path
    success: bool
    action: str  # "trashed", "skipped", "error"
    error: str | None = None


def trash_path(path: Path) -> TrashResult:
    """Move ``path`` to the recoverable trash.

    Args:
        path: File or directory to move.

    Returns:
        TrashResult with operation details. Never raises for filesystem errors.

    """
    if not path.exists():
        return TrashResult(
            path=path,
            success=False,
            action="skipped",
            error="Path no longer exists",
        )

    try:
        send2trash(str(path))
    except PermissionError as e:
        logger.error("Permission denied trashing %s: %s", path, e)
        return TrashResult(
            path=path,
            success=False,
            action="error",
            error=f"Permission denied: {e}",
        )
    except OSError as e:
        logger.error("Error trashing %s: %s", path, e)
        return TrashResult(
            path=path,
            success=False,
            action="error",
            error=str(e),
        )

    logger.info("Moved to trash: %s", path)
    return TrashResult(path=path, success=True, action="trashed")


def move_to_trash(path: Path) -> bool:
    """Binary form of ``trash_path`` used by the workflow."""
    return trash_path(path).success
