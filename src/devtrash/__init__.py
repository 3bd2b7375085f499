"""Find and trash stale build-artifact directories."""

__version__ = "0.3.0"
