"""Exceptions raised by the scoreboard library."""
from __future__ import annotations


class ScoreboardError(Exception):
    """Base class for scoreboard errors."""


class ScoreboardNotFoundError(ScoreboardError):
    """No scoreboard advertising the target service has been discovered."""


class ScoreboardConnectionError(ScoreboardError):
    """Connecting to or binding the scoreboard failed."""
