"""Error types raised while parsing, probing and launching."""

from __future__ import annotations


class WaitForError(Exception):
    """Base class for all wait-for failures."""


class InvalidTarget(WaitForError, ValueError):
    """Raised when the target string is neither ``host:port`` nor an HTTP(S) URL."""


class ProbeAttemptFailure(WaitForError):
    """A single probe attempt failed; the target may still become ready."""


class TargetUnreachable(WaitForError):
    """Raised when no amount of retrying can make the target ready."""


class CommandLaunchFailure(WaitForError):
    """Raised when the trailing command cannot be started at all."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code
