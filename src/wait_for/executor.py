"""Map probe outcomes to exit codes and hand over to the trailing command."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from typing import List, Sequence

from .errors import CommandLaunchFailure
from .prober import ProbeConfig, ProbeOutcome, ProbeStatus

logger = logging.getLogger("wait-for")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANNOT_EXECUTE = 126
EXIT_NOT_FOUND = 127

# Windows has no in-place exec; commands run as a waited child there.
EXEC_SUPPORTED = os.name != "nt"


def _launch_failure(program: str, exc: OSError) -> CommandLaunchFailure:
    if isinstance(exc, FileNotFoundError):
        return CommandLaunchFailure(f"Command not found: {program}", EXIT_NOT_FOUND)
    return CommandLaunchFailure(f"Failed to execute command {program}: {exc}", EXIT_CANNOT_EXECUTE)


def exec_command(command: Sequence[str]) -> int:
    """Replace the current process with ``command``.

    Only returns on platforms without ``exec`` semantics, where the command
    runs as a child and its exit code is returned instead. Raises
    :class:`CommandLaunchFailure` when the program cannot be started.
    """

    argv: List[str] = list(command)
    program = argv[0]
    sys.stdout.flush()
    sys.stderr.flush()
    if not EXEC_SUPPORTED:
        try:
            return subprocess.run(argv, check=False).returncode
        except OSError as exc:
            raise _launch_failure(program, exc) from exc
    try:
        os.execvp(program, argv)
    except OSError as exc:
        raise _launch_failure(program, exc) from exc
    raise AssertionError("execvp returned")  # pragma: no cover - exec never returns


def execute(outcome: ProbeOutcome, command: Sequence[str], config: ProbeConfig) -> int:
    """Return the process exit code for ``outcome``, running ``command`` when ready."""

    if outcome.status is ProbeStatus.TIMED_OUT:
        if not config.quiet:
            logger.error("timeout occurred after waiting %d seconds", config.timeout_seconds)
        return EXIT_FAILURE
    if outcome.status is ProbeStatus.UNREACHABLE:
        if not config.quiet:
            logger.error("target is unreachable: %s", outcome.reason)
        return EXIT_FAILURE
    if not command:
        return EXIT_OK

    if not config.quiet:
        logger.debug("Executing command: %s", " ".join(command))
    try:
        return exec_command(command)
    except CommandLaunchFailure as exc:
        if not config.quiet:
            logger.error("%s", exc)
        return exc.exit_code


__all__ = [
    "EXIT_CANNOT_EXECUTE",
    "EXIT_FAILURE",
    "EXIT_NOT_FOUND",
    "EXIT_OK",
    "exec_command",
    "execute",
]
