"""CLI entry point for wait-for."""

from __future__ import annotations

import logging
from typing import List, Set, Tuple

import click

from .__about__ import __version__
from .errors import InvalidTarget
from .executor import EXIT_FAILURE, execute
from .prober import DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT_SECONDS, ProbeConfig, probe
from .target import parse_target

logger = logging.getLogger("wait-for")

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _separate_command(args: List[str], value_options: Set[str]) -> List[str]:
    """Insert ``--`` before the first positional that follows TARGET.

    Everything from that token on belongs to COMMAND, even tokens that look
    like options of this tool.
    """

    positionals = 0
    takes_value = False
    for index, arg in enumerate(args):
        if takes_value:
            takes_value = False
            continue
        if arg == "--":
            return args
        if arg.startswith("-") and arg != "-":
            takes_value = arg in value_options
            continue
        positionals += 1
        if positionals == 2:
            return [*args[:index], "--", *args[index:]]
    return args


class TrailingCommand(click.Command):
    """Command whose trailing arguments are passed through untouched."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        value_options: Set[str] = set()
        for param in self.params:
            if isinstance(param, click.Option) and not param.is_flag and not param.count:
                value_options.update(param.opts)
        return super().parse_args(ctx, _separate_command(list(args), value_options))


def _configure_logging(verbose: int, quiet: bool) -> None:
    if quiet:
        logging.basicConfig(level=logging.WARNING, format="%(message)s")
    elif verbose >= 1:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")


@click.command(cls=TrailingCommand, context_settings=CONTEXT_SETTINGS)
@click.argument("target")
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
@click.option(
    "-t",
    "--timeout",
    type=click.IntRange(min=0),
    default=DEFAULT_TIMEOUT_SECONDS,
    show_default=True,
    help="Timeout in seconds (0 for no timeout)",
)
@click.option(
    "-i",
    "--interval",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_POLL_INTERVAL,
    show_default=True,
    help="Seconds to sleep between probe attempts",
)
@click.option("-q", "--quiet", is_flag=True, help="Quiet mode - suppress output")
@click.option("-v", "--verbose", count=True, help="Increase logging verbosity")
@click.version_option(__version__, "-V", "--version", prog_name="wait-for")
@click.pass_context
def cli(
    ctx: click.Context,
    target: str,
    command: Tuple[str, ...],
    timeout: int,
    interval: float,
    quiet: bool,
    verbose: int,
) -> None:
    """A simple CLI to wait for a service to become available.

    TARGET is either host:port or an http(s):// URL. Once it is ready the
    optional COMMAND replaces this process. Options go before COMMAND; every
    word from COMMAND on is passed to it unchanged. A -- before COMMAND is
    accepted too.

    \b
    Examples:
      wait-for db:5432 -- ./migrate.sh
      wait-for -t 0 http://localhost:8080/healthz
    """

    _configure_logging(verbose, quiet)
    try:
        parsed = parse_target(target)
    except InvalidTarget as exc:
        if not quiet:
            logger.error("Failed to parse target %s: %s", target, exc)
        ctx.exit(EXIT_FAILURE)

    config = ProbeConfig(timeout_seconds=timeout, poll_interval=interval, quiet=quiet)
    outcome = probe(parsed, config)
    ctx.exit(execute(outcome, command, config))


__all__ = ["cli", "__version__"]
