"""
The ``tarlink`` command group.

Global options are handled here before any subcommand runs: logging is set up,
the config file is found and parsed, and the result is stored on the click
context as a :class:`~tarlink.context.TarlinkContext`.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from tarlink.config import load_config
from tarlink.__version__ import __version__
from tarlink.context import TarlinkContext
from tarlink.exceptions import ConfigError, TarlinkError
from tarlink.utils.console import print_error, print_warning, reconfigure_console
from tarlink.utils.logger import get_logger, level_for_verbosity, setup_logging

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read settings from this tarlink.toml instead of searching for one.",
    envvar="TARLINK_CONFIG",
)
@click.option(
    "--cwd",
    "-C",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Run as if started in this directory.",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Log more; -v for info, -vv for debug.",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Colorize output (NO_COLOR also disables it).",
    envvar="TARLINK_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="tarlink",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    cwd: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """tarlink: build ordering and artifact linking for package monorepos.

    \b
    Available commands:
      tarlink ls                  List packages in build order
      tarlink batch               Show parallel build batches
      tarlink deps                Show transitive local dependencies
      tarlink prepare             Point sibling dependencies at tarballs
      tarlink update              Relink tarballs to newer builds

    \b
    Examples:
      tarlink ls --tree
      tarlink batch --production --json
      tarlink -C packages/app prepare --dry-run

    Use ``tarlink COMMAND --help`` for command-specific options.
    """
    _configure_logging(verbose)

    start = (cwd or Path.cwd()).resolve()

    try:
        loaded_config = load_config(config, start=start)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    tarlink_ctx = TarlinkContext()
    tarlink_ctx.config_path = loaded_config.source_path
    tarlink_ctx.color = color
    tarlink_ctx.verbose = verbose
    tarlink_ctx.cwd = start
    tarlink_ctx.config = loaded_config
    ctx.obj = tarlink_ctx

    # rich and the log formatter both read NO_COLOR
    if not color:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    logger.debug(
        "tarlink %s (cwd=%s, config=%s, color=%s)",
        __version__,
        start,
        tarlink_ctx.config_path or "<defaults>",
        color,
    )


def _configure_logging(verbose: int) -> None:
    level = level_for_verbosity(verbose)
    setup_logging(level=level, verbose=verbose > 1)
    logger.debug("log level %s", logging.getLevelName(level))


# Subcommands
from tarlink.commands.ls import ls  # noqa: E402
from tarlink.commands.deps import deps  # noqa: E402
from tarlink.commands.batch import batch  # noqa: E402
from tarlink.commands.prepare import prepare  # noqa: E402
from tarlink.commands.update import update  # noqa: E402

cli.add_command(ls)
cli.add_command(deps)
cli.add_command(batch)
cli.add_command(prepare)
cli.add_command(update)


def main() -> int:
    """Main entry point for the tarlink CLI.

    Returns:
        Exit code:
            0   Success
            1   Unhandled or application error
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return 0

    except click.exceptions.Abort:
        print_warning("Operation cancelled by user")
        return 130

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except TarlinkError as exc:
        print_error(str(exc))
        logger.debug(
            "TarlinkError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except KeyboardInterrupt:
        print_warning("Operation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
