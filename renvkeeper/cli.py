"""
Command-line interface for renvkeeper.

This module provides the main CLI entry point and handles global options,
logging setup, and command registration. Configuration is loaded per
project by the subcommands, since the project directory is a subcommand
argument.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from renvkeeper.__version__ import __version__
from renvkeeper.context import RenvKeeperContext
from renvkeeper.exceptions import RenvKeeperError
from renvkeeper.utils.logger import get_logger, level_for_verbosity, setup_logging
from renvkeeper.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="RENVKEEPER_CONFIG",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="RENVKEEPER_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="renvkeeper",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """renvkeeper — keep DESCRIPTION and renv.lock in step with your R code.

    \b
    Available commands:
      renvkeeper check             Report missing and unused packages
      renvkeeper fix               Add missing packages
      renvkeeper sync              Add missing and remove unused packages
      renvkeeper report            Per-package status table
      renvkeeper clean             Remove unused DESCRIPTION entries
      renvkeeper init-lock         Create an empty renv.lock

    \b
    Examples:
      renvkeeper check
      renvkeeper sync --dry-run
      renvkeeper -v fix path/to/project

    Use ``renvkeeper COMMAND --help`` for command-specific options.
    """
    _configure_logging(verbose)

    # Respect NO_COLOR for downstream libraries
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    renvkeeper_ctx = RenvKeeperContext()
    renvkeeper_ctx.config_path = config
    renvkeeper_ctx.color = color
    renvkeeper_ctx.verbose = verbose
    ctx.obj = renvkeeper_ctx

    logger.debug("renvkeeper v%s", __version__)
    logger.debug("Config path: %s", config)
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags."""
    level = level_for_verbosity(verbose)
    setup_logging(level=level, verbose=verbose >= 2)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


# Register CLI subcommands
try:
    from renvkeeper.commands.check import check, fix
    from renvkeeper.commands.sync import clean, sync
    from renvkeeper.commands.report import report
    from renvkeeper.commands.lock import init_lock

    cli.add_command(check)
    cli.add_command(fix)
    cli.add_command(sync)
    cli.add_command(clean)
    cli.add_command(report)
    cli.add_command(init_lock)

except ImportError as exc:
    sys.stderr.write(f"FATAL: Failed to import CLI commands: {exc}\n")
    sys.exit(1)


def main() -> int:
    """Main entry point for the renvkeeper CLI.

    Returns:
        Exit code:
            0   Success
            1   Failed check, application or unhandled error
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return 0

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except click.exceptions.Exit as exc:
        return exc.exit_code

    except click.exceptions.Abort:
        print_warning("\nOperation cancelled by user")
        return 130

    except SystemExit as exc:
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1

    except RenvKeeperError as exc:
        print_error(str(exc))
        logger.debug(
            "RenvKeeperError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
