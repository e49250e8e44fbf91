"""init-lock command implementation for renvkeeper.

Creates a minimal ``renv.lock`` with the R version and CRAN repository and
no packages, ready for ``renvkeeper fix`` to fill in.

Typical usage::

    $ renvkeeper init-lock --r-version 4.4.1
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from packaging.version import InvalidVersion, Version

from renvkeeper.constants import LOCK_FILE
from renvkeeper.context import pass_context, RenvKeeperContext
from renvkeeper.core import LockWriter
from renvkeeper.exceptions import RenvKeeperError
from renvkeeper.utils import get_logger, print_error, print_success

logger = get_logger("commands.lock")


@click.command("init-lock")
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option("--r-version", default=None, help="R version to record.")
@click.option("--cran-url", default=None, help="CRAN repository URL to record.")
@click.option("--force", is_flag=True, help="Overwrite an existing renv.lock.")
@pass_context
def init_lock(
    ctx: RenvKeeperContext,
    path: Path,
    r_version: Optional[str],
    cran_url: Optional[str],
    force: bool,
) -> None:
    """Create an empty renv.lock in PATH."""
    try:
        config = ctx.load_config(path)
    except RenvKeeperError as e:
        print_error(f"{e}")
        sys.exit(1)

    version = r_version or config.r_version
    try:
        Version(version)
    except InvalidVersion:
        raise click.BadParameter(f"not a valid version: {version}", param_hint="--r-version")

    lock_path = path / LOCK_FILE
    if lock_path.exists() and not force:
        print_error(f"{lock_path} already exists; use --force to overwrite")
        sys.exit(1)

    writer = LockWriter(lock_path)
    if not writer.create(version, cran_url or config.cran_url, overwrite=force):
        print_error(f"Could not create {lock_path}")
        sys.exit(1)

    print_success(f"Created {lock_path} (R {version})")
