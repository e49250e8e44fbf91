"""Sync and clean command implementation for renvkeeper.

``sync`` makes DESCRIPTION and renv.lock match the code exactly: missing
packages are added and packages no code references are removed. ``renv``
itself is always kept. ``clean`` is the removal half for DESCRIPTION only.

Typical usage::

    # Preview what sync would change
    $ renvkeeper sync --dry-run

    # Sync and keep timestamped backups of both files
    $ renvkeeper sync --backup

    # Drop unused DESCRIPTION entries
    $ renvkeeper clean
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from renvkeeper.constants import DESCRIPTION_FILE
from renvkeeper.context import pass_context, RenvKeeperContext
from renvkeeper.exceptions import RenvKeeperError
from renvkeeper.models import RunMode
from renvkeeper.commands.check import build_reconciler, execute
from renvkeeper.utils import (
    get_logger,
    print_error,
    print_info,
    print_list,
    print_success,
)

logger = get_logger("commands.sync")


@click.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option(
    "--strict/--no-strict",
    default=None,
    help="Also scan tests/, vignettes/ and inst/ (default: on).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Preview changes without applying them.",
)
@click.option(
    "--backup",
    is_flag=True,
    help="Create timestamped backups before modifying files.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "simple", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@pass_context
def sync(
    ctx: RenvKeeperContext,
    path: Path,
    strict: Optional[bool],
    dry_run: bool,
    backup: bool,
    format: str,
) -> None:
    """Make DESCRIPTION and renv.lock match the packages the code uses.

    Code is the source of truth: missing packages are added (after source
    validation) and unused packages are removed. ``renv`` is never removed.
    """
    execute(
        ctx,
        path,
        RunMode.SYNC,
        format=format.lower(),
        strict=strict,
        dry_run=dry_run,
        backup=backup,
    )


@click.command()
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option(
    "--strict/--no-strict",
    default=None,
    help="Also scan tests/, vignettes/ and inst/ (default: on).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be removed without changing DESCRIPTION.",
)
@pass_context
def clean(
    ctx: RenvKeeperContext,
    path: Path,
    strict: Optional[bool],
    dry_run: bool,
) -> None:
    """Remove DESCRIPTION entries that no code references."""
    try:
        config = ctx.load_config(path)
        reconciler = build_reconciler(config, path, strict=strict)
        names = reconciler.clean_manifest(dry_run=dry_run)
    except RenvKeeperError as e:
        print_error(f"{e}")
        sys.exit(1)

    if not names:
        print_success(f"No unused packages in {DESCRIPTION_FILE}")
        return

    if dry_run:
        print_info(f"Would remove {len(names)} package(s) from {DESCRIPTION_FILE}:")
    else:
        print_success(f"Removed {len(names)} package(s) from {DESCRIPTION_FILE}:")
    print_list(names)
