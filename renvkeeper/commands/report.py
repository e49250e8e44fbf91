"""Report command implementation for renvkeeper.

Lists every package seen in code, DESCRIPTION or renv.lock with where it
appears and its status, problems first.

Typical usage::

    $ renvkeeper report
    $ renvkeeper report --format json
"""

from __future__ import annotations

import sys
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from renvkeeper.context import pass_context, RenvKeeperContext
from renvkeeper.exceptions import RenvKeeperError
from renvkeeper.models import PackageRow, PackageStatus
from renvkeeper.commands.check import build_reconciler
from renvkeeper.utils import (
    colorize_status,
    get_logger,
    print_error,
    print_success,
    print_table,
    print_warning,
)

logger = get_logger("commands.report")


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
    "--format",
    "-f",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@pass_context
def report(
    ctx: RenvKeeperContext,
    path: Path,
    strict: Optional[bool],
    format: str,
) -> None:
    """Show where each package is used, declared and pinned."""
    try:
        config = ctx.load_config(path)
        rows = build_reconciler(config, path, strict=strict).report()
    except RenvKeeperError as e:
        print_error(f"{e}")
        sys.exit(1)

    if format.lower() == "json":
        print(json.dumps([row.to_json() for row in rows], indent=2))
        return

    if not rows:
        print_warning("No packages found")
        return

    _display_table(rows)

    problems = sum(1 for row in rows if row.status is not PackageStatus.OK)
    if problems:
        print_warning(f"{problems} package(s) need attention")
    else:
        print_success("All packages are consistent")


def _mark(flag: bool) -> str:
    return "[green]✓[/green]" if flag else "[dim]-[/dim]"


def _display_table(rows: List[PackageRow]) -> None:
    data = [
        {
            "Package": row.package,
            "Code": _mark(row.in_code),
            "DESCRIPTION": _mark(row.in_description),
            "renv.lock": _mark(row.in_lock),
            "Status": colorize_status(row.status.value),
        }
        for row in rows
    ]

    column_styles: Dict[str, Dict[str, Any]] = {
        "Package": {"style": "bold cyan", "no_wrap": True},
        "Code": {"justify": "center"},
        "DESCRIPTION": {"justify": "center"},
        "renv.lock": {"justify": "center"},
        "Status": {"justify": "left", "no_wrap": True},
    }
    print_table(data, title="Package Report", column_styles=column_styles)
