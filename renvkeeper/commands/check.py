"""Check and fix command implementation for renvkeeper.

Compares the packages an R project's code uses with those declared in
``DESCRIPTION`` and pinned in ``renv.lock``.

The commands orchestrate three core components:

1. **CodeExtractor** and **NameFilter**: turn the R sources into the set
   of packages the code actually uses.
2. **Reconciler**: reads both files, computes the differences and applies
   the requested policy.
3. **RegistryValidator**: confirms that a package is installable from
   CRAN, Bioconductor or GitHub before it is pinned.

All registry lookups share a single :class:`HTTPClient`.

Typical usage::

    # Report what is missing or unused
    $ renvkeeper check

    # Add missing packages to DESCRIPTION and renv.lock
    $ renvkeeper fix path/to/project

    # Machine-readable JSON output
    $ renvkeeper check --format json > report.json
"""

from __future__ import annotations

import sys
import json
import click
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from renvkeeper.config import RenvKeeperConfig
from renvkeeper.context import pass_context, RenvKeeperContext
from renvkeeper.exceptions import RenvKeeperError
from renvkeeper.models import ReconcileResult, RunMode
from renvkeeper.constants import DESCRIPTION_FILE, LOCK_FILE, SKIP_DIRS, SKIP_FILES
from renvkeeper.core import FilterConfig, Reconciler, RegistryValidator
from renvkeeper.utils import (
    HTTPClient,
    create_progress,
    get_logger,
    get_raw_console,
    print_error,
    print_success,
    print_table,
    print_warning,
)

logger = get_logger("commands.check")


# ---------------------------------------------------------------------------
# Shared plumbing
# ---------------------------------------------------------------------------


def build_filter_config(config: RenvKeeperConfig) -> FilterConfig:
    """Extend the built-in filter lists with the configured extras."""
    return (
        FilterConfig()
        .with_base_packages(config.extra_base_packages)
        .with_placeholders(config.extra_placeholders)
    )


def build_reconciler(
    config: RenvKeeperConfig,
    path: Path,
    *,
    strict: Optional[bool] = None,
    validate_sources: Optional[bool] = None,
    registry: Optional[RegistryValidator] = None,
    backup: bool = False,
) -> Reconciler:
    """Create a :class:`Reconciler` with CLI flags overriding ``config``."""
    return Reconciler(
        path,
        strict=config.strict if strict is None else strict,
        filter_config=build_filter_config(config),
        registry=registry,
        validate_sources=(
            config.validate_sources if validate_sources is None else validate_sources
        ),
        dependency_field=config.dependency_field,
        skip_files=tuple(SKIP_FILES) + tuple(config.skip_files),
        skip_dirs=tuple(SKIP_DIRS) + tuple(config.skip_dirs),
        create_backup=backup,
    )


async def run_reconciliation(
    config: RenvKeeperConfig,
    path: Path,
    mode: RunMode,
    *,
    strict: Optional[bool] = None,
    validate_sources: Optional[bool] = None,
    dry_run: bool = False,
    backup: bool = False,
    show_progress: bool = False,
) -> ReconcileResult:
    """Run one reconciliation of ``path`` with a shared HTTP client.

    Raises:
        ManifestError: ``mode`` mutates and DESCRIPTION is unreadable.
    """
    async with HTTPClient() as http:
        registry = RegistryValidator(
            http,
            check_cran=config.check_cran,
            check_bioc=config.check_bioconductor,
            check_github=config.check_github,
            bioc_version=config.bioconductor_version,
        )
        reconciler = build_reconciler(
            config,
            path,
            strict=strict,
            validate_sources=validate_sources,
            registry=registry,
            backup=backup,
        )

        if not (show_progress and mode.mutates and not dry_run):
            return await reconciler.run(mode, dry_run=dry_run)

        with create_progress("Validating package sources") as progress:
            task = progress.add_task("validate", total=None)

            def _on_progress(completed: int, total: int) -> None:
                progress.update(task, completed=completed, total=total)

            return await reconciler.run(
                mode, dry_run=dry_run, progress_callback=_on_progress
            )


def execute(
    ctx: RenvKeeperContext,
    path: Path,
    mode: RunMode,
    *,
    format: str = "table",
    strict: Optional[bool] = None,
    validate_sources: Optional[bool] = None,
    dry_run: bool = False,
    backup: bool = False,
) -> None:
    """Load config, reconcile, render, and exit with the run's status."""
    try:
        config = ctx.load_config(path)
        result = asyncio.run(
            run_reconciliation(
                config,
                path,
                mode,
                strict=strict,
                validate_sources=validate_sources,
                dry_run=dry_run,
                backup=backup,
                show_progress=format == "table",
            )
        )
    except RenvKeeperError as e:
        print_error(f"{e}")
        sys.exit(1)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        logger.exception("Error in %s command", mode.value)
        sys.exit(1)

    display_result(result, format)
    sys.exit(0 if result.passed else 1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


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
    "--fix",
    "apply_fix",
    is_flag=True,
    help="Add missing packages instead of only reporting them.",
)
@click.option(
    "--validate-sources/--no-validate-sources",
    default=None,
    help="Check CRAN/Bioconductor/GitHub before pinning a package.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "simple", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@pass_context
def check(
    ctx: RenvKeeperContext,
    path: Path,
    strict: Optional[bool],
    apply_fix: bool,
    validate_sources: Optional[bool],
    format: str,
) -> None:
    """Check that DESCRIPTION and renv.lock cover every package the code uses.

    Exits with status 0 when nothing is missing and 1 otherwise. Packages
    that are declared but unused are reported but do not fail the check.
    """
    execute(
        ctx,
        path,
        RunMode.FIX if apply_fix else RunMode.VALIDATE,
        format=format.lower(),
        strict=strict,
        validate_sources=validate_sources,
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
    "--validate-sources/--no-validate-sources",
    default=None,
    help="Check CRAN/Bioconductor/GitHub before pinning a package.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "simple", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@pass_context
def fix(
    ctx: RenvKeeperContext,
    path: Path,
    strict: Optional[bool],
    validate_sources: Optional[bool],
    format: str,
) -> None:
    """Add packages the code uses to DESCRIPTION and renv.lock.

    Nothing is ever removed; use ``renvkeeper sync`` for that.
    """
    execute(
        ctx,
        path,
        RunMode.FIX,
        format=format.lower(),
        strict=strict,
        validate_sources=validate_sources,
    )


# ---------------------------------------------------------------------------
# Display renderers
# ---------------------------------------------------------------------------


def _action(result: ReconcileResult, name: str, done: List[str]) -> str:
    if name in done:
        return "[green]added[/green]"
    if name in result.failed:
        return "[red]failed[/red]"
    if result.dry_run and result.mode.mutates:
        return "[dim]planned[/dim]"
    return "[dim]-[/dim]"


def _removal_action(result: ReconcileResult, name: str, done: List[str]) -> str:
    if name in done:
        return "[green]removed[/green]"
    if name in result.failed:
        return "[red]failed[/red]"
    if result.dry_run and result.mode.removes:
        return "[dim]planned[/dim]"
    return "[dim]-[/dim]"


def _build_rows(result: ReconcileResult) -> List[Dict[str, str]]:
    rows: List[Dict[str, str]] = []

    for name in result.missing_from_manifest:
        rows.append(
            {
                "Package": name,
                "Finding": f"[red]missing from {DESCRIPTION_FILE}[/red]",
                "Action": _action(result, name, result.added_to_manifest),
            }
        )
    for name in result.missing_from_lock:
        rows.append(
            {
                "Package": name,
                "Finding": f"[red]missing from {LOCK_FILE}[/red]",
                "Action": _action(result, name, result.added_to_lock),
            }
        )
    for name in result.unused_in_manifest:
        rows.append(
            {
                "Package": name,
                "Finding": f"[yellow]unused in {DESCRIPTION_FILE}[/yellow]",
                "Action": _removal_action(result, name, result.removed_from_manifest),
            }
        )
    for name in result.unused_in_lock:
        rows.append(
            {
                "Package": name,
                "Finding": f"[yellow]unused in {LOCK_FILE}[/yellow]",
                "Action": _removal_action(result, name, result.removed_from_lock),
            }
        )
    return rows


def display_result(result: ReconcileResult, format: str) -> None:
    """Render ``result`` in ``format`` (``table``, ``simple`` or ``json``)."""
    if format == "json":
        _display_json(result)
        return

    if format == "simple":
        _display_simple(result)
    else:
        _display_table(result)
    _display_summary(result)


def _display_table(result: ReconcileResult) -> None:
    console = get_raw_console()
    console.print(
        f"Packages: {len(result.code_packages)} in code, "
        f"{len(result.manifest_packages)} in {DESCRIPTION_FILE}, "
        f"{len(result.lock_packages)} in {LOCK_FILE}"
        + ("" if result.has_lock else f" [dim](no {LOCK_FILE})[/dim]")
    )

    rows = _build_rows(result)
    if not rows:
        return

    column_styles: Dict[str, Dict[str, Any]] = {
        "Package": {"style": "bold cyan", "no_wrap": True},
        "Finding": {"justify": "left"},
        "Action": {"justify": "center"},
    }
    print_table(rows, title="Dependency Status", column_styles=column_styles)


def _display_simple(result: ReconcileResult) -> None:
    """One line per finding, e.g. ``[MISSING] dplyr (DESCRIPTION)``."""
    console = get_raw_console()

    findings = (
        ("MISSING", DESCRIPTION_FILE, result.missing_from_manifest),
        ("MISSING", LOCK_FILE, result.missing_from_lock),
        ("UNUSED", DESCRIPTION_FILE, result.unused_in_manifest),
        ("UNUSED", LOCK_FILE, result.unused_in_lock),
    )
    for label, target, names in findings:
        for name in names:
            console.print(f"[{label}] {name} ({target})", markup=False, highlight=False)


def _display_json(result: ReconcileResult) -> None:
    print(json.dumps(result.to_json(), indent=2))


def _display_summary(result: ReconcileResult) -> None:
    if result.total_changes:
        print_success(f"{result.total_changes} change(s) written")
    elif result.dry_run and result.pending_changes:
        print_warning(f"Dry run: {result.pending_changes} change(s) not written")

    for error in result.errors:
        print_error(error)

    if result.passed:
        print_success("All packages used in code are declared")
    else:
        missing = len(result.unresolved_manifest) + len(result.unresolved_lock)
        print_error(f"{missing} missing declaration(s)")
        if not result.mode.mutates:
            print_warning("Run 'renvkeeper fix' to add them")

    unused = len(result.unused_in_manifest) + len(result.unused_in_lock)
    if unused and not result.mode.removes:
        print_warning(f"{unused} unused declaration(s); run 'renvkeeper sync' to remove them")
