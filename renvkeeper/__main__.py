"""
Executable module for renvkeeper.

Running ``python -m renvkeeper`` is equivalent to running ``renvkeeper``.
"""

from __future__ import annotations

import sys


def _print_startup_error(exc: ImportError) -> None:
    """Report a broken installation on stderr."""
    try:
        from renvkeeper.__version__ import __version__

        version = __version__
    except ImportError:
        version = "<unknown>"

    sys.stderr.write(f"renvkeeper version: {version}\n")
    sys.stderr.write(f"Python version    : {sys.version}\n")
    sys.stderr.write("\n")
    sys.stderr.write(f"ImportError: {exc}\n")


def main() -> int:
    """Forward to the CLI entry point and return its exit code."""
    try:
        # Import lazily so dependencies are only loaded during CLI use
        from renvkeeper.cli import main as cli_main
    except ImportError as exc:
        _print_startup_error(exc)
        return 1

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
