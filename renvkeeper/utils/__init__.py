"""
Utility helpers for renvkeeper.

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Atomic, size-limited file access
- Async HTTP client

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from renvkeeper.utils.filesystem import (
    create_timestamped_backup,
    safe_read_file,
    safe_write_file,
)

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from renvkeeper.utils.logger import (
    disable_logging,
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from renvkeeper.utils.console import (
    colorize_status,
    create_progress,
    get_raw_console,
    print_error,
    print_info,
    print_list,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# HTTP utilities
# ---------------------------------------------------------------------------

from renvkeeper.utils.http import HTTPClient

__all__ = [
    # Console
    "print_error",
    "print_info",
    "print_list",
    "print_table",
    "print_success",
    "print_warning",
    "get_raw_console",
    "create_progress",
    "reconfigure_console",
    "colorize_status",
    # Logging
    "get_logger",
    "setup_logging",
    "disable_logging",
    "level_for_verbosity",
    "is_logging_configured",
    # Filesystem
    "safe_read_file",
    "safe_write_file",
    "create_timestamped_backup",
    # HTTP
    "HTTPClient",
]
