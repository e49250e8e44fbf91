"""
renvkeeper version information.

Single source of truth for the package version, plus a parsed view of it
used by the CLI banner and the HTTP User-Agent.
"""

from __future__ import annotations

import re
from typing import Any, Dict

__version__ = "0.2.0.dev0"


def _parse_version(version: str) -> Dict[str, Any]:
    """Split ``MAJOR.MINOR.PATCH[.PRE]`` into its components.

    Raises:
        ValueError: ``version`` does not follow that layout.
    """
    match = re.match(r"^(\d+)\.(\d+)\.(\d+)(?:[.-]([a-zA-Z0-9]+))?$", version)

    if not match:
        raise ValueError(f"Invalid version string: {version}")

    major, minor, patch, pre = match.groups()

    return {
        "major": int(major),
        "minor": int(minor),
        "patch": int(patch),
        "prerelease": pre,
        "is_dev": pre is not None and pre.startswith("dev"),
    }


VERSION_INFO = _parse_version(__version__)

VERSION_STRING = f"renvkeeper {__version__}"
