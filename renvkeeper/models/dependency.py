"""
Manifest and lock entries.

:class:`Dependency` is one comma-separated item of a DESCRIPTION dependency
field; :class:`LockEntry` is one record of the renv.lock ``Packages`` map.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

_CONSTRAINT_RE = re.compile(r"\(([^)]*)\)")


@dataclass(frozen=True)
class Dependency:
    """A package declared in a DESCRIPTION dependency field.

    Attributes:
        name: Package name with any version constraint removed.
        dep_type: Field the entry was declared in (``Imports``, ``Suggests``...).
        constraint: Text inside the parentheses, e.g. ``">= 1.0.0"``.
        raw: The entry exactly as written, used when rewriting the field.
    """

    name: str
    dep_type: str
    constraint: Optional[str] = None
    raw: str = ""

    @classmethod
    def from_entry(cls, entry: str, dep_type: str) -> "Dependency":
        """Parse a single entry such as ``"ggplot2 (>= 3.4.0)"``."""
        raw = entry.strip()
        match = _CONSTRAINT_RE.search(raw)
        constraint = " ".join(match.group(1).split()) if match else None
        name = _CONSTRAINT_RE.sub("", raw).strip()
        return cls(
            name=name,
            dep_type=dep_type,
            constraint=constraint or None,
            raw=raw,
        )

    def __str__(self) -> str:
        if self.constraint:
            return f"{self.name} ({self.constraint})"
        return self.name


@dataclass
class LockEntry:
    """A package pinned in renv.lock.

    Unknown keys found in the lock file (hashes, remote metadata, ...) are
    kept in ``extra`` so that a rewrite never drops them.
    """

    package: str
    version: str
    source: str = "Repository"
    repository: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, name: str, data: Dict[str, Any]) -> "LockEntry":
        known = {"Package", "Version", "Source", "Repository"}
        return cls(
            package=str(data.get("Package", name)),
            version=str(data.get("Version", "")),
            source=str(data.get("Source", "Repository")),
            repository=data.get("Repository"),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "Package": self.package,
            "Version": self.version,
            "Source": self.source,
        }
        if self.repository is not None:
            data["Repository"] = self.repository
        data.update(self.extra)
        return data
