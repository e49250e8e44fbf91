"""
Registry validation results.

A :class:`ValidationResult` records the single terminal outcome of asking
the registries whether a package can be installed. At most one registry is
ever credited: lookups stop at the first confirmation.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict, Optional


class PackageSource(str, Enum):
    """Registry that confirmed a package, in lookup priority order."""

    CRAN = "CRAN"
    BIOCONDUCTOR = "Bioconductor"
    GITHUB = "GitHub"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of an installability check for one package.

    Attributes:
        package: Name (or ``owner/repo``) that was checked.
        installable: ``True`` when some registry confirmed the package.
        source: The confirming registry, or :attr:`PackageSource.NONE`.
        version: Version reported by the confirming registry, when it
            publishes one. Used to pin the package without a second lookup.
    """

    package: str
    installable: bool = False
    source: PackageSource = PackageSource.NONE
    version: Optional[str] = None

    def __post_init__(self) -> None:
        if self.installable == (self.source is PackageSource.NONE):
            raise ValueError(
                f"Inconsistent validation result for {self.package!r}: "
                f"installable={self.installable}, source={self.source}"
            )

    @classmethod
    def not_found(cls, package: str) -> "ValidationResult":
        """Result for a package no registry confirmed."""
        return cls(package=package)

    def to_json(self) -> Dict[str, Any]:
        return {
            "package": self.package,
            "installable": self.installable,
            "source": self.source.value,
            "version": self.version,
        }
