"""
Unified data model exports for renvkeeper.

Example:
    >>> from renvkeeper.models import ValidationResult, PackageSource
"""

from __future__ import annotations

from renvkeeper.models.dependency import Dependency, LockEntry
from renvkeeper.models.validation import PackageSource, ValidationResult
from renvkeeper.models.report import (
    DiffResult,
    PackageRow,
    PackageStatus,
    ReconcileResult,
    RunMode,
    classify_status,
)

__all__ = [
    "Dependency",
    "LockEntry",
    "PackageSource",
    "ValidationResult",
    "DiffResult",
    "PackageRow",
    "PackageStatus",
    "ReconcileResult",
    "RunMode",
    "classify_status",
]
