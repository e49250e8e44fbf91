"""
Reconciliation data model.

- :class:`DiffResult`: the three-way comparison of code, DESCRIPTION and
  renv.lock, recomputed on every run.
- :class:`PackageStatus` / :func:`classify_status`: per-package status for
  the report view, decided by ordered rules rather than ad hoc branching.
- :class:`ReconcileResult`: everything a validate, fix or sync run found
  and changed, plus the overall pass/fail status.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence, Tuple

from renvkeeper.models.validation import ValidationResult


class RunMode(str, Enum):
    """Reconciliation policy; exactly one is active per run."""

    VALIDATE = "validate"
    FIX = "fix"
    SYNC = "sync"

    @property
    def mutates(self) -> bool:
        return self is not RunMode.VALIDATE

    @property
    def removes(self) -> bool:
        return self is RunMode.SYNC


class PackageStatus(str, Enum):
    """Status of one package across code, DESCRIPTION and renv.lock.

    Members are declared in display priority order: problems first.
    """

    MISSING_DESCRIPTION = "missing_description"
    MISSING_LOCK = "missing_lock"
    UNUSED = "unused"
    OK = "ok"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER: Tuple[PackageStatus, ...] = tuple(PackageStatus)


@dataclass(frozen=True)
class PackageRow:
    """Membership flags of one package, as shown by ``renvkeeper report``."""

    package: str
    in_code: bool
    in_description: bool
    in_lock: bool
    exempt: bool = False
    status: PackageStatus = PackageStatus.UNKNOWN

    def to_json(self) -> Dict[str, Any]:
        return {
            "package": self.package,
            "in_code": self.in_code,
            "in_description": self.in_description,
            "in_lock": self.in_lock,
            "status": self.status.value,
        }


def _is_exempt(row: PackageRow, has_lock: bool) -> bool:
    return row.exempt


def _is_fully_declared(row: PackageRow, has_lock: bool) -> bool:
    return row.in_code and row.in_description and (row.in_lock or not has_lock)


def _lacks_description(row: PackageRow, has_lock: bool) -> bool:
    return row.in_code and not row.in_description


def _lacks_lock(row: PackageRow, has_lock: bool) -> bool:
    return has_lock and row.in_description and not row.in_lock


def _is_unused(row: PackageRow, has_lock: bool) -> bool:
    return not row.in_code and (row.in_description or row.in_lock)


# Evaluated top to bottom; the first matching rule wins. A missing
# DESCRIPTION entry shadows a missing lock entry, which shadows "unused".
_STATUS_RULES: Sequence[Tuple[Callable[[PackageRow, bool], bool], PackageStatus]] = (
    (_is_exempt, PackageStatus.OK),
    (_is_fully_declared, PackageStatus.OK),
    (_lacks_description, PackageStatus.MISSING_DESCRIPTION),
    (_lacks_lock, PackageStatus.MISSING_LOCK),
    (_is_unused, PackageStatus.UNUSED),
)


def classify_status(row: PackageRow, *, has_lock: bool = True) -> PackageStatus:
    """Return the status of ``row`` by evaluating the rules in order.

    Exempt names (base packages and renv itself) are always ``ok``. When the
    project has no lock file, lock membership is ignored. A package pinned
    in renv.lock but referenced neither by code nor by DESCRIPTION is
    ``unused``, since sync would remove it.

    Args:
        row: Membership flags for one package.
        has_lock: Whether the project has a renv.lock file at all.
    """
    for predicate, status in _STATUS_RULES:
        if predicate(row, has_lock):
            return status
    return PackageStatus.UNKNOWN


@dataclass(frozen=True)
class DiffResult:
    """Set differences between code, DESCRIPTION and renv.lock.

    Every member is a sorted, deduplicated list with exempt names removed.
    """

    missing_from_manifest: List[str] = field(default_factory=list)
    missing_from_lock: List[str] = field(default_factory=list)
    unused_in_manifest: List[str] = field(default_factory=list)
    unused_in_lock: List[str] = field(default_factory=list)

    @property
    def has_missing(self) -> bool:
        return bool(self.missing_from_manifest or self.missing_from_lock)

    @property
    def has_unused(self) -> bool:
        return bool(self.unused_in_manifest or self.unused_in_lock)


@dataclass
class ReconcileResult:
    """Structured outcome of one reconciliation run.

    ``missing_*`` and ``unused_*`` describe what was found before any change
    was made; ``added_*`` and ``removed_*`` record what was actually written.
    ``status`` is ``"fail"`` while any missing entry remains unresolved and
    ignores unused findings, which are advisory.
    """

    mode: RunMode
    dry_run: bool = False
    has_lock: bool = False

    code_packages: List[str] = field(default_factory=list)
    manifest_packages: List[str] = field(default_factory=list)
    lock_packages: List[str] = field(default_factory=list)

    missing_from_manifest: List[str] = field(default_factory=list)
    missing_from_lock: List[str] = field(default_factory=list)
    unused_in_manifest: List[str] = field(default_factory=list)
    unused_in_lock: List[str] = field(default_factory=list)

    installable: List[ValidationResult] = field(default_factory=list)
    non_installable: List[ValidationResult] = field(default_factory=list)

    added_to_manifest: List[str] = field(default_factory=list)
    added_to_lock: List[str] = field(default_factory=list)
    removed_from_manifest: List[str] = field(default_factory=list)
    removed_from_lock: List[str] = field(default_factory=list)

    failed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    status: str = "unknown"

    @classmethod
    def from_diff(
        cls,
        mode: RunMode,
        diff: DiffResult,
        *,
        dry_run: bool = False,
        has_lock: bool = False,
        code_packages: Sequence[str] = (),
        manifest_packages: Sequence[str] = (),
        lock_packages: Sequence[str] = (),
    ) -> "ReconcileResult":
        return cls(
            mode=mode,
            dry_run=dry_run,
            has_lock=has_lock,
            code_packages=list(code_packages),
            manifest_packages=list(manifest_packages),
            lock_packages=list(lock_packages),
            missing_from_manifest=list(diff.missing_from_manifest),
            missing_from_lock=list(diff.missing_from_lock),
            unused_in_manifest=list(diff.unused_in_manifest),
            unused_in_lock=list(diff.unused_in_lock),
        )

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def unresolved_manifest(self) -> List[str]:
        added = set(self.added_to_manifest)
        return [p for p in self.missing_from_manifest if p not in added]

    @property
    def unresolved_lock(self) -> List[str]:
        added = set(self.added_to_lock)
        return [p for p in self.missing_from_lock if p not in added]

    @property
    def passed(self) -> bool:
        return self.status == "pass"

    @property
    def pending_changes(self) -> int:
        """Number of writes the run's mode calls for."""
        if not self.mode.mutates:
            return 0
        count = len(self.missing_from_manifest) + len(self.missing_from_lock)
        if self.mode.removes:
            count += len(self.unused_in_manifest) + len(self.unused_in_lock)
        return count

    @property
    def total_changes(self) -> int:
        """Number of writes that actually happened."""
        return (
            len(self.added_to_manifest)
            + len(self.added_to_lock)
            + len(self.removed_from_manifest)
            + len(self.removed_from_lock)
        )

    def finalize(self) -> "ReconcileResult":
        """Derive ``status`` from what is still missing and return ``self``."""
        unresolved = self.unresolved_manifest or self.unresolved_lock
        self.status = "fail" if unresolved else "pass"
        return self

    def to_json(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "dry_run": self.dry_run,
            "status": self.status,
            "code_packages": self.code_packages,
            "description_packages": self.manifest_packages,
            "lock_packages": self.lock_packages,
            "missing_in_description": self.missing_from_manifest,
            "missing_in_lock": self.missing_from_lock,
            "unused_in_description": self.unused_in_manifest,
            "unused_in_lock": self.unused_in_lock,
            "installable": [r.to_json() for r in self.installable],
            "non_installable": [r.package for r in self.non_installable],
            "added_to_description": self.added_to_manifest,
            "added_to_lock": self.added_to_lock,
            "removed_from_description": self.removed_from_manifest,
            "removed_from_lock": self.removed_from_lock,
            "failed": self.failed,
            "errors": self.errors,
        }
