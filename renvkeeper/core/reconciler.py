"""Three-way reconciliation of code, DESCRIPTION and renv.lock.

The :class:`Reconciler` treats the project's R code as the source of truth.
Each run takes a fresh snapshot of the three package sets, computes their
differences, and then applies one of three policies:

- :attr:`RunMode.VALIDATE` reports the differences and changes nothing.
- :attr:`RunMode.FIX` adds what code uses but the files lack. Lock file
  additions are gated on the package being installable from a known
  registry when ``validate_sources`` is on.
- :attr:`RunMode.SYNC` does everything fix does and also removes entries
  no code references. ``renv`` itself is never removed.

Every single addition or removal is an independent atomic file write;
a failure is recorded in :attr:`ReconcileResult.failed` and the run moves on
to the next package.

Typical usage::

    async with HTTPClient() as http:
        reconciler = Reconciler(".", registry=RegistryValidator(http))
        result = await reconciler.run(RunMode.FIX)
        print(result.status)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from renvkeeper.core.description import (
    DescriptionFile,
    ManifestWriter,
    read_manifest_packages,
    read_project_name,
)
from renvkeeper.core.extractor import CodeExtractor
from renvkeeper.core.lockfile import LockWriter, read_lock_packages
from renvkeeper.core.name_filter import FilterConfig, NameFilter
from renvkeeper.core.registry import ProgressCallback, RegistryValidator
from renvkeeper.exceptions import FileOperationError, ManifestError, ParseError
from renvkeeper.models.report import (
    DiffResult,
    PackageRow,
    ReconcileResult,
    RunMode,
    classify_status,
)
from renvkeeper.models.validation import PackageSource, ValidationResult
from renvkeeper.utils.logger import get_logger
from renvkeeper.constants import (
    DEFAULT_DEPENDENCY_FIELD,
    DEPENDENCY_MANAGER_PACKAGE,
    DESCRIPTION_FILE,
    LOCK_FILE,
    SKIP_DIRS,
    SKIP_FILES,
    STANDARD_DIRS,
    STRICT_DIRS,
)

logger = get_logger("reconciler")

# renv.lock ``Source``/``Repository`` values per registry.
_LOCK_SOURCES: Dict[PackageSource, Tuple[str, Optional[str]]] = {
    PackageSource.CRAN: ("Repository", "CRAN"),
    PackageSource.BIOCONDUCTOR: ("Bioconductor", None),
    PackageSource.GITHUB: ("GitHub", None),
}


@dataclass(frozen=True)
class ProjectSnapshot:
    """The three package sets of a project at one point in time."""

    project_root: Path
    code_packages: List[str] = field(default_factory=list)
    manifest_packages: List[str] = field(default_factory=list)
    lock_packages: List[str] = field(default_factory=list)
    project_name: Optional[str] = None
    has_manifest: bool = False
    has_lock: bool = False


def _sorted_difference(left: Iterable[str], *others: Iterable[str]) -> List[str]:
    result = set(left)
    for other in others:
        result.difference_update(other)
    return sorted(result)


class Reconciler:
    """Compare and reconcile a project's declared and used packages.

    Args:
        project_root: Directory holding DESCRIPTION, renv.lock and the code.
        strict: Also scan ``tests``, ``vignettes`` and ``inst``.
        filter_config: Name filter lists; the project's own name is added
            to the placeholders on every snapshot.
        registry: Source validator used to gate and version lock additions.
            Without one, lock additions fail.
        validate_sources: Gate lock additions on registry installability.
            When off, the version is still looked up on CRAN.
        dependency_field: DESCRIPTION field that is read and edited.
        skip_files: Basenames never scanned.
        skip_dirs: Relative path fragments never scanned.
        create_backup: Back up DESCRIPTION and renv.lock before the first
            write to each.
    """

    def __init__(
        self,
        project_root: Union[str, Path] = ".",
        *,
        strict: bool = True,
        filter_config: Optional[FilterConfig] = None,
        registry: Optional[RegistryValidator] = None,
        validate_sources: bool = True,
        dependency_field: str = DEFAULT_DEPENDENCY_FIELD,
        skip_files: Iterable[str] = SKIP_FILES,
        skip_dirs: Iterable[str] = SKIP_DIRS,
        create_backup: bool = False,
    ) -> None:
        self.project_root = Path(project_root)
        self.strict = strict
        self.filter_config = filter_config or FilterConfig()
        self.registry = registry
        self.validate_sources = validate_sources
        self.dependency_field = dependency_field
        self.skip_files = tuple(skip_files)
        self.skip_dirs = tuple(skip_dirs)
        self.create_backup = create_backup

    @property
    def description_path(self) -> Path:
        return self.project_root / DESCRIPTION_FILE

    @property
    def lock_path(self) -> Path:
        return self.project_root / LOCK_FILE

    @property
    def exempt(self) -> FrozenSet[str]:
        """Names never reported missing or unused."""
        return self.filter_config.base_packages | {DEPENDENCY_MANAGER_PACKAGE}

    # ------------------------------------------------------------------
    # Snapshot and diff
    # ------------------------------------------------------------------

    def collect(self) -> ProjectSnapshot:
        """Scan the code and read both files."""
        project_name = read_project_name(self.project_root)
        config = self.filter_config.with_placeholders([project_name])

        dirs = STRICT_DIRS if self.strict else STANDARD_DIRS
        extractor = CodeExtractor(
            self.project_root,
            dirs,
            skip_files=self.skip_files,
            skip_dirs=self.skip_dirs,
        )
        code_packages = NameFilter(config).clean(extractor.extract())

        has_manifest = self.description_path.is_file()
        manifest_packages = read_manifest_packages(self.project_root, self.dependency_field)

        has_lock = self.lock_path.is_file()
        if has_lock:
            lock_packages = read_lock_packages(self.project_root)
        else:
            logger.info("No %s in %s; lock checks skipped", LOCK_FILE, self.project_root)
            lock_packages = []

        logger.info(
            "Found %d package(s) in code, %d in %s, %d in %s",
            len(code_packages),
            len(manifest_packages),
            DESCRIPTION_FILE,
            len(lock_packages),
            LOCK_FILE,
        )

        return ProjectSnapshot(
            project_root=self.project_root,
            code_packages=code_packages,
            manifest_packages=manifest_packages,
            lock_packages=lock_packages,
            project_name=project_name,
            has_manifest=has_manifest,
            has_lock=has_lock,
        )

    def compute_diff(self, snapshot: ProjectSnapshot) -> DiffResult:
        """Set differences with exempt names removed from both sides."""
        code = snapshot.code_packages
        exempt = self.exempt

        if snapshot.has_lock:
            missing_lock = _sorted_difference(code, snapshot.lock_packages, exempt)
            unused_lock = _sorted_difference(snapshot.lock_packages, code, exempt)
        else:
            missing_lock, unused_lock = [], []

        return DiffResult(
            missing_from_manifest=_sorted_difference(code, snapshot.manifest_packages, exempt),
            missing_from_lock=missing_lock,
            unused_in_manifest=_sorted_difference(snapshot.manifest_packages, code, exempt),
            unused_in_lock=unused_lock,
        )

    def _require_manifest(self) -> None:
        """Raise :class:`ManifestError` unless DESCRIPTION is readable."""
        try:
            DescriptionFile.from_path(self.description_path)
        except (FileOperationError, ParseError) as exc:
            raise ManifestError(
                f"{DESCRIPTION_FILE} is missing or unreadable: {exc}",
                file_path=str(self.description_path),
                operation="read",
                original_error=exc,
            ) from exc

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def run(
        self,
        mode: RunMode = RunMode.VALIDATE,
        *,
        dry_run: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ReconcileResult:
        """Reconcile the project according to ``mode``.

        Args:
            mode: Policy to apply.
            dry_run: Plan the changes but write nothing.
            progress_callback: Forwarded to the batch source validation.

        Raises:
            ManifestError: ``mode`` mutates and DESCRIPTION is missing or
                unreadable.
        """
        if mode.mutates:
            self._require_manifest()

        snapshot = self.collect()
        diff = self.compute_diff(snapshot)
        result = ReconcileResult.from_diff(
            mode,
            diff,
            dry_run=dry_run,
            has_lock=snapshot.has_lock,
            code_packages=snapshot.code_packages,
            manifest_packages=snapshot.manifest_packages,
            lock_packages=snapshot.lock_packages,
        )

        if not mode.mutates:
            return result.finalize()

        if dry_run:
            logger.info("Dry run: %d change(s) planned, none written", result.pending_changes)
            return result.finalize()

        manifest_writer = ManifestWriter(
            self.description_path,
            self.dependency_field,
            create_backup=self.create_backup,
        )
        lock_writer = LockWriter(self.lock_path, create_backup=self.create_backup)

        self._add_to_manifest(manifest_writer, diff.missing_from_manifest, result)
        if diff.missing_from_lock:
            await self._add_to_lock(lock_writer, diff.missing_from_lock, result, progress_callback)

        if mode.removes:
            self._remove_from_manifest(manifest_writer, diff.unused_in_manifest, result)
            self._remove_from_lock(lock_writer, diff.unused_in_lock, result)

        result.finalize()
        logger.info(
            "%s finished: %d change(s), %d failure(s), status %s",
            mode.value,
            result.total_changes,
            len(result.failed),
            result.status,
        )
        return result

    def _record_failure(self, result: ReconcileResult, name: str, message: str) -> None:
        if name not in result.failed:
            result.failed.append(name)
        result.errors.append(f"{name}: {message}")

    def _add_to_manifest(
        self,
        writer: ManifestWriter,
        names: List[str],
        result: ReconcileResult,
    ) -> None:
        for name in names:
            if writer.add(name):
                result.added_to_manifest.append(name)
            else:
                self._record_failure(result, name, f"could not add to {DESCRIPTION_FILE}")

    async def _add_to_lock(
        self,
        writer: LockWriter,
        names: List[str],
        result: ReconcileResult,
        progress_callback: Optional[ProgressCallback],
    ) -> None:
        if self.registry is None:
            for name in names:
                self._record_failure(result, name, "no registry available to resolve a version")
            return

        if self.validate_sources:
            validations = await self.registry.check_installable_batch(
                names, progress_callback=progress_callback
            )
        else:
            validations = [
                ValidationResult(package=name, installable=True, source=PackageSource.CRAN)
                for name in names
            ]

        for validation in validations:
            name = validation.package
            if not validation.installable:
                result.non_installable.append(validation)
                self._record_failure(result, name, "not installable from any known source")
                continue

            if self.validate_sources:
                result.installable.append(validation)

            version = validation.version or await self.registry.fetch_version(name)
            if not version:
                self._record_failure(result, name, "no version could be determined")
                continue

            source, repository = _LOCK_SOURCES[validation.source]
            if writer.add(name, version, source=source, repository=repository):
                result.added_to_lock.append(name)
            else:
                self._record_failure(result, name, f"could not add to {LOCK_FILE}")

    def _remove_from_manifest(
        self,
        writer: ManifestWriter,
        names: List[str],
        result: ReconcileResult,
    ) -> None:
        for name in names:
            if name == DEPENDENCY_MANAGER_PACKAGE:
                continue
            if writer.remove(name):
                result.removed_from_manifest.append(name)
            else:
                self._record_failure(result, name, f"could not remove from {DESCRIPTION_FILE}")

    def _remove_from_lock(
        self,
        writer: LockWriter,
        names: List[str],
        result: ReconcileResult,
    ) -> None:
        for name in names:
            if name == DEPENDENCY_MANAGER_PACKAGE:
                continue
            if writer.remove(name):
                result.removed_from_lock.append(name)
            else:
                self._record_failure(result, name, f"could not remove from {LOCK_FILE}")

    # ------------------------------------------------------------------
    # Reporting and cleanup
    # ------------------------------------------------------------------

    def report(self, snapshot: Optional[ProjectSnapshot] = None) -> List[PackageRow]:
        """One row per package seen anywhere, problems first."""
        snapshot = snapshot or self.collect()
        code = set(snapshot.code_packages)
        manifest = set(snapshot.manifest_packages)
        lock = set(snapshot.lock_packages)
        exempt = self.exempt

        rows: List[PackageRow] = []
        for name in sorted(code | manifest | lock):
            row = PackageRow(
                package=name,
                in_code=name in code,
                in_description=name in manifest,
                in_lock=name in lock,
                exempt=name in exempt,
            )
            rows.append(replace(row, status=classify_status(row, has_lock=snapshot.has_lock)))

        rows.sort(key=lambda r: (r.status.rank, r.package))
        return rows

    def clean_manifest(self, *, dry_run: bool = False) -> List[str]:
        """Remove DESCRIPTION entries that no code references.

        Returns:
            The names removed, or that would be removed on a dry run.

        Raises:
            ManifestError: DESCRIPTION is missing or unreadable.
        """
        self._require_manifest()
        diff = self.compute_diff(self.collect())
        unused = [n for n in diff.unused_in_manifest if n != DEPENDENCY_MANAGER_PACKAGE]

        if dry_run:
            return unused

        writer = ManifestWriter(
            self.description_path,
            self.dependency_field,
            create_backup=self.create_backup,
        )
        removed = [name for name in unused if writer.remove(name)]
        logger.info("Removed %d unused package(s) from %s", len(removed), DESCRIPTION_FILE)
        return removed
