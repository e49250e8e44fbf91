from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from renvkeeper.core.description import DescriptionFile, ManifestWriter, read_manifest_packages
from renvkeeper.core.lockfile import LockWriter, RenvLock, read_lock_packages
from renvkeeper.core.reconciler import Reconciler
from renvkeeper.exceptions import ManifestError
from renvkeeper.models.report import PackageStatus, RunMode
from renvkeeper.models.validation import PackageSource, ValidationResult


class FakeRegistry:
    """Offline stand-in for RegistryValidator.

    ``known`` maps a package to ``(source, version)``; anything else is not
    installable.
    """

    def __init__(self, known: Dict[str, tuple], cran_versions: Optional[Dict[str, str]] = None):
        self.known = known
        self.cran_versions = cran_versions or {}
        self.batch_calls: List[List[str]] = []
        self.version_calls: List[str] = []

    async def check_installable_batch(self, names: Sequence[str], *, progress_callback=None):
        self.batch_calls.append(list(names))
        results = []
        for i, name in enumerate(names, start=1):
            if name in self.known:
                source, version = self.known[name]
                results.append(
                    ValidationResult(
                        package=name, installable=True, source=source, version=version
                    )
                )
            else:
                results.append(ValidationResult.not_found(name))
            if progress_callback is not None:
                progress_callback(i, len(names))
        return results

    async def fetch_version(self, name: str) -> Optional[str]:
        self.version_calls.append(name)
        return self.cran_versions.get(name)


DESCRIPTION = """\
Package: zzproject
Version: 0.1.0
Imports:
    dplyr,
    oldpkg,
    renv
License: MIT
"""


def _lock(*names: str) -> str:
    packages = {
        name: {"Package": name, "Version": "1.0.0", "Source": "Repository", "Repository": "CRAN"}
        for name in names
    }
    return json.dumps({"R": {"Version": "4.4.1"}, "Packages": packages}, indent=2)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Project where code uses dplyr, ggplot2 and stats.

    DESCRIPTION declares dplyr, oldpkg and renv; renv.lock pins dplyr,
    stalepkg and renv.
    """
    (tmp_path / "R").mkdir()
    (tmp_path / "R" / "main.R").write_text(
        "library(dplyr)\n"
        "p <- ggplot2::ggplot(df)\n"
        "m <- stats::lm(y ~ x)\n"
        "zzproject::helper()\n",
        encoding="utf-8",
    )
    (tmp_path / "DESCRIPTION").write_text(DESCRIPTION, encoding="utf-8")
    (tmp_path / "renv.lock").write_text(_lock("dplyr", "renv", "stalepkg"), encoding="utf-8")
    return tmp_path


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry({"ggplot2": (PackageSource.CRAN, "3.5.1")})


def _snapshot_files(root: Path) -> Dict[str, str]:
    return {
        name: (root / name).read_text(encoding="utf-8")
        for name in ("DESCRIPTION", "renv.lock")
        if (root / name).exists()
    }


@pytest.mark.unit
class TestCollectAndDiff:
    """Tests for snapshot collection and the three-way diff."""

    def test_collect(self, project: Path) -> None:
        """Test the snapshot reads code, DESCRIPTION and renv.lock."""
        snapshot = Reconciler(project).collect()

        assert snapshot.code_packages == ["dplyr", "ggplot2"]
        assert snapshot.manifest_packages == ["dplyr", "oldpkg", "renv"]
        assert snapshot.lock_packages == ["dplyr", "renv", "stalepkg"]
        assert snapshot.project_name == "zzproject"
        assert snapshot.has_manifest is True
        assert snapshot.has_lock is True

    def test_project_name_is_excluded(self, project: Path) -> None:
        """Test the project never reports itself as a dependency."""
        assert "zzproject" not in Reconciler(project).collect().code_packages

    def test_compute_diff(self, project: Path) -> None:
        """Test missing and unused sets with renv exempt."""
        reconciler = Reconciler(project)
        diff = reconciler.compute_diff(reconciler.collect())

        assert diff.missing_from_manifest == ["ggplot2"]
        assert diff.missing_from_lock == ["ggplot2"]
        assert diff.unused_in_manifest == ["oldpkg"]
        assert diff.unused_in_lock == ["stalepkg"]

    def test_no_lock_skips_lock_differences(self, project: Path) -> None:
        """Test a project without renv.lock has no lock findings."""
        (project / "renv.lock").unlink()
        reconciler = Reconciler(project)
        snapshot = reconciler.collect()
        diff = reconciler.compute_diff(snapshot)

        assert snapshot.has_lock is False
        assert diff.missing_from_lock == []
        assert diff.unused_in_lock == []

    def test_standard_mode_ignores_tests(self, project: Path) -> None:
        """Test strict=False does not scan tests/."""
        (project / "tests").mkdir()
        (project / "tests" / "test-x.R").write_text("library(testthat)\n")

        assert "testthat" in Reconciler(project).collect().code_packages
        assert "testthat" not in Reconciler(project, strict=False).collect().code_packages


@pytest.mark.unit
class TestValidate:
    """Tests for validate mode."""

    @pytest.mark.asyncio
    async def test_reports_without_writing(self, project: Path, registry: FakeRegistry) -> None:
        """Test validate finds problems and leaves files untouched."""
        before = _snapshot_files(project)

        result = await Reconciler(project, registry=registry).run(RunMode.VALIDATE)

        assert result.status == "fail"
        assert result.missing_from_manifest == ["ggplot2"]
        assert result.total_changes == 0
        assert _snapshot_files(project) == before
        assert registry.batch_calls == []

    @pytest.mark.asyncio
    async def test_unused_only_passes(self, project: Path) -> None:
        """Test unused findings alone do not fail the run."""
        (project / "R" / "main.R").write_text("library(dplyr)\n", encoding="utf-8")

        result = await Reconciler(project).run(RunMode.VALIDATE)

        assert result.status == "pass"
        assert result.unused_in_manifest == ["oldpkg"]

    @pytest.mark.asyncio
    async def test_validate_without_description(self, tmp_path: Path) -> None:
        """Test validate runs on a project with no DESCRIPTION."""
        (tmp_path / "main.R").write_text("library(dplyr)\n", encoding="utf-8")

        result = await Reconciler(tmp_path).run(RunMode.VALIDATE)

        assert result.status == "fail"
        assert result.missing_from_manifest == ["dplyr"]


@pytest.mark.unit
class TestFix:
    """Tests for fix mode."""

    @pytest.mark.asyncio
    async def test_adds_missing(self, project: Path, registry: FakeRegistry) -> None:
        """Test fix adds to both files and removes nothing."""
        result = await Reconciler(project, registry=registry).run(RunMode.FIX)

        assert result.status == "pass"
        assert result.added_to_manifest == ["ggplot2"]
        assert result.added_to_lock == ["ggplot2"]
        assert result.removed_from_manifest == []
        assert "ggplot2" in read_manifest_packages(project)
        assert "oldpkg" in read_manifest_packages(project)

        entry = RenvLock.from_path(project / "renv.lock").entry("ggplot2")
        assert entry is not None
        assert entry.version == "3.5.1"
        assert entry.repository == "CRAN"

    @pytest.mark.asyncio
    async def test_failed_lock_write_does_not_stop_the_rest(
        self, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test one failed lock write is collected and the next add still happens."""
        (project / "R" / "extra.R").write_text("purrr::map(xs, f)\n", encoding="utf-8")
        registry = FakeRegistry(
            {"ggplot2": (PackageSource.CRAN, "3.5.1"), "purrr": (PackageSource.CRAN, "1.0.2")}
        )

        add_lock = LockWriter.add

        def flaky_add(self: LockWriter, name: str, version, **kwargs) -> bool:
            return False if name == "ggplot2" else add_lock(self, name, version, **kwargs)

        monkeypatch.setattr(LockWriter, "add", flaky_add)

        result = await Reconciler(project, registry=registry).run(RunMode.FIX)

        assert result.added_to_manifest == ["ggplot2", "purrr"]
        assert result.added_to_lock == ["purrr"]
        assert result.failed == ["ggplot2"]
        assert result.errors == ["ggplot2: could not add to renv.lock"]
        assert result.status == "fail"
        assert read_lock_packages(project) == ["dplyr", "purrr", "renv", "stalepkg"]

    @pytest.mark.asyncio
    async def test_non_installable_is_not_locked(self, project: Path) -> None:
        """Test a package no registry knows fails the lock add."""
        registry = FakeRegistry({})

        result = await Reconciler(project, registry=registry).run(RunMode.FIX)

        assert result.status == "fail"
        assert result.added_to_manifest == ["ggplot2"]
        assert result.added_to_lock == []
        assert [v.package for v in result.non_installable] == ["ggplot2"]
        assert "ggplot2" in result.failed
        assert "ggplot2" not in read_lock_packages(project)

    @pytest.mark.asyncio
    async def test_bioconductor_source(self, project: Path) -> None:
        """Test a Bioconductor package is pinned with that source."""
        registry = FakeRegistry({"ggplot2": (PackageSource.BIOCONDUCTOR, "1.0.0")})

        await Reconciler(project, registry=registry).run(RunMode.FIX)

        record = json.loads((project / "renv.lock").read_text())["Packages"]["ggplot2"]
        assert record["Source"] == "Bioconductor"
        assert "Repository" not in record

    @pytest.mark.asyncio
    async def test_github_without_version_fails(self, project: Path) -> None:
        """Test a source that reports no version cannot be pinned."""
        registry = FakeRegistry({"ggplot2": (PackageSource.GITHUB, None)})

        result = await Reconciler(project, registry=registry).run(RunMode.FIX)

        assert result.added_to_lock == []
        assert result.status == "fail"
        assert registry.version_calls == ["ggplot2"]

    @pytest.mark.asyncio
    async def test_without_source_validation(self, project: Path) -> None:
        """Test validate_sources=False pins the CRAN version directly."""
        registry = FakeRegistry({}, cran_versions={"ggplot2": "3.5.0"})

        result = await Reconciler(project, registry=registry, validate_sources=False).run(
            RunMode.FIX
        )

        assert registry.batch_calls == []
        assert result.added_to_lock == ["ggplot2"]
        assert result.installable == []
        assert RenvLock.from_path(project / "renv.lock").entry("ggplot2").version == "3.5.0"

    @pytest.mark.asyncio
    async def test_without_registry_lock_adds_fail(self, project: Path) -> None:
        """Test lock additions need a registry."""
        result = await Reconciler(project).run(RunMode.FIX)

        assert result.added_to_manifest == ["ggplot2"]
        assert result.failed == ["ggplot2"]
        assert result.status == "fail"

    @pytest.mark.asyncio
    async def test_progress_callback_forwarded(self, project: Path, registry: FakeRegistry) -> None:
        """Test batch validation progress reaches the caller."""
        calls: List[tuple] = []

        await Reconciler(project, registry=registry).run(
            RunMode.FIX, progress_callback=lambda done, total: calls.append((done, total))
        )

        assert calls == [(1, 1)]

    @pytest.mark.asyncio
    async def test_requires_description(self, tmp_path: Path) -> None:
        """Test mutating modes refuse to run without DESCRIPTION."""
        (tmp_path / "main.R").write_text("library(dplyr)\n", encoding="utf-8")

        with pytest.raises(ManifestError):
            await Reconciler(tmp_path).run(RunMode.FIX)

    @pytest.mark.asyncio
    async def test_backup(self, project: Path, registry: FakeRegistry) -> None:
        """Test create_backup keeps one copy of each file."""
        await Reconciler(project, registry=registry, create_backup=True).run(RunMode.FIX)

        assert len(list(project.glob("DESCRIPTION.*.backup"))) == 1
        assert len(list(project.glob("renv.lock.*.backup"))) == 1


@pytest.mark.unit
class TestSync:
    """Tests for sync mode."""

    @pytest.mark.asyncio
    async def test_adds_and_removes(self, project: Path, registry: FakeRegistry) -> None:
        """Test sync adds missing entries and drops unused ones."""
        result = await Reconciler(project, registry=registry).run(RunMode.SYNC)

        assert result.status == "pass"
        assert result.removed_from_manifest == ["oldpkg"]
        assert result.removed_from_lock == ["stalepkg"]
        assert read_manifest_packages(project) == ["dplyr", "ggplot2", "renv"]
        assert read_lock_packages(project) == ["dplyr", "ggplot2", "renv"]

    @pytest.mark.asyncio
    async def test_never_removes_renv(self, project: Path, registry: FakeRegistry) -> None:
        """Test renv survives even though no code references it."""
        await Reconciler(project, registry=registry).run(RunMode.SYNC)

        assert "renv" in read_manifest_packages(project)
        assert "renv" in read_lock_packages(project)

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, project: Path, registry: FakeRegistry) -> None:
        """Test sync reaches a fixed point."""
        reconciler = Reconciler(project, registry=registry)
        await reconciler.run(RunMode.SYNC)
        before = _snapshot_files(project)

        result = await reconciler.run(RunMode.SYNC)

        assert result.total_changes == 0
        assert result.pending_changes == 0
        assert result.status == "pass"
        assert _snapshot_files(project) == before

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, project: Path, registry: FakeRegistry) -> None:
        """Test dry run plans changes without writes or registry calls."""
        before = _snapshot_files(project)

        result = await Reconciler(project, registry=registry).run(RunMode.SYNC, dry_run=True)

        assert result.dry_run is True
        assert result.pending_changes == 4
        assert result.total_changes == 0
        assert result.status == "fail"
        assert registry.batch_calls == []
        assert _snapshot_files(project) == before

    @pytest.mark.asyncio
    async def test_description_layout_preserved(self, project: Path, registry: FakeRegistry) -> None:
        """Test sync only touches the dependency field."""
        await Reconciler(project, registry=registry).run(RunMode.SYNC)

        desc = DescriptionFile.from_path(project / "DESCRIPTION")
        assert desc.field_names == ["Package", "Version", "Imports", "License"]
        assert desc.get("License") == "MIT"

    @pytest.mark.asyncio
    async def test_failed_removal_does_not_stop_the_rest(
        self, project: Path, registry: FakeRegistry, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a write failure is collected and later removals still run."""
        (project / "DESCRIPTION").write_text(
            DESCRIPTION.replace("    dplyr,\n", "    aaapkg,\n    dplyr,\n"), encoding="utf-8"
        )
        (project / "renv.lock").write_text(
            _lock("aaastale", "dplyr", "renv", "stalepkg"), encoding="utf-8"
        )

        remove_manifest = ManifestWriter.remove
        remove_lock = LockWriter.remove

        def flaky_manifest_remove(self: ManifestWriter, name: str) -> bool:
            return False if name == "aaapkg" else remove_manifest(self, name)

        def flaky_lock_remove(self: LockWriter, name: str) -> bool:
            return False if name == "aaastale" else remove_lock(self, name)

        monkeypatch.setattr(ManifestWriter, "remove", flaky_manifest_remove)
        monkeypatch.setattr(LockWriter, "remove", flaky_lock_remove)

        result = await Reconciler(project, registry=registry).run(RunMode.SYNC)

        assert result.removed_from_manifest == ["oldpkg"]
        assert result.removed_from_lock == ["stalepkg"]
        assert result.failed == ["aaapkg", "aaastale"]
        assert result.errors == [
            "aaapkg: could not remove from DESCRIPTION",
            "aaastale: could not remove from renv.lock",
        ]
        assert read_manifest_packages(project) == ["aaapkg", "dplyr", "ggplot2", "renv"]
        assert read_lock_packages(project) == ["aaastale", "dplyr", "ggplot2", "renv"]


@pytest.mark.unit
class TestReport:
    """Tests for the per-package report."""

    def test_rows_and_ordering(self, project: Path) -> None:
        """Test each package's status and problems-first ordering."""
        rows = Reconciler(project).report()
        statuses = {row.package: row.status for row in rows}

        assert statuses == {
            "ggplot2": PackageStatus.MISSING_DESCRIPTION,
            "oldpkg": PackageStatus.MISSING_LOCK,
            "stalepkg": PackageStatus.UNUSED,
            "dplyr": PackageStatus.OK,
            "renv": PackageStatus.OK,
        }
        assert [row.package for row in rows] == ["ggplot2", "oldpkg", "stalepkg", "dplyr", "renv"]

    def test_missing_lock_status(self, project: Path) -> None:
        """Test a declared but unpinned package is missing_lock."""
        (project / "DESCRIPTION").write_text(
            DESCRIPTION.replace("    dplyr,\n", "    dplyr,\n    ggplot2,\n"),
            encoding="utf-8",
        )

        rows = {row.package: row for row in Reconciler(project).report()}

        assert rows["ggplot2"].status is PackageStatus.MISSING_LOCK
        assert rows["ggplot2"].in_description is True
        assert rows["ggplot2"].in_lock is False


@pytest.mark.unit
class TestCleanManifest:
    """Tests for clean_manifest."""

    def test_dry_run(self, project: Path) -> None:
        """Test the dry run lists names and leaves DESCRIPTION alone."""
        assert Reconciler(project).clean_manifest(dry_run=True) == ["oldpkg"]
        assert (project / "DESCRIPTION").read_text(encoding="utf-8") == DESCRIPTION

    def test_removes_unused(self, project: Path) -> None:
        """Test unused entries are removed and renv is kept."""
        assert Reconciler(project).clean_manifest() == ["oldpkg"]
        assert read_manifest_packages(project) == ["dplyr", "renv"]

    def test_requires_description(self, tmp_path: Path) -> None:
        """Test a missing DESCRIPTION raises ManifestError."""
        with pytest.raises(ManifestError):
            Reconciler(tmp_path).clean_manifest()
