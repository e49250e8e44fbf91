from __future__ import annotations

import pytest

from renvkeeper.models.dependency import Dependency, LockEntry


@pytest.mark.unit
class TestDependency:
    """Tests for Dependency.from_entry."""

    def test_plain_name(self) -> None:
        """Test an entry without a constraint."""
        dep = Dependency.from_entry("  ggplot2 ", "Imports")

        assert dep.name == "ggplot2"
        assert dep.constraint is None
        assert dep.raw == "ggplot2"
        assert str(dep) == "ggplot2"

    def test_constraint(self) -> None:
        """Test the constraint is extracted and whitespace-normalised."""
        dep = Dependency.from_entry("dplyr (>=   1.1.0)", "Depends")

        assert dep.name == "dplyr"
        assert dep.dep_type == "Depends"
        assert dep.constraint == ">= 1.1.0"
        assert str(dep) == "dplyr (>= 1.1.0)"

    def test_constraint_without_space(self) -> None:
        """Test a constraint glued to the name."""
        assert Dependency.from_entry("R6(>= 2.5)", "Imports").name == "R6"

    def test_empty_constraint(self) -> None:
        """Test empty parentheses mean no constraint."""
        assert Dependency.from_entry("rlang ()", "Imports").constraint is None


@pytest.mark.unit
class TestLockEntry:
    """Tests for LockEntry JSON conversion."""

    def test_from_json_defaults(self) -> None:
        """Test missing keys fall back to defaults."""
        entry = LockEntry.from_json("dplyr", {"Version": "1.1.4"})

        assert entry.package == "dplyr"
        assert entry.source == "Repository"
        assert entry.repository is None

    def test_extra_keys_survive(self) -> None:
        """Test unknown keys are written back after the known ones."""
        record = {
            "Package": "dplyr",
            "Version": "1.1.4",
            "Source": "Repository",
            "Repository": "CRAN",
            "Hash": "abc123",
            "Requirements": ["rlang"],
        }

        assert LockEntry.from_json("dplyr", record).to_json() == record

    def test_to_json_omits_missing_repository(self) -> None:
        """Test non-repository sources have no Repository key."""
        entry = LockEntry(package="limma", version="3.60.0", source="Bioconductor")
        assert entry.to_json() == {
            "Package": "limma",
            "Version": "3.60.0",
            "Source": "Bioconductor",
        }
