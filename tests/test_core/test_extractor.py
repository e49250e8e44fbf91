from __future__ import annotations

from pathlib import Path

import pytest

from renvkeeper.constants import STANDARD_DIRS, STRICT_DIRS
from renvkeeper.core.extractor import (
    CodeExtractor,
    extract_code_packages,
    extract_line_tokens,
)


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a small R project tree.

    Returns:
        Path: Project root containing R/, tests/, examples/ and renv/.
    """
    _write(
        tmp_path / "R" / "analysis.R",
        "library(dplyr)\n"
        'require("ggplot2")\n'
        "x <- tidyr::pivot_longer(df)\n"
        "# library(commented)\n"
        "  # stringr::str_detect(x)\n"
        "#' @importFrom purrr map\n"
        "#' @import data.table\n",
    )
    _write(tmp_path / "tests" / "testthat" / "test-a.R", "library(testthat)\n")
    _write(tmp_path / "examples" / "demo.R", "library(exampleonly)\n")
    _write(tmp_path / "renv" / "activate.R", "library(renvinternal)\n")
    _write(tmp_path / "README.Rmd", "```{r}\nlibrary(readmeonly)\n```\n")
    _write(tmp_path / "setup.R", "library(toplevel)\n")
    _write(tmp_path / "script.r", "library(lowercaseext)\n")
    return tmp_path


@pytest.mark.unit
class TestExtractLineTokens:
    """Tests for single-line pattern extraction."""

    def test_library_call(self) -> None:
        """Test library() with and without quotes."""
        assert extract_line_tokens("library(dplyr)") == ["dplyr"]
        assert extract_line_tokens("library('dplyr')") == ["dplyr"]
        assert extract_line_tokens('library( "dplyr" )') == ["dplyr"]

    def test_require_call(self) -> None:
        """Test require() is recognised."""
        assert extract_line_tokens("require(Matrix)") == ["Matrix"]

    def test_namespace_operator(self) -> None:
        """Test pkg:: references anywhere on the line."""
        line = "out <- dplyr::mutate(purrr::map(x, f))"
        assert extract_line_tokens(line) == ["dplyr", "purrr"]

    def test_roxygen_tags(self) -> None:
        """Test @import and @importFrom roxygen tags."""
        assert extract_line_tokens("#' @importFrom rlang .data") == ["rlang"]
        assert extract_line_tokens("#' @import ggplot2") == ["ggplot2"]

    def test_all_patterns_fire_independently(self) -> None:
        """Test several patterns on one line are all reported."""
        tokens = extract_line_tokens("library(dplyr); tidyr::gather(x)")
        assert tokens == ["dplyr", "tidyr"]

    def test_duplicates_are_kept(self) -> None:
        """Test tokens are not deduplicated at this stage."""
        assert extract_line_tokens("dplyr::a(dplyr::b())") == ["dplyr", "dplyr"]

    def test_no_match(self) -> None:
        """Test ordinary code yields nothing."""
        assert extract_line_tokens("x <- mean(y)") == []


@pytest.mark.unit
class TestFindSourceFiles:
    """Tests for CodeExtractor.find_source_files."""

    def test_standard_mode_files(self, project: Path) -> None:
        """Test standard mode scans top level and R/ but not tests/."""
        files = CodeExtractor(project, STANDARD_DIRS).find_source_files()
        names = {f.name for f in files}

        assert names == {"analysis.R", "setup.R"}

    def test_strict_mode_adds_tests(self, project: Path) -> None:
        """Test strict mode also scans tests/."""
        files = CodeExtractor(project, STRICT_DIRS).find_source_files()
        names = {f.name for f in files}

        assert "test-a.R" in names

    def test_skips_skip_dirs_and_files(self, project: Path) -> None:
        """Test examples/, renv/ and README.Rmd are never scanned."""
        extractor = CodeExtractor(project, STRICT_DIRS + ("examples", "renv"))
        names = {f.name for f in extractor.find_source_files()}

        assert "demo.R" not in names
        assert "activate.R" not in names
        assert "README.Rmd" not in names

    def test_extension_is_case_sensitive(self, project: Path) -> None:
        """Test .r files are not scanned."""
        names = {f.name for f in CodeExtractor(project).find_source_files()}
        assert "script.r" not in names

    def test_files_are_unique_and_sorted(self, project: Path) -> None:
        """Test overlapping roots yield each file once, sorted."""
        files = CodeExtractor(project, ("R", "R", ".")).find_source_files()

        assert files == sorted(files)
        assert len(files) == len(set(files))

    def test_missing_roots_are_skipped(self, tmp_path: Path) -> None:
        """Test nonexistent roots are ignored silently."""
        assert CodeExtractor(tmp_path, ("nope",)).find_source_files() == []


@pytest.mark.unit
class TestExtract:
    """Tests for token extraction over a whole project."""

    def test_extract_standard(self, project: Path) -> None:
        """Test the expected tokens are found and comments are ignored."""
        tokens = CodeExtractor(project, STANDARD_DIRS).extract()

        assert set(tokens) == {
            "dplyr",
            "ggplot2",
            "tidyr",
            "purrr",
            "data.table",
            "toplevel",
        }

    def test_comments_kept_when_disabled(self, project: Path) -> None:
        """Test skip_comments=False keeps commented references."""
        extractor = CodeExtractor(project, ("R",), skip_comments=False)
        tokens = extractor.extract()

        assert "commented" in tokens
        assert "stringr" in tokens

    def test_iter_tokens_matches_extract(self, project: Path) -> None:
        """Test the lazy and eager paths agree."""
        extractor = CodeExtractor(project, STRICT_DIRS)
        assert list(extractor.iter_tokens()) == extractor.extract()

    def test_no_files_yields_empty(self, tmp_path: Path) -> None:
        """Test a project without sources yields an empty list."""
        assert CodeExtractor(tmp_path).extract() == []

    def test_unreadable_file_yields_nothing(self, tmp_path: Path) -> None:
        """Test an undecodable file is skipped without failing the scan."""
        (tmp_path / "R").mkdir()
        (tmp_path / "R" / "bad.R").write_bytes(b"\xff\xfe library(\xff)")
        _write(tmp_path / "R" / "good.R", "library(dplyr)\n")

        assert CodeExtractor(tmp_path, ("R",)).extract() == ["dplyr"]

    def test_extract_code_packages_wrapper(self, project: Path) -> None:
        """Test the module-level shortcut."""
        tokens = extract_code_packages(project, ("R",))
        assert "dplyr" in tokens
        assert "toplevel" not in tokens
