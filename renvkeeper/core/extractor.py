"""Package reference extraction from R source files.

Scans ``.R``, ``.Rmd``, ``.qmd`` and ``.Rnw`` files under a set of directory
roots and yields every token that looks like a package reference. The
extraction is purely textual; nothing is parsed or evaluated:

- ``library(pkg)`` and ``require(pkg)``, optionally quoted
- ``pkg::fn`` namespace-qualified calls
- roxygen ``#' @import pkg`` and ``#' @importFrom pkg fn`` tags

Ordinary comment lines are blanked before matching so that commented-out
code does not count, while roxygen lines (``#'``) are kept.

Tokens are raw candidates. They still contain base packages and false
positives and are expected to pass through
:class:`~renvkeeper.core.name_filter.NameFilter`.

Typical usage::

    from renvkeeper.core.extractor import CodeExtractor
    from renvkeeper.constants import STRICT_DIRS

    extractor = CodeExtractor("path/to/project", STRICT_DIRS)
    tokens = extractor.extract()
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Union

from renvkeeper.exceptions import FileOperationError
from renvkeeper.utils import get_logger, safe_read_file
from renvkeeper.constants import (
    FILE_EXTENSIONS,
    SKIP_DIRS,
    SKIP_FILES,
    STANDARD_DIRS,
)

_NAME = r"([a-zA-Z][a-zA-Z0-9.]*)"

_LIBRARY_RE = re.compile(r"library\s*\(\s*['\"]?" + _NAME + r"['\"]?\s*\)")
_REQUIRE_RE = re.compile(r"require\s*\(\s*['\"]?" + _NAME + r"['\"]?\s*\)")
_NAMESPACE_RE = re.compile(_NAME + r"::")
_IMPORT_FROM_RE = re.compile(r"#'\s*@importFrom\s+" + _NAME)
_IMPORT_RE = re.compile(r"#'\s*@import\s+" + _NAME)

_ROXYGEN_RE = re.compile(r"^\s*#'")
_COMMENT_RE = re.compile(r"^\s*#")

#: Patterns applied to every line; all matches are kept.
REFERENCE_PATTERNS: Sequence["re.Pattern[str]"] = (
    _LIBRARY_RE,
    _REQUIRE_RE,
    _NAMESPACE_RE,
    _IMPORT_FROM_RE,
    _IMPORT_RE,
)


def _is_plain_comment(line: str) -> bool:
    return bool(_COMMENT_RE.match(line)) and not _ROXYGEN_RE.match(line)


def extract_line_tokens(line: str) -> List[str]:
    """Return every package reference on a single line, in pattern order.

    Example::

        >>> extract_line_tokens("x <- dplyr::filter(df); library(ggplot2)")
        ['ggplot2', 'dplyr']
    """
    tokens: List[str] = []
    for pattern in REFERENCE_PATTERNS:
        tokens.extend(pattern.findall(line))
    return tokens


class CodeExtractor:
    """Collect candidate package tokens from a project's R sources.

    Args:
        project_root: Project directory; roots and skip-dir fragments are
            interpreted relative to it.
        dirs: Directory roots to walk recursively, relative to
            ``project_root``. ``"."`` covers only the files directly in the
            project root. Missing roots are skipped silently.
        extensions: File extensions to scan, without the dot. Matching is
            case-sensitive.
        skip_files: Basenames that are never scanned.
        skip_dirs: Path fragments; a file whose path relative to the
            project root contains one of them is not scanned.
        skip_comments: Blank ordinary comment lines before matching.
    """

    def __init__(
        self,
        project_root: Union[str, Path],
        dirs: Sequence[str] = STANDARD_DIRS,
        *,
        extensions: Sequence[str] = FILE_EXTENSIONS,
        skip_files: Iterable[str] = SKIP_FILES,
        skip_dirs: Iterable[str] = SKIP_DIRS,
        skip_comments: bool = True,
    ) -> None:
        self.project_root = Path(project_root)
        self.dirs = tuple(dirs)
        self.extensions = frozenset(extensions)
        self.skip_files = frozenset(skip_files)
        self.skip_dirs = tuple(skip_dirs)
        self.skip_comments = skip_comments
        self.logger = get_logger("extractor")

    # ------------------------------------------------------------------
    # File discovery
    # ------------------------------------------------------------------

    def find_source_files(self) -> List[Path]:
        """Return the sorted, deduplicated list of files to scan."""
        found: Set[Path] = set()

        for root in self.dirs:
            base = self.project_root / root
            if not base.is_dir():
                continue

            # The project root itself only contributes its top-level files;
            # subdirectories are reached through their own roots.
            candidates = base.iterdir() if root in ("", ".") else base.rglob("*")
            for path in candidates:
                if path.is_file() and self._should_scan(path):
                    found.add(path.resolve())

        files = sorted(found)
        self.logger.debug(
            "Found %d source file(s) under %s", len(files), self.project_root
        )
        return files

    def _should_scan(self, path: Path) -> bool:
        if path.suffix[1:] not in self.extensions:
            return False

        if path.name in self.skip_files:
            return False

        try:
            relative = path.resolve().relative_to(self.project_root.resolve())
        except ValueError:
            relative = path
        relative_str = relative.as_posix()
        if os.sep != "/":
            relative_str = relative_str.replace(os.sep, "/")

        return not any(fragment in relative_str for fragment in self.skip_dirs)

    # ------------------------------------------------------------------
    # Token extraction
    # ------------------------------------------------------------------

    def iter_file_tokens(self, path: Union[str, Path]) -> Iterator[str]:
        """Yield candidate tokens from one file.

        An unreadable file is logged and contributes nothing.
        """
        try:
            content = safe_read_file(path)
        except FileOperationError as exc:
            self.logger.warning("Could not read %s: %s", path, exc)
            return

        for line in content.splitlines():
            if self.skip_comments and _is_plain_comment(line):
                continue
            yield from extract_line_tokens(line)

    def iter_tokens(self) -> Iterator[str]:
        """Lazily yield tokens from every source file."""
        for path in self.find_source_files():
            yield from self.iter_file_tokens(path)

    def extract(self) -> List[str]:
        """Collect all tokens, in file order, duplicates included."""
        files = self.find_source_files()
        if not files:
            self.logger.info("No R source files found in %s", self.project_root)
            return []

        tokens: List[str] = []
        for path in files:
            tokens.extend(self.iter_file_tokens(path))

        self.logger.debug("Extracted %d raw token(s)", len(tokens))
        return tokens


def extract_code_packages(
    project_root: Union[str, Path],
    dirs: Sequence[str] = STANDARD_DIRS,
    *,
    skip_files: Optional[Iterable[str]] = None,
    skip_dirs: Optional[Iterable[str]] = None,
) -> List[str]:
    """Shortcut for ``CodeExtractor(project_root, dirs).extract()``."""
    extractor = CodeExtractor(
        project_root,
        dirs,
        skip_files=SKIP_FILES if skip_files is None else skip_files,
        skip_dirs=SKIP_DIRS if skip_dirs is None else skip_dirs,
    )
    return extractor.extract()
