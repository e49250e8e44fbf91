"""
Centralized constants for renvkeeper.

This module defines immutable configuration values used across renvkeeper,
including registry endpoints, scan defaults, the built-in exclusion lists
used by the name filter, and logging formats. All values are intended to be
treated as read-only; per-run extensions are derived from them, never
written back.
"""

from typing import Final, FrozenSet, Sequence

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = "renvkeeper/{version}"

# ---------------------------------------------------------------------------
# Project files
# ---------------------------------------------------------------------------

#: Manifest file declaring the project's direct dependencies.
DESCRIPTION_FILE: Final[str] = "DESCRIPTION"

#: Lock file pinning exact package versions.
LOCK_FILE: Final[str] = "renv.lock"

#: Dependency field scanned and edited by default.
DEFAULT_DEPENDENCY_FIELD: Final[str] = "Imports"

#: Every DESCRIPTION field that declares package dependencies.
DEPENDENCY_FIELDS: Final[Sequence[str]] = (
    "Depends",
    "Imports",
    "LinkingTo",
    "Suggests",
    "Enhances",
)

#: Pseudo-dependency used in ``Depends`` to constrain the R version.
R_PSEUDO_PACKAGE: Final[str] = "R"

# ---------------------------------------------------------------------------
# Registry endpoints
# ---------------------------------------------------------------------------

#: CRAN metadata lookup keyed by package name.
CRAN_DB_API: Final[str] = "https://crandb.r-pkg.org/{package}"

#: Bioconductor bulk package listing.
BIOC_PACKAGES_JSON: Final[str] = (
    "https://bioconductor.org/packages/json/{version}/bioc/packages.json"
)

#: GitHub repository lookup keyed by ``owner/repo``.
GITHUB_REPOS_API: Final[str] = "https://api.github.com/repos/{repo}"

#: Bioconductor release queried by default.
DEFAULT_BIOC_VERSION: Final[str] = "3.19"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[float] = 10.0

#: Per-registry timeouts in seconds. The Bioconductor listing is large.
CRAN_TIMEOUT: Final[float] = 10.0
BIOC_TIMEOUT: Final[float] = 15.0
GITHUB_TIMEOUT: Final[float] = 10.0

#: Registry lookups are single-shot; a failure means "not found here".
DEFAULT_MAX_RETRIES: Final[int] = 0

#: Upper bound on in-flight registry requests during batch validation.
DEFAULT_MAX_CONCURRENCY: Final[int] = 8

# ---------------------------------------------------------------------------
# Lock file defaults
# ---------------------------------------------------------------------------

#: R version written into freshly created lock files.
DEFAULT_R_VERSION: Final[str] = "4.5.1"

#: CRAN mirror written into freshly created lock files.
DEFAULT_CRAN_URL: Final[str] = "https://cloud.r-project.org"

#: Package name of the dependency manager itself; never removed.
DEPENDENCY_MANAGER_PACKAGE: Final[str] = "renv"

# ---------------------------------------------------------------------------
# Source scanning
# ---------------------------------------------------------------------------

#: Source file extensions scanned for package references (case-sensitive).
FILE_EXTENSIONS: Final[Sequence[str]] = ("R", "Rmd", "qmd", "Rnw")

#: Basenames never scanned; these usually hold example code.
SKIP_FILES: Final[Sequence[str]] = (
    "README.Rmd",
    "README.md",
    "CLAUDE.md",
)

#: Path fragments (relative to the project root) excluded from scanning.
SKIP_DIRS: Final[Sequence[str]] = (
    "examples",
    "inst/examples",
    "man/examples",
    "renv/",
)

#: Directory roots scanned in standard mode.
STANDARD_DIRS: Final[Sequence[str]] = (".", "R", "scripts", "analysis")

#: Directory roots scanned in strict mode (adds tests, vignettes, inst).
STRICT_DIRS: Final[Sequence[str]] = (
    ".",
    "R",
    "scripts",
    "analysis",
    "tests",
    "vignettes",
    "inst",
)

# ---------------------------------------------------------------------------
# Name filter lists
# ---------------------------------------------------------------------------

#: Packages shipped with every R installation.
BASE_PACKAGES: Final[FrozenSet[str]] = frozenset(
    {
        "base",
        "utils",
        "stats",
        "graphics",
        "grDevices",
        "methods",
        "datasets",
        "tools",
        "grid",
        "parallel",
    }
)

#: Stand-in names used in documentation and examples.
PLACEHOLDER_PACKAGES: Final[FrozenSet[str]] = frozenset(
    {
        "package",
        "pkg",
        "mypackage",
        "myproject",
        "yourpackage",
        "project",
        "data",
        "result",
        "output",
        "input",
        "test",
        "example",
        "sample",
        "demo",
        "template",
        "local",
        "any",
        "all",
        "none",
        "NULL",
        "foo",
        "bar",
        "baz",
        "qux",
    }
)

#: Pronouns, articles and generic nouns that show up as false positives.
GENERIC_WORDS: Final[FrozenSet[str]] = frozenset(
    {
        "my",
        "your",
        "his",
        "her",
        "our",
        "their",
        "the",
        "this",
        "that",
        "file",
        "dir",
        "path",
        "name",
        "value",
        "object",
        "function",
        "method",
        "class",
    }
)

#: Suffixes of all-lowercase example project names.
EXAMPLE_SUFFIXES: Final[Sequence[str]] = ("analysis", "project", "study", "trial")

#: Minimum length of a valid package name.
MIN_PACKAGE_NAME_LENGTH: Final[int] = 3

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed file size (in bytes) when reading project files.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
