"""
renvkeeper — keep R project dependencies honest.

renvkeeper reconciles the three places an R project records what it depends
on: the packages its source code actually references, the packages declared
in ``DESCRIPTION``, and the versions pinned in ``renv.lock``. It reports the
drift between them and, on request, repairs it.

Features include:
    • Syntactic extraction of ``library()``, ``require()``, ``pkg::`` and
      roxygen ``@import`` / ``@importFrom`` references
    • False-positive filtering (base packages, placeholders, generic words)
    • Three-way diff of code, DESCRIPTION and renv.lock
    • Installability checks against CRAN, Bioconductor and GitHub
    • Fix (add only) and sync (code is the source of truth) modes with
      atomic file rewrites and dry-run previews
"""

from __future__ import annotations

from renvkeeper.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "renvkeeper Contributors"
__license__ = "Apache-2.0"
__description__ = "Reconcile R code, DESCRIPTION and renv.lock dependencies."

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

from renvkeeper.core import (  # noqa: E402
    CodeExtractor,
    NameFilter,
    Reconciler,
    RegistryValidator,
)
from renvkeeper.models import (  # noqa: E402
    PackageSource,
    ReconcileResult,
    RunMode,
    ValidationResult,
)

__all__ = [
    "__version__",
    "CodeExtractor",
    "NameFilter",
    "Reconciler",
    "RegistryValidator",
    "PackageSource",
    "ReconcileResult",
    "RunMode",
    "ValidationResult",
]
