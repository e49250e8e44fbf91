"""
Core functionality exports for renvkeeper.

This module provides convenient access to the core subsystems of renvkeeper.
Importing from here keeps user-facing imports clean and stable:

    from renvkeeper.core import Reconciler, RegistryValidator
"""

from __future__ import annotations

from renvkeeper.core.extractor import CodeExtractor, extract_code_packages
from renvkeeper.core.name_filter import FilterConfig, NameFilter, clean_package_names
from renvkeeper.core.description import (
    DescriptionFile,
    ManifestWriter,
    read_manifest_packages,
    read_manifest_state,
    read_project_name,
)
from renvkeeper.core.lockfile import LockWriter, RenvLock, read_lock_packages
from renvkeeper.core.registry import RegistryValidator
from renvkeeper.core.reconciler import ProjectSnapshot, Reconciler

__all__ = [
    "CodeExtractor",
    "extract_code_packages",
    "FilterConfig",
    "NameFilter",
    "clean_package_names",
    "DescriptionFile",
    "ManifestWriter",
    "read_manifest_packages",
    "read_manifest_state",
    "read_project_name",
    "LockWriter",
    "RenvLock",
    "read_lock_packages",
    "RegistryValidator",
    "ProjectSnapshot",
    "Reconciler",
]
