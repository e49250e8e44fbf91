"""renv.lock reading and editing.

The lock file is a JSON document::

    {
      "R": {
        "Version": "4.5.1",
        "Repositories": [{"Name": "CRAN", "URL": "https://cloud.r-project.org"}]
      },
      "Packages": {
        "dplyr": {
          "Package": "dplyr",
          "Version": "1.1.4",
          "Source": "Repository",
          "Repository": "CRAN"
        }
      }
    }

Only the ``Packages`` map is edited; everything else, including unknown
keys on package records, is written back as it was read.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from renvkeeper.models.dependency import LockEntry
from renvkeeper.utils import get_logger, safe_read_file, safe_write_file
from renvkeeper.exceptions import FileOperationError, ParseError
from renvkeeper.constants import DEFAULT_CRAN_URL, DEFAULT_R_VERSION, LOCK_FILE

logger = get_logger("lockfile")


class RenvLock:
    """In-memory renv.lock document.

    Args:
        data: Decoded JSON document.
        path: Source path, used in error messages only.
    """

    def __init__(self, data: Dict[str, Any], path: Optional[Union[str, Path]] = None) -> None:
        self.data = data
        self.path = Path(path) if path is not None else None

    @classmethod
    def from_string(cls, content: str, path: Optional[Union[str, Path]] = None) -> "RenvLock":
        """Decode ``content``.

        Raises:
            ParseError: Invalid JSON, or a top level that is not an object.
        """
        file_path = str(path) if path is not None else None
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ParseError(
                f"Invalid JSON: {exc.msg}",
                line_number=exc.lineno,
                file_path=file_path,
            ) from exc

        if not isinstance(data, dict):
            raise ParseError("Lock file must contain a JSON object", file_path=file_path)
        return cls(data, path=path)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "RenvLock":
        return cls.from_string(safe_read_file(path), path=path)

    @classmethod
    def new(
        cls,
        r_version: str = DEFAULT_R_VERSION,
        cran_url: str = DEFAULT_CRAN_URL,
    ) -> "RenvLock":
        """Build an empty lock document for ``r_version``."""
        return cls(
            {
                "R": {
                    "Version": r_version,
                    "Repositories": [{"Name": "CRAN", "URL": cran_url}],
                },
                "Packages": {},
            }
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def packages(self) -> Dict[str, Any]:
        packages = self.data.get("Packages")
        return packages if isinstance(packages, dict) else {}

    @property
    def r_version(self) -> Optional[str]:
        r_section = self.data.get("R")
        if isinstance(r_section, dict):
            return r_section.get("Version")
        return None

    def package_names(self) -> List[str]:
        return sorted(self.packages)

    def entry(self, name: str) -> Optional[LockEntry]:
        record = self.packages.get(name)
        if not isinstance(record, dict):
            return None
        return LockEntry.from_json(name, record)

    def __contains__(self, name: object) -> bool:
        return name in self.packages

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add(self, entry: LockEntry) -> None:
        """Insert or replace ``entry``.

        If the existing keys are alphabetically ordered, the new key is
        inserted in order; otherwise it is appended.
        """
        packages = self.packages
        record = entry.to_json()

        if entry.package in packages or list(packages) != sorted(packages):
            packages[entry.package] = record
            self.data["Packages"] = packages
            return

        reordered: Dict[str, Any] = {}
        inserted = False
        for key, value in packages.items():
            if not inserted and entry.package < key:
                reordered[entry.package] = record
                inserted = True
            reordered[key] = value
        if not inserted:
            reordered[entry.package] = record
        self.data["Packages"] = reordered

    def remove(self, name: str) -> bool:
        packages = self.packages
        if name not in packages:
            return False
        del packages[name]
        return True

    def to_string(self) -> str:
        return json.dumps(self.data, indent=2, ensure_ascii=False) + "\n"


def read_lock_packages(project_root: Union[str, Path]) -> List[str]:
    """Sorted package names pinned in the project's renv.lock.

    A missing or malformed lock file yields an empty list and a warning.
    """
    path = Path(project_root) / LOCK_FILE
    if not path.exists():
        logger.warning("No %s file found in %s", LOCK_FILE, project_root)
        return []

    try:
        return RenvLock.from_path(path).package_names()
    except (FileOperationError, ParseError) as exc:
        logger.warning("Could not parse %s: %s", path, exc)
        return []


class LockWriter:
    """Adds and removes package records in a renv.lock file.

    Like :class:`~renvkeeper.core.description.ManifestWriter`, every call
    reloads the file and writes it back atomically; failures are logged
    and reported as ``False``.
    """

    def __init__(self, path: Union[str, Path], *, create_backup: bool = False) -> None:
        self.path = Path(path)
        self.create_backup = create_backup
        self.backup_path: Optional[Path] = None

    def _write(self, lock: RenvLock) -> None:
        backup = safe_write_file(
            self.path,
            lock.to_string(),
            create_backup=self.create_backup and self.backup_path is None,
        )
        if backup is not None:
            self.backup_path = backup

    def add(
        self,
        name: str,
        version: Optional[str],
        *,
        source: str = "Repository",
        repository: Optional[str] = "CRAN",
    ) -> bool:
        """Pin ``name`` at ``version``. An empty version is a failure."""
        if not version:
            logger.error("No version available for %s; not added to %s", name, LOCK_FILE)
            return False

        try:
            lock = RenvLock.from_path(self.path)
            lock.add(
                LockEntry(
                    package=name,
                    version=version,
                    source=source,
                    repository=repository,
                )
            )
            self._write(lock)
        except (FileOperationError, ParseError) as exc:
            logger.error("Failed to add %s to %s: %s", name, self.path, exc)
            return False

        logger.info("Added %s (%s) to %s", name, version, LOCK_FILE)
        return True

    def remove(self, name: str) -> bool:
        """Drop ``name``; returns ``False`` if it was not pinned."""
        try:
            lock = RenvLock.from_path(self.path)
            if not lock.remove(name):
                logger.debug("%s not present in %s", name, LOCK_FILE)
                return False
            self._write(lock)
        except (FileOperationError, ParseError) as exc:
            logger.error("Failed to remove %s from %s: %s", name, self.path, exc)
            return False

        logger.info("Removed %s from %s", name, LOCK_FILE)
        return True

    def create(
        self,
        r_version: str = DEFAULT_R_VERSION,
        cran_url: str = DEFAULT_CRAN_URL,
        *,
        overwrite: bool = False,
    ) -> bool:
        """Write a fresh lock file with no packages.

        An existing file is left alone unless ``overwrite`` is set.
        """
        if self.path.exists() and not overwrite:
            logger.warning("%s already exists; not overwriting", self.path)
            return False

        try:
            self._write(RenvLock.new(r_version, cran_url))
        except FileOperationError as exc:
            logger.error("Failed to create %s: %s", self.path, exc)
            return False

        logger.info("Created %s for R %s", self.path, r_version)
        return True
