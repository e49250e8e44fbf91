"""DESCRIPTION file parsing and editing.

A DESCRIPTION file is a Debian-control-format (DCF) document: ``Field: value``
headers, with values continued on following lines that start with
whitespace::

    Package: myanalysis
    Version: 0.1.0
    Imports:
        dplyr (>= 1.1.0),
        ggplot2
    Depends: R (>= 4.1)

:class:`DescriptionFile` keeps every original line so that an edit to one
dependency field leaves the rest of the document byte-identical.
:class:`ManifestWriter` wraps it with the reload, edit, atomic-write cycle
used for every single addition or removal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from renvkeeper.models.dependency import Dependency
from renvkeeper.utils import get_logger, safe_read_file, safe_write_file
from renvkeeper.exceptions import FileOperationError, ParseError
from renvkeeper.constants import (
    DEFAULT_DEPENDENCY_FIELD,
    DEPENDENCY_FIELDS,
    DESCRIPTION_FILE,
    R_PSEUDO_PACKAGE,
)

logger = get_logger("description")

_HEADER_RE = re.compile(r"^([A-Za-z0-9][^\s:]*):(.*)$")
_CONSTRAINT_RE = re.compile(r"\([^)]*\)")
_DEFAULT_INDENT = "    "


@dataclass
class _Field:
    """Location of one field: ``lines[start]`` is the header line."""

    name: str
    start: int
    end: int


def split_dependency_value(value: str) -> List[str]:
    """Split a dependency field value into bare package names.

    Version constraints in parentheses are removed, the ``R``
    pseudo-package is dropped, and blank entries are ignored.

    Example::

        >>> split_dependency_value("R (>= 4.0), dplyr (>= 1.0),\\n  ggplot2")
        ['dplyr', 'ggplot2']
    """
    stripped = _CONSTRAINT_RE.sub("", value)
    names = [part.strip() for part in stripped.split(",")]
    return [name for name in names if name and name != R_PSEUDO_PACKAGE]


class DescriptionFile:
    """In-memory DCF document that preserves its original lines.

    Args:
        content: Document text.
        path: Source path, used in error messages only.

    Raises:
        ParseError: A continuation line appears before any field, or a
            non-blank line is neither a header nor a continuation.
    """

    def __init__(self, content: str, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path) if path is not None else None
        self.newline = "\r\n" if "\r\n" in content else "\n"
        self._trailing_newline = content.endswith("\n") or not content
        self.lines: List[str] = content.splitlines()
        self._fields: List[_Field] = []
        self._parse()

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "DescriptionFile":
        """Read and parse ``path``.

        Raises:
            FileOperationError: The file is missing or unreadable.
            ParseError: The file is not valid DCF.
        """
        return cls(safe_read_file(path, newline=""), path=path)

    @classmethod
    def from_string(cls, content: str) -> "DescriptionFile":
        return cls(content)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse(self) -> None:
        current: Optional[_Field] = None
        file_path = str(self.path) if self.path else None

        for index, line in enumerate(self.lines):
            if not line.strip():
                continue

            if line[0] in " \t":
                if current is None:
                    raise ParseError(
                        "Continuation line before any field",
                        line_number=index + 1,
                        line_content=line,
                        file_path=file_path,
                    )
                current.end = index + 1
                continue

            match = _HEADER_RE.match(line)
            if match is None:
                raise ParseError(
                    "Expected 'Field: value'",
                    line_number=index + 1,
                    line_content=line,
                    file_path=file_path,
                )

            current = _Field(name=match.group(1), start=index, end=index + 1)
            self._fields.append(current)

    def _find(self, name: str) -> Optional[_Field]:
        for fld in self._fields:
            if fld.name == name:
                return fld
        return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def field_names(self) -> List[str]:
        return [fld.name for fld in self._fields]

    def has_field(self, name: str) -> bool:
        return self._find(name) is not None

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the value of field ``name`` with continuation lines joined.

        Each continuation line is stripped and the pieces are joined with
        newlines.
        """
        fld = self._find(name)
        if fld is None:
            return default

        header = _HEADER_RE.match(self.lines[fld.start])
        parts = [header.group(2).strip()] if header else []
        parts.extend(
            line.strip() for line in self.lines[fld.start + 1 : fld.end] if line.strip()
        )
        return "\n".join(part for part in parts if part)

    @property
    def package_name(self) -> Optional[str]:
        """The ``Package:`` field, or ``None``."""
        value = self.get("Package")
        return value or None

    def dependencies(self, field: str = DEFAULT_DEPENDENCY_FIELD) -> List[str]:
        """Package names declared in ``field``, constraints removed."""
        value = self.get(field)
        if not value:
            return []
        return split_dependency_value(value)

    def dependency_entries(self, field: str = DEFAULT_DEPENDENCY_FIELD) -> List[Dependency]:
        """Entries of ``field`` with their version constraints."""
        value = self.get(field)
        if not value:
            return []
        parsed = [
            Dependency.from_entry(part, field) for part in value.split(",") if part.strip()
        ]
        return [dep for dep in parsed if dep.name != R_PSEUDO_PACKAGE]

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _raw_entries(self, fld: _Field) -> List[str]:
        # Entries wrapped across lines are collapsed onto one.
        value = self.get(fld.name) or ""
        return [" ".join(part.split()) for part in value.split(",") if part.strip()]

    def _render_field(self, fld: _Field, entries: Sequence[str]) -> List[str]:
        """Render ``entries`` in the layout ``fld`` already uses."""
        header = _HEADER_RE.match(self.lines[fld.start])
        header_has_value = bool(header and header.group(2).strip())
        continuation = self.lines[fld.start + 1 : fld.end]

        if not continuation:
            return [f"{fld.name}: {', '.join(entries)}"]

        indent = _DEFAULT_INDENT
        for line in continuation:
            if line.strip():
                indent = line[: len(line) - len(line.lstrip())]
                break

        items = [f"{entry}," for entry in entries[:-1]] + [entries[-1]]
        if header_has_value:
            return [f"{fld.name}: {items[0]}"] + [f"{indent}{item}" for item in items[1:]]
        return [f"{fld.name}:"] + [f"{indent}{item}" for item in items]

    def _replace_field(self, fld: _Field, new_lines: List[str]) -> None:
        self.lines[fld.start : fld.end] = new_lines
        self._fields = []
        self._parse()

    def add_dependency(self, name: str, field: str = DEFAULT_DEPENDENCY_FIELD) -> bool:
        """Append ``name`` to ``field``.

        Returns:
            ``False`` when ``name`` is already declared in the field, in
            which case the document is unchanged.
        """
        fld = self._find(field)

        if fld is None:
            position = len(self.lines)
            while position > 0 and not self.lines[position - 1].strip():
                position -= 1
            self.lines.insert(position, f"{field}: {name}")
            self._fields = []
            self._parse()
            return True

        if name in self.dependencies(field):
            return False

        entries = self._raw_entries(fld) + [name]
        self._replace_field(fld, self._render_field(fld, entries))
        return True

    def remove_dependency(self, name: str, field: str = DEFAULT_DEPENDENCY_FIELD) -> bool:
        """Remove the entry whose package name is exactly ``name``.

        A field left empty is removed altogether.

        Returns:
            ``False`` when ``name`` is not declared in the field.
        """
        fld = self._find(field)
        if fld is None:
            return False

        entries = self._raw_entries(fld)
        kept = [e for e in entries if Dependency.from_entry(e, field).name != name]
        if len(kept) == len(entries):
            return False

        if kept:
            self._replace_field(fld, self._render_field(fld, kept))
        else:
            self._replace_field(fld, [])
        return True

    def to_string(self) -> str:
        text = self.newline.join(self.lines)
        if self._trailing_newline and self.lines:
            text += self.newline
        return text


# ----------------------------------------------------------------------
# Readers
# ----------------------------------------------------------------------


def _load(project_root: Union[str, Path]) -> Optional[DescriptionFile]:
    path = Path(project_root) / DESCRIPTION_FILE
    if not path.exists():
        logger.warning("No %s file found in %s", DESCRIPTION_FILE, project_root)
        return None

    try:
        return DescriptionFile.from_path(path)
    except (FileOperationError, ParseError) as exc:
        logger.warning("Could not parse %s: %s", path, exc)
        return None


def read_manifest_packages(
    project_root: Union[str, Path],
    field: str = DEFAULT_DEPENDENCY_FIELD,
) -> List[str]:
    """Sorted package names declared in ``field`` of the project's DESCRIPTION.

    A missing or malformed file yields an empty list and a warning.
    """
    description = _load(project_root)
    if description is None:
        return []
    return sorted(set(description.dependencies(field)))


def read_manifest_state(
    project_root: Union[str, Path],
    fields: Iterable[str] = DEPENDENCY_FIELDS,
) -> Dict[str, str]:
    """Map every declared package to the first field that declares it."""
    description = _load(project_root)
    if description is None:
        return {}

    state: Dict[str, str] = {}
    for field in fields:
        for name in description.dependencies(field):
            state.setdefault(name, field)
    return state


def read_project_name(project_root: Union[str, Path]) -> Optional[str]:
    """The project's own ``Package:`` name, if it has one."""
    path = Path(project_root) / DESCRIPTION_FILE
    if not path.is_file():
        return None
    try:
        return DescriptionFile.from_path(path).package_name
    except (FileOperationError, ParseError) as exc:
        logger.debug("Could not read package name from %s: %s", path, exc)
        return None


# ----------------------------------------------------------------------
# Writer
# ----------------------------------------------------------------------


class ManifestWriter:
    """Adds and removes single dependency entries in a DESCRIPTION file.

    Every call reloads the file, so edits made by other tools in between
    are never overwritten. Failures are logged and reported as ``False``.

    Args:
        path: Path of the DESCRIPTION file.
        field: Dependency field to edit.
        create_backup: Copy the file to a timestamped backup before the
            first write of this writer.
    """

    def __init__(
        self,
        path: Union[str, Path],
        field: str = DEFAULT_DEPENDENCY_FIELD,
        *,
        create_backup: bool = False,
    ) -> None:
        self.path = Path(path)
        self.field = field
        self.create_backup = create_backup
        self.backup_path: Optional[Path] = None

    def _write(self, description: DescriptionFile) -> None:
        backup = safe_write_file(
            self.path,
            description.to_string(),
            create_backup=self.create_backup and self.backup_path is None,
        )
        if backup is not None:
            self.backup_path = backup

    def add(self, name: str) -> bool:
        """Declare ``name``; a name already present is a successful no-op."""
        try:
            description = DescriptionFile.from_path(self.path)
            if not description.add_dependency(name, self.field):
                logger.debug("%s already declared in %s", name, self.field)
                return True
            self._write(description)
        except (FileOperationError, ParseError) as exc:
            logger.error("Failed to add %s to %s: %s", name, self.path, exc)
            return False

        logger.info("Added %s to %s %s", name, DESCRIPTION_FILE, self.field)
        return True

    def remove(self, name: str) -> bool:
        """Remove ``name``; returns ``False`` if it was not declared."""
        try:
            description = DescriptionFile.from_path(self.path)
            if not description.remove_dependency(name, self.field):
                logger.debug("%s not declared in %s", name, self.field)
                return False
            self._write(description)
        except (FileOperationError, ParseError) as exc:
            logger.error("Failed to remove %s from %s: %s", name, self.path, exc)
            return False

        logger.info("Removed %s from %s %s", name, DESCRIPTION_FILE, self.field)
        return True
