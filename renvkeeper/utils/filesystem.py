"""
Filesystem helpers for renvkeeper.

Reads are size-limited and writes are atomic: content goes to a temporary
file in the destination directory, is flushed to disk, and then replaces
the target with ``os.replace`` semantics, so a DESCRIPTION or renv.lock is
either fully rewritten or left untouched. All failures surface as
:class:`~renvkeeper.exceptions.FileOperationError`.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from datetime import datetime
from typing import Optional, Union

from renvkeeper.utils.logger import get_logger
from renvkeeper.exceptions import FileOperationError
from renvkeeper.constants import MAX_FILE_SIZE

logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _validated_file(path: Path) -> Path:
    """Resolve ``path`` after checking that it names an existing file."""
    if not path.exists():
        raise FileOperationError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )
    if not path.is_file():
        raise FileOperationError(
            f"Not a file: {path}",
            file_path=str(path),
            operation="read",
        )
    return path.resolve()


def _atomic_write(target: Path, content: str) -> None:
    """Write ``content`` to a sibling temp file, then swap it into place."""
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Optional[Path] = None

    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            newline="",
            dir=str(target.parent),
            delete=False,
            prefix=f".{target.name}.",
            suffix=".tmp",
        ) as tmp:
            temp_path = Path(tmp.name)
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())

        temp_path.replace(target)

    except Exception as exc:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
                logger.debug("Removed leftover temporary file %s", temp_path)
            except OSError as cleanup_exc:
                logger.warning(
                    "Could not remove temporary file %s: %s",
                    temp_path,
                    cleanup_exc,
                )

        raise FileOperationError(
            f"Atomic write failed: {exc}",
            file_path=str(target),
            operation="write",
            original_error=exc,
        ) from exc


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
    newline: Optional[str] = None,
) -> str:
    """Read a text file, refusing anything larger than ``max_size`` bytes.

    Args:
        file_path: Path to the file.
        max_size: Size limit in bytes; ``None`` disables the check.
        encoding: Text encoding.
        newline: Passed to :func:`open`; ``""`` keeps Windows line endings
            as they are on disk.

    Returns:
        File contents.

    Raises:
        FileOperationError: Missing file, oversized file, or decode/IO error.
    """
    path = _validated_file(Path(file_path))
    size = path.stat().st_size

    if max_size is not None and size > max_size:
        raise FileOperationError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        with path.open(encoding=encoding, newline=newline) as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise FileOperationError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc


def safe_write_file(
    file_path: PathLike,
    content: str,
    *,
    create_backup: bool = False,
) -> Optional[Path]:
    """Atomically replace ``file_path`` with ``content``.

    Args:
        file_path: Destination path.
        content: Text content to write.
        create_backup: Copy the current file to a timestamped backup first.

    Returns:
        Path of the backup, if one was created.

    Raises:
        FileOperationError: The backup or the write failed. The original
            file is left as it was.
    """
    path = Path(file_path)
    backup: Optional[Path] = None

    if create_backup and path.is_file():
        backup = create_timestamped_backup(path)

    _atomic_write(path, content)
    return backup


def create_timestamped_backup(file_path: PathLike) -> Path:
    """Copy ``file_path`` to ``{name}.{timestamp}.backup`` next to it.

    ``renv.lock`` becomes ``renv.lock.20250101_120000.backup``; the
    DESCRIPTION file, which has no suffix, becomes
    ``DESCRIPTION.20250101_120000.backup``.
    """
    path = Path(file_path)

    if not path.is_file():
        raise FileOperationError(
            f"Cannot backup invalid file: {path}",
            file_path=str(path),
            operation="backup",
        )

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = path.parent / f"{path.name}.{timestamp}.backup"

    try:
        shutil.copy2(path, backup_path)
    except OSError as exc:
        raise FileOperationError(
            f"Failed to create backup: {exc}",
            file_path=str(path),
            operation="backup",
            original_error=exc,
        ) from exc

    logger.debug("Created backup %s", backup_path)
    return backup_path
