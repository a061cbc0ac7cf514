"""Loading of the downloaded source corpus."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from ..constants import MAX_SOURCE_FILE_SIZE, SOURCE_EXTENSIONS
from ..core.exceptions import InvalidInputError, SourceReadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """A source file read once from disk.

    Attributes:
        path: Location the file was read from.
        raw_text: Full decoded contents.
        display_name: Name used in reports, relative to the corpus root
            when one was given.
    """

    path: Path
    raw_text: str
    display_name: str


def display_name_for(path: Path, root: Path | None = None) -> str:
    """Return *path* relative to *root* when it lies under it."""
    if root is not None:
        try:
            return Path(path).resolve().relative_to(Path(root).resolve()).as_posix()
        except ValueError:
            pass
    return str(path)


def read_source_file(path: str | Path, root: Path | None = None) -> SourceFile:
    """Read a source file as UTF-8.

    Undecodable bytes are replaced rather than rejected, since minified
    bundles regularly embed binary-ish string tables.

    Raises:
        SourceReadError: If the file is missing, unreadable or too large.
    """
    path = Path(path)
    try:
        size = path.stat().st_size
        if size > MAX_SOURCE_FILE_SIZE:
            raise SourceReadError(
                f"File too large (max {MAX_SOURCE_FILE_SIZE // (1024 * 1024)}MB): {path}"
            )
        raw_text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise SourceReadError(f"Cannot read {path}: {e}") from e
    return SourceFile(path=path, raw_text=raw_text, display_name=display_name_for(path, root))


def collect_source_files(
    root: str | Path, extensions: Iterable[str] = SOURCE_EXTENSIONS
) -> list[Path]:
    """Recursively collect JavaScript-family files under *root*.

    Downloaded bundles are nested arbitrarily deep (webpack chunks, Next.js
    build folders), so the whole tree is walked. Results are sorted for a
    stable report order.

    Raises:
        InvalidInputError: If *root* is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise InvalidInputError(f"Source directory not found: {root}")

    suffixes = {ext.lower() for ext in extensions}
    files: list[Path] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            candidate = Path(dirpath) / filename
            if candidate.suffix.lower() in suffixes and not candidate.is_symlink():
                files.append(candidate)

    files.sort()
    logger.debug(f"Collected {len(files)} source files under {root}")
    return files
