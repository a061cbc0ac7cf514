"""Atomic persistence of report artifacts.

Every artifact is assembled fully in memory by the caller, written to a
temporary file in the destination directory and moved into place with
``os.replace``. A failed write never leaves a partial file at the target path.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .exceptions import ArtifactWriteError

logger = logging.getLogger(__name__)


def write_text_atomic(path: Path, content: str) -> Path:
    """Write *content* to *path* atomically.

    Args:
        path: Destination file. Parent directories are created as needed.
        content: Complete file contents.

    Returns:
        The destination path.

    Raises:
        ArtifactWriteError: If the directory cannot be created or the file
            cannot be written or moved into place.
    """
    path = Path(path)
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp_file:
            tmp_name = tmp_file.name
            tmp_file.write(content)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug(f"Temporary file already gone: {tmp_name}")
        raise ArtifactWriteError(f"Failed to write {path}: {e}", path=str(path)) from e

    logger.debug(f"Wrote artifact {path}")
    return path


def write_json_atomic(path: Path, data: Any) -> Path:
    """Serialize *data* as indented JSON and write it atomically."""
    try:
        content = json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ArtifactWriteError(
            f"Failed to serialize {path}: {e}", path=str(path)
        ) from e
    return write_text_atomic(path, content)


def unique_timestamped_path(
    directory: Path, prefix: str, suffix: str = ".json"
) -> Path:
    """Return a path in *directory* named after the current UTC time.

    The timestamp carries microseconds; if a file with the name already
    exists a numeric counter is appended, so consecutive calls never return
    the path of an existing artifact.
    """
    directory = Path(directory)
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    candidate = directory / f"{prefix}{timestamp}{suffix}"
    counter = 1
    while candidate.exists():
        candidate = directory / f"{prefix}{timestamp}-{counter}{suffix}"
        counter += 1
    return candidate
