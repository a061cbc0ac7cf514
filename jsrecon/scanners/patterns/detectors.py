"""Loading and validation of pluggable text detectors.

A detector is a Python module in a detector directory. The module must
export ``PATTERN``, either a compiled ``re.Pattern`` or a pattern string,
and may export ``NAME``; the file name is used otherwise. For example::

    # detectors/errors.py
    import re

    NAME = "errors.py"
    PATTERN = re.compile(r"throw\\s+new\\s+Error\\(\\s*['\\"`](.*?)['\\"`]\\s*\\)")

A detector whose pattern can match the empty string, or makes zero-width
matches (word boundaries, bare lookarounds) in sample text, is rejected:
applied repeatedly across a text it would report empty matches.
Rejected detectors are logged once and excluded from the whole run.
"""

from __future__ import annotations

import importlib.util
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ...core.exceptions import DetectorLoadError

logger = logging.getLogger(__name__)

# Sample texts searched at load time to catch zero-width matches in non-empty input
_ZERO_WIDTH_SAMPLES = ("a", " a1_-", "secret", "x secret y", "key=\"value\";\n", "0")


@dataclass(frozen=True)
class Detector:
    """A named, safely repeatable text pattern.

    Compiled patterns are immutable, so one detector can be applied to many
    files concurrently.
    """

    name: str
    pattern: re.Pattern[str]


@dataclass
class DetectorSet:
    """Detectors accepted for a run, plus the ones that were rejected."""

    detectors: list[Detector] = field(default_factory=list)
    rejected: dict[str, str] = field(default_factory=dict)  # name -> reason

    @property
    def names(self) -> list[str]:
        return [d.name for d in self.detectors]


def make_detector(name: str, pattern: object) -> Detector:
    """Validate *pattern* and wrap it as a detector.

    Args:
        name: Stable detector name used in reports.
        pattern: A compiled ``re.Pattern[str]`` or a pattern string.

    Raises:
        DetectorLoadError: If the pattern has the wrong type, does not
            compile, can match the empty string or makes zero-width
            matches.
    """
    if isinstance(pattern, str):
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise DetectorLoadError(f"Invalid pattern: {e}", detector=name) from e
    elif isinstance(pattern, re.Pattern):
        if not isinstance(pattern.pattern, str):
            raise DetectorLoadError("Pattern must match text, not bytes", detector=name)
        compiled = pattern
    else:
        raise DetectorLoadError(
            f"PATTERN must be a compiled regex or string, got {type(pattern).__name__}",
            detector=name,
        )

    if compiled.match("") is not None:
        raise DetectorLoadError(
            "Pattern matches the empty string and cannot be applied repeatedly",
            detector=name,
        )

    for sample in _ZERO_WIDTH_SAMPLES:
        for m in compiled.finditer(sample):
            if m.end() == m.start():
                raise DetectorLoadError(
                    f"Pattern makes zero-width matches (at {m.start()} in {sample!r}) "
                    "and cannot be applied repeatedly",
                    detector=name,
                )

    return Detector(name=name, pattern=compiled)


def load_detector_file(path: str | Path) -> Detector:
    """Import a detector module and validate its exports.

    Raises:
        DetectorLoadError: If the module cannot be imported or its exports
            are missing or invalid.
    """
    path = Path(path)
    module_name = f"_jsrecon_detector_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise DetectorLoadError(f"Cannot load detector module {path}", detector=path.name)

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        # Plugin code is arbitrary; any import-time failure rejects it
        raise DetectorLoadError(
            f"Failed to import detector module: {e}", detector=path.name
        ) from e

    if not hasattr(module, "PATTERN"):
        raise DetectorLoadError("Module does not export PATTERN", detector=path.name)

    name = getattr(module, "NAME", path.name)
    if not isinstance(name, str) or not name:
        raise DetectorLoadError("NAME must be a non-empty string", detector=path.name)

    return make_detector(name, module.PATTERN)


def load_detectors(directories: Iterable[str | Path]) -> DetectorSet:
    """Load every detector module found in *directories*.

    Files starting with an underscore are ignored. A detector whose name
    duplicates an earlier one is rejected so report names stay unique.
    Failures never abort loading; they are returned in ``DetectorSet.rejected``
    for the caller to report.
    """
    result = DetectorSet()
    seen: set[str] = set()

    for directory in directories:
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning(f"Detector directory not found: {directory}")
            continue

        for path in sorted(directory.glob("*.py")):
            if path.name.startswith("_"):
                continue
            try:
                detector = load_detector_file(path)
            except DetectorLoadError as e:
                key = e.detector or path.name
                result.rejected[key] = str(e)
                continue

            if detector.name in seen:
                result.rejected[f"{detector.name} ({path})"] = "Duplicate detector name"
                continue

            seen.add(detector.name)
            result.detectors.append(detector)

    logger.info(
        f"Loaded {len(result.detectors)} detector(s), rejected {len(result.rejected)}"
    )
    return result
