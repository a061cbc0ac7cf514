"""Multi-detector text scanning with context capture and deduplication.

Every (file, detector) pair is scanned independently: all matches are
located with a stateless search, each gets a whitespace-normalized context
window, and exact duplicates are dropped. Pairs without matches produce no
record.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import NamedTuple

from ...constants import CONTEXT_RADIUS
from ...core.exceptions import SourceReadError
from ..source import SourceFile, read_source_file
from .detectors import Detector
from .models import PatternMatch, PatternScanReport, ScanRecord

logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r"\s+")


class MatchSpan(NamedTuple):
    """Location of one match in a text."""

    start: int
    end: int
    text: str


def find_matches(pattern: re.Pattern[str], text: str) -> Iterator[MatchSpan]:
    """Yield every match of *pattern* in *text*, in order.

    Each search resumes where the previous match ended. Zero-length matches
    are never yielded; the search resumes one character past them, so the
    scan always terminates. No matcher state survives the call.
    """
    pos = 0
    length = len(text)
    while pos <= length:
        m = pattern.search(text, pos)
        if m is None:
            return
        start, end = m.span()
        if end == start:
            pos = end + 1
            continue
        yield MatchSpan(start, end, m.group(0))
        pos = end


def extract_context(text: str, start: int, end: int, radius: int = CONTEXT_RADIUS) -> str:
    """Return up to *radius* characters around ``text[start:end]``.

    The window is clipped to the text bounds, internal whitespace runs
    become single spaces and outer whitespace is trimmed.
    """
    window = text[max(0, start - radius):min(len(text), end + radius)]
    return _WHITESPACE_RUN.sub(" ", window).strip()


def scan_text(text: str, detector: Detector, radius: int = CONTEXT_RADIUS) -> list[PatternMatch]:
    """Apply one detector to one text and return its unique matches.

    Matches are deduplicated by the exact ``(match, context)`` pair, keeping
    the first occurrence.
    """
    unique: list[PatternMatch] = []
    seen: set[tuple[str, str]] = set()
    for span in find_matches(detector.pattern, text):
        context = extract_context(text, span.start, span.end, radius)
        key = (span.text, context)
        if key in seen:
            continue
        seen.add(key)
        unique.append(PatternMatch(match=span.text, context=context))
    return unique


class PatternScanEngine:
    """Applies a closed set of detectors to a corpus of source files.

    Example::

        detectors = load_detectors([BUILTIN_DETECTOR_DIR])
        engine = PatternScanEngine(detectors.detectors)
        report = engine.scan_paths(paths, site="example.com", root=download_dir)
        print(render_human_report(report.records))
    """

    def __init__(self, detectors: Iterable[Detector], context_radius: int = CONTEXT_RADIUS) -> None:
        self.detectors = list(detectors)
        self.context_radius = context_radius

    def scan_file(self, source: SourceFile) -> list[ScanRecord]:
        """Scan one file with every detector, in detector order."""
        records: list[ScanRecord] = []
        for detector in self.detectors:
            matches = scan_text(source.raw_text, detector, self.context_radius)
            if not matches:
                continue
            records.append(
                ScanRecord(file=source.display_name, regex=detector.name, findings=matches)
            )
        return records

    def _scan_one(self, path: Path, root: Path | None) -> tuple[str, list[ScanRecord] | None]:
        try:
            source = read_source_file(path, root)
        except SourceReadError as e:
            logger.warning(f"Skipping unreadable file: {e}")
            return str(path), None
        return source.display_name, self.scan_file(source)

    def scan_paths(
        self,
        paths: Iterable[str | Path],
        site: str,
        root: Path | None = None,
        max_workers: int = 1,
    ) -> PatternScanReport:
        """Scan many files, concurrently when *max_workers* is above one.

        Records are grouped by file in input order, then by detector.
        """
        path_list = [Path(p) for p in paths]

        if max_workers > 1 and len(path_list) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(lambda p: self._scan_one(p, root), path_list))
        else:
            results = [self._scan_one(p, root) for p in path_list]

        report = PatternScanReport(site=site, detectors=[d.name for d in self.detectors])
        for name, records in results:
            if records is None:
                report.unreadable_files.append(name)
                continue
            report.files_scanned += 1
            report.records.extend(records)

        logger.info(
            f"Pattern scan for {site}: {report.total_matches} unique match(es) in "
            f"{len(report.records)} record(s) across {report.files_scanned} file(s)"
        )
        return report


def render_human_report(records: Iterable[ScanRecord]) -> str:
    """Render scan records as plain text grouped by file, detector and match."""
    lines: list[str] = []
    for record in records:
        lines.append(f"File: {record.file}")
        lines.append(f"Regex: {record.regex}")
        lines.append("Findings:")
        for finding in record.findings:
            lines.append(f"- Match: {finding.match}")
            lines.append(f"  Context: {finding.context}")
        lines.append("")
    return "\n".join(lines)
