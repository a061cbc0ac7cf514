"""Pydantic models for pattern scan and signal triage results."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PatternMatch(BaseModel):
    """One match of a detector with its surrounding source.

    Attributes:
        match: The matched text, verbatim.
        context: Up to ``CONTEXT_RADIUS`` characters on each side of the
            match, clipped to the file, with whitespace runs collapsed.
    """

    match: str
    context: str


class ScanRecord(BaseModel):
    """Unique matches of one detector in one file.

    Attributes:
        file: Report name of the scanned file.
        regex: Name of the detector that produced the matches.
        findings: Matches deduplicated by ``(match, context)`` in first-seen
            order. Never empty.
    """

    file: str
    regex: str
    findings: list[PatternMatch] = Field(default_factory=list)


class PatternScanReport(BaseModel):
    """Result of running a detector set over a corpus.

    Attributes:
        site: Site identifier the corpus belongs to.
        detectors: Names of the detectors that were applied.
        rejected_detectors: Detectors excluded at load time.
        files_scanned: Number of files read and scanned.
        unreadable_files: Files that could not be read.
        records: Non-empty scan records, grouped by file then detector.
    """

    site: str
    detectors: list[str] = Field(default_factory=list)
    rejected_detectors: list[str] = Field(default_factory=list)
    files_scanned: int = 0
    unreadable_files: list[str] = Field(default_factory=list)
    records: list[ScanRecord] = Field(default_factory=list)

    @property
    def total_matches(self) -> int:
        return sum(len(r.findings) for r in self.records)

    def records_json(self) -> list[dict]:
        """Return the records in their machine-report form."""
        return [r.model_dump(mode="json") for r in self.records]


class Signal(BaseModel):
    """A scan match that survived relevance triage."""

    file: str
    regex: str
    match: str
    context: str
