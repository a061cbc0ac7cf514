"""Pluggable regex detectors applied to raw source text."""

from .detectors import Detector, DetectorSet, load_detector_file, load_detectors, make_detector
from .engine import (
    MatchSpan,
    PatternScanEngine,
    extract_context,
    find_matches,
    render_human_report,
    scan_text,
)
from .models import PatternMatch, PatternScanReport, ScanRecord, Signal

__all__ = [
    "Detector",
    "DetectorSet",
    "MatchSpan",
    "PatternMatch",
    "PatternScanEngine",
    "PatternScanReport",
    "ScanRecord",
    "Signal",
    "extract_context",
    "find_matches",
    "load_detector_file",
    "load_detectors",
    "make_detector",
    "render_human_report",
    "scan_text",
]
