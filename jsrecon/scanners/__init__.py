"""Scanners for request surface extraction, pattern scanning and signal triage."""

from .nodejs import RequestSurfaceExtractor
from .patterns import PatternScanEngine, load_detectors
from .signal_filter import extract_signals, triage_records
from .source import SourceFile, collect_source_files, read_source_file

__all__ = [
    "RequestSurfaceExtractor",
    "PatternScanEngine",
    "load_detectors",
    "extract_signals",
    "triage_records",
    "SourceFile",
    "collect_source_files",
    "read_source_file",
]
