"""jsrecon - static request surface and secret signal extraction for downloaded JavaScript."""

from .config import ScanConfig
from .pipeline import (
    SiteAnalysis,
    analyze_site,
    run_pattern_scan,
    run_request_surface,
    run_signal_triage,
)
from .scanners import (
    PatternScanEngine,
    RequestSurfaceExtractor,
    extract_signals,
    load_detectors,
)

__version__ = "0.1.0"

__all__ = [
    "ScanConfig",
    "SiteAnalysis",
    "analyze_site",
    "run_pattern_scan",
    "run_request_surface",
    "run_signal_triage",
    "PatternScanEngine",
    "RequestSurfaceExtractor",
    "extract_signals",
    "load_detectors",
]
