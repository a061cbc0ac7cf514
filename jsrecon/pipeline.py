"""Site-scoped orchestration of the analysis passes.

The request surface pass and the pattern scan pass share only their input
corpus. Signal triage reads the pattern scan's machine report. All
artifacts land in ``<output_root>/<hostname>/analysis/``.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from .config import ScanConfig
from .constants import (
    ANALYSIS_DIR_NAME,
    HUMAN_REPORT_FILENAME,
    MACHINE_REPORT_FILENAME,
    REQUEST_SURFACE_FILENAME,
)
from .core.artifacts import write_json_atomic, write_text_atomic
from .core.exceptions import InvalidInputError
from .logging_config import get_scan_logger
from .scanners.nodejs import RequestSurfaceExtractor, RequestSurfaceReport
from .scanners.patterns import PatternScanEngine, PatternScanReport, load_detectors, render_human_report
from .scanners.signal_filter import extract_signals
from .scanners.source import collect_source_files

logger = logging.getLogger(__name__)
event_logger = get_scan_logger()


def site_hostname(site: str) -> str:
    """Reduce a site identifier (URL or bare hostname) to a folder name.

    Raises:
        InvalidInputError: If no usable hostname can be derived.
    """
    site = (site or "").strip()
    if "://" in site:
        hostname = urlparse(site).hostname or ""
    else:
        hostname = site.split("/", 1)[0].split(":", 1)[0]
    hostname = hostname.lower()

    if not hostname or hostname in (".", "..") or "\\" in hostname:
        raise InvalidInputError(f"Cannot derive a hostname from site identifier: {site!r}")
    return hostname


def analysis_dir(site: str, config: ScanConfig) -> Path:
    """Folder receiving the analysis artifacts for *site*."""
    return config.output_root / site_hostname(site) / ANALYSIS_DIR_NAME


def run_request_surface(
    site: str,
    files: Iterable[str | Path],
    config: ScanConfig | None = None,
    root: Path | None = None,
) -> tuple[RequestSurfaceReport, Path]:
    """Extract the request surface of *files* and write its report.

    Args:
        site: Site identifier, used only to name the output folder.
        files: Source files to analyze.
        config: Run configuration.
        root: Corpus root; file names in the report are relative to it.

    Returns:
        The report and the path of ``js_request_surface.json``.

    Raises:
        ArtifactWriteError: If the report cannot be written.
    """
    config = config or ScanConfig()
    out_path = analysis_dir(site, config) / REQUEST_SURFACE_FILENAME

    extractor = RequestSurfaceExtractor(
        http_clients=config.http_clients,
        fetch_functions=config.fetch_functions,
    )
    report = extractor.analyze_paths(files, site=site, root=root, max_workers=config.max_workers)

    write_json_atomic(out_path, report.findings_json())
    event_logger.info(
        f"Request surface saved to {out_path}",
        extra={
            "event": "artifact_written",
            "site": site,
            "stage": "request_surface",
            "count": len(report.findings),
            "artifact": str(out_path),
        },
    )
    return report, out_path


def run_pattern_scan(
    site: str,
    files: Iterable[str | Path],
    config: ScanConfig | None = None,
    root: Path | None = None,
) -> tuple[PatternScanReport, Path, Path]:
    """Run every configured detector over *files* and write both reports.

    Returns:
        The report, the machine report path and the human report path.

    Raises:
        ArtifactWriteError: If either report cannot be written.
    """
    config = config or ScanConfig()
    out_dir = analysis_dir(site, config)

    detector_set = load_detectors(config.detector_dirs)
    for name, reason in detector_set.rejected.items():
        event_logger.warning(
            f"Detector {name} excluded: {reason}",
            extra={"event": "detector_rejected", "site": site, "detector": name, "error": reason},
        )

    engine = PatternScanEngine(detector_set.detectors, context_radius=config.context_radius)
    report = engine.scan_paths(files, site=site, root=root, max_workers=config.max_workers)
    report.rejected_detectors = sorted(detector_set.rejected)

    machine_path = write_json_atomic(out_dir / MACHINE_REPORT_FILENAME, report.records_json())
    human_path = write_text_atomic(out_dir / HUMAN_REPORT_FILENAME, render_human_report(report.records))
    event_logger.info(
        f"Pattern scan saved to {out_dir}",
        extra={
            "event": "artifact_written",
            "site": site,
            "stage": "pattern_scan",
            "count": report.total_matches,
            "artifact": str(machine_path),
        },
    )
    return report, machine_path, human_path


def run_signal_triage(site: str, config: ScanConfig | None = None) -> Path:
    """Triage the site's machine report into a new timestamped signal file.

    Raises:
        FileNotFoundError: If the pattern scan has not been run for *site*.
    """
    config = config or ScanConfig()
    signal_path = extract_signals(analysis_dir(site, config) / MACHINE_REPORT_FILENAME)
    event_logger.info(
        f"Signals saved to {signal_path}",
        extra={
            "event": "artifact_written",
            "site": site,
            "stage": "signal_triage",
            "artifact": str(signal_path),
        },
    )
    return signal_path


@dataclass
class SiteAnalysis:
    """Outcome of a full analysis of one site's corpus."""

    site: str
    source_files: int
    request_surface: RequestSurfaceReport
    pattern_scan: PatternScanReport
    artifacts: dict[str, Path] = field(default_factory=dict)


def analyze_site(
    site: str,
    source_dir: str | Path,
    config: ScanConfig | None = None,
) -> SiteAnalysis:
    """Run both passes and triage over every source file under *source_dir*.

    Raises:
        InvalidInputError: If *site* is unusable or *source_dir* is missing.
        ArtifactWriteError: If any artifact cannot be written.
    """
    config = config or ScanConfig()
    site_hostname(site)
    root = Path(source_dir)
    files = collect_source_files(root, config.source_extensions)
    logger.info(f"Analyzing {len(files)} source file(s) for {site}")

    surface, surface_path = run_request_surface(site, files, config, root=root)
    scan, machine_path, human_path = run_pattern_scan(site, files, config, root=root)
    signal_path = run_signal_triage(site, config)

    return SiteAnalysis(
        site=site,
        source_files=len(files),
        request_surface=surface,
        pattern_scan=scan,
        artifacts={
            "request_surface": surface_path,
            "machine_report": machine_path,
            "human_report": human_path,
            "signals": signal_path,
        },
    )
