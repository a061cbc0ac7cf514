import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated

from fastmcp import FastMCP
from pydantic import Field

from . import pipeline
from .config import ScanConfig
from .constants import MCP_DEFAULT_PORT
from .core.exceptions import JsReconError
from .logging_config import configure_scan_logging
from .scanners.nodejs import RequestSurfaceReport
from .scanners.patterns import PatternScanReport
from .scanners.source import collect_source_files

# Configure logging to stderr to avoid interfering with JSON-RPC on stdout
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(name)s %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger("jsrecon")

# Initialize FastMCP server
mcp: FastMCP = FastMCP("jsrecon-mcp")


def _build_config(output_dir: str | None, detector_dirs: list[str] | None = None) -> ScanConfig:
    config = ScanConfig()
    if output_dir:
        config.output_root = Path(output_dir)
    if detector_dirs:
        config.detector_dirs = config.detector_dirs + [Path(d) for d in detector_dirs]
    return config


def _format_request_surface(report: RequestSurfaceReport, artifact: Path) -> str:
    lines = [
        "# Request Surface Report",
        f"Site: {report.site}",
        f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M')}",
        "",
        "## Summary",
        f"- Files analyzed: {report.files_analyzed}",
        f"- Files not analyzable: {len(report.unanalyzable_files)}",
        f"- Requests found: {len(report.findings)}",
        f"- Report: {artifact}",
    ]

    if not report.findings:
        lines.append("\nNo modifiable requests detected.")
    else:
        lines.append("\n## Requests")
        for finding in report.findings:
            params = ", ".join(finding.body_params) or "-"
            lines.append(
                f"- `{finding.method} {finding.endpoint or '<unresolved>'}` "
                f"({finding.body_type.value}, {finding.confidence.value}) "
                f"params: {params} [{finding.file}]"
            )

    if report.unanalyzable_files:
        lines.append("\n## Not Analyzable")
        lines.extend(f"- {name}" for name in report.unanalyzable_files)

    return "\n".join(lines)


def _format_pattern_scan(report: PatternScanReport, machine: Path, human: Path) -> str:
    lines = [
        "# Pattern Scan Report",
        f"Site: {report.site}",
        f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M')}",
        "",
        "## Summary",
        f"- Files scanned: {report.files_scanned}",
        f"- Detectors applied: {len(report.detectors)}",
        f"- Unique matches: {report.total_matches}",
        f"- Machine report: {machine}",
        f"- Human report: {human}",
    ]

    if report.rejected_detectors:
        lines.append("\n## Rejected Detectors")
        lines.extend(f"- {name}" for name in report.rejected_detectors)

    counts: dict[str, int] = {}
    for record in report.records:
        counts[record.regex] = counts.get(record.regex, 0) + len(record.findings)
    if counts:
        lines.append("\n## Matches by Detector")
        for name, count in sorted(counts.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"- {name}: {count}")

    return "\n".join(lines)


@mcp.tool
async def extract_request_surface(
    site: Annotated[str, Field(description="Site URL or hostname the files were downloaded from")],
    source_dir: Annotated[
        str, Field(description="Directory holding the downloaded JavaScript files")
    ],
    output_dir: Annotated[
        str | None,
        Field(description="Root folder for site-scoped reports", default=None),
    ] = None,
) -> str:
    """Find outbound HTTP calls and their body parameters in downloaded JS.

    USE THIS TOOL WHEN:
    - You need the list of write requests (POST/PUT/PATCH/DELETE) a web
      client can send
    - You want to know which body parameters those requests carry

    Detects axios write calls and fetch() calls, resolving bodies built from
    object literals, FormData and URLSearchParams in the same file.
    """
    try:
        config = _build_config(output_dir)
        root = Path(source_dir)
        files = collect_source_files(root, config.source_extensions)
        report, artifact = pipeline.run_request_surface(site, files, config, root=root)
        return _format_request_surface(report, artifact)
    except (JsReconError, OSError) as e:
        logger.error(f"Error extracting request surface for {site}: {e}")
        return f"Error: {str(e)}"


@mcp.tool
async def run_pattern_scan(
    site: Annotated[str, Field(description="Site URL or hostname the files were downloaded from")],
    source_dir: Annotated[
        str, Field(description="Directory holding the downloaded JavaScript files")
    ],
    detector_dirs: Annotated[
        list[str] | None,
        Field(description="Extra directories of detector modules", default=None),
    ] = None,
    output_dir: Annotated[
        str | None,
        Field(description="Root folder for site-scoped reports", default=None),
    ] = None,
) -> str:
    """Scan downloaded JS for secrets and interesting strings.

    Applies every built-in detector plus any extra detector directories,
    capturing context around each match. Writes a machine-readable JSON
    report and a human-readable text report.
    """
    try:
        config = _build_config(output_dir, detector_dirs)
        root = Path(source_dir)
        files = collect_source_files(root, config.source_extensions)
        report, machine, human = pipeline.run_pattern_scan(site, files, config, root=root)
        return _format_pattern_scan(report, machine, human)
    except (JsReconError, OSError) as e:
        logger.error(f"Error running pattern scan for {site}: {e}")
        return f"Error: {str(e)}"


@mcp.tool
async def extract_signals(
    site: Annotated[str, Field(description="Site URL or hostname that was scanned")],
    output_dir: Annotated[
        str | None,
        Field(description="Root folder for site-scoped reports", default=None),
    ] = None,
) -> str:
    """Reduce the latest pattern scan of a site to the matches worth a look.

    Requires run_pattern_scan to have been run for the site. Every call
    writes a new timestamped signal file.
    """
    try:
        config = _build_config(output_dir)
        signal_path = pipeline.run_signal_triage(site, config)
        signals = json.loads(signal_path.read_text(encoding="utf-8"))
        return f"{len(signals)} signal(s) saved to {signal_path}"
    except (JsReconError, OSError) as e:
        logger.error(f"Error extracting signals for {site}: {e}")
        return f"Error: {str(e)}"


@mcp.tool
async def analyze_site(
    site: Annotated[str, Field(description="Site URL or hostname the files were downloaded from")],
    source_dir: Annotated[
        str, Field(description="Directory holding the downloaded JavaScript files")
    ],
    output_dir: Annotated[
        str | None,
        Field(description="Root folder for site-scoped reports", default=None),
    ] = None,
) -> str:
    """Run request surface extraction, pattern scan and signal triage in one go."""
    try:
        config = _build_config(output_dir)
        result = pipeline.analyze_site(site, source_dir, config)
        lines = [
            _format_request_surface(result.request_surface, result.artifacts["request_surface"]),
            "",
            _format_pattern_scan(
                result.pattern_scan,
                result.artifacts["machine_report"],
                result.artifacts["human_report"],
            ),
            "",
            f"These might be worth a look: {result.artifacts['signals']}",
        ]
        return "\n".join(lines)
    except (JsReconError, OSError) as e:
        logger.error(f"Error analyzing {site}: {e}")
        return f"Error: {str(e)}"


def main() -> None:
    """Run the MCP server with HTTP streaming transport."""
    print("jsrecon MCP Server v0.1.0 (HTTP Streaming)", file=sys.stderr)
    print("=" * 50, file=sys.stderr)
    print(
        "Static analysis only: no code is executed and no site is contacted.",
        file=sys.stderr,
    )
    print("=" * 50, file=sys.stderr)

    if log_file := os.environ.get("JSRECON_LOG_FILE"):
        configure_scan_logging(
            log_file=log_file,
            log_level=os.environ.get("JSRECON_LOG_LEVEL", "INFO"),
            enable_console=True,
        )
        print(f"Structured logs: {log_file}", file=sys.stderr)

    port = MCP_DEFAULT_PORT
    print(f"Starting HTTP streaming server on port {port}...", file=sys.stderr)
    print(f"HTTP endpoint will be available at: http://localhost:{port}/mcp", file=sys.stderr)

    try:
        import asyncio
        asyncio.run(mcp.run_http_async(transport="streamable-http", host="0.0.0.0", port=port))
    except KeyboardInterrupt:
        print("\nShutting down...", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    main()
