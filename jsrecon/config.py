"""Run configuration for the analysis pipeline."""

from dataclasses import dataclass, field
from pathlib import Path

from .constants import (
    CONTEXT_RADIUS,
    DEFAULT_FETCH_FUNCTIONS,
    DEFAULT_HTTP_CLIENTS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_OUTPUT_ROOT,
    MAX_CONTEXT_RADIUS,
    SOURCE_EXTENSIONS,
)
from .detectors import BUILTIN_DETECTOR_DIR


@dataclass
class ScanConfig:
    """Configuration for one analysis run."""

    output_root: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_ROOT))
    max_workers: int = DEFAULT_MAX_WORKERS  # 1 disables the thread pool
    context_radius: int = CONTEXT_RADIUS
    http_clients: frozenset[str] = DEFAULT_HTTP_CLIENTS
    fetch_functions: frozenset[str] = DEFAULT_FETCH_FUNCTIONS
    source_extensions: frozenset[str] = SOURCE_EXTENSIONS
    detector_dirs: list[Path] = field(default_factory=lambda: [BUILTIN_DETECTOR_DIR])

    def __post_init__(self) -> None:
        self.output_root = Path(self.output_root)
        self.detector_dirs = [Path(d) for d in self.detector_dirs]
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if not 0 <= self.context_radius <= MAX_CONTEXT_RADIUS:
            raise ValueError(
                f"context_radius must be between 0 and {MAX_CONTEXT_RADIUS}, got {self.context_radius}"
            )
