"""Core utilities for exceptions and atomic report output."""

from .artifacts import unique_timestamped_path, write_json_atomic, write_text_atomic
from .exceptions import (
    ArtifactWriteError,
    ConfigurationError,
    DetectorLoadError,
    InvalidInputError,
    JsReconError,
    OutputError,
    ParseError,
    ScannerError,
    SourceReadError,
    ValidationError,
)

__all__ = [
    # Artifacts
    "write_json_atomic",
    "write_text_atomic",
    "unique_timestamped_path",
    # Exceptions
    "JsReconError",
    "ScannerError",
    "ParseError",
    "SourceReadError",
    "ConfigurationError",
    "DetectorLoadError",
    "OutputError",
    "ArtifactWriteError",
    "ValidationError",
    "InvalidInputError",
]
