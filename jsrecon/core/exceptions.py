"""Custom exception hierarchy for jsrecon.

This module provides a structured exception hierarchy so that per-file and
per-detector failures can be caught precisely instead of with broad
`except Exception` clauses.
"""


class JsReconError(Exception):
    """Base exception for all jsrecon errors.

    All custom exceptions should inherit from this class to allow
    callers to catch all jsrecon-specific errors with a single
    except clause when appropriate.
    """
    pass


# =============================================================================
# Scanner Errors
# =============================================================================

class ScannerError(JsReconError):
    """Base exception for scanner-related errors."""
    pass


class ParseError(ScannerError):
    """Source file could not be parsed into a usable syntax tree."""

    def __init__(self, message: str, file_path: str | None = None):
        super().__init__(message)
        self.file_path = file_path


class SourceReadError(ScannerError):
    """Source file could not be read or decoded."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(JsReconError):
    """Base exception for configuration errors."""
    pass


class DetectorLoadError(ConfigurationError):
    """A detector plugin is malformed or cannot be applied repeatedly."""

    def __init__(self, message: str, detector: str | None = None):
        super().__init__(message)
        self.detector = detector


# =============================================================================
# Output Errors
# =============================================================================

class OutputError(JsReconError):
    """Base exception for report output errors."""
    pass


class ArtifactWriteError(OutputError):
    """A report artifact could not be persisted."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(JsReconError):
    """Base exception for input validation errors."""
    pass


class InvalidInputError(ValidationError):
    """Invalid input provided to a pipeline stage or tool."""
    pass
