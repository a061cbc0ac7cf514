"""Constants and configuration values for jsrecon.

This module centralizes magic numbers and configuration values
that are used across the codebase for easier maintenance.
"""

import os


def _env_int(name: str, default: int, minimum: int, maximum: int | None = None) -> int:
    """Read an integer override from the environment, clamped to its valid range."""
    value = int(os.environ.get(name, default))
    value = max(value, minimum)
    if maximum is not None:
        value = min(value, maximum)
    return value

# =============================================================================
# Output Layout
# =============================================================================

# Root folder holding one sub-folder per analyzed site
DEFAULT_OUTPUT_ROOT = os.environ.get("JSRECON_OUTPUT_DIR", "scrapelists")

# Sub-folder of a site folder that receives the analysis artifacts
ANALYSIS_DIR_NAME = "analysis"

REQUEST_SURFACE_FILENAME = "js_request_surface.json"
MACHINE_REPORT_FILENAME = "goods_machine.json"
HUMAN_REPORT_FILENAME = "goods_human.txt"
SIGNAL_FILE_PREFIX = "goods_signals_"


# =============================================================================
# Source Corpus
# =============================================================================

# File suffixes treated as JavaScript-family sources
SOURCE_EXTENSIONS = frozenset({".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx"})

# Files larger than this are skipped (10MB)
MAX_SOURCE_FILE_SIZE = 10 * 1024 * 1024


# =============================================================================
# Request Surface Extraction
# =============================================================================

# Objects whose write-verb methods are treated as HTTP calls
DEFAULT_HTTP_CLIENTS = frozenset({"axios"})

# Method names on a client object that issue a write request
WRITE_VERBS = frozenset({"post", "put", "patch", "delete"})

# Bare functions treated as fetch-style network calls
DEFAULT_FETCH_FUNCTIONS = frozenset({"fetch"})

# Constructors producing form-data and urlencoded payload builders
FORM_ACCUMULATOR_TYPES = frozenset({"FormData"})
URL_ACCUMULATOR_TYPES = frozenset({"URLSearchParams"})

# Methods that add a key to an accumulator
APPEND_METHODS = frozenset({"append", "set"})

# Marker inserted at each interpolation site of a templated endpoint
TEMPLATE_PLACEHOLDER = "${}"

# Method assumed for fetch-style calls without an explicit override
DEFAULT_FETCH_METHOD = "GET"


# =============================================================================
# Pattern Scanning
# =============================================================================

# Characters of context captured on each side of a match
MAX_CONTEXT_RADIUS = 100
CONTEXT_RADIUS = _env_int("JSRECON_CONTEXT_RADIUS", 100, 0, MAX_CONTEXT_RADIUS)

# Worker threads used for file-level parallelism
DEFAULT_MAX_WORKERS = _env_int("JSRECON_MAX_WORKERS", 4, 1)


# =============================================================================
# Signal Triage
# =============================================================================

# Matches at or below this length are dropped
MIN_SIGNAL_LENGTH = 3

# Low-value matches dropped regardless of case
SIGNAL_STOPLIST = frozenset({"user", "type", "id", "context", "set", "value"})


# =============================================================================
# Server Configuration
# =============================================================================

MCP_DEFAULT_PORT = int(os.environ.get("MCP_PORT", 3000))
