"""JavaScript / TypeScript request surface analysis.

This package provides AST-based extraction of outbound HTTP calls from
JavaScript-family source code using tree-sitter. The ``ASTEngine`` is the
parser front-end that the ``RequestSurfaceExtractor`` walks.

Quick start::

    from jsrecon.scanners.nodejs import RequestSurfaceExtractor

    extractor = RequestSurfaceExtractor()
    for finding in extractor.extract_from_source("axios.post('/x', {a: 1});"):
        print(finding.method, finding.endpoint, finding.body_params)
"""

from .ast_engine import ASTEngine, ParsedAST, language_for_path
from .models import BodyEncoding, Confidence, RequestFinding, RequestSurfaceReport
from .request_extractor import RequestSurfaceExtractor
from .scope import BindingKind, ScopeBinding, ScopeMap

__all__ = [
    "ASTEngine",
    "BindingKind",
    "BodyEncoding",
    "Confidence",
    "ParsedAST",
    "RequestFinding",
    "RequestSurfaceExtractor",
    "RequestSurfaceReport",
    "ScopeBinding",
    "ScopeMap",
    "language_for_path",
]
