"""Static extraction of the outbound HTTP request surface.

One depth-first walk per file does two things at once:

- tracks which identifiers hold object literals, ``FormData`` builders or
  ``URLSearchParams`` builders (see ``scope.ScopeMap``), and
- recognizes HTTP-call-shaped expressions and resolves their method,
  endpoint, body parameter names and body encoding from that state.

Calls are handled on the way down and bindings on the way back up, so a
declaration or assignment takes effect only after its right-hand side.

Two call surfaces are recognized:

- client-object calls, ``axios.post(url, body)``, with an explicit write
  verb (confidence ``high``);
- fetch-style calls, ``fetch(url, {method, body})``, whose verb defaults to
  ``GET`` (confidence ``medium``). These are only reported when an endpoint
  or at least one body parameter was resolved.

The analysis is flow-insensitive and intra-file. Values that cannot be
resolved statically are left unresolved rather than guessed.

Usage::

    extractor = RequestSurfaceExtractor()
    findings = extractor.extract_from_source(code, file_path="app.js")
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from urllib.parse import parse_qsl

import tree_sitter as ts

from ...constants import (
    APPEND_METHODS,
    DEFAULT_FETCH_FUNCTIONS,
    DEFAULT_FETCH_METHOD,
    DEFAULT_HTTP_CLIENTS,
    FORM_ACCUMULATOR_TYPES,
    TEMPLATE_PLACEHOLDER,
    URL_ACCUMULATOR_TYPES,
    WRITE_VERBS,
)
from ...core.exceptions import ParseError, SourceReadError
from ..source import SourceFile, read_source_file
from .ast_engine import (
    ASTEngine,
    ParsedAST,
    language_for_path,
    string_literal_value,
    template_skeleton,
)
from .models import BodyEncoding, Confidence, RequestFinding, RequestSurfaceReport
from .scope import BindingKind, ScopeMap

logger = logging.getLogger(__name__)

# Expression wrappers that do not change the wrapped value
_TRANSPARENT_WRAPPERS = frozenset({
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "type_assertion",
})


def _unwrap(node: ts.Node | None) -> ts.Node | None:
    """Strip parentheses and TypeScript type assertions around *node*."""
    while node is not None and node.type in _TRANSPARENT_WRAPPERS:
        inner = [c for c in node.named_children if c.type != "comment"]
        if not inner:
            break
        # Type assertions put the type first: <T>expr
        node = inner[-1] if node.type == "type_assertion" else inner[0]
    return node


def _positional_args(args_node: ts.Node) -> list[ts.Node]:
    return [c for c in args_node.named_children if c.type != "comment"]


class _RequestWalker:
    """Visitor state for a single file.

    Owns the file's ``ScopeMap``; both are discarded once the walk ends.
    """

    def __init__(
        self,
        ast: ParsedAST,
        file_name: str,
        http_clients: frozenset[str],
        fetch_functions: frozenset[str],
    ) -> None:
        self.ast = ast
        self.file_name = file_name
        self.http_clients = http_clients
        self.fetch_functions = fetch_functions
        self.scope = ScopeMap()
        self.findings: list[RequestFinding] = []
        self.dropped_keys = 0

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def visit(self, node: ts.Node, _depth: int) -> None:
        if node.type == "call_expression":
            self._visit_call(node)

    def leave(self, node: ts.Node, _depth: int) -> None:
        # Bind once the value has been walked: calls inside it see the old binding
        if node.type == "variable_declarator":
            name = node.child_by_field_name("name")
            value = node.child_by_field_name("value")
            if name is not None and name.type == "identifier" and value is not None:
                self._bind(self.ast.get_text(name), value)
        elif node.type == "assignment_expression":
            left = node.child_by_field_name("left")
            right = node.child_by_field_name("right")
            if left is not None and left.type == "identifier" and right is not None:
                self._bind(self.ast.get_text(left), right)

    # ------------------------------------------------------------------
    # Scope tracking
    # ------------------------------------------------------------------

    def _bind(self, name: str, value: ts.Node) -> None:
        value = _unwrap(value)
        if value is None:
            self.scope.unbind(name)
            return

        if value.type == "object":
            self.scope.bind(name, BindingKind.OBJECT_LITERAL, self._object_keys(value))
            return

        if value.type == "new_expression":
            kind = self._accumulator_kind(value)
            if kind is not None:
                self.scope.bind(name, kind, self._seed_keys(kind, value))
                return

        self.scope.unbind(name)

    def _accumulator_kind(self, new_node: ts.Node) -> BindingKind | None:
        ctor = new_node.child_by_field_name("constructor")
        if ctor is None:
            return None
        if ctor.type == "member_expression":
            # window.FormData, self.URLSearchParams
            ctor = ctor.child_by_field_name("property")
            if ctor is None:
                return None
        ctor_name = self.ast.get_text(ctor)
        if ctor_name in FORM_ACCUMULATOR_TYPES:
            return BindingKind.FORM_ACCUMULATOR
        if ctor_name in URL_ACCUMULATOR_TYPES:
            return BindingKind.URL_ACCUMULATOR
        return None

    def _seed_keys(self, kind: BindingKind, new_node: ts.Node) -> list[str]:
        """Keys supplied to a ``URLSearchParams`` constructor, if literal."""
        if kind is not BindingKind.URL_ACCUMULATOR:
            return []
        args = new_node.child_by_field_name("arguments")
        if args is None:
            return []
        positional = _positional_args(args)
        if not positional:
            return []
        init = _unwrap(positional[0])
        if init is None:
            return []
        if init.type == "object":
            return self._object_keys(init)
        query = string_literal_value(self.ast, init)
        if query is not None:
            keys: list[str] = []
            for key, _value in parse_qsl(query.lstrip("?"), keep_blank_values=True):
                if key not in keys:
                    keys.append(key)
            return keys
        return []

    def _object_keys(self, obj: ts.Node) -> list[str]:
        """Statically named keys of an object literal, in source order."""
        keys: list[str] = []
        for entry in obj.named_children:
            if entry.type == "comment":
                continue
            key: str | None = None
            if entry.type == "shorthand_property_identifier":
                key = self.ast.get_text(entry)
            elif entry.type == "pair":
                key = self._static_key(entry.child_by_field_name("key"))
            elif entry.type == "method_definition":
                key = self._static_key(entry.child_by_field_name("name"))
            if key is None:
                self.dropped_keys += 1
                continue
            keys.append(key)
        return keys

    def _static_key(self, key_node: ts.Node | None) -> str | None:
        if key_node is None:
            return None
        if key_node.type == "property_identifier":
            return self.ast.get_text(key_node)
        # Computed and numeric keys are not statically named
        return string_literal_value(self.ast, key_node)

    def _track_append(self, name: str, method: str, args: list[ts.Node]) -> None:
        if not args:
            return
        key = self._literal_key(args[0])
        if key is None:
            self.dropped_keys += 1
            return
        self.scope.append_key(name, key, unique=(method == "set"))

    def _literal_key(self, node: ts.Node) -> str | None:
        node = _unwrap(node)
        if node is None:
            return None
        if node.type == "number":
            return self.ast.get_text(node)
        value = string_literal_value(self.ast, node)
        if value is not None:
            return value
        if node.type == "template_string" and not any(
            c.type == "template_substitution" for c in node.children
        ):
            return template_skeleton(self.ast, node, TEMPLATE_PLACEHOLDER)
        return None

    # ------------------------------------------------------------------
    # Call-site detection
    # ------------------------------------------------------------------

    def _visit_call(self, node: ts.Node) -> None:
        fn = node.child_by_field_name("function")
        args_node = node.child_by_field_name("arguments")
        # Tagged templates carry a template_string instead of arguments
        if fn is None or args_node is None or args_node.type != "arguments":
            return
        args = _positional_args(args_node)

        if fn.type == "member_expression":
            obj = fn.child_by_field_name("object")
            prop = fn.child_by_field_name("property")
            if obj is None or prop is None or obj.type != "identifier":
                return
            obj_name = self.ast.get_text(obj)
            method_name = self.ast.get_text(prop)

            if method_name in APPEND_METHODS and obj_name in self.scope:
                self._track_append(obj_name, method_name, args)

            if obj_name in self.http_clients and method_name in WRITE_VERBS:
                self._record_client_call(node, method_name, args)

        elif fn.type == "identifier" and self.ast.get_text(fn) in self.fetch_functions:
            self._record_fetch_call(node, args)

    def _record_client_call(self, node: ts.Node, verb: str, args: list[ts.Node]) -> None:
        body_node = args[1] if len(args) > 1 else None
        body_params, body_type = self._resolve_body(body_node)
        self.findings.append(
            RequestFinding(
                file=self.file_name,
                method=verb.upper(),
                endpoint=self._resolve_endpoint(args),
                body_params=body_params,
                body_type=body_type,
                confidence=Confidence.HIGH,
            )
        )
        logger.debug(
            "%s:%d: %s call on client object",
            self.file_name, node.start_point.row + 1, verb.upper(),
        )

    def _record_fetch_call(self, node: ts.Node, args: list[ts.Node]) -> None:
        method = DEFAULT_FETCH_METHOD
        body_params: list[str] = []
        body_type = BodyEncoding.UNKNOWN

        options = _unwrap(args[1]) if len(args) > 1 else None
        if options is not None and options.type == "object":
            method_node = self._find_property(options, "method")
            if method_node is not None:
                explicit = string_literal_value(self.ast, _unwrap(method_node))
                if explicit:
                    method = explicit.upper()
            body_node = self._find_property(options, "body")
            if body_node is not None:
                body_params, body_type = self._resolve_body(body_node)

        endpoint = self._resolve_endpoint(args)
        if not endpoint and not body_params:
            return

        self.findings.append(
            RequestFinding(
                file=self.file_name,
                method=method,
                endpoint=endpoint,
                body_params=body_params,
                body_type=body_type,
                confidence=Confidence.MEDIUM,
            )
        )
        logger.debug(
            "%s:%d: fetch-style %s call",
            self.file_name, node.start_point.row + 1, method,
        )

    def _find_property(self, obj: ts.Node, name: str) -> ts.Node | None:
        """Return the value node of property *name* in an object literal.

        A shorthand property (``{ body }``) returns the shorthand node itself,
        which ``_resolve_body`` treats as an identifier reference.
        """
        for entry in obj.named_children:
            if entry.type == "pair":
                if self._static_key(entry.child_by_field_name("key")) == name:
                    return entry.child_by_field_name("value")
            elif entry.type == "shorthand_property_identifier":
                if self.ast.get_text(entry) == name:
                    return entry
        return None

    def _resolve_endpoint(self, args: list[ts.Node]) -> str | None:
        if not args:
            return None
        first = _unwrap(args[0])
        if first is None:
            return None
        value = string_literal_value(self.ast, first)
        if value is not None:
            return value
        return template_skeleton(self.ast, first, TEMPLATE_PLACEHOLDER)

    def _resolve_body(self, node: ts.Node | None) -> tuple[list[str], BodyEncoding]:
        node = _unwrap(node)
        if node is None:
            return [], BodyEncoding.UNKNOWN

        if node.type == "object":
            return self._object_keys(node), BodyEncoding.JSON

        if node.type in ("identifier", "shorthand_property_identifier"):
            binding = self.scope.get(self.ast.get_text(node))
            if binding is not None:
                # Snapshot: appends after the call do not belong to it
                return list(binding.keys), binding.kind.encoding

        return [], BodyEncoding.UNKNOWN


class RequestSurfaceExtractor:
    """Extracts request findings from JavaScript-family sources.

    Each worker thread gets its own ``ASTEngine`` because tree-sitter parsers
    cannot be shared across threads. No other state outlives a single file.

    Example::

        extractor = RequestSurfaceExtractor(http_clients={"axios", "api"})
        report = extractor.analyze_paths(paths, site="example.com")
    """

    def __init__(
        self,
        http_clients: Iterable[str] = DEFAULT_HTTP_CLIENTS,
        fetch_functions: Iterable[str] = DEFAULT_FETCH_FUNCTIONS,
    ) -> None:
        self.http_clients = frozenset(http_clients)
        self.fetch_functions = frozenset(fetch_functions)
        self._local = threading.local()

    def _engine(self) -> ASTEngine:
        engine = getattr(self._local, "engine", None)
        if engine is None:
            engine = ASTEngine()
            self._local.engine = engine
        return engine

    def extract_from_source(
        self,
        source_code: str,
        file_path: str = "<unknown>",
        language: str | None = None,
    ) -> list[RequestFinding]:
        """Analyze one file's source text.

        Args:
            source_code: Full file contents.
            file_path: Name recorded on each finding; also selects the
                grammar when *language* is not given.
            language: Explicit grammar override.

        Returns:
            Findings in source order.

        Raises:
            ParseError: If the source does not parse cleanly.
        """
        language = language or language_for_path(file_path)
        ast = self._engine().parse_strict(source_code, language=language, file_path=file_path)

        walker = _RequestWalker(ast, file_path, self.http_clients, self.fetch_functions)
        ast.walk(walker.visit, walker.leave)

        if walker.dropped_keys:
            logger.debug(
                f"{file_path}: {walker.dropped_keys} non-literal parameter name(s) dropped"
            )
        return walker.findings

    def extract_file(self, source: SourceFile) -> list[RequestFinding]:
        """Analyze a loaded source file. Raises ``ParseError`` on failure."""
        return self.extract_from_source(
            source.raw_text,
            file_path=source.display_name,
            language=language_for_path(source.path),
        )

    def _analyze_one(
        self, path: Path, root: Path | None
    ) -> tuple[str, list[RequestFinding] | None]:
        try:
            source = read_source_file(path, root)
        except SourceReadError as e:
            logger.warning(f"Skipping unreadable file: {e}")
            return str(path), None
        try:
            return source.display_name, self.extract_file(source)
        except ParseError as e:
            logger.debug(f"Skipping unparseable file: {e}")
            return source.display_name, None

    def analyze_paths(
        self,
        paths: Iterable[str | Path],
        site: str,
        root: Path | None = None,
        max_workers: int = 1,
    ) -> RequestSurfaceReport:
        """Analyze many files and aggregate their findings.

        Files are independent, so they are processed concurrently when
        *max_workers* is above one. Findings stay grouped by file in input
        order. Files that cannot be read or parsed are listed in
        ``unanalyzable_files`` and otherwise skipped.
        """
        start = time.monotonic()
        path_list = [Path(p) for p in paths]

        if max_workers > 1 and len(path_list) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(lambda p: self._analyze_one(p, root), path_list))
        else:
            results = [self._analyze_one(p, root) for p in path_list]

        report = RequestSurfaceReport(site=site)
        for name, findings in results:
            if findings is None:
                report.unanalyzable_files.append(name)
                continue
            report.files_analyzed += 1
            report.findings.extend(findings)

        report.analysis_time_seconds = time.monotonic() - start
        logger.info(
            f"Request surface for {site}: {len(report.findings)} finding(s) in "
            f"{report.files_analyzed} file(s), {len(report.unanalyzable_files)} unanalyzable"
        )
        return report
