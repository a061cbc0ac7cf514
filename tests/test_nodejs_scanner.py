"""Tests for JavaScript/TypeScript request surface analysis.

Covers: AST engine, literal helpers, scope tracking, call-site detection
and per-corpus aggregation.
"""

import pytest

from jsrecon.core.exceptions import ParseError
from jsrecon.scanners.nodejs.ast_engine import (
    ASTEngine,
    ParsedAST,
    language_for_path,
    string_literal_value,
    template_skeleton,
)
from jsrecon.scanners.nodejs.models import (
    BodyEncoding,
    Confidence,
    RequestFinding,
    RequestSurfaceReport,
)
from jsrecon.scanners.nodejs.request_extractor import RequestSurfaceExtractor
from jsrecon.scanners.nodejs.scope import BindingKind, ScopeMap

# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    """Create a shared ASTEngine instance."""
    return ASTEngine()


@pytest.fixture
def extractor():
    """Create an extractor with the default client and fetch names."""
    return RequestSurfaceExtractor()


def _first_node(ast: ParsedAST, node_type: str):
    found = []

    def _visitor(node, _depth):
        if node.type == node_type and not found:
            found.append(node)

    ast.walk(_visitor)
    return found[0]


# ===========================================================================
# A. AST Engine Tests
# ===========================================================================


class TestASTEngineParsing:
    """Test parsing for different languages and error detection."""

    def test_parse_javascript(self, engine):
        """JavaScript source parses successfully with no errors."""
        code = "const x = 42;"
        ast = engine.parse(code, language="javascript")
        assert ast.language == "javascript"
        assert ast.source_code == code
        assert not ast.has_errors

    def test_parse_typescript(self, engine):
        """TypeScript source parses successfully with no errors."""
        ast = engine.parse("const x: number = 42;", language="typescript")
        assert not ast.has_errors

    def test_parse_tsx(self, engine):
        """TSX source parses successfully with no errors."""
        ast = engine.parse("const App = () => <div>Hello</div>;", language="tsx")
        assert not ast.has_errors

    def test_parse_minified_bundle(self, engine):
        """Minified module syntax parses without errors."""
        code = (
            'import{a as b}from"./c.js";var d=function(e){return e+1},'
            'f=(g,h)=>g?.[h]??0;export{d as default,f};'
        )
        ast = engine.parse_strict(code, language="javascript")
        assert not ast.has_errors

    def test_parse_strict_raises_parse_error(self, engine):
        """Malformed code raises ParseError from parse_strict."""
        with pytest.raises(ParseError, match="broken.js"):
            engine.parse_strict("const x = {{{;", file_path="broken.js")

    def test_parse_error_carries_file_path(self, engine):
        """The ParseError records which file failed."""
        with pytest.raises(ParseError) as exc_info:
            engine.parse_strict("function (", file_path="a/b.js")
        assert exc_info.value.file_path == "a/b.js"

    def test_parse_keeps_error_tree(self, engine):
        """Plain parse returns a tree even for malformed code."""
        ast = engine.parse("const x = {{{;", language="javascript")
        assert ast.has_errors
        assert ast.first_error_line() == 1

    def test_unsupported_language_error(self, engine):
        """Requesting an unsupported language raises ValueError."""
        with pytest.raises(ValueError, match="Unsupported language"):
            engine.parse("code", language="python")

    def test_get_text(self, engine):
        """get_text extracts the correct source fragment."""
        code = "const x = 'héllo';"
        ast = engine.parse(code, language="javascript")
        assert ast.get_text(ast.root_node) == code

    def test_walk_is_pre_order(self, engine):
        """Parents are visited before their children."""
        ast = engine.parse("f(g());", language="javascript")
        order = []
        ast.walk(lambda node, _d: order.append(node.type) if node.type == "call_expression" else None)
        assert order == ["call_expression", "call_expression"]

    def test_walk_skips_subtree_on_false(self, engine):
        """Returning False from the visitor prunes the subtree."""
        ast = engine.parse("f(g());", language="javascript")
        calls = []

        def _visitor(node, _depth):
            if node.type == "call_expression":
                calls.append(node)
                return False
            return None

        ast.walk(_visitor)
        assert len(calls) == 1

    def test_leave_is_post_order(self, engine):
        """The leave callback runs after the node's children."""
        ast = engine.parse("f(g());", language="javascript")
        events = []

        def _visitor(node, _depth):
            if node.type == "call_expression":
                events.append(("enter", ast.get_text(node)))

        def _leave(node, _depth):
            if node.type == "call_expression":
                events.append(("leave", ast.get_text(node)))

        ast.walk(_visitor, _leave)
        assert events == [
            ("enter", "f(g())"),
            ("enter", "g()"),
            ("leave", "g()"),
            ("leave", "f(g())"),
        ]


class TestLanguageSelection:
    """Test grammar choice by file suffix."""

    @pytest.mark.parametrize(
        "path,language",
        [
            ("app.js", "javascript"),
            ("chunk.mjs", "javascript"),
            ("view.jsx", "javascript"),
            ("api.ts", "typescript"),
            ("Page.TSX", "tsx"),
            ("noext", "javascript"),
        ],
    )
    def test_language_for_path(self, path, language):
        assert language_for_path(path) == language


class TestLiteralHelpers:
    """Test string and template literal decoding."""

    def test_string_value(self, engine):
        ast = engine.parse("x('/api/login');", language="javascript")
        node = _first_node(ast, "string")
        assert string_literal_value(ast, node) == "/api/login"

    def test_string_value_decodes_escapes(self, engine):
        ast = engine.parse(r"x('a\'b\n');", language="javascript")
        node = _first_node(ast, "string")
        assert string_literal_value(ast, node) == "a'b\n"

    def test_empty_string(self, engine):
        ast = engine.parse("x('');", language="javascript")
        node = _first_node(ast, "string")
        assert string_literal_value(ast, node) == ""

    def test_non_string_returns_none(self, engine):
        ast = engine.parse("x(42);", language="javascript")
        node = _first_node(ast, "number")
        assert string_literal_value(ast, node) is None

    def test_template_skeleton(self, engine):
        ast = engine.parse("x(`/users/${id}/posts/${post.id}`);", language="javascript")
        node = _first_node(ast, "template_string")
        assert template_skeleton(ast, node, "${}") == "/users/${}/posts/${}"

    def test_template_skeleton_leading_substitution(self, engine):
        ast = engine.parse("x(`${base}/api`);", language="javascript")
        node = _first_node(ast, "template_string")
        assert template_skeleton(ast, node, "${}") == "${}/api"


# ===========================================================================
# B. Scope Tracking Tests
# ===========================================================================


class TestScopeMap:
    """Test the per-file binding map."""

    def test_bind_and_get(self):
        scope = ScopeMap()
        scope.bind("data", BindingKind.OBJECT_LITERAL, ["a", "b"])
        binding = scope.get("data")
        assert binding.kind is BindingKind.OBJECT_LITERAL
        assert binding.keys == ["a", "b"]
        assert "data" in scope

    def test_rebind_replaces(self):
        scope = ScopeMap()
        scope.bind("x", BindingKind.OBJECT_LITERAL, ["a"])
        scope.bind("x", BindingKind.FORM_ACCUMULATOR)
        assert scope.get("x").kind is BindingKind.FORM_ACCUMULATOR
        assert scope.get("x").keys == []
        assert len(scope) == 1

    def test_unbind(self):
        scope = ScopeMap()
        scope.bind("x", BindingKind.OBJECT_LITERAL, ["a"])
        scope.unbind("x")
        scope.unbind("never-bound")
        assert scope.get("x") is None

    def test_append_to_accumulator(self):
        scope = ScopeMap()
        scope.bind("fd", BindingKind.FORM_ACCUMULATOR)
        assert scope.append_key("fd", "user")
        assert scope.append_key("fd", "user")
        assert scope.get("fd").keys == ["user", "user"]

    def test_append_unique(self):
        scope = ScopeMap()
        scope.bind("p", BindingKind.URL_ACCUMULATOR)
        scope.append_key("p", "q", unique=True)
        scope.append_key("p", "q", unique=True)
        assert scope.get("p").keys == ["q"]

    def test_append_ignores_object_literals_and_unknown_names(self):
        scope = ScopeMap()
        scope.bind("obj", BindingKind.OBJECT_LITERAL, ["a"])
        assert not scope.append_key("obj", "b")
        assert not scope.append_key("missing", "b")
        assert scope.get("obj").keys == ["a"]

    def test_binding_kind_encodings(self):
        assert BindingKind.OBJECT_LITERAL.encoding is BodyEncoding.JSON
        assert BindingKind.FORM_ACCUMULATOR.encoding is BodyEncoding.FORM_DATA
        assert BindingKind.URL_ACCUMULATOR.encoding is BodyEncoding.URLENCODED


# ===========================================================================
# C. Call-Site Detection Tests
# ===========================================================================


class TestClientObjectCalls:
    """Test detection of write calls on known client objects."""

    def test_object_literal_variable_body(self, extractor):
        code = "const body = {a:1,b:2}; axios.post('/x', body)"
        findings = extractor.extract_from_source(code, file_path="app.js")
        assert len(findings) == 1
        finding = findings[0]
        assert finding.file == "app.js"
        assert finding.method == "POST"
        assert finding.endpoint == "/x"
        assert finding.body_params == ["a", "b"]
        assert finding.body_type is BodyEncoding.JSON
        assert finding.confidence is Confidence.HIGH

    def test_inline_object_body(self, extractor):
        code = "axios.put('/profile', { name: n, 'e-mail': e, age });"
        finding = extractor.extract_from_source(code)[0]
        assert finding.method == "PUT"
        assert finding.body_params == ["name", "e-mail", "age"]
        assert finding.body_type is BodyEncoding.JSON

    def test_all_write_verbs(self, extractor):
        code = "\n".join(
            f"axios.{verb}('/r');" for verb in ("post", "put", "patch", "delete")
        )
        findings = extractor.extract_from_source(code)
        assert [f.method for f in findings] == ["POST", "PUT", "PATCH", "DELETE"]
        assert all(f.body_type is BodyEncoding.UNKNOWN for f in findings)
        assert all(f.body_params == [] for f in findings)

    def test_read_verbs_ignored(self, extractor):
        code = "axios.get('/a'); axios.head('/b'); axios.request({url: '/c'});"
        assert extractor.extract_from_source(code) == []

    def test_unknown_client_ignored(self, extractor):
        assert extractor.extract_from_source("api.post('/x', {a: 1});") == []

    def test_configured_client_names(self):
        extractor = RequestSurfaceExtractor(http_clients={"axios", "api"})
        findings = extractor.extract_from_source("api.post('/x', {a: 1});")
        assert len(findings) == 1
        assert findings[0].body_params == ["a"]

    def test_template_endpoint_has_one_placeholder(self, extractor):
        code = "axios.post(`/api/users/${userId}/edit`, {});"
        finding = extractor.extract_from_source(code)[0]
        assert finding.endpoint == "/api/users/${}/edit"
        assert finding.endpoint.count("${}") == 1
        assert "userId" not in finding.endpoint

    def test_non_literal_endpoint_unresolved(self, extractor):
        code = "axios.post(BASE + '/x', {a: 1});"
        finding = extractor.extract_from_source(code)[0]
        assert finding.endpoint is None
        assert finding.body_params == ["a"]

    def test_missing_arguments(self, extractor):
        finding = extractor.extract_from_source("axios.delete();")[0]
        assert finding.endpoint is None
        assert finding.body_type is BodyEncoding.UNKNOWN

    def test_unbound_identifier_body_is_unknown(self, extractor):
        finding = extractor.extract_from_source("axios.post('/x', payload);")[0]
        assert finding.body_params == []
        assert finding.body_type is BodyEncoding.UNKNOWN

    def test_call_result_body_is_unknown(self, extractor):
        finding = extractor.extract_from_source("axios.post('/x', build());")[0]
        assert finding.body_type is BodyEncoding.UNKNOWN

    def test_parenthesized_body(self, extractor):
        finding = extractor.extract_from_source("axios.post('/x', ({a: 1}));")[0]
        assert finding.body_params == ["a"]


class TestFetchCalls:
    """Test detection of fetch-style calls."""

    def test_form_data_login(self, extractor):
        code = (
            "const fd = new FormData(); fd.append('user','bob'); fd.append('pass','x'); "
            "fetch('/login',{method:'POST', body: fd})"
        )
        findings = extractor.extract_from_source(code)
        assert len(findings) == 1
        finding = findings[0]
        assert finding.method == "POST"
        assert finding.endpoint == "/login"
        assert finding.body_params == ["user", "pass"]
        assert finding.body_type is BodyEncoding.FORM_DATA
        assert finding.confidence is Confidence.MEDIUM

    def test_default_method_is_get(self, extractor):
        finding = extractor.extract_from_source("fetch('/api/items');")[0]
        assert finding.method == "GET"
        assert finding.endpoint == "/api/items"
        assert finding.body_type is BodyEncoding.UNKNOWN

    def test_method_override_is_uppercased(self, extractor):
        finding = extractor.extract_from_source("fetch('/x', {method: 'delete'});")[0]
        assert finding.method == "DELETE"

    def test_non_literal_method_keeps_default(self, extractor):
        finding = extractor.extract_from_source("fetch('/x', {method: m});")[0]
        assert finding.method == "GET"

    def test_unresolved_call_dropped(self, extractor):
        assert extractor.extract_from_source("fetch(url);") == []
        assert extractor.extract_from_source("fetch(url, {method: 'POST', body: blob});") == []

    def test_body_only_call_kept(self, extractor):
        code = "fetch(url, {method: 'POST', body: {q: 1}});"
        finding = extractor.extract_from_source(code)[0]
        assert finding.endpoint is None
        assert finding.body_params == ["q"]

    def test_shorthand_body_property(self, extractor):
        code = "const body = {a: 1, b: 2}; fetch('/x', {method: 'POST', body});"
        finding = extractor.extract_from_source(code)[0]
        assert finding.body_params == ["a", "b"]
        assert finding.body_type is BodyEncoding.JSON

    def test_stringified_body_is_unknown(self, extractor):
        code = "fetch('/x', {method: 'POST', body: JSON.stringify(data)});"
        finding = extractor.extract_from_source(code)[0]
        assert finding.body_type is BodyEncoding.UNKNOWN
        assert finding.body_params == []

    def test_template_endpoint(self, extractor):
        finding = extractor.extract_from_source("fetch(`${API}/v1/orders/${id}`);")[0]
        assert finding.endpoint == "${}/v1/orders/${}"

    def test_configured_fetch_names(self):
        extractor = RequestSurfaceExtractor(fetch_functions={"fetch", "request"})
        findings = extractor.extract_from_source("request('/x'); fetch('/y');")
        assert [f.endpoint for f in findings] == ["/x", "/y"]


class TestBodyResolution:
    """Test scope-aware resolution of body arguments."""

    def test_url_search_params(self, extractor):
        code = "const p = new URLSearchParams(); p.append('q', term); axios.put('/search', p);"
        finding = extractor.extract_from_source(code)[0]
        assert finding.body_params == ["q"]
        assert finding.body_type is BodyEncoding.URLENCODED

    def test_url_search_params_seeded_from_object(self, extractor):
        code = "const p = new URLSearchParams({a: 1, b: 2}); p.append('c', 3); axios.post('/x', p);"
        finding = extractor.extract_from_source(code)[0]
        assert finding.body_params == ["a", "b", "c"]
        assert finding.body_type is BodyEncoding.URLENCODED

    def test_url_search_params_seeded_from_query_string(self, extractor):
        code = "const p = new URLSearchParams('?a=1&b=2&a=3'); axios.post('/x', p);"
        finding = extractor.extract_from_source(code)[0]
        assert finding.body_params == ["a", "b"]

    def test_set_does_not_duplicate(self, extractor):
        code = "const p = new URLSearchParams(); p.set('a', 1); p.set('a', 2); axios.post('/x', p);"
        assert extractor.extract_from_source(code)[0].body_params == ["a"]

    def test_non_literal_append_key_dropped(self, extractor):
        code = (
            "const fd = new FormData(); fd.append(field, v); fd.append('token', t); "
            "axios.post('/upload', fd);"
        )
        finding = extractor.extract_from_source(code)[0]
        assert finding.body_params == ["token"]
        assert finding.body_type is BodyEncoding.FORM_DATA

    def test_computed_and_spread_keys_dropped(self, extractor):
        code = "const d = {[k]: 1, a: 2, 'b': 3, ...rest, 4: 'x', run() {}}; axios.post('/x', d);"
        assert extractor.extract_from_source(code)[0].body_params == ["a", "b", "run"]

    def test_rebinding_is_last_write_wins(self, extractor):
        code = "let d = {a: 1}; d = {b: 2}; axios.post('/x', d);"
        assert extractor.extract_from_source(code)[0].body_params == ["b"]

    def test_rebinding_to_untracked_value_forgets_binding(self, extractor):
        code = "let d = {a: 1}; d = load(); axios.post('/x', d);"
        finding = extractor.extract_from_source(code)[0]
        assert finding.body_params == []
        assert finding.body_type is BodyEncoding.UNKNOWN

    def test_assignment_sees_binding_before_its_own_value(self, extractor):
        code = "let data = {a: 1, b: 2}; data = axios.post('/x', data); axios.put('/y', data);"
        findings = extractor.extract_from_source(code)
        assert findings[0].body_params == ["a", "b"]
        assert findings[0].body_type is BodyEncoding.JSON
        assert findings[1].body_params == []
        assert findings[1].body_type is BodyEncoding.UNKNOWN

    def test_fetch_result_assigned_to_its_form_body(self, extractor):
        code = (
            "let fd = new FormData(); fd.append('file', f); "
            "fd = fetch('/up', {method: 'POST', body: fd});"
        )
        finding = extractor.extract_from_source(code)[0]
        assert finding.body_params == ["file"]
        assert finding.body_type is BodyEncoding.FORM_DATA

    def test_redeclaration_sees_previous_binding(self, extractor):
        code = "var data = {a: 1}; var data = axios.post('/x', data);"
        assert extractor.extract_from_source(code)[0].body_params == ["a"]

    def test_rebinding_object_to_form_data(self, extractor):
        code = "let d = {a: 1}; d = new FormData(); d.append('f', x); axios.post('/x', d);"
        finding = extractor.extract_from_source(code)[0]
        assert finding.body_params == ["f"]
        assert finding.body_type is BodyEncoding.FORM_DATA

    def test_bindings_are_flow_insensitive(self, extractor):
        code = (
            "function a() { var data = {x: 1}; }\n"
            "function b() { axios.post('/y', data); }"
        )
        assert extractor.extract_from_source(code)[0].body_params == ["x"]

    def test_appends_after_call_not_included(self, extractor):
        code = (
            "const fd = new FormData(); fd.append('a', 1); axios.post('/x', fd); "
            "fd.append('b', 2); axios.post('/y', fd);"
        )
        findings = extractor.extract_from_source(code)
        assert findings[0].body_params == ["a"]
        assert findings[1].body_params == ["a", "b"]

    def test_window_qualified_constructor(self, extractor):
        code = "const fd = new window.FormData(); fd.append('k', 1); axios.post('/x', fd);"
        assert extractor.extract_from_source(code)[0].body_type is BodyEncoding.FORM_DATA

    def test_typescript_assertions_unwrapped(self, extractor):
        code = (
            "interface P { a: number }\n"
            "const body: P = { a: 1 };\n"
            "axios.post('/x', body as P);"
        )
        finding = extractor.extract_from_source(code, file_path="api.ts")[0]
        assert finding.body_params == ["a"]
        assert finding.body_type is BodyEncoding.JSON

    def test_findings_keep_source_order(self, extractor):
        code = "fetch('/one'); axios.post('/two'); fetch('/three', {method: 'PUT'});"
        findings = extractor.extract_from_source(code)
        assert [f.endpoint for f in findings] == ["/one", "/two", "/three"]
        assert [f.method for f in findings] == ["GET", "POST", "PUT"]

    def test_each_file_gets_fresh_scope(self, extractor):
        extractor.extract_from_source("const body = {a: 1};", file_path="one.js")
        finding = extractor.extract_from_source("axios.post('/x', body);", file_path="two.js")[0]
        assert finding.body_params == []
        assert finding.body_type is BodyEncoding.UNKNOWN

    def test_parse_failure_raises(self, extractor):
        with pytest.raises(ParseError):
            extractor.extract_from_source("axios.post('/x', {a: 1", file_path="bad.js")


# ===========================================================================
# D. Models and Aggregation Tests
# ===========================================================================


class TestModels:
    """Test serialization of findings."""

    def test_finding_serializes_with_report_keys(self):
        finding = RequestFinding(
            file="app.js",
            method="POST",
            endpoint="/x",
            body_params=["a"],
            body_type=BodyEncoding.FORM_DATA,
            confidence=Confidence.HIGH,
        )
        assert finding.model_dump(mode="json", by_alias=True) == {
            "file": "app.js",
            "method": "POST",
            "endpoint": "/x",
            "bodyParams": ["a"],
            "bodyType": "form-data",
            "confidence": "high",
        }

    def test_finding_accepts_report_keys(self):
        finding = RequestFinding.model_validate(
            {
                "file": "a.js",
                "method": "GET",
                "endpoint": None,
                "bodyParams": [],
                "bodyType": "unknown",
                "confidence": "medium",
            }
        )
        assert finding.body_type is BodyEncoding.UNKNOWN
        assert finding.confidence is Confidence.MEDIUM


class TestAnalyzePaths:
    """Test corpus-level aggregation."""

    def test_aggregates_in_input_order(self, extractor, tmp_path):
        (tmp_path / "a.js").write_text("axios.post('/a', {x: 1});")
        (tmp_path / "b.js").write_text("fetch('/b');")
        report = extractor.analyze_paths(
            [tmp_path / "a.js", tmp_path / "b.js"], site="example.com", root=tmp_path
        )
        assert isinstance(report, RequestSurfaceReport)
        assert report.files_analyzed == 2
        assert [f.file for f in report.findings] == ["a.js", "b.js"]

    def test_parse_failures_are_recorded_not_fatal(self, extractor, tmp_path):
        (tmp_path / "good.js").write_text("axios.post('/ok', {a: 1});")
        (tmp_path / "bad.js").write_text("axios.post('/x', {a: 1")
        report = extractor.analyze_paths(
            [tmp_path / "bad.js", tmp_path / "good.js"], site="example.com", root=tmp_path
        )
        assert report.files_analyzed == 1
        assert report.unanalyzable_files == ["bad.js"]
        assert [f.endpoint for f in report.findings] == ["/ok"]

    def test_missing_file_is_unanalyzable(self, extractor, tmp_path):
        report = extractor.analyze_paths([tmp_path / "gone.js"], site="example.com")
        assert report.files_analyzed == 0
        assert len(report.unanalyzable_files) == 1

    def test_parallel_matches_sequential(self, extractor, tmp_path):
        paths = []
        for i in range(8):
            path = tmp_path / f"f{i}.js"
            path.write_text(f"const b{i} = {{k{i}: 1}}; axios.post('/r{i}', b{i});")
            paths.append(path)
        sequential = extractor.analyze_paths(paths, site="s", root=tmp_path, max_workers=1)
        parallel = extractor.analyze_paths(paths, site="s", root=tmp_path, max_workers=4)
        assert sequential.findings == parallel.findings
        assert [f.body_params for f in parallel.findings] == [[f"k{i}"] for i in range(8)]

    def test_findings_json_uses_report_keys(self, extractor, tmp_path):
        (tmp_path / "a.js").write_text("axios.patch('/a', {x: 1});")
        report = extractor.analyze_paths([tmp_path / "a.js"], site="s", root=tmp_path)
        assert report.findings_json() == [
            {
                "file": "a.js",
                "method": "PATCH",
                "endpoint": "/a",
                "bodyParams": ["x"],
                "bodyType": "json",
                "confidence": "high",
            }
        ]
