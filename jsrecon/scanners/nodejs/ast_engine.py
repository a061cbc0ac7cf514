"""Core AST parsing engine for JavaScript-family source files.

This module provides a high-level interface around tree-sitter for parsing
JS/TS source code into ASTs. It is the front-end that the request surface
extractor walks.

Usage::

    engine = ASTEngine()
    ast = engine.parse_strict("axios.post('/x', body);", language="javascript")
    ast.walk(visitor)
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Callable
from pathlib import Path

import tree_sitter as ts
import tree_sitter_javascript as ts_js
import tree_sitter_typescript as ts_ts

from ...core.exceptions import ParseError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ParsedAST wrapper
# ---------------------------------------------------------------------------


class ParsedAST:
    """Wrapper around a tree-sitter parse tree with convenience methods.

    Attributes:
        tree: The underlying ``tree_sitter.Tree``.
        source_code: Original source string that was parsed.
        language: Language identifier (``"javascript"``, ``"typescript"``,
            or ``"tsx"``).
    """

    __slots__ = ("tree", "source_code", "language", "_source_bytes")

    def __init__(
        self,
        tree: ts.Tree,
        source_code: str,
        language: str,
    ) -> None:
        self.tree = tree
        self.source_code = source_code
        self.language = language
        self._source_bytes: bytes = source_code.encode("utf-8")

    @property
    def root_node(self) -> ts.Node:
        """Return the root node of the parse tree."""
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        """Return ``True`` if the tree contains any parse errors."""
        return self.tree.root_node.has_error

    def get_text(self, node: ts.Node) -> str:
        """Extract the source text spanned by *node*.

        Args:
            node: Any node within this parse tree.

        Returns:
            The corresponding source substring.
        """
        return self._source_bytes[node.start_byte:node.end_byte].decode(
            "utf-8", errors="replace"
        )

    def walk(
        self,
        visitor: Callable[[ts.Node, int], bool | None],
        leave: Callable[[ts.Node, int], None] | None = None,
    ) -> None:
        """Depth-first walk of the AST using visitor callbacks.

        The *visitor* is called with ``(node, depth)`` for every node in
        source order, before its children. If the visitor returns ``False``
        explicitly, the subtree rooted at that node is skipped. The optional
        *leave* callback is called after the node's whole subtree has been
        walked (post-order); it is not called for skipped subtrees.

        The walk is iterative so deeply nested bundles cannot exhaust the
        interpreter's recursion limit.

        Args:
            visitor: Callable receiving ``(node, depth)``. Return ``False``
                to skip children.
            leave: Callable receiving ``(node, depth)`` once the node's
                children are done.
        """
        # Entries flagged True are exit markers for an already-visited node
        stack: list[tuple[ts.Node, int, bool]] = [(self.tree.root_node, 0, False)]
        while stack:
            node, depth, exiting = stack.pop()
            if exiting:
                leave(node, depth)
                continue
            if visitor(node, depth) is False:
                continue
            if leave is not None:
                stack.append((node, depth, True))
            for child in reversed(node.children):
                stack.append((child, depth + 1, False))

    def first_error_line(self) -> int | None:
        """Return the 1-based line of the first error node, if any."""
        cursor_stack = [self.tree.root_node]
        while cursor_stack:
            node = cursor_stack.pop()
            if node.is_error or node.is_missing:
                return node.start_point.row + 1
            if node.has_error:
                cursor_stack.extend(reversed(node.children))
        return None


# ---------------------------------------------------------------------------
# Literal helpers
# ---------------------------------------------------------------------------


def _decode_escape(sequence: str) -> str:
    try:
        return codecs.decode(sequence, "unicode_escape")
    except (UnicodeDecodeError, ValueError):
        # \u{...} code points and other JS-only forms
        return sequence[1:]


def string_literal_value(ast: ParsedAST, node: ts.Node) -> str | None:
    """Return the value of a ``string`` node with escapes decoded.

    Returns ``None`` when *node* is not a plain string literal.
    """
    if node.type != "string":
        return None
    parts: list[str] = []
    for child in node.children:
        if child.type == "string_fragment":
            parts.append(ast.get_text(child))
        elif child.type == "escape_sequence":
            parts.append(_decode_escape(ast.get_text(child)))
    return "".join(parts)


def template_skeleton(ast: ParsedAST, node: ts.Node, placeholder: str) -> str | None:
    """Flatten a ``template_string`` node into its static skeleton.

    Static fragments are kept verbatim and every ``${...}`` substitution is
    replaced by *placeholder*. Returns ``None`` for non-template nodes.
    """
    if node.type != "template_string":
        return None
    parts: list[str] = []
    for child in node.children:
        if child.type in ("string_fragment", "escape_sequence"):
            parts.append(ast.get_text(child))
        elif child.type == "template_substitution":
            parts.append(placeholder)
    return "".join(parts)


# ---------------------------------------------------------------------------
# Supported languages
# ---------------------------------------------------------------------------

_SUPPORTED_LANGUAGES = frozenset({"javascript", "typescript", "tsx"})

_SUFFIX_LANGUAGES = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}


def language_for_path(path: str | Path) -> str:
    """Pick the grammar for a file from its suffix.

    TypeScript suffixes map to their grammars; everything else, JSX
    included, is parsed as JavaScript.
    """
    return _SUFFIX_LANGUAGES.get(Path(path).suffix.lower(), "javascript")


# ---------------------------------------------------------------------------
# ASTEngine
# ---------------------------------------------------------------------------


class ASTEngine:
    """Core AST parsing engine for JavaScript and TypeScript.

    Initialises tree-sitter ``Language`` objects lazily on first use and
    caches them for the lifetime of the engine instance. A tree-sitter
    ``Parser`` is not safe to share between threads, so concurrent callers
    must each hold their own engine.

    Example::

        engine = ASTEngine()
        ast = engine.parse(source, language="javascript")
        if ast.has_errors:
            ...
    """

    def __init__(self) -> None:
        self._languages: dict[str, ts.Language] = {}
        self._parsers: dict[str, ts.Parser] = {}

    # ------------------------------------------------------------------
    # Language / parser initialisation
    # ------------------------------------------------------------------

    def _get_language(self, language: str) -> ts.Language:
        """Return (and cache) the tree-sitter ``Language`` for *language*.

        Args:
            language: One of ``"javascript"``, ``"typescript"``, ``"tsx"``.

        Raises:
            ValueError: If *language* is not supported.
        """
        if language not in _SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported language: {language!r}. "
                f"Supported: {', '.join(sorted(_SUPPORTED_LANGUAGES))}"
            )

        if language not in self._languages:
            if language == "javascript":
                self._languages[language] = ts.Language(ts_js.language())
            elif language == "typescript":
                self._languages[language] = ts.Language(
                    ts_ts.language_typescript()
                )
            else:  # tsx
                self._languages[language] = ts.Language(
                    ts_ts.language_tsx()
                )

        return self._languages[language]

    def _get_parser(self, language: str) -> ts.Parser:
        """Return (and cache) a ``Parser`` configured for *language*."""
        if language not in self._parsers:
            lang = self._get_language(language)
            self._parsers[language] = ts.Parser(language=lang)
        return self._parsers[language]

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(
        self, source_code: str, language: str = "javascript"
    ) -> ParsedAST:
        """Parse *source_code* into a ``ParsedAST``.

        tree-sitter always produces a tree; syntax errors show up as error
        nodes (see ``ParsedAST.has_errors``).

        Args:
            source_code: The full file contents to parse.
            language: One of ``"javascript"``, ``"typescript"``, or
                ``"tsx"``.

        Returns:
            A ``ParsedAST`` wrapping the parse tree.

        Raises:
            ValueError: If *language* is not supported.
        """
        parser = self._get_parser(language)
        tree = parser.parse(source_code.encode("utf-8"))
        return ParsedAST(tree=tree, source_code=source_code, language=language)

    def parse_strict(
        self,
        source_code: str,
        language: str = "javascript",
        file_path: str | None = None,
    ) -> ParsedAST:
        """Parse *source_code* and reject trees that contain syntax errors.

        Args:
            source_code: The full file contents to parse.
            language: Grammar to use.
            file_path: Used only for the error message.

        Returns:
            An error-free ``ParsedAST``.

        Raises:
            ParseError: If the source does not parse cleanly.
            ValueError: If *language* is not supported.
        """
        ast = self.parse(source_code, language=language)
        if ast.has_errors:
            line = ast.first_error_line()
            where = f" near line {line}" if line is not None else ""
            raise ParseError(
                f"Syntax error in {file_path or '<source>'}{where}",
                file_path=file_path,
            )
        return ast
