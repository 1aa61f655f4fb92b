"""tree-sitter adapter: parses source text and classifies nodes into ``NodeKind``."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import cast

from tree_sitter import Node, Tree
from tree_sitter_language_pack import SupportedLanguage, get_parser

from apicize_extract.core.languages import normalize_language
from apicize_extract.core.source import SourceText

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    CALL = "call"
    ARROW_FUNCTION = "arrow_function"
    FUNCTION_EXPRESSION = "function_expression"
    STATEMENT_BLOCK = "statement_block"
    STRING = "string"
    IDENTIFIER = "identifier"
    IMPORT = "import"
    EXPORT = "export"
    LEXICAL_DECLARATION = "lexical_declaration"
    VARIABLE_DECLARATION = "variable_declaration"
    FUNCTION_DECLARATION = "function_declaration"
    CLASS_DECLARATION = "class_declaration"
    TYPE_DECLARATION = "type_declaration"
    EXPRESSION_STATEMENT = "expression_statement"
    COMMENT = "comment"
    OTHER = "other"


_NODE_KINDS: dict[str, NodeKind] = {
    "call_expression": NodeKind.CALL,
    "arrow_function": NodeKind.ARROW_FUNCTION,
    "function_expression": NodeKind.FUNCTION_EXPRESSION,
    "function": NodeKind.FUNCTION_EXPRESSION,
    "generator_function": NodeKind.FUNCTION_EXPRESSION,
    "statement_block": NodeKind.STATEMENT_BLOCK,
    "string": NodeKind.STRING,
    "identifier": NodeKind.IDENTIFIER,
    "import_statement": NodeKind.IMPORT,
    "export_statement": NodeKind.EXPORT,
    "lexical_declaration": NodeKind.LEXICAL_DECLARATION,
    "variable_declaration": NodeKind.VARIABLE_DECLARATION,
    "function_declaration": NodeKind.FUNCTION_DECLARATION,
    "generator_function_declaration": NodeKind.FUNCTION_DECLARATION,
    "class_declaration": NodeKind.CLASS_DECLARATION,
    "abstract_class_declaration": NodeKind.CLASS_DECLARATION,
    "type_alias_declaration": NodeKind.TYPE_DECLARATION,
    "interface_declaration": NodeKind.TYPE_DECLARATION,
    "enum_declaration": NodeKind.TYPE_DECLARATION,
    "expression_statement": NodeKind.EXPRESSION_STATEMENT,
    "comment": NodeKind.COMMENT,
}

FUNCTION_KINDS = frozenset({NodeKind.ARROW_FUNCTION, NodeKind.FUNCTION_EXPRESSION})

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}
_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])")


class ParseError(Exception):
    """Raised when no usable syntax tree can be produced."""


def node_kind(node: Node) -> NodeKind:
    return _NODE_KINDS.get(node.type, NodeKind.OTHER)


@dataclass(frozen=True)
class SyntaxTree:
    source: SourceText
    tree: Tree
    language: str

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_error(self) -> bool:
        return self.tree.root_node.has_error

    def start(self, node: Node) -> int:
        return self.source.char_offset(node.start_byte)

    def end(self, node: Node) -> int:
        return self.source.char_offset(node.end_byte)

    def text(self, node: Node) -> str:
        return self.source.slice(self.start(node), self.end(node))

    def line_number(self, node: Node) -> int:
        return node.start_point[0] + 1

    @cached_property
    def comment_ranges(self) -> tuple[tuple[int, int], ...]:
        return tuple(
            (self.start(node), self.end(node)) for node in walk(self.root) if node_kind(node) is NodeKind.COMMENT
        )

    def first_error_line(self) -> int | None:
        for node in walk(self.root):
            if node.type == "ERROR" or node.is_missing:
                return node.start_point[0] + 1
        return None


def parse_source(source: SourceText, language: str = "typescript") -> SyntaxTree:
    resolved = normalize_language(language)
    try:
        parser = get_parser(cast(SupportedLanguage, resolved))
        tree = parser.parse(source.data)
    except Exception as exc:
        raise ParseError(str(exc) or exc.__class__.__name__) from exc
    if tree is None or tree.root_node is None:
        raise ParseError("parser returned no syntax tree")
    logger.debug("Parsed %d bytes of %s source", len(source.data), resolved)
    return SyntaxTree(source=source, tree=tree, language=resolved)


def walk(root: Node) -> Iterator[Node]:
    """Pre-order traversal without recursion."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def named_arguments(call: Node) -> list[Node]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [child for child in arguments.named_children if node_kind(child) is not NodeKind.COMMENT]


def callee_name(tree: SyntaxTree, call: Node) -> str | None:
    function = call.child_by_field_name("function")
    if function is None or node_kind(function) is not NodeKind.IDENTIFIER:
        return None
    return tree.text(function)


def is_async_function(node: Node) -> bool:
    return any(child.type == "async" for child in node.children)


def string_value(tree: SyntaxTree, node: Node) -> str:
    """Return the cooked value of a string literal node."""
    raw = tree.text(node)
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "'\"":
        raw = raw[1:-1]
    return _ESCAPE_RE.sub(_unescape, raw)


def _unescape(match: re.Match[str]) -> str:
    sequence = match.group(1)
    if sequence[0] == "u" and len(sequence) > 1:
        digits = sequence[2:-1] if sequence[1] == "{" else sequence[1:]
        return chr(int(digits, 16))
    if sequence[0] == "x" and len(sequence) == 3:
        return chr(int(sequence[1:], 16))
    if sequence in ("\n", "\r\n", "\u2028", "\u2029"):
        return ""
    return _ESCAPES.get(sequence, sequence)
