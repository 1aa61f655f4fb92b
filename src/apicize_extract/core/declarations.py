"""Top-level imports and shared (non-test) declarations."""

from __future__ import annotations

import logging

from tree_sitter import Node

from apicize_extract.core.ast import NodeKind, SyntaxTree, node_kind, string_value
from apicize_extract.core.blocks import is_test_framework_call
from apicize_extract.core.context import ExtractionContext
from apicize_extract.models import Import, SharedCodeEntry, SharedCodeKind, SourceRange

logger = logging.getLogger(__name__)

_SHARED_KINDS: dict[NodeKind, SharedCodeKind] = {
    NodeKind.LEXICAL_DECLARATION: SharedCodeKind.VARIABLE,
    NodeKind.VARIABLE_DECLARATION: SharedCodeKind.VARIABLE,
    NodeKind.FUNCTION_DECLARATION: SharedCodeKind.FUNCTION,
    NodeKind.CLASS_DECLARATION: SharedCodeKind.CLASS,
    NodeKind.TYPE_DECLARATION: SharedCodeKind.TYPE,
}


def extract_imports(tree: SyntaxTree) -> list[Import]:
    imports: list[Import] = []
    for statement in tree.root.named_children:
        if node_kind(statement) is NodeKind.IMPORT:
            parsed = _parse_import(tree, statement)
            if parsed is not None:
                imports.append(parsed)
    logger.debug("Extracted %d imports", len(imports))
    return imports


def extract_shared_code(tree: SyntaxTree, ctx: ExtractionContext) -> list[SharedCodeEntry]:
    entries: list[SharedCodeEntry] = []
    for statement in tree.root.named_children:
        declaration = statement
        if node_kind(statement) is NodeKind.EXPORT:
            declaration = statement.child_by_field_name("declaration")
            if declaration is None:
                continue
        kind = _SHARED_KINDS.get(node_kind(declaration))
        if kind is None or not _wanted(kind, ctx):
            continue
        if kind is SharedCodeKind.VARIABLE and _is_test_call_assignment(tree, declaration):
            continue

        start, end = tree.start(statement), tree.end(statement)
        entries.append(
            SharedCodeEntry(
                kind=kind,
                name=_declared_name(tree, declaration, kind),
                body_text=ctx.region_text(tree, start, end),
                line_number=tree.line_number(statement),
                range=SourceRange(
                    start_offset=start,
                    end_offset=end,
                    start_point=ctx.source.position(start),
                    end_point=ctx.source.position(end),
                ),
            )
        )
    logger.debug("Extracted %d shared code entries", len(entries))
    return entries


def _wanted(kind: SharedCodeKind, ctx: ExtractionContext) -> bool:
    if kind is SharedCodeKind.TYPE:
        return ctx.options.extract_types
    if kind in (SharedCodeKind.FUNCTION, SharedCodeKind.CLASS):
        return ctx.options.extract_helpers
    return True


def _declarators(declaration: Node) -> list[Node]:
    return [child for child in declaration.named_children if child.type == "variable_declarator"]


def _is_test_call_assignment(tree: SyntaxTree, declaration: Node) -> bool:
    declarators = _declarators(declaration)
    if not declarators:
        return False
    value = declarators[0].child_by_field_name("value")
    while value is not None and value.type in ("await_expression", "parenthesized_expression"):
        value = value.named_children[0] if value.named_children else None
    return is_test_framework_call(tree, value)


def _declared_name(tree: SyntaxTree, declaration: Node, kind: SharedCodeKind) -> str | None:
    if kind is SharedCodeKind.VARIABLE:
        declarators = _declarators(declaration)
        if not declarators:
            return None
        name = declarators[0].child_by_field_name("name")
    else:
        name = declaration.child_by_field_name("name")
    if name is None or name.type not in ("identifier", "type_identifier"):
        return None
    return tree.text(name)


def _parse_import(tree: SyntaxTree, statement: Node) -> Import | None:
    source = statement.child_by_field_name("source")
    if source is None or node_kind(source) is not NodeKind.STRING:
        return None

    default_import: str | None = None
    namespace_import: str | None = None
    named: list[str] = []
    clause = next((child for child in statement.named_children if child.type == "import_clause"), None)
    if clause is not None:
        for child in clause.named_children:
            if child.type == "identifier":
                default_import = tree.text(child)
            elif child.type == "namespace_import":
                alias = next((c for c in child.named_children if c.type == "identifier"), None)
                if alias is not None:
                    namespace_import = tree.text(alias)
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    local = spec.child_by_field_name("alias")
                    if local is None:
                        local = spec.child_by_field_name("name")
                    if local is None:
                        continue
                    local_name = tree.text(local)
                    if local_name not in named:
                        named.append(local_name)

    return Import(
        module_specifier=string_value(tree, source),
        named_imports=tuple(named),
        default_import=default_import,
        namespace_import=namespace_import,
        is_type_only=any(child.type == "type" for child in statement.children),
        line_number=tree.line_number(statement),
        full_text=tree.text(statement),
    )
