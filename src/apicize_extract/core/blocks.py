"""Flat scan of the syntax tree for test-framework calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tree_sitter import Node

from apicize_extract.core.ast import (
    FUNCTION_KINDS,
    NodeKind,
    SyntaxTree,
    callee_name,
    is_async_function,
    named_arguments,
    node_kind,
    string_value,
    walk,
)
from apicize_extract.core.context import ExtractionContext
from apicize_extract.models import BlockKind, ClassificationRule, HookType

logger = logging.getLogger(__name__)

BLOCK_CALLEES: dict[str, BlockKind] = {
    "describe": BlockKind.SUITE,
    "suite": BlockKind.SUITE,
    "it": BlockKind.TEST,
    "test": BlockKind.TEST,
}

HOOK_CALLEES: dict[str, HookType] = {
    "before": HookType.BEFORE,
    "after": HookType.AFTER,
    "beforeEach": HookType.BEFORE_EACH,
    "afterEach": HookType.AFTER_EACH,
}

TEST_FRAMEWORK_CALLEES = frozenset(BLOCK_CALLEES) | frozenset(HOOK_CALLEES)


@dataclass
class BlockCandidate:
    """A suite, test or hook found by the flat scan.

    Hierarchy and classification fields are filled in by later passes.
    ``raw_body`` is the callback body exactly as written; classification reads
    it so formatting options never change the outcome.
    """

    kind: BlockKind | HookType
    name: str
    body_text: str
    full_text: str
    start_offset: int
    end_offset: int
    line_number: int
    is_async: bool = False
    raw_body: str = ""
    id: int = -1
    parent: int | None = None
    depth: int = 0
    children: list[int] = field(default_factory=list)
    hooks: list[int] = field(default_factory=list)
    is_request_specific: bool = False
    classified_by: ClassificationRule | None = None

    @property
    def is_hook(self) -> bool:
        return isinstance(self.kind, HookType)

    @property
    def is_suite(self) -> bool:
        return self.kind is BlockKind.SUITE


def collect_blocks(tree: SyntaxTree, ctx: ExtractionContext) -> list[BlockCandidate]:
    """Return every recognised suite/test/hook call in traversal order."""
    candidates: list[BlockCandidate] = []
    for node in walk(tree.root):
        if node_kind(node) is not NodeKind.CALL:
            continue
        name = callee_name(tree, node)
        if name in BLOCK_CALLEES:
            candidate = _block_candidate(tree, ctx, node, BLOCK_CALLEES[name])
        elif name in HOOK_CALLEES:
            candidate = _hook_candidate(tree, ctx, node, HOOK_CALLEES[name])
        else:
            continue
        if candidate is not None:
            candidates.append(candidate)
    logger.debug("Collected %d test-framework calls", len(candidates))
    return candidates


def is_test_framework_call(tree: SyntaxTree, node: Node | None) -> bool:
    if node is None or node_kind(node) is not NodeKind.CALL:
        return False
    return callee_name(tree, node) in TEST_FRAMEWORK_CALLEES


def function_body_text(tree: SyntaxTree, ctx: ExtractionContext, function: Node) -> str:
    body = function.child_by_field_name("body")
    if body is None:
        return ""
    if node_kind(body) is NodeKind.STATEMENT_BLOCK:
        return ctx.region_text(tree, tree.start(body) + 1, tree.end(body) - 1)
    return ctx.region_text(tree, tree.start(body), tree.end(body), strip=False)


def raw_body_text(tree: SyntaxTree, function: Node) -> str:
    body = function.child_by_field_name("body")
    return "" if body is None else tree.text(body)


def _block_candidate(
    tree: SyntaxTree, ctx: ExtractionContext, call: Node, kind: BlockKind
) -> BlockCandidate | None:
    arguments = named_arguments(call)
    if len(arguments) < 2:
        return None
    name_arg, callback = arguments[0], arguments[1]
    if node_kind(name_arg) is not NodeKind.STRING or node_kind(callback) not in FUNCTION_KINDS:
        return None
    return BlockCandidate(
        kind=kind,
        name=string_value(tree, name_arg),
        body_text=function_body_text(tree, ctx, callback),
        full_text=tree.text(call),
        start_offset=tree.start(call),
        end_offset=tree.end(call),
        line_number=tree.line_number(call),
        is_async=kind is BlockKind.TEST and is_async_function(callback),
        raw_body=raw_body_text(tree, callback),
    )


def _hook_candidate(
    tree: SyntaxTree, ctx: ExtractionContext, call: Node, hook_type: HookType
) -> BlockCandidate | None:
    arguments = named_arguments(call)
    name = ""
    if arguments and node_kind(arguments[0]) is NodeKind.STRING:
        name = string_value(tree, arguments[0])
        arguments = arguments[1:]
    if not arguments or node_kind(arguments[0]) not in FUNCTION_KINDS:
        return None
    callback = arguments[0]
    return BlockCandidate(
        kind=hook_type,
        name=name,
        body_text=function_body_text(tree, ctx, callback),
        full_text=tree.text(call),
        start_offset=tree.start(call),
        end_offset=tree.end(call),
        line_number=tree.line_number(call),
        is_async=is_async_function(callback),
    )
