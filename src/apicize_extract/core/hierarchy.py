"""Rebuild the suite/test tree from the flat candidate list by range containment."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from apicize_extract.core.blocks import BlockCandidate
from apicize_extract.core.context import ExtractionContext

logger = logging.getLogger(__name__)


def _contains(outer: BlockCandidate, inner: BlockCandidate) -> bool:
    return outer.start_offset < inner.start_offset and outer.end_offset > inner.end_offset


@dataclass
class BlockArena:
    """Candidates indexed by integer id with parent/child links resolved."""

    nodes: list[BlockCandidate] = field(default_factory=list)
    roots: list[int] = field(default_factory=list)
    root_hooks: list[int] = field(default_factory=list)

    def __getitem__(self, block_id: int) -> BlockCandidate:
        return self.nodes[block_id]

    def __len__(self) -> int:
        return len(self.nodes)

    def blocks(self) -> Iterator[BlockCandidate]:
        """Suites and tests, hooks excluded, in ``start_offset`` order."""
        for block_id in self.walk():
            yield self.nodes[block_id]

    def walk(self) -> Iterator[int]:
        stack = list(reversed(self.roots))
        while stack:
            block_id = stack.pop()
            yield block_id
            stack.extend(reversed(self.nodes[block_id].children))

    def hooks(self) -> Iterator[BlockCandidate]:
        return (node for node in self.nodes if node.is_hook)


def build_hierarchy(candidates: Sequence[BlockCandidate], ctx: ExtractionContext | None = None) -> BlockArena:
    """Link candidates into a forest.

    Candidates are swept in ``start_offset`` order (outer ranges first on a
    tie) while a stack holds the suites still open at the current position.
    The parent of each candidate is the innermost open suite that strictly
    contains it, i.e. the enclosing suite with the largest ``start_offset``.
    """
    arena = BlockArena(nodes=list(candidates))
    for block_id, node in enumerate(arena.nodes):
        node.id = block_id
        node.parent = None
        node.depth = 0
        node.children = []
        node.hooks = []

    order = sorted(range(len(arena.nodes)), key=lambda i: (arena.nodes[i].start_offset, -arena.nodes[i].end_offset))
    open_suites: list[int] = []

    for block_id in order:
        node = arena.nodes[block_id]
        while open_suites and arena.nodes[open_suites[-1]].end_offset <= node.start_offset:
            open_suites.pop()

        parent_id = next(
            (suite_id for suite_id in reversed(open_suites) if _contains(arena.nodes[suite_id], node)),
            None,
        )

        if node.is_hook:
            if parent_id is None:
                arena.root_hooks.append(block_id)
            else:
                node.parent = parent_id
                node.depth = arena.nodes[parent_id].depth + 1
                arena.nodes[parent_id].hooks.append(block_id)
            continue

        if parent_id is None:
            arena.roots.append(block_id)
        else:
            node.parent = parent_id
            node.depth = arena.nodes[parent_id].depth + 1
            arena.nodes[parent_id].children.append(block_id)

        if node.is_suite:
            open_suites.append(block_id)

    if ctx is not None:
        _check_depth(arena, ctx)
    logger.debug("Built hierarchy: %d roots, %d root hooks", len(arena.roots), len(arena.root_hooks))
    return arena


def _check_depth(arena: BlockArena, ctx: ExtractionContext) -> None:
    limit = ctx.options.max_nesting_depth
    if limit is False:
        return
    for node in arena.blocks():
        if node.depth > limit:
            ctx.add_warning(
                f"Block '{node.name}' at line {node.line_number} exceeds maximum nesting depth of {limit}"
            )
