"""Decide whether a suite or test exercises an HTTP request."""

from __future__ import annotations

import re
from bisect import bisect_left
from collections.abc import Iterable
from dataclasses import dataclass

from apicize_extract.core.blocks import BlockCandidate
from apicize_extract.core.hierarchy import BlockArena
from apicize_extract.models import BlockKind, ClassificationRule, ExtractionOptions, RequestPattern

REQUEST_INDICATORS: tuple[re.Pattern[str], ...] = (
    re.compile(r"response\."),
    re.compile(r"\.status"),
    re.compile(r"\.body"),
    re.compile(r"\.headers"),
    re.compile(r"request\."),
    re.compile(r"\.url"),
    re.compile(r"\.method"),
    re.compile(r"\.(?:get|post|put|delete|patch)\s*\("),
)


@dataclass(frozen=True)
class RequestClassifier:
    """Ordered rules: name pattern, preceding request metadata, body content.

    ``metadata_ends`` holds the end offsets of request metadata blocks and must
    be sorted ascending.
    """

    patterns: tuple[RequestPattern, ...]
    metadata_ends: tuple[int, ...] = ()
    lookback_chars: int = 500

    @classmethod
    def from_options(cls, options: ExtractionOptions, metadata_ends: Iterable[int] = ()) -> RequestClassifier:
        return cls(
            patterns=options.patterns,
            metadata_ends=tuple(sorted(metadata_ends)),
            lookback_chars=options.metadata_lookback_chars,
        )

    def classify(self, kind: BlockKind, name: str, body_text: str, start_offset: int) -> ClassificationRule | None:
        if self.matches_name(kind, name):
            return ClassificationRule.NAME
        if self.follows_request_metadata(start_offset):
            return ClassificationRule.METADATA
        if contains_request_indicators(body_text):
            return ClassificationRule.CONTENT
        return None

    def matches_name(self, kind: BlockKind, name: str) -> bool:
        return any(pattern.matches(kind, name) for pattern in self.patterns)

    def follows_request_metadata(self, start_offset: int) -> bool:
        index = bisect_left(self.metadata_ends, start_offset - self.lookback_chars)
        return index < len(self.metadata_ends) and self.metadata_ends[index] <= start_offset


def contains_request_indicators(body_text: str) -> bool:
    return any(indicator.search(body_text) for indicator in REQUEST_INDICATORS)


def classify_blocks(arena: BlockArena, classifier: RequestClassifier) -> None:
    for node in arena.blocks():
        _apply(node, classifier)


def _apply(node: BlockCandidate, classifier: RequestClassifier) -> None:
    if not isinstance(node.kind, BlockKind):
        raise TypeError(f"Cannot classify hook at line {node.line_number}")
    rule = classifier.classify(node.kind, node.name, node.raw_body, node.start_offset)
    node.classified_by = rule
    node.is_request_specific = rule is not None
