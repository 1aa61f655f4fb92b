"""Per-call extraction state threaded through every pass."""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, field

from apicize_extract.core.ast import SyntaxTree
from apicize_extract.core.source import SourceText
from apicize_extract.models import ExtractionOptions


@dataclass
class ExtractionContext:
    source: SourceText
    options: ExtractionOptions
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)

    def region_text(self, tree: SyntaxTree, start: int, end: int, *, strip: bool = True) -> str:
        """Text of ``[start, end)`` with the formatting options applied."""
        if self.options.include_comments:
            text = self.source.slice(start, end)
        else:
            text = self._without_comments(tree, start, end)
        if not self.options.preserve_formatting:
            text = "\n".join(line.rstrip() for line in textwrap.dedent(text).split("\n"))
        return text.strip() if strip else text

    def _without_comments(self, tree: SyntaxTree, start: int, end: int) -> str:
        full = self.source.text
        pieces: list[str] = []
        cursor = start
        for comment_start, comment_end in tree.comment_ranges:
            if comment_start < cursor or comment_end > end:
                continue
            line_start = full.rfind("\n", 0, comment_start) + 1
            cut_start, cut_end = comment_start, comment_end
            # A comment alone on its line takes the whole line with it.
            if line_start >= cursor and not full[line_start:comment_start].strip():
                if comment_end == end or full.startswith("\n", comment_end):
                    cut_start = line_start
                    cut_end = min(comment_end + 1, end)
            pieces.append(full[cursor:cut_start])
            cursor = cut_end
        pieces.append(full[cursor:end])
        return "".join(pieces)
