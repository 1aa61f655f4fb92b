"""Immutable source text with offset and line lookups."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field

from apicize_extract.models import Position


@dataclass(frozen=True)
class SourceText:
    """A UTF-8 source string plus the indexes derived from it.

    Offsets are character offsets into ``text``. tree-sitter reports byte
    offsets into ``data``; ``char_offset`` converts between the two.
    """

    text: str
    data: bytes = field(init=False, repr=False)
    line_starts: tuple[int, ...] = field(init=False, repr=False)
    _byte_to_char: tuple[int, ...] | None = field(init=False, repr=False)

    def __post_init__(self) -> None:
        data = self.text.encode("utf-8")
        starts = [0]
        for index, char in enumerate(self.text):
            if char == "\n":
                starts.append(index + 1)

        byte_to_char: tuple[int, ...] | None = None
        if len(data) != len(self.text):
            mapping: list[int] = []
            for index, char in enumerate(self.text):
                mapping.extend([index] * len(char.encode("utf-8")))
            mapping.append(len(self.text))
            byte_to_char = tuple(mapping)

        object.__setattr__(self, "data", data)
        object.__setattr__(self, "line_starts", tuple(starts))
        object.__setattr__(self, "_byte_to_char", byte_to_char)

    def __len__(self) -> int:
        return len(self.text)

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")

    def char_offset(self, byte_offset: int) -> int:
        if self._byte_to_char is None:
            return byte_offset
        return self._byte_to_char[min(byte_offset, len(self._byte_to_char) - 1)]

    def line_number(self, offset: int) -> int:
        """1-based line number containing ``offset``."""
        return bisect_right(self.line_starts, offset)

    def line_start(self, line_number: int) -> int:
        index = min(max(line_number, 1), self.line_count) - 1
        return self.line_starts[index]

    def position(self, offset: int) -> Position:
        row = self.line_number(offset) - 1
        return Position(row=row, column=offset - self.line_starts[row])

    def slice(self, start: int, end: int) -> str:
        return self.text[start:end]
