"""Unit tests for Pydantic models."""

import re

import pytest
from pydantic import ValidationError

from apicize_extract.models import (
    DEFAULT_REQUEST_PATTERNS,
    Block,
    BlockKind,
    ExtractionOptions,
    ExtractionResult,
    Position,
    RequestPattern,
)


class TestPositionModel:
    """Tests for the Position model."""

    def test_creates_position_with_valid_data(self) -> None:
        pos = Position(row=0, column=5)
        assert pos.row == 0
        assert pos.column == 5

    def test_position_requires_row(self) -> None:
        with pytest.raises(ValidationError):
            Position(column=0)  # type: ignore[call-arg]

    def test_position_is_frozen(self) -> None:
        pos = Position(row=1, column=2)
        with pytest.raises(ValidationError):
            pos.row = 3  # type: ignore[misc]


class TestBlockModel:
    """Tests for the recursive Block model."""

    def _block(self, name: str, kind: BlockKind = BlockKind.TEST, **extra: object) -> Block:
        return Block(
            kind=kind,
            name=name,
            body_text="",
            full_text="",
            start_offset=0,
            end_offset=10,
            line_number=1,
            **extra,  # type: ignore[arg-type]
        )

    def test_defaults(self) -> None:
        block = self._block("leaf")
        assert block.depth == 0
        assert block.children == ()
        assert block.hooks == ()
        assert block.is_request_specific is False
        assert block.classified_by is None

    def test_nested_children(self) -> None:
        child = self._block("leaf", depth=1)
        parent = self._block("parent", kind=BlockKind.SUITE, children=(child,))
        assert parent.is_suite
        assert parent.children[0].name == "leaf"

    def test_serializes_to_json_mode(self) -> None:
        child = self._block("leaf", depth=1)
        parent = self._block("parent", kind=BlockKind.SUITE, children=(child,))
        data = parent.model_dump(mode="json")
        assert data["kind"] == "suite"
        assert data["children"][0]["kind"] == "test"
        assert data["children"][0]["depth"] == 1


class TestExtractionResultModel:
    """Tests for the ExtractionResult model."""

    def test_empty_result(self) -> None:
        result = ExtractionResult()
        assert result.root_blocks == ()
        assert result.file_metadata is None
        assert not result.has_errors

    def test_result_is_immutable(self) -> None:
        result = ExtractionResult(errors=("boom",))
        assert result.has_errors
        with pytest.raises(ValidationError):
            result.errors = ()  # type: ignore[misc]


class TestRequestPattern:
    """Tests for name patterns used by classification."""

    def test_kind_specific_pattern(self) -> None:
        pattern = RequestPattern(pattern=re.compile("api", re.IGNORECASE), kind=BlockKind.SUITE)
        assert pattern.matches(BlockKind.SUITE, "Users API")
        assert not pattern.matches(BlockKind.TEST, "Users API")

    def test_pattern_without_kind_matches_both(self) -> None:
        pattern = RequestPattern(pattern="orders")  # type: ignore[arg-type]
        assert pattern.matches(BlockKind.SUITE, "orders list")
        assert pattern.matches(BlockKind.TEST, "fetch orders")

    def test_default_patterns_are_case_insensitive(self) -> None:
        assert any(p.matches(BlockKind.SUITE, "REQUEST tests") for p in DEFAULT_REQUEST_PATTERNS)
        assert any(p.matches(BlockKind.TEST, "Should Send data") for p in DEFAULT_REQUEST_PATTERNS)


class TestExtractionOptions:
    """Tests for ExtractionOptions defaults and validation."""

    def test_defaults(self) -> None:
        options = ExtractionOptions()
        assert options.preserve_formatting is True
        assert options.include_comments is True
        assert options.extract_helpers is True
        assert options.extract_types is False
        assert options.max_nesting_depth is False
        assert options.strict_mode is False
        assert options.metadata_lookback_chars == 500
        assert options.test_code_lookahead_lines == 20
        assert options.patterns == DEFAULT_REQUEST_PATTERNS

    def test_string_patterns_are_coerced(self) -> None:
        options = ExtractionOptions(request_identifier_patterns=["checkout", re.compile("cart", re.I)])
        assert len(options.patterns) == 2
        assert all(pattern.kind is None for pattern in options.patterns)
        assert options.patterns[1].matches(BlockKind.TEST, "CART total")

    def test_max_nesting_depth_accepts_integer(self) -> None:
        assert ExtractionOptions(max_nesting_depth=3).max_nesting_depth == 3

    def test_max_nesting_depth_rejects_true(self) -> None:
        with pytest.raises(ValidationError):
            ExtractionOptions(max_nesting_depth=True)

    def test_negative_lookback_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExtractionOptions(metadata_lookback_chars=-1)
