import re
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    row: int
    column: int


class SourceRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_offset: int
    end_offset: int
    start_point: Position
    end_point: Position


class BlockKind(str, Enum):
    SUITE = "suite"
    TEST = "test"


class HookType(str, Enum):
    BEFORE = "before"
    AFTER = "after"
    BEFORE_EACH = "beforeEach"
    AFTER_EACH = "afterEach"


class SharedCodeKind(str, Enum):
    VARIABLE = "variable"
    FUNCTION = "function"
    CLASS = "class"
    TYPE = "type"


class MetadataScope(str, Enum):
    FILE = "file"
    REQUEST = "request"
    GROUP = "group"


class ClassificationRule(str, Enum):
    NAME = "name"
    METADATA = "metadata"
    CONTENT = "content"


class Hook(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: HookType
    body_text: str
    is_async: bool = False
    line_number: int
    range: SourceRange


class Block(BaseModel):
    """A ``describe``/``suite`` (suite) or ``it``/``test`` (test) call."""

    model_config = ConfigDict(frozen=True)

    kind: BlockKind
    name: str
    body_text: str
    full_text: str
    start_offset: int
    end_offset: int
    line_number: int
    depth: int = 0
    is_async: bool = False
    is_request_specific: bool = False
    classified_by: ClassificationRule | None = None
    children: tuple["Block", ...] = ()
    hooks: tuple[Hook, ...] = ()

    @property
    def is_suite(self) -> bool:
        return self.kind is BlockKind.SUITE


Block.model_rebuild()  # necessary for recursive types


class Import(BaseModel):
    model_config = ConfigDict(frozen=True)

    module_specifier: str
    named_imports: tuple[str, ...] = ()
    default_import: str | None = None
    namespace_import: str | None = None
    is_type_only: bool = False
    line_number: int
    full_text: str


class SharedCodeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: SharedCodeKind
    name: str | None = None
    body_text: str
    line_number: int
    range: SourceRange


class MetadataBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    scope: MetadataScope
    id: str
    payload: Any
    line_number_start: int
    line_number_end: int
    start_offset: int
    end_offset: int
    test_code: str | None = None


class ExtractionResult(BaseModel):
    """Everything recovered from one source text.

    Built once per extraction call and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    imports: tuple[Import, ...] = ()
    root_blocks: tuple[Block, ...] = ()
    root_hooks: tuple[Hook, ...] = ()
    shared_code: tuple[SharedCodeEntry, ...] = ()
    file_metadata: MetadataBlock | None = None
    request_metadata: tuple[MetadataBlock, ...] = ()
    group_metadata: tuple[MetadataBlock, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class ExtractionStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_suites: int
    total_tests: int
    async_tests: int
    request_specific_blocks: int
    total_hooks: int
    total_imports: int
    total_shared_code: int
    has_file_metadata: bool
    total_request_metadata: int
    total_group_metadata: int
    requests_with_test_code: int
    max_depth: int
    total_errors: int
    total_warnings: int


class RequestPattern(BaseModel):
    """A name pattern marking a block as request-specific.

    ``kind=None`` applies the pattern to suites and tests alike.
    """

    model_config = ConfigDict(frozen=True)

    pattern: re.Pattern[str]
    kind: BlockKind | None = None

    def matches(self, kind: BlockKind, name: str) -> bool:
        if self.kind is not None and self.kind is not kind:
            return False
        return self.pattern.search(name) is not None


DEFAULT_REQUEST_PATTERNS: tuple[RequestPattern, ...] = (
    RequestPattern(pattern=re.compile(r"request", re.IGNORECASE), kind=BlockKind.SUITE),
    RequestPattern(pattern=re.compile(r"API", re.IGNORECASE), kind=BlockKind.SUITE),
    RequestPattern(pattern=re.compile(r"endpoint", re.IGNORECASE), kind=BlockKind.SUITE),
    RequestPattern(pattern=re.compile(r"should\s*(make|send|call)", re.IGNORECASE), kind=BlockKind.TEST),
)


class ExtractionOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    preserve_formatting: bool = True
    include_comments: bool = True
    extract_helpers: bool = True
    extract_types: bool = False
    request_identifier_patterns: tuple[RequestPattern, ...] | None = None
    max_nesting_depth: int | Literal[False] = False
    strict_mode: bool = False
    validate_syntax: bool = False
    validate_json: bool = True
    language: str = "typescript"
    metadata_lookback_chars: int = Field(default=500, ge=0)
    test_code_lookahead_lines: int = Field(default=20, ge=0)

    @field_validator("request_identifier_patterns", mode="before")
    @classmethod
    def _coerce_patterns(cls, value: Any) -> Any:
        if value is None:
            return None
        coerced = []
        for item in value:
            if isinstance(item, (str, re.Pattern)):
                coerced.append({"pattern": item})
            else:
                coerced.append(item)
        return tuple(coerced)

    @field_validator("max_nesting_depth", mode="before")
    @classmethod
    def _check_depth(cls, value: Any) -> Any:
        if value is True:
            raise ValueError("max_nesting_depth must be an integer or False")
        if isinstance(value, int) and value is not False and value < 0:
            raise ValueError("max_nesting_depth must not be negative")
        return value

    @property
    def patterns(self) -> tuple[RequestPattern, ...]:
        if self.request_identifier_patterns is None:
            return DEFAULT_REQUEST_PATTERNS
        return self.request_identifier_patterns
