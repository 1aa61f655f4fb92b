"""Scan source text for ``@apicize-*-metadata`` comment blocks.

The marker pairs are the only contract between the code generator and this
extractor; both sides must use the strings below verbatim::

    /* @apicize-request-metadata
    { "id": "...", ... }
    @apicize-request-metadata-end */

The scan works on raw text and never consults the syntax tree, so metadata is
recovered even from sources the parser only partially understands.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import BaseModel, ConfigDict

from apicize_extract.core.context import ExtractionContext
from apicize_extract.core.source import SourceText
from apicize_extract.models import ExtractionOptions, ExtractionResult, MetadataBlock, MetadataScope

logger = logging.getLogger(__name__)

FILE_METADATA_START = "/* @apicize-file-metadata"
FILE_METADATA_END = "@apicize-file-metadata-end */"
REQUEST_METADATA_START = "/* @apicize-request-metadata"
REQUEST_METADATA_END = "@apicize-request-metadata-end */"
GROUP_METADATA_START = "/* @apicize-group-metadata"
GROUP_METADATA_END = "@apicize-group-metadata-end */"

METADATA_MARKERS: dict[MetadataScope, tuple[str, str]] = {
    MetadataScope.FILE: (FILE_METADATA_START, FILE_METADATA_END),
    MetadataScope.REQUEST: (REQUEST_METADATA_START, REQUEST_METADATA_END),
    MetadataScope.GROUP: (GROUP_METADATA_START, GROUP_METADATA_END),
}

_START_PATTERNS = {
    scope: re.compile(r"/\*\s*@apicize-" + scope.value + r"-metadata(?![\w-])") for scope in MetadataScope
}
_END_PATTERNS = {scope: re.compile(r"@apicize-" + scope.value + r"-metadata-end\s*\*/") for scope in MetadataScope}

_TEST_CALL_RE = re.compile(r"(?<![\w$.])(?:it|test)\s*\(")


class MetadataExtraction(BaseModel):
    """Result of scanning one source text for metadata blocks only."""

    model_config = ConfigDict(frozen=True)

    file_metadata: MetadataBlock | None = None
    request_metadata: tuple[MetadataBlock, ...] = ()
    group_metadata: tuple[MetadataBlock, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


class MetadataScan(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_metadata: MetadataBlock | None = None
    request_metadata: tuple[MetadataBlock, ...] = ()
    group_metadata: tuple[MetadataBlock, ...] = ()


def scan_metadata(ctx: ExtractionContext) -> MetadataScan:
    """Collect every well-formed metadata block, recording problems on ``ctx``."""
    file_blocks = list(_scan_scope(ctx, MetadataScope.FILE))
    request_blocks = list(_scan_scope(ctx, MetadataScope.REQUEST))
    group_blocks = list(_scan_scope(ctx, MetadataScope.GROUP))

    file_metadata = file_blocks[0] if file_blocks else None
    for extra in file_blocks[1:]:
        ctx.add_warning(
            f"Multiple file metadata blocks found; ignoring the block at line {extra.line_number_start}"
        )

    duplicates = duplicate_ids([*request_blocks, *group_blocks])
    if duplicates:
        ctx.add_warning(f"Duplicate metadata IDs found: {', '.join(duplicates)}")

    logger.debug(
        "Found metadata blocks: file=%s request=%d group=%d",
        file_metadata is not None,
        len(request_blocks),
        len(group_blocks),
    )
    return MetadataScan(
        file_metadata=file_metadata,
        request_metadata=tuple(request_blocks),
        group_metadata=tuple(group_blocks),
    )


def duplicate_ids(blocks: Iterable[MetadataBlock]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for block in blocks:
        if block.id in seen and block.id not in duplicates:
            duplicates.append(block.id)
        seen.add(block.id)
    return duplicates


def _scan_scope(ctx: ExtractionContext, scope: MetadataScope) -> Iterator[MetadataBlock]:
    text = ctx.source.text
    start_pattern = _START_PATTERNS[scope]
    end_pattern = _END_PATTERNS[scope]
    cursor = 0
    while True:
        start = start_pattern.search(text, cursor)
        if start is None:
            return
        end = end_pattern.search(text, start.end())
        if end is None:
            # No closing marker: treated as absent metadata.
            return
        cursor = end.end()

        line_start = ctx.source.line_number(start.start())
        content = text[start.end() : end.start()].strip()
        try:
            payload: Any = json.loads(content)
        except json.JSONDecodeError as exc:
            ctx.add_error(f"Invalid JSON in {scope.value} metadata at line {line_start}: {exc}")
            continue

        if ctx.options.validate_json and not isinstance(payload, (dict, list)):
            ctx.add_error(f"{scope.value.capitalize()} metadata is not a valid object at line {line_start}")
            continue

        yield MetadataBlock(
            scope=scope,
            id=_metadata_id(payload, scope, line_start),
            payload=payload,
            line_number_start=line_start,
            line_number_end=ctx.source.line_number(end.start()),
            start_offset=start.start(),
            end_offset=end.end(),
        )


def _metadata_id(payload: Any, scope: MetadataScope, line_start: int) -> str:
    if isinstance(payload, dict):
        value = payload.get("id")
        if isinstance(value, str) and value:
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
    return f"{scope.value}-{line_start}"


def lookahead_end(source: SourceText, block: MetadataBlock, window: int) -> int:
    """Offset where the test-code search window after ``block`` ends."""
    last_line = block.line_number_end + window
    if last_line >= source.line_count:
        return len(source)
    return source.line_start(last_line + 1)


def find_test_code(source: SourceText, block: MetadataBlock, window: int, masked: str | None = None) -> str | None:
    """Text fallback: the first ``it(``/``test(`` call after ``block``.

    Comments and string contents are masked first so markers or braces inside
    them are never mistaken for code.
    """
    if masked is None:
        masked = mask_comments_and_strings(source.text)
    match = _TEST_CALL_RE.search(masked, block.end_offset, lookahead_end(source, block, window))
    if match is None:
        return None
    depth = 0
    for index in range(match.end() - 1, len(masked)):
        char = masked[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return source.slice(match.start(), index + 1)
    return None


def mask_comments_and_strings(text: str) -> str:
    """Blank out comments and string literals, keeping offsets and newlines."""
    chars = list(text)
    length = len(text)
    index = 0
    while index < length:
        char = text[index]
        if text.startswith("//", index):
            stop = text.find("\n", index)
            stop = length if stop == -1 else stop
            _blank(chars, index, stop)
            index = stop
        elif text.startswith("/*", index):
            stop = text.find("*/", index + 2)
            stop = length if stop == -1 else stop + 2
            _blank(chars, index, stop)
            index = stop
        elif char in "'\"`":
            stop = index + 1
            while stop < length and text[stop] != char:
                if text[stop] == "\\":
                    stop += 1
                elif text[stop] == "\n" and char != "`":
                    break
                stop += 1
            stop = min(stop + 1, length)
            _blank(chars, index, stop)
            index = stop
        else:
            index += 1
    return "".join(chars)


def _blank(chars: list[str], start: int, stop: int) -> None:
    for offset in range(start, stop):
        if chars[offset] != "\n":
            chars[offset] = " "


def extract_metadata(text: str, options: ExtractionOptions | None = None) -> MetadataExtraction:
    """Extract metadata blocks only, without parsing the source as code."""
    effective = options or ExtractionOptions()
    try:
        source = SourceText(text)
    except UnicodeEncodeError as exc:
        return MetadataExtraction(errors=(f"Parse error: {exc}",))
    ctx = ExtractionContext(source=source, options=effective)
    scan = scan_metadata(ctx)
    masked = mask_comments_and_strings(text)
    requests = tuple(
        block.model_copy(
            update={"test_code": find_test_code(source, block, effective.test_code_lookahead_lines, masked)}
        )
        for block in scan.request_metadata
    )
    if effective.strict_mode and not requests and not scan.group_metadata:
        ctx.add_error("No metadata blocks found in strict mode")
    return MetadataExtraction(
        file_metadata=scan.file_metadata,
        request_metadata=requests,
        group_metadata=scan.group_metadata,
        errors=tuple(ctx.errors),
        warnings=tuple(ctx.warnings),
    )


def find_metadata_by_id(result: ExtractionResult | MetadataExtraction, metadata_id: str) -> MetadataBlock | None:
    for block in (*result.request_metadata, *result.group_metadata):
        if block.id == metadata_id:
            return block
    if result.file_metadata is not None and result.file_metadata.id == metadata_id:
        return result.file_metadata
    return None
