"""Run every extraction pass over one source text and package the result."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from apicize_extract.core.ast import ParseError, parse_source
from apicize_extract.core.blocks import BlockCandidate, collect_blocks
from apicize_extract.core.classify import RequestClassifier, classify_blocks
from apicize_extract.core.context import ExtractionContext
from apicize_extract.core.declarations import extract_imports, extract_shared_code
from apicize_extract.core.hierarchy import BlockArena, build_hierarchy
from apicize_extract.core.languages import resolve_language
from apicize_extract.core.metadata import find_test_code, mask_comments_and_strings, scan_metadata
from apicize_extract.core.source import SourceText
from apicize_extract.core.stats import iter_blocks
from apicize_extract.models import (
    Block,
    BlockKind,
    ExtractionOptions,
    ExtractionResult,
    Hook,
    HookType,
    Import,
    MetadataBlock,
    SourceRange,
)

logger = logging.getLogger(__name__)

_TEST_FRAMEWORK_MODULES = ("mocha", "chai")
_TEST_FRAMEWORK_NAMES = ("describe", "it", "expect")


class TestExtractionError(Exception):
    """Raised by ``extract_and_validate`` when extraction recorded errors."""

    def __init__(self, message: str, details: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.details = tuple(details)

    def __str__(self) -> str:
        if not self.details:
            return super().__str__()
        return f"{super().__str__()}: {'; '.join(self.details)}"


def extract_from_source(text: str, options: ExtractionOptions | None = None) -> ExtractionResult:
    """Extract suites, tests, hooks, imports, shared code and metadata from ``text``.

    Recoverable problems are reported in ``errors``/``warnings``; only an
    unknown ``options.language`` raises.
    """
    effective = options or ExtractionOptions()
    try:
        source = SourceText(text)
    except UnicodeEncodeError as exc:
        logger.debug("Source is not encodable as UTF-8: %s", exc)
        return ExtractionResult(errors=(f"Parse error: {exc}",))
    ctx = ExtractionContext(source=source, options=effective)

    try:
        tree = parse_source(source, effective.language)
    except ParseError as exc:
        logger.debug("Parse failure: %s", exc)
        return ExtractionResult(errors=(f"Parse error: {exc}",))

    if tree.has_error:
        line = tree.first_error_line()
        if effective.validate_syntax:
            return ExtractionResult(errors=(f"Parse error: syntax error near line {line}",))
        ctx.add_warning(f"Source contains syntax errors near line {line}")

    imports = extract_imports(tree)
    shared_code = extract_shared_code(tree, ctx)
    arena = build_hierarchy(collect_blocks(tree, ctx), ctx)
    scan = scan_metadata(ctx)

    request_metadata = _attach_test_code(ctx, arena, scan.request_metadata)
    classifier = RequestClassifier.from_options(effective, (block.end_offset for block in request_metadata))
    classify_blocks(arena, classifier)

    root_blocks = tuple(_freeze_block(arena, ctx, block_id) for block_id in arena.roots)
    root_hooks = tuple(_freeze_hook(ctx, arena[hook_id]) for hook_id in arena.root_hooks)

    if effective.strict_mode:
        _validate_strict(
            ctx,
            root_blocks,
            imports,
            has_metadata=bool(scan.file_metadata or request_metadata or scan.group_metadata),
        )

    return ExtractionResult(
        imports=tuple(imports),
        root_blocks=root_blocks,
        root_hooks=root_hooks,
        shared_code=tuple(shared_code),
        file_metadata=scan.file_metadata,
        request_metadata=request_metadata,
        group_metadata=scan.group_metadata,
        errors=tuple(ctx.errors),
        warnings=tuple(ctx.warnings),
    )


def extract_from_file(path: str | Path, options: ExtractionOptions | None = None) -> ExtractionResult:
    """Read ``path`` and extract it.

    The language comes from ``options.language`` when it was set explicitly,
    otherwise from the file extension.
    """
    file_path = Path(path)
    effective = options or ExtractionOptions()
    try:
        text = file_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ExtractionResult(errors=(f"File not found: {path}",))
    except (OSError, UnicodeDecodeError) as exc:
        logger.exception("Failed to read %s", file_path)
        return ExtractionResult(errors=(f"Failed to read file: {exc}",))

    if "language" not in effective.model_fields_set:
        try:
            language = resolve_language(None, file_path)
        except ValueError:
            language = effective.language
        effective = effective.model_copy(update={"language": language})

    result = extract_from_source(text, effective)
    logger.info(
        "Extracted %d root block(s) and %d request metadata block(s) from %s",
        len(result.root_blocks),
        len(result.request_metadata),
        file_path,
    )
    return result


def extract_and_validate(text: str, options: ExtractionOptions | None = None) -> ExtractionResult:
    result = extract_from_source(text, options)
    if result.errors:
        raise TestExtractionError("Failed to extract test code", result.errors)
    return result


def extract_files(
    paths: Iterable[str | Path],
    options: ExtractionOptions | None = None,
    max_workers: int | None = None,
) -> dict[str, ExtractionResult]:
    """Extract several files concurrently; results keep the input order."""
    path_list = [str(path) for path in paths]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(lambda path: extract_from_file(path, options), path_list))
    return dict(zip(path_list, results, strict=True))


def _attach_test_code(
    ctx: ExtractionContext, arena: BlockArena, blocks: Sequence[MetadataBlock]
) -> tuple[MetadataBlock, ...]:
    window = ctx.options.test_code_lookahead_lines
    tests = sorted(
        (node for node in arena.nodes if node.kind is BlockKind.TEST),
        key=lambda node: node.start_offset,
    )
    masked: str | None = None
    attached: list[MetadataBlock] = []
    for block in blocks:
        last_line = block.line_number_end + window
        test_code = next(
            (
                node.full_text
                for node in tests
                if node.start_offset >= block.end_offset and node.line_number <= last_line
            ),
            None,
        )
        if test_code is None:
            if masked is None:
                masked = mask_comments_and_strings(ctx.source.text)
            test_code = find_test_code(ctx.source, block, window, masked)
        attached.append(block.model_copy(update={"test_code": test_code}) if test_code else block)
    return tuple(attached)


def _source_range(ctx: ExtractionContext, start: int, end: int) -> SourceRange:
    return SourceRange(
        start_offset=start,
        end_offset=end,
        start_point=ctx.source.position(start),
        end_point=ctx.source.position(end),
    )


def _freeze_hook(ctx: ExtractionContext, node: BlockCandidate) -> Hook:
    if not isinstance(node.kind, HookType):
        raise TypeError(f"Expected a hook at line {node.line_number}, got {node.kind.value}")
    return Hook(
        type=node.kind,
        body_text=node.body_text,
        is_async=node.is_async,
        line_number=node.line_number,
        range=_source_range(ctx, node.start_offset, node.end_offset),
    )


def _freeze_block(arena: BlockArena, ctx: ExtractionContext, block_id: int) -> Block:
    node = arena[block_id]
    if not isinstance(node.kind, BlockKind):
        raise TypeError(f"Expected a suite or test at line {node.line_number}, got {node.kind.value}")
    return Block(
        kind=node.kind,
        name=node.name,
        body_text=node.body_text,
        full_text=node.full_text,
        start_offset=node.start_offset,
        end_offset=node.end_offset,
        line_number=node.line_number,
        depth=node.depth,
        is_async=node.is_async,
        is_request_specific=node.is_request_specific,
        classified_by=node.classified_by,
        children=tuple(_freeze_block(arena, ctx, child_id) for child_id in node.children),
        hooks=tuple(_freeze_hook(ctx, arena[hook_id]) for hook_id in node.hooks),
    )


def _validate_strict(
    ctx: ExtractionContext,
    root_blocks: Sequence[Block],
    imports: Sequence[Import],
    *,
    has_metadata: bool,
) -> None:
    if not root_blocks:
        ctx.add_error("No test blocks found in strict mode")
    if not has_metadata:
        ctx.add_error("No metadata blocks found in strict mode")

    has_framework_import = any(
        any(module in item.module_specifier for module in _TEST_FRAMEWORK_MODULES)
        or any(name in item.named_imports for name in _TEST_FRAMEWORK_NAMES)
        for item in imports
    )
    if not has_framework_import:
        ctx.add_warning("No Mocha/Chai imports found - this may not be a test file")

    for block in iter_blocks(root_blocks):
        if block.is_suite and block.is_request_specific:
            if not any(child.kind is BlockKind.TEST for child in iter_blocks(block.children)):
                ctx.add_warning(f"Request suite '{block.name}' has no test blocks")
