from collections.abc import Iterable, Iterator

from apicize_extract.models import Block, BlockKind, ExtractionResult, ExtractionStats


def iter_blocks(blocks: Iterable[Block]) -> Iterator[Block]:
    """Depth-first pre-order walk over ``blocks`` and all their descendants."""
    stack = list(reversed(list(blocks)))
    while stack:
        block = stack.pop()
        yield block
        stack.extend(reversed(block.children))


def compute_stats(result: ExtractionResult) -> ExtractionStats:
    """Return aggregate counts for an extraction result."""
    blocks = list(iter_blocks(result.root_blocks))
    tests = [block for block in blocks if block.kind is BlockKind.TEST]
    hooks = len(result.root_hooks) + sum(len(block.hooks) for block in blocks)

    return ExtractionStats(
        total_suites=len(blocks) - len(tests),
        total_tests=len(tests),
        async_tests=sum(1 for test in tests if test.is_async),
        request_specific_blocks=sum(1 for block in blocks if block.is_request_specific),
        total_hooks=hooks,
        total_imports=len(result.imports),
        total_shared_code=len(result.shared_code),
        has_file_metadata=result.file_metadata is not None,
        total_request_metadata=len(result.request_metadata),
        total_group_metadata=len(result.group_metadata),
        requests_with_test_code=sum(1 for block in result.request_metadata if block.test_code),
        max_depth=max((block.depth for block in blocks), default=0),
        total_errors=len(result.errors),
        total_warnings=len(result.warnings),
    )
