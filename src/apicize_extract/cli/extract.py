import json
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from apicize_extract.core import compute_stats, extract_files, extract_metadata
from apicize_extract.models import Block, ExtractionOptions, ExtractionResult, Hook

console = Console()


def _options(
    strict: bool = False,
    include_comments: bool = True,
    max_depth: int | None = None,
    language: str | None = None,
) -> ExtractionOptions:
    values: dict[str, Any] = {
        "strict_mode": strict,
        "include_comments": include_comments,
        "max_nesting_depth": max_depth if max_depth is not None else False,
    }
    if language:
        values["language"] = language
    return ExtractionOptions(**values)


def _render_table(title: str, headers: Sequence[str], rows: Sequence[tuple[Any, ...]]) -> None:
    table = Table(title=title, show_lines=False)
    for h in headers:
        table.add_column(h)
    for row in rows:
        table.add_row(*(str(v) for v in row))
    console.print(table)
    console.print(f"({len(rows)} rows)")


def _hook_label(hook: Hook) -> str:
    return f"[magenta]{hook.type.value}[/magenta] (line {hook.line_number})"


def _add_block(parent: Tree, block: Block) -> None:
    style = "cyan" if block.is_suite else "green"
    marker = " [yellow]request[/yellow]" if block.is_request_specific else ""
    prefix = "async " if block.is_async else ""
    label = f"[{style}]{prefix}{block.kind.value}[/{style}] {escape(repr(block.name))} (line {block.line_number})"
    node = parent.add(label + marker)
    for hook in block.hooks:
        node.add(_hook_label(hook))
    for child in block.children:
        _add_block(node, child)


def _print_messages(result: ExtractionResult) -> None:
    for error in result.errors:
        console.print(f"[red]error[/red] {escape(error)}")
    for warning in result.warnings:
        console.print(f"[yellow]warning[/yellow] {escape(warning)}")


def extract(
    paths: Annotated[list[Path], typer.Argument(help="TypeScript/JavaScript test files to extract.")],
    json_output: Annotated[bool, typer.Option("--json", help="Print the extraction result as JSON.")] = False,
    strict: Annotated[bool, typer.Option(help="Report missing tests or metadata as errors.")] = False,
    comments: Annotated[bool, typer.Option(help="Keep comments in extracted code.")] = True,
    max_depth: Annotated[int | None, typer.Option(help="Warn about blocks nested deeper than this.")] = None,
    language: Annotated[str | None, typer.Option(help="Language name (typescript, tsx, javascript).")] = None,
) -> None:
    """Extract suites, tests, hooks and metadata from test files."""
    options = _options(strict=strict, include_comments=comments, max_depth=max_depth, language=language)
    results = extract_files(paths, options)

    if json_output:
        typer.echo(json.dumps({path: result.model_dump(mode="json") for path, result in results.items()}, indent=2))
    else:
        for path, result in results.items():
            tree = Tree(f"[bold]{escape(path)}[/bold]")
            for hook in result.root_hooks:
                tree.add(_hook_label(hook))
            for block in result.root_blocks:
                _add_block(tree, block)
            console.print(tree)
            _print_messages(result)

    if any(result.errors for result in results.values()):
        raise typer.Exit(code=1)


def metadata(
    path: Annotated[Path, typer.Argument(help="Test file to scan for metadata blocks.")],
    json_output: Annotated[bool, typer.Option("--json", help="Print the metadata as JSON.")] = False,
) -> None:
    """List the metadata blocks embedded in a test file."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        console.print(f"[red]error[/red] Failed to read file: {escape(str(exc))}")
        raise typer.Exit(code=1) from None

    result = extract_metadata(text)
    if json_output:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        blocks = [result.file_metadata] if result.file_metadata else []
        blocks.extend(result.group_metadata)
        blocks.extend(result.request_metadata)
        rows = [
            (
                block.scope.value,
                block.id,
                f"{block.line_number_start}-{block.line_number_end}",
                "yes" if block.test_code else "no",
            )
            for block in sorted(blocks, key=lambda block: block.line_number_start)
        ]
        _render_table(str(path), ["scope", "id", "lines", "test code"], rows)
        for error in result.errors:
            console.print(f"[red]error[/red] {escape(error)}")
        for warning in result.warnings:
            console.print(f"[yellow]warning[/yellow] {escape(warning)}")

    if result.errors:
        raise typer.Exit(code=1)


def stats(
    paths: Annotated[list[Path], typer.Argument(help="Test files to summarise.")],
) -> None:
    """Print extraction statistics for test files."""
    results = extract_files(paths)
    rows = []
    for path, result in results.items():
        summary = compute_stats(result)
        rows.append(
            (
                path,
                summary.total_suites,
                summary.total_tests,
                summary.request_specific_blocks,
                summary.total_hooks,
                summary.total_request_metadata,
                summary.total_errors,
                summary.total_warnings,
            )
        )
    _render_table(
        "Extraction statistics",
        ["file", "suites", "tests", "request", "hooks", "request metadata", "errors", "warnings"],
        rows,
    )
    if any(result.errors for result in results.values()):
        raise typer.Exit(code=1)
