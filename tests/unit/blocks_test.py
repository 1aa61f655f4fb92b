"""Unit tests for the flat test-framework call scan."""

from textwrap import dedent

from apicize_extract.core.blocks import collect_blocks
from apicize_extract.models import BlockKind, HookType


def _collect(make_context, parse, text: str, **options):  # type: ignore[no-untyped-def]
    ctx = make_context(dedent(text), **options)
    return collect_blocks(parse(ctx), ctx)


def test_collects_suites_tests_and_hooks_in_order(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    blocks = _collect(
        make_context,
        parse,
        """\
        describe('outer', () => {
          beforeEach(() => {});
          it('first', () => {});
          suite('inner', function () {
            test('second', () => {});
          });
        });
        """,
    )
    assert [(block.kind, block.name) for block in blocks] == [
        (BlockKind.SUITE, "outer"),
        (HookType.BEFORE_EACH, ""),
        (BlockKind.TEST, "first"),
        (BlockKind.SUITE, "inner"),
        (BlockKind.TEST, "second"),
    ]


def test_block_text_and_position(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    text = "const x = 1;\nit('adds', () => {\n  expect(x + 1).to.equal(2);\n});\n"
    (block,) = _collect(make_context, parse, text)
    assert block.line_number == 2
    assert block.body_text == "expect(x + 1).to.equal(2);"
    assert block.full_text == "it('adds', () => {\n  expect(x + 1).to.equal(2);\n})"
    assert text[block.start_offset : block.end_offset] == block.full_text


def test_expression_body(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    (block,) = _collect(make_context, parse, "it('short', () => expect(1).to.equal(1));")
    assert block.body_text == "expect(1).to.equal(1)"


def test_async_tests(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    blocks = _collect(
        make_context,
        parse,
        """\
        it('arrow', async () => { await run(); });
        it('function', async function () { await run(); });
        it('sync', () => { run(); });
        """,
    )
    assert [block.is_async for block in blocks] == [True, True, False]


def test_escaped_names_are_decoded(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    (block,) = _collect(make_context, parse, "describe('it\\'s \"quoted\"', () => {});")
    assert block.name == "it's \"quoted\""


def test_named_and_async_hooks(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    blocks = _collect(
        make_context,
        parse,
        """\
        before('connect', async () => { await db.connect(); });
        after(function () { db.close(); });
        afterEach(() => cleanup());
        """,
    )
    assert [(block.kind, block.name, block.is_async) for block in blocks] == [
        (HookType.BEFORE, "connect", True),
        (HookType.AFTER, "", False),
        (HookType.AFTER_EACH, "", False),
    ]
    assert blocks[0].body_text == "await db.connect();"
    assert blocks[2].body_text == "cleanup()"


def test_ignores_calls_that_are_not_blocks(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    blocks = _collect(
        make_context,
        parse,
        """\
        it('pending');
        it(name, () => {});
        describe.only('focused', () => {});
        before(setup);
        expect(value).to.be.ok;
        """,
    )
    assert blocks == []


def test_comments_between_arguments_are_skipped(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    (block,) = _collect(make_context, parse, "it(/* note */ 'commented', () => {});")
    assert block.name == "commented"


def test_exclude_comments_from_body(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    text = "it('x', () => {\n  // note\n  doThing(); /* inline */\n});\n"
    (block,) = _collect(make_context, parse, text, include_comments=False)
    assert "note" not in block.body_text
    assert "inline" not in block.body_text
    assert block.body_text.startswith("doThing();")
    assert "note" in block.full_text


def test_dedent_when_formatting_not_preserved(make_context, parse) -> None:  # type: ignore[no-untyped-def]
    text = dedent(
        """\
        describe('s', () => {
            it('x', () => {
                first();
                    nested();
            });
        });
        """
    )
    blocks = _collect(make_context, parse, text, preserve_formatting=False)
    assert blocks[1].body_text == "first();\n    nested();"

    preserved = _collect(make_context, parse, text)
    assert preserved[1].body_text == "first();\n            nested();"
