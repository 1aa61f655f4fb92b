"""Shared fixtures and helpers for tests."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from apicize_extract.core.ast import SyntaxTree, parse_source
from apicize_extract.core.context import ExtractionContext
from apicize_extract.core.source import SourceText
from apicize_extract.models import ExtractionOptions

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        if rel.parts and rel.parts[0] == "unit":
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def make_context() -> Callable[..., ExtractionContext]:
    def _make(text: str, **options: Any) -> ExtractionContext:
        return ExtractionContext(source=SourceText(text), options=ExtractionOptions(**options))

    return _make


@pytest.fixture
def parse() -> Callable[[ExtractionContext], SyntaxTree]:
    def _parse(ctx: ExtractionContext) -> SyntaxTree:
        return parse_source(ctx.source, ctx.options.language)

    return _parse


SAMPLE_SPEC = """\
import { describe, it, before } from 'mocha';
import { expect } from 'chai';
import type { ApicizeResponse } from '@apicize/lib';

/* @apicize-file-metadata
{
  "version": 1.0,
  "source": "demo.apicize"
}
@apicize-file-metadata-end */

const baseUrl = 'https://api.example.com';

function buildHeaders(token: string) {
  return { Authorization: `Bearer ${token}` };
}

describe('Demo', () => {
  /* @apicize-group-metadata
  {
    "id": "group-1",
    "name": "Users"
  }
  @apicize-group-metadata-end */
  describe('Users', () => {
    before(() => {
      console.log('setup');
    });

    /* @apicize-request-metadata
    {
      "id": "req-1",
      "url": "https://api.example.com/users",
      "method": "GET"
    }
    @apicize-request-metadata-end */
    describe('Get users', () => {
      it('returns 200', async () => {
        expect(response.status).to.equal(200);
      });
    });
  });

  it('helper works', () => {
    expect(buildHeaders('x')).to.exist;
  });
});
"""


@pytest.fixture
def sample_spec() -> str:
    return SAMPLE_SPEC
