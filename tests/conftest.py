"""Shared fixtures."""

from pathlib import Path

import pytest

from doc_enricher.pipeline.context import DOC_CONTENT_TYPE, ContentStream, Document, Metadata

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def alice_path() -> Path:
    return DATA_DIR / "alice.html"


@pytest.fixture
def alice_html(alice_path) -> str:
    return alice_path.read_text(encoding="utf-8")


@pytest.fixture
def html_doc():
    """Factory for in-memory HTML documents."""

    def _make(html: str, reference: str = "test.html", **fields) -> Document:
        metadata = Metadata({DOC_CONTENT_TYPE: "text/html"})
        for k, v in fields.items():
            metadata.set_string(k, *v)
        return Document(reference, ContentStream.from_text(html), metadata)

    return _make


@pytest.fixture
def text_doc():
    def _make(text: str, reference: str = "n/a", **metadata) -> Document:
        return Document.from_text(reference, text, metadata)

    return _make
