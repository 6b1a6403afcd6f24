"""Shared test doubles for pipeline collaborators."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from core.errors import EmbeddingError
from core.interfaces import AnswerGenerator, Embedder, JobStore, VectorIndex
from core.models import DocumentMetadata, DocumentToIngest


class FakeEmbedder(Embedder):
    """Deterministic embedder; fails any batch containing `fail_on`."""

    model = "fake-embedding"

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.single_calls: list[str] = []
        self.batch_calls: list[list[str]] = []

    def embed(self, text):
        self.single_calls.append(text)
        return self.vector(text)

    def embed_batch(self, texts):
        self.batch_calls.append(list(texts))
        if self.fail_on and any(self.fail_on in t for t in texts):
            raise EmbeddingError("embedding service unavailable")
        return [self.vector(t) for t in texts]

    @staticmethod
    def vector(text: str) -> list[float]:
        return [float(len(text)), float(sum(map(ord, text)) % 97), 1.0]


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def mock_index():
    index = MagicMock(spec=VectorIndex)
    index.upsert.side_effect = lambda records: len(records)
    index.delete_stale_chunks.return_value = 0
    index.query.return_value = []
    return index


@pytest.fixture
def mock_job_store():
    return MagicMock(spec=JobStore)


@pytest.fixture
def mock_generator():
    generator = MagicMock(spec=AnswerGenerator)
    generator.model = "test-llm"
    generator.generate.return_value = "Generated answer."
    return generator


def make_document(doc_id: str, content: str, **metadata) -> DocumentToIngest:
    return DocumentToIngest(
        id=doc_id,
        content=content,
        metadata=DocumentMetadata(**metadata),
    )
