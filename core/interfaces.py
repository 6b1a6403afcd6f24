"""Collaborator interfaces consumed by the retrieval and ingestion pipelines."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence

from core.models import DocumentToIngest, IngestionJobResult, SearchResult, VectorRecord


class Embedder(ABC):
    """Turns text into fixed-length vectors."""

    model: str = ""

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single string. Raises EmbeddingError."""

    @abstractmethod
    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several strings; output is index-aligned with input."""


class VectorIndex(ABC):
    """Stores vector records and answers top-K similarity queries."""

    @abstractmethod
    def upsert(self, records: Sequence[VectorRecord]) -> int:
        """Insert or overwrite records by id. Raises UpsertError."""

    @abstractmethod
    def query(self, vector: Sequence[float], top_k: int) -> list[SearchResult]:
        """Return up to top_k hits, highest score first. Raises SearchError."""

    @abstractmethod
    def delete_stale_chunks(self, document_id: str, keep: int) -> int:
        """Delete chunks of document_id with chunk_index >= keep."""


class AnswerGenerator(ABC):
    """Produces an answer from a query and context strings."""

    model: str = ""

    @abstractmethod
    def generate(self, query: str, contexts: Sequence[str]) -> str:
        """Raises GenerationError."""


class DocumentSource(ABC):
    """Lists raw documents that have not been indexed yet."""

    @abstractmethod
    def list_unprocessed(self, limit: int | None = None) -> list[DocumentToIngest]:
        """Return pending documents; failures yield an empty list."""


class JobStore(ABC):
    """Bookkeeping for indexed documents and ingestion jobs."""

    @abstractmethod
    def is_indexed(self, document_id: str, since: datetime | None = None) -> bool:
        """True if the document was indexed, and not before `since` when given."""
        ...

    @abstractmethod
    def mark_indexed(self, document_id: str) -> None:
        ...

    @abstractmethod
    def record_job(self, result: IngestionJobResult) -> None:
        ...
