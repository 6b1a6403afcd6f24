"""In-process vector index with exact cosine search."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from core.errors import SearchError, UpsertError
from core.interfaces import VectorIndex
from core.models import SearchResult, VectorRecord

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorIndex):
    """Keeps records in a dict and ranks them by brute-force cosine similarity."""

    def __init__(self, dimensions: int | None = None):
        self.dimensions = dimensions
        self._records: dict[str, VectorRecord] = {}

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        for record in records:
            if self.dimensions is not None and len(record.embedding) != self.dimensions:
                raise UpsertError(
                    f"Record {record.id} has {len(record.embedding)} dimensions, "
                    f"index expects {self.dimensions}"
                )
        for record in records:
            self._records[record.id] = record
        logger.debug("Upserted %d records in memory", len(records))
        return len(records)

    def query(self, vector: Sequence[float], top_k: int) -> list[SearchResult]:
        if not self._records or top_k <= 0:
            return []

        query_vec = np.asarray(vector, dtype=float)
        ids = list(self._records)
        try:
            matrix = np.asarray([self._records[i].embedding for i in ids], dtype=float)
            scores = matrix @ query_vec
        except ValueError as e:
            raise SearchError(f"Vector search failed: {e}", e) from e

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vec)
        # Zero-norm vectors score 0.0 instead of NaN.
        scores = np.divide(scores, norms, out=np.zeros_like(scores), where=norms != 0)

        # Stable sort keeps insertion order among equal scores.
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [
            SearchResult(
                id=ids[i],
                score=float(scores[i]),
                metadata=dict(self._records[ids[i]].metadata),
            )
            for i in order
        ]

    def delete_stale_chunks(self, document_id: str, keep: int) -> int:
        stale = [
            record_id
            for record_id, record in self._records.items()
            if record.metadata.get("document_id") == document_id
            and record.metadata.get("chunk_index", -1) >= keep
        ]
        for record_id in stale:
            del self._records[record_id]
        return len(stale)

    def get(self, record_id: str) -> VectorRecord | None:
        return self._records.get(record_id)

    def delete_all(self) -> int:
        count = len(self._records)
        self._records.clear()
        return count

    def count(self) -> int:
        return len(self._records)
