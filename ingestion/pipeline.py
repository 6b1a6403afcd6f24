"""Ingestion job: chunk -> batch embed -> upsert -> mark indexed."""

from __future__ import annotations

import logging
import time
from typing import Sequence

from core.config import settings
from core.errors import EmbeddingError
from core.interfaces import DocumentSource, Embedder, JobStore, VectorIndex
from core.models import (
    CONTENT_KEY,
    Chunk,
    DocumentToIngest,
    IngestionError,
    IngestionJobResult,
    IngestionStatus,
    VectorRecord,
    utcnow,
)
from core.utils import Timer, best_effort
from ingestion.chunker import split_document

logger = logging.getLogger(__name__)


def new_job_id() -> str:
    return f"ingest_{int(time.time() * 1000)}"


def build_records(
    document: DocumentToIngest,
    chunks: Sequence[Chunk],
    embeddings: Sequence[Sequence[float]],
) -> list[VectorRecord]:
    """Pair each chunk with the embedding at the same position."""
    if len(chunks) != len(embeddings):
        raise EmbeddingError(
            f"Expected {len(chunks)} embeddings for {document.id}, got {len(embeddings)}"
        )

    base_metadata = document.metadata.as_dict()
    records = []
    for chunk, embedding in zip(chunks, embeddings):
        metadata = {
            **base_metadata,
            CONTENT_KEY: chunk.content,
            "document_id": document.id,
            "chunk_index": chunk.index,
            "total_chunks": chunk.total_chunks,
        }
        records.append(
            VectorRecord(id=chunk.record_id, embedding=list(embedding), metadata=metadata)
        )
    return records


class IngestionPipeline:
    """Turns raw documents into indexed, searchable chunks.

    Per-document failures are collected into the job result; a run never
    raises because one document failed.
    """

    def __init__(
        self,
        embedder: Embedder,
        vector_index: VectorIndex,
        job_store: JobStore | None = None,
        document_source: DocumentSource | None = None,
        chunk_size: int | None = None,
        prune_stale_chunks: bool | None = None,
        deadline_seconds: float | None = None,
    ):
        self.embedder = embedder
        self.vector_index = vector_index
        self.job_store = job_store
        self.document_source = document_source
        self.chunk_size = chunk_size or settings.chunk_size
        self.prune_stale_chunks = (
            settings.prune_stale_chunks if prune_stale_chunks is None else prune_stale_chunks
        )
        self.deadline_seconds = (
            settings.ingestion_deadline_seconds if deadline_seconds is None else deadline_seconds
        )

    def run_pending(self, limit: int | None = None) -> IngestionJobResult:
        """Fetch unprocessed documents from the source and ingest them."""
        documents: list[DocumentToIngest] = []
        if self.document_source is not None:
            documents = best_effort(
                self.document_source.list_unprocessed,
                limit or settings.source_limit,
                description="listing unprocessed documents",
                default=[],
            ) or []
        return self.run_job(documents)

    def run_job(self, documents: Sequence[DocumentToIngest]) -> IngestionJobResult:
        """Ingest documents one by one and summarize the run."""
        timer = Timer()
        result = IngestionJobResult(
            job_id=new_job_id(),
            status=IngestionStatus.PROCESSING,
            documents_total=len(documents),
        )
        if not documents:
            logger.info("Job %s: no documents to process", result.job_id)
            result.status = IngestionStatus.COMPLETED
            result.completed_at = utcnow()
            result.duration_ms = timer.elapsed_ms()
            return result

        logger.info("Starting job %s with %d documents", result.job_id, len(documents))

        for position, document in enumerate(documents):
            if self.deadline_seconds and timer.elapsed_seconds() >= self.deadline_seconds:
                result.timed_out = True
                result.documents_skipped = len(documents) - position
                logger.warning(
                    "Job %s hit its %.1fs deadline; %d documents left pending",
                    result.job_id,
                    self.deadline_seconds,
                    result.documents_skipped,
                )
                break

            try:
                chunk_count = self.process_document(document)
            except Exception as e:
                logger.error("Failed to process document %s: %s", document.id, e)
                result.errors.append(
                    IngestionError(document_id=document.id, message=str(e) or type(e).__name__)
                )
                continue

            result.documents_processed += 1
            logger.info("Processed document %s (%d chunks)", document.id, chunk_count)

        result.status = IngestionStatus.FAILED if result.errors else IngestionStatus.COMPLETED
        result.completed_at = utcnow()
        result.duration_ms = timer.elapsed_ms()

        if self.job_store is not None:
            best_effort(
                self.job_store.record_job,
                result,
                description=f"recording job {result.job_id}",
            )

        logger.info(
            "Job %s finished in %.0fms: %d/%d processed, %d errors",
            result.job_id,
            result.duration_ms,
            result.documents_processed,
            result.documents_total,
            len(result.errors),
        )
        return result

    def process_document(self, document: DocumentToIngest) -> int:
        """Chunk, embed and upsert one document. Returns the chunk count.

        Chunking, embedding and upsert errors propagate; the bookkeeping
        steps after the upsert never do.
        """
        chunks = split_document(document, self.chunk_size)
        logger.debug("Split %s into %d chunks", document.id, len(chunks))

        if chunks:
            embeddings = self.embedder.embed_batch([c.content for c in chunks])
            records = build_records(document, chunks, embeddings)
            self.vector_index.upsert(records)

        if self.prune_stale_chunks:
            best_effort(
                self.vector_index.delete_stale_chunks,
                document.id,
                len(chunks),
                description=f"pruning stale chunks of {document.id}",
            )

        if self.job_store is not None:
            best_effort(
                self.job_store.mark_indexed,
                document.id,
                description=f"marking {document.id} as indexed",
            )

        return len(chunks)
