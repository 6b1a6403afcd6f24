"""Neo4j-backed document records and ingestion job log."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from core.interfaces import DocumentSource, JobStore
from core.models import (
    RECOGNIZED_METADATA_KEYS,
    DocumentMetadata,
    DocumentToIngest,
    IngestionJobResult,
)
from storage.vector_store import create_driver

if TYPE_CHECKING:
    from neo4j import Driver

logger = logging.getLogger(__name__)

DOCUMENT_LABEL = "Document"
JOB_LABEL = "IngestionJob"


class DocumentStore(DocumentSource, JobStore):
    """Stores raw documents and job results as Neo4j nodes.

    A Document node with a null indexed_at is pending ingestion.
    """

    def __init__(self, driver: Driver | None = None):
        self._driver = driver if driver is not None else create_driver()

    def close(self) -> None:
        self._driver.close()

    def add_document(self, document: DocumentToIngest) -> None:
        """Create or replace a document and reset it to pending."""
        with self._driver.session() as session:
            session.run(
                f"""
                MERGE (d:{DOCUMENT_LABEL} {{id: $id}})
                ON CREATE SET d.created_at = datetime()
                SET d.content = $content,
                    d.metadata = $metadata_json,
                    d.updated_at = datetime(),
                    d.indexed_at = null
                """,
                id=document.id,
                content=document.content,
                metadata_json=json.dumps(document.metadata.as_dict()),
            )
        logger.info("Stored document %s", document.id)

    def list_unprocessed(self, limit: int | None = None) -> list[DocumentToIngest]:
        """Return documents not yet indexed, oldest first."""
        try:
            with self._driver.session() as session:
                result = session.run(
                    f"""
                    MATCH (d:{DOCUMENT_LABEL})
                    WHERE d.indexed_at IS NULL
                    RETURN d.id AS id,
                           d.content AS content,
                           d.metadata AS metadata,
                           toString(d.created_at) AS created_at
                    ORDER BY d.created_at
                    LIMIT $limit
                    """,
                    limit=limit or 50,
                )
                records = list(result)
        except Exception as e:
            logger.error("Failed to list unprocessed documents: %s", e)
            return []

        documents: list[DocumentToIngest] = []
        for record in records:
            try:
                documents.append(self._to_document(record))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping unreadable document %s: %s", record.get("id"), e)

        logger.info("Found %d unprocessed documents in store", len(documents))
        return documents

    @staticmethod
    def _to_document(record) -> DocumentToIngest:
        extra: dict = {}
        if record["metadata"]:
            try:
                loaded = json.loads(record["metadata"])
                if isinstance(loaded, dict):
                    extra = loaded
            except (TypeError, ValueError):
                logger.warning("Unreadable metadata on document %s", record["id"])

        invalid = [
            key
            for key in RECOGNIZED_METADATA_KEYS
            if extra.get(key) is not None and not isinstance(extra[key], str)
        ]
        if invalid:
            logger.warning("Dropping non-string metadata %s on document %s", invalid, record["id"])
            extra = {k: v for k, v in extra.items() if k not in invalid}

        metadata = DocumentMetadata(**extra)
        if record["created_at"]:
            metadata.created_at = record["created_at"]
        metadata.document_type = "database"

        return DocumentToIngest(
            id=record["id"],
            content=record["content"] or "",
            metadata=metadata,
        )

    def is_indexed(self, document_id: str, since: datetime | None = None) -> bool:
        with self._driver.session() as session:
            result = session.run(
                f"""
                MATCH (d:{DOCUMENT_LABEL} {{id: $id}})
                RETURN d.indexed_at IS NOT NULL
                       AND ($since IS NULL OR d.indexed_at >= datetime($since)) AS indexed
                """,
                id=document_id,
                since=since.isoformat() if since else None,
            )
            record = result.single()
            return bool(record and record["indexed"])

    def mark_indexed(self, document_id: str) -> None:
        """Stamp indexed_at, creating a stub node for documents from other sources."""
        with self._driver.session() as session:
            session.run(
                f"""
                MERGE (d:{DOCUMENT_LABEL} {{id: $id}})
                ON CREATE SET d.created_at = datetime()
                SET d.indexed_at = datetime()
                """,
                id=document_id,
            )

    def record_job(self, result: IngestionJobResult) -> None:
        error_log = (
            json.dumps([e.model_dump(mode="json") for e in result.errors])
            if result.errors
            else None
        )
        with self._driver.session() as session:
            session.run(
                f"""
                MERGE (j:{JOB_LABEL} {{id: $id}})
                SET j.status = $status,
                    j.documents_processed = $documents_processed,
                    j.documents_total = $documents_total,
                    j.started_at = datetime($started_at),
                    j.completed_at = datetime($completed_at),
                    j.duration_ms = $duration_ms,
                    j.timed_out = $timed_out,
                    j.documents_skipped = $documents_skipped,
                    j.error_log = $error_log
                """,
                id=result.job_id,
                status=result.status.value,
                documents_processed=result.documents_processed,
                documents_total=result.documents_total,
                started_at=result.started_at.isoformat(),
                completed_at=(result.completed_at or result.started_at).isoformat(),
                duration_ms=result.duration_ms,
                timed_out=result.timed_out,
                documents_skipped=result.documents_skipped,
                error_log=error_log,
            )
        logger.info("Recorded ingestion job %s (%s)", result.job_id, result.status.value)
