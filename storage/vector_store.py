"""Neo4j Vector Index store for chunk records."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Sequence

from core.config import settings
from core.errors import SearchError, UpsertError
from core.interfaces import VectorIndex
from core.models import CONTENT_KEY, SearchResult, VectorRecord

if TYPE_CHECKING:
    from neo4j import Driver

logger = logging.getLogger(__name__)

INDEX_NAME = "rag_chunks_index"
NODE_LABEL = "RagChunk"
EMBEDDING_PROPERTY = "embedding"


def create_driver() -> Driver:
    from neo4j import GraphDatabase

    return GraphDatabase.driver(
        settings.neo4j_uri,
        auth=(settings.neo4j_user, settings.neo4j_password),
    )


class VectorStore(VectorIndex):
    """Neo4j-backed vector store with cosine similarity search."""

    def __init__(self, driver: Driver | None = None):
        self._driver = driver if driver is not None else create_driver()

    def close(self) -> None:
        self._driver.close()

    def healthcheck(self) -> bool:
        try:
            self._driver.verify_connectivity()
            return True
        except Exception as e:
            logger.error("Neo4j connectivity check failed: %s", e)
            return False

    def init_index(self) -> None:
        """Create vector index in Neo4j if it doesn't exist."""
        with self._driver.session() as session:
            session.run(
                f"""
                CREATE VECTOR INDEX {INDEX_NAME} IF NOT EXISTS
                FOR (n:{NODE_LABEL})
                ON (n.{EMBEDDING_PROPERTY})
                OPTIONS {{
                    indexConfig: {{
                        `vector.dimensions`: $dimensions,
                        `vector.similarity_function`: 'cosine'
                    }}
                }}
                """,
                dimensions=settings.embedding_dimensions,
            )
        logger.info("Vector index '%s' initialized", INDEX_NAME)

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        """MERGE records by id in a single statement. Returns count upserted."""
        if not records:
            return 0

        rows = [
            {
                "id": record.id,
                "content": record.content,
                "document_id": record.metadata.get("document_id"),
                "chunk_index": record.metadata.get("chunk_index"),
                "total_chunks": record.metadata.get("total_chunks"),
                "embedding": list(record.embedding),
                "metadata_json": json.dumps(record.metadata, default=str),
            }
            for record in records
        ]

        try:
            with self._driver.session() as session:
                session.run(
                    f"""
                    UNWIND $rows AS row
                    MERGE (c:{NODE_LABEL} {{id: row.id}})
                    SET c.content = row.content,
                        c.document_id = row.document_id,
                        c.chunk_index = row.chunk_index,
                        c.total_chunks = row.total_chunks,
                        c.{EMBEDDING_PROPERTY} = row.embedding,
                        c.metadata = row.metadata_json
                    """,
                    rows=rows,
                )
        except Exception as e:
            logger.error("Vector upsert failed: %s", e)
            raise UpsertError(f"Failed to upsert vectors: {e}", e) from e

        logger.info("Upserted %d records to vector store", len(rows))
        return len(rows)

    def query(self, vector: Sequence[float], top_k: int | None = None) -> list[SearchResult]:
        """Search vector index by cosine similarity."""
        if top_k is None:
            top_k = settings.top_k_results

        try:
            with self._driver.session() as session:
                result = session.run(
                    f"""
                    CALL db.index.vector.queryNodes(
                        '{INDEX_NAME}', $top_k, $embedding
                    )
                    YIELD node, score
                    RETURN node.id AS id,
                           node.content AS content,
                           node.metadata AS metadata,
                           score
                    ORDER BY score DESC
                    """,
                    top_k=top_k,
                    embedding=list(vector),
                )
                results = [self._to_search_result(record) for record in result]
        except Exception as e:
            logger.error("Vector search failed: %s", e)
            raise SearchError(f"Vector search failed: {e}", e) from e

        return results

    @staticmethod
    def _to_search_result(record) -> SearchResult:
        metadata: dict = {}
        raw = record["metadata"]
        if raw:
            try:
                loaded = json.loads(raw)
                if isinstance(loaded, dict):
                    metadata = loaded
            except (TypeError, ValueError):
                logger.warning("Unreadable metadata on chunk %s", record["id"])
        if record["content"] is not None:
            metadata.setdefault(CONTENT_KEY, record["content"])
        return SearchResult(
            id=record["id"] or "",
            score=record["score"] or 0.0,
            metadata=metadata,
        )

    def delete_stale_chunks(self, document_id: str, keep: int) -> int:
        """Delete chunks left over from a longer previous version of a document."""
        with self._driver.session() as session:
            result = session.run(
                f"""
                MATCH (c:{NODE_LABEL} {{document_id: $document_id}})
                WHERE c.chunk_index >= $keep
                WITH c, c.id AS id
                DETACH DELETE c
                RETURN count(id) AS total
                """,
                document_id=document_id,
                keep=keep,
            )
            record = result.single()
            count = record["total"] if record else 0

        if count:
            logger.info("Pruned %d stale chunks of %s", count, document_id)
        return count

    def delete_all(self) -> int:
        """Delete all RagChunk nodes. Returns count deleted."""
        with self._driver.session() as session:
            result = session.run(
                f"""
                MATCH (c:{NODE_LABEL})
                WITH c, c.id AS id
                DETACH DELETE c
                RETURN count(id) AS total
                """
            )
            record = result.single()
            count = record["total"] if record else 0

        logger.info("Deleted %d chunks from vector store", count)
        return count

    def count(self) -> int:
        """Return total number of chunks."""
        with self._driver.session() as session:
            result = session.run(
                f"MATCH (c:{NODE_LABEL}) RETURN count(c) AS total"
            )
            record = result.single()
            return record["total"] if record else 0
