"""Query orchestrator: embed -> search -> generate."""

from __future__ import annotations

import logging

from core.config import settings
from core.errors import ValidationError
from core.interfaces import AnswerGenerator, Embedder, VectorIndex
from core.models import QueryMetadata, QueryResult, SearchResult, Source, filter_metadata
from core.utils import Timer

logger = logging.getLogger(__name__)

NO_RESULTS_ANSWER = "I couldn't find any relevant information to answer your question."


def clamp_max_results(value: int | None, limit: int | None = None) -> int:
    """Clamp a caller-supplied result count into 1..limit."""
    if limit is None:
        limit = settings.max_results_limit
    if value is None:
        value = settings.top_k_results
    return max(1, min(int(value), limit))


class Retriever:
    """Answers queries from the vector index through the answer generator."""

    def __init__(
        self,
        embedder: Embedder,
        vector_index: VectorIndex,
        generator: AnswerGenerator,
        default_max_results: int | None = None,
    ):
        """Initialize retriever with its collaborators.

        Args:
            embedder: Embeds the query text
            vector_index: Similarity search over stored chunks
            generator: LLM answer generator
            default_max_results: Hits to use when the caller gives none
        """
        self.embedder = embedder
        self.vector_index = vector_index
        self.generator = generator
        self.default_max_results = default_max_results or settings.top_k_results

    def answer_query(
        self,
        query: str,
        max_results: int | None = None,
        include_metadata: bool = True,
    ) -> QueryResult:
        """Run the full query pipeline.

        Pipeline steps:
        1. Embed query
        2. Search vector index for top max_results chunks
        3. Short-circuit with a fixed answer when nothing is found
        4. Generate answer from the chunk contents
        5. Shape sources and timing metadata

        Raises:
            ValidationError: empty query or non-positive max_results
            EmbeddingError, SearchError, GenerationError: collaborator failures
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Query is required and must be a non-empty string")

        if max_results is None:
            max_results = self.default_max_results
        if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results < 1:
            raise ValidationError(f"max_results must be a positive integer, got {max_results!r}")

        total_timer = Timer()
        logger.info("Processing query: %s", query[:100])

        stage = Timer()
        embedding = self.embedder.embed(query)
        embedding_time = stage.elapsed_ms()
        logger.info("Embedding generated in %.0fms", embedding_time)

        stage.reset()
        results = self.vector_index.query(embedding, max_results)
        search_time = stage.elapsed_ms()
        logger.info("Found %d results in %.0fms", len(results), search_time)

        model = getattr(self.generator, "model", "")
        if not isinstance(model, str) or not model:
            model = settings.llm_model

        if not results:
            return QueryResult(
                answer=NO_RESULTS_ANSWER,
                sources=[],
                metadata=QueryMetadata(
                    embedding_time_ms=embedding_time,
                    vector_search_time_ms=search_time,
                    llm_generation_time_ms=0,
                    query_processing_time_ms=total_timer.elapsed_ms(),
                    total_documents_searched=0,
                    model=model,
                ),
            )

        contexts = [result.content for result in results]

        stage.reset()
        answer = self.generator.generate(query, contexts)
        generation_time = stage.elapsed_ms()
        logger.info("Answer generated in %.0fms", generation_time)

        sources = [self._to_source(result, include_metadata) for result in results]

        total_time = total_timer.elapsed_ms()
        logger.info("Total processing time: %.0fms", total_time)

        return QueryResult(
            answer=answer,
            sources=sources,
            metadata=QueryMetadata(
                embedding_time_ms=embedding_time,
                vector_search_time_ms=search_time,
                llm_generation_time_ms=generation_time,
                query_processing_time_ms=total_time,
                total_documents_searched=len(results),
                model=model,
            ),
        )

    @staticmethod
    def _to_source(result: SearchResult, include_metadata: bool) -> Source:
        return Source(
            id=result.id,
            content=result.content,
            score=result.score,
            metadata=filter_metadata(result.metadata) if include_metadata else {},
        )
