"""Data models for the RAG pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

CONTENT_KEY = "content"

# Metadata fields exposed to callers; everything else stays internal.
RECOGNIZED_METADATA_KEYS = ("title", "url", "created_at", "updated_at", "document_type")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def filter_metadata(metadata: dict[str, Any]) -> dict[str, str]:
    """Keep only recognized metadata keys whose values are strings."""
    return {
        key: metadata[key]
        for key in RECOGNIZED_METADATA_KEYS
        if isinstance(metadata.get(key), str)
    }


class DocumentMetadata(BaseModel):
    """Well-known document fields plus arbitrary extras."""

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    document_type: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class DocumentToIngest(BaseModel):
    """A raw document waiting to be chunked and indexed."""

    id: str
    content: str
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    source_path: str | None = None


class Chunk(BaseModel):
    """An ordered slice of a document's text."""

    document_id: str
    index: int
    content: str
    total_chunks: int

    @property
    def record_id(self) -> str:
        return chunk_record_id(self.document_id, self.index)


def chunk_record_id(document_id: str, index: int) -> str:
    return f"{document_id}_chunk_{index}"


class VectorRecord(BaseModel):
    """The unit stored in the vector index."""

    id: str
    embedding: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _require_content(self) -> VectorRecord:
        if not isinstance(self.metadata.get(CONTENT_KEY), str):
            raise ValueError(f"metadata['{CONTENT_KEY}'] must be a string")
        return self

    @property
    def content(self) -> str:
        return self.metadata[CONTENT_KEY]


class SearchResult(BaseModel):
    """A single hit from a similarity query."""

    id: str
    score: float = 0.0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def content(self) -> str:
        content = self.metadata.get(CONTENT_KEY)
        return content if isinstance(content, str) else ""


class Source(BaseModel):
    """Caller-facing view of a search hit."""

    id: str
    content: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class QueryMetadata(BaseModel):
    embedding_time_ms: float = 0.0
    vector_search_time_ms: float = 0.0
    llm_generation_time_ms: float = 0.0
    query_processing_time_ms: float = 0.0
    total_documents_searched: int = 0
    model: str = ""


class QueryResult(BaseModel):
    """Answer, sources and timing for one query."""

    answer: str
    sources: list[Source] = Field(default_factory=list)
    metadata: QueryMetadata = Field(default_factory=QueryMetadata)


class IngestionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class IngestionError(BaseModel):
    document_id: str
    message: str
    timestamp: datetime = Field(default_factory=utcnow)


class IngestionJobResult(BaseModel):
    """Summary of one ingestion run."""

    job_id: str
    status: IngestionStatus = IngestionStatus.PENDING
    documents_processed: int = 0
    documents_total: int = 0
    errors: list[IngestionError] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    duration_ms: float = 0.0
    timed_out: bool = False
    documents_skipped: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return not self.errors
