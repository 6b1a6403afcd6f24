"""Error taxonomy for the RAG pipeline."""

from __future__ import annotations


class RAGError(Exception):
    """Base class for pipeline errors.

    Args:
        message: Human readable description.
        original: Underlying exception raised by a collaborator, if any.
    """

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original = original

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "original": repr(self.original) if self.original else None,
        }


class ValidationError(RAGError):
    """Bad caller input, e.g. an empty query."""


class EmbeddingError(RAGError):
    """The embedding provider failed."""


class SearchError(RAGError):
    """The vector index query failed."""


class UpsertError(RAGError):
    """Writing vector records to the index failed."""


class GenerationError(RAGError):
    """The answer generator failed."""
