"""OpenAI embedding adapter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from core.config import settings
from core.errors import EmbeddingError
from core.interfaces import Embedder

if TYPE_CHECKING:
    from openai import OpenAI

logger = logging.getLogger(__name__)


class OpenAIEmbedder(Embedder):
    """Embeds text through the OpenAI embeddings API."""

    def __init__(self, openai_client: OpenAI | None = None, model: str | None = None):
        if openai_client is None:
            from openai import OpenAI

            self.openai_client = OpenAI(api_key=settings.openai_api_key)
        else:
            self.openai_client = openai_client
        self.model = model or settings.embedding_model

    def embed(self, text: str) -> list[float]:
        """Embed a single string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats
        """
        try:
            response = self.openai_client.embeddings.create(
                model=self.model, input=text
            )
            return list(response.data[0].embedding)
        except Exception as e:
            logger.error("Failed to generate embedding: %s", e)
            raise EmbeddingError(f"Failed to generate embedding: {e}", e) from e

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed texts in one request, preserving input order."""
        if not texts:
            return []

        try:
            response = self.openai_client.embeddings.create(
                model=self.model, input=list(texts)
            )
        except Exception as e:
            logger.error("Failed to generate batch embeddings: %s", e)
            raise EmbeddingError(f"Failed to generate batch embeddings: {e}", e) from e

        # The API tags each item with its input position.
        data = sorted(response.data, key=lambda item: item.index)
        embeddings = [list(item.embedding) for item in data]

        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(embeddings)}"
            )

        logger.debug("Embedded %d texts", len(embeddings))
        return embeddings
