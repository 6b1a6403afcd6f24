"""LLM answer generation from retrieved context."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from core.config import settings
from core.errors import GenerationError
from core.interfaces import AnswerGenerator

if TYPE_CHECKING:
    from openai import OpenAI

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Answer the user's question based on the provided context.\n"
    "If the context doesn't contain enough information to answer the question, say so.\n"
    "Be concise and accurate."
)

CONTEXT_SEPARATOR = "\n\n---\n\n"
EMPTY_ANSWER = "No response generated"


def build_user_prompt(query: str, contexts: Sequence[str]) -> str:
    context_text = CONTEXT_SEPARATOR.join(contexts)
    return f"Context:\n{context_text}\n\nQuestion: {query}\n\nAnswer:"


class OpenAIAnswerGenerator(AnswerGenerator):
    """Answers a query from context strings via OpenAI chat completions."""

    def __init__(
        self,
        openai_client: OpenAI | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ):
        if openai_client is None:
            from openai import OpenAI

            self.openai_client = OpenAI(api_key=settings.openai_api_key)
        else:
            self.openai_client = openai_client

        self.model = model or settings.llm_model
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.llm_max_tokens

    def generate(self, query: str, contexts: Sequence[str]) -> str:
        """Generate an answer grounded in the given contexts.

        Args:
            query: User query
            contexts: Chunk contents, most similar first

        Returns:
            Answer text
        """
        logger.info("Generating answer from %d context chunks", len(contexts))
        try:
            response = self.openai_client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(query, contexts)},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            logger.error("Error generating answer: %s", e)
            raise GenerationError(f"Failed to generate response: {e}", e) from e

        if not response.choices:
            return EMPTY_ANSWER
        answer_text = response.choices[0].message.content or EMPTY_ANSWER
        logger.debug("Generated answer: %s", answer_text[:100])
        return answer_text
