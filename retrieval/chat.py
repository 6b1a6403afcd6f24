"""Chat-completion style answering over the indexed documents.

Takes a conversation, answers its last user turn with the same
embed -> search -> generate steps as Retriever.answer_query, and returns a
result shaped like an OpenAI ``chat.completion`` object so chat clients can
consume it unchanged.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Literal, Sequence

from pydantic import BaseModel, Field

from core.errors import ValidationError
from core.models import SearchResult
from core.utils import Timer
from retrieval.retriever import Retriever

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "rag-enhanced"
MAX_LISTED_SOURCES = 3
NO_DOCUMENTS_ANSWER = (
    "I don't have any specific documents about this topic in my knowledge base. "
    "However, I can provide general information if that would be helpful."
)


class ChatMessage(BaseModel):
    role: str
    content: str | None = None


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatMessage
    finish_reason: str = "stop"


class ChatUsage(BaseModel):
    """Token counts estimated as characters / 4."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletion(BaseModel):
    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: list[ChatChoice] = Field(default_factory=list)
    usage: ChatUsage = Field(default_factory=ChatUsage)

    @property
    def answer(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""


def last_user_message(messages: Sequence[ChatMessage | dict[str, Any]]) -> str:
    """Return the content of the last user turn.

    Raises:
        ValidationError: no messages, malformed messages, or no user turn
            with content
    """
    if not messages:
        raise ValidationError("Messages array is required and must not be empty")

    try:
        parsed = [ChatMessage.model_validate(m) for m in messages]
    except ValueError as e:
        raise ValidationError("Invalid chat message", e) from e

    for message in reversed(parsed):
        if message.role == "user":
            if message.content:
                return message.content
            break
    raise ValidationError("No user message found in conversation")


def format_sources(results: Sequence[SearchResult]) -> str:
    """Numbered list of the top hits' titles."""
    lines = []
    for position, result in enumerate(results[:MAX_LISTED_SOURCES], 1):
        title = result.metadata.get("title")
        if not isinstance(title, str):
            title = f"Document {position}"
        lines.append(f"{position}. {title}")
    return "\n".join(lines)


def answer_chat(
    retriever: Retriever,
    messages: Sequence[ChatMessage | dict[str, Any]],
    model: str = DEFAULT_CHAT_MODEL,
) -> ChatCompletion:
    """Answer the last user message of a conversation from indexed documents.

    Earlier turns are not sent to the model; only the last user message is
    used as the query. The requested model name is echoed back and does not
    select the LLM.

    Raises:
        ValidationError: no usable user message
        EmbeddingError, SearchError, GenerationError: collaborator failures
    """
    query = last_user_message(messages)
    total_timer = Timer()
    logger.info("Processing chat query: %s", query[:100])

    stage = Timer()
    embedding = retriever.embedder.embed(query)
    logger.info("Embedding generated in %.0fms", stage.elapsed_ms())

    stage.reset()
    results = retriever.vector_index.query(embedding, retriever.default_max_results)
    logger.info("Found %d results in %.0fms", len(results), stage.elapsed_ms())

    if not results:
        answer = NO_DOCUMENTS_ANSWER
    else:
        stage.reset()
        answer = retriever.generator.generate(query, [r.content for r in results])
        logger.info("Answer generated in %.0fms", stage.elapsed_ms())
        answer += f"\n\n**Sources:**\n{format_sources(results)}"

    logger.info("Total processing time: %.0fms", total_timer.elapsed_ms())

    now = time.time()
    return ChatCompletion(
        id=f"chatcmpl-{int(now * 1000)}",
        created=int(now),
        model=model,
        choices=[ChatChoice(message=ChatMessage(role="assistant", content=answer))],
        usage=ChatUsage(
            prompt_tokens=len(query) // 4,
            completion_tokens=len(answer) // 4,
            total_tokens=(len(query) + len(answer)) // 4,
        ),
    )
