"""Whitespace-respecting greedy text chunker."""

from __future__ import annotations

from core.config import settings
from core.models import Chunk, DocumentToIngest


def chunk_text(text: str, max_chunk_size: int | None = None) -> list[str]:
    """Split text into chunks of at most max_chunk_size characters.

    Strategy:
    1. Tokenize on runs of whitespace
    2. Greedily pack tokens, counting len(token) + 1 per token
    3. Close the current chunk when the next token would overflow it
    4. A token longer than max_chunk_size is never split; it gets its own chunk

    Blank input returns an empty list.
    """
    if max_chunk_size is None:
        max_chunk_size = settings.chunk_size
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")

    chunks: list[str] = []
    current: list[str] = []
    current_length = 0

    for token in text.split():
        token_length = len(token) + 1  # +1 for the joining space

        if current and current_length + token_length > max_chunk_size:
            chunks.append(" ".join(current))
            current = [token]
            current_length = token_length
        else:
            current.append(token)
            current_length += token_length

    if current:
        chunks.append(" ".join(current))

    return chunks


def split_document(
    document: DocumentToIngest, max_chunk_size: int | None = None
) -> list[Chunk]:
    """Chunk a document's content, tagging each piece with its position."""
    pieces = chunk_text(document.content, max_chunk_size)
    return [
        Chunk(
            document_id=document.id,
            index=i,
            content=piece,
            total_chunks=len(pieces),
        )
        for i, piece in enumerate(pieces)
    ]
