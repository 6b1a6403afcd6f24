#!/usr/bin/env python3
"""CLI for the RAG pipeline: add and ingest documents, ask questions."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from core.config import settings
from core.errors import RAGError, ValidationError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )


@dataclass
class Services:
    """Long-lived clients shared by one CLI invocation."""

    openai_client: object
    driver: object

    def close(self) -> None:
        self.driver.close()


def build_services() -> Services:
    from openai import OpenAI

    from storage.vector_store import create_driver

    return Services(
        openai_client=OpenAI(api_key=settings.openai_api_key),
        driver=create_driver(),
    )


def build_retriever(services: Services):
    from generation.generator import OpenAIAnswerGenerator
    from ingestion.embedder import OpenAIEmbedder
    from retrieval.retriever import Retriever
    from storage.vector_store import VectorStore

    return Retriever(
        embedder=OpenAIEmbedder(services.openai_client),
        vector_index=VectorStore(driver=services.driver),
        generator=OpenAIAnswerGenerator(services.openai_client),
    )


def build_ingestion_pipeline(services: Services, directory: str | None = None):
    from ingestion.embedder import OpenAIEmbedder
    from ingestion.pipeline import IngestionPipeline
    from ingestion.sources import CompositeDocumentSource, DirectoryDocumentSource
    from storage.document_store import DocumentStore
    from storage.vector_store import VectorStore

    document_store = DocumentStore(driver=services.driver)
    sources = [document_store]
    directory = directory or settings.documents_dir
    if directory:
        sources.insert(0, DirectoryDocumentSource(directory, job_store=document_store))

    return IngestionPipeline(
        embedder=OpenAIEmbedder(services.openai_client),
        vector_index=VectorStore(driver=services.driver),
        job_store=document_store,
        document_source=CompositeDocumentSource(sources),
    )


def cmd_init(args: argparse.Namespace, services: Services) -> None:
    """Create the vector index."""
    from storage.vector_store import VectorStore

    VectorStore(driver=services.driver).init_index()
    print("Vector index ready")


def cmd_add(args: argparse.Namespace, services: Services) -> None:
    """Store a document file as pending ingestion."""
    from core.models import DocumentMetadata, DocumentToIngest
    from ingestion.loader import load_file
    from storage.document_store import DocumentStore

    path = Path(args.file)
    text = load_file(path)
    document = DocumentToIngest(
        id=args.id or path.name,
        content=text,
        metadata=DocumentMetadata(title=args.title or path.name),
    )
    DocumentStore(driver=services.driver).add_document(document)
    print(f"Stored {document.id} ({len(text)} characters), pending ingestion")


def cmd_ingest(args: argparse.Namespace, services: Services) -> None:
    """Run one ingestion job over unprocessed documents."""
    pipeline = build_ingestion_pipeline(services, args.dir)
    result = pipeline.run_pending(limit=args.limit)

    print(f"Job {result.job_id}: {result.status.value}")
    print(f"  Processed {result.documents_processed}/{result.documents_total} documents")
    print(f"  Duration: {result.duration_ms:.0f}ms")
    if result.timed_out:
        print(f"  Deadline reached, {result.documents_skipped} documents left pending")
    for error in result.errors:
        print(f"  ! {error.document_id}: {error.message}")

    if not result.success:
        sys.exit(2)


def cmd_ask(args: argparse.Namespace, services: Services) -> None:
    """Answer a question from indexed documents."""
    from retrieval.retriever import clamp_max_results

    retriever = build_retriever(services)
    result = retriever.answer_query(
        args.question,
        max_results=clamp_max_results(args.max_results),
        include_metadata=not args.no_metadata,
    )

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    print(f"\nAnswer: {result.answer}")
    meta = result.metadata
    print(
        f"\n[{meta.model}] embed {meta.embedding_time_ms:.0f}ms, "
        f"search {meta.vector_search_time_ms:.0f}ms, "
        f"generate {meta.llm_generation_time_ms:.0f}ms, "
        f"total {meta.query_processing_time_ms:.0f}ms"
    )

    if result.sources:
        print(f"\nSources ({len(result.sources)}):")
        for i, src in enumerate(result.sources, 1):
            preview = src.content[:100].replace("\n", " ")
            title = src.metadata.get("title", src.id)
            print(f"  {i}. [{src.score:.3f}] {title}: {preview}...")


def cmd_chat(args: argparse.Namespace, services: Services) -> None:
    """Answer a chat conversation, OpenAI chat.completion style."""
    from retrieval.chat import DEFAULT_CHAT_MODEL, answer_chat

    model = args.model
    if args.file:
        raw = sys.stdin.read() if args.file == "-" else Path(args.file).read_text(encoding="utf-8")
        body = json.loads(raw)
        if not isinstance(body, dict):
            raise ValidationError("Chat request body must be a JSON object")
        messages = body.get("messages") or []
        model = model or body.get("model")
    else:
        messages = [{"role": "user", "content": text} for text in args.messages]

    completion = answer_chat(build_retriever(services), messages, model=model or DEFAULT_CHAT_MODEL)

    if args.json:
        print(json.dumps(completion.model_dump(mode="json"), indent=2))
        return
    print(completion.answer)


def cmd_clear(args: argparse.Namespace, services: Services) -> None:
    """Clear all chunks from vector store."""
    from storage.vector_store import VectorStore

    count = VectorStore(driver=services.driver).delete_all()
    print(f"Deleted {count} chunks from vector store")


def cmd_stats(args: argparse.Namespace, services: Services) -> None:
    """Show vector store statistics."""
    from storage.vector_store import VectorStore

    total = VectorStore(driver=services.driver).count()
    print(f"Total chunks in store: {total}")


def cmd_health(args: argparse.Namespace, services: Services) -> None:
    """Check that the OpenAI client and Neo4j are reachable."""
    from storage.vector_store import VectorStore

    status = {
        "openai": services.openai_client is not None and bool(settings.openai_api_key),
        "neo4j": VectorStore(driver=services.driver).healthcheck(),
    }
    for name, ok in status.items():
        print(f"{name}: {'ok' if ok else 'unavailable'}")
    if not all(status.values()):
        sys.exit(1)


COMMANDS = {
    "init": cmd_init,
    "add": cmd_add,
    "ingest": cmd_ingest,
    "ask": cmd_ask,
    "chat": cmd_chat,
    "clear": cmd_clear,
    "stats": cmd_stats,
    "health": cmd_health,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RAG Pipeline CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init", help="Create the vector index")

    p_add = subparsers.add_parser("add", help="Store a document for ingestion")
    p_add.add_argument("file", help="Path to document file")
    p_add.add_argument("--id", help="Document id (default: file name)")
    p_add.add_argument("--title", help="Document title (default: file name)")

    p_ingest = subparsers.add_parser("ingest", help="Ingest unprocessed documents")
    p_ingest.add_argument("--dir", help="Also ingest files from this directory")
    p_ingest.add_argument("--limit", type=int, help="Max documents for this run")

    p_ask = subparsers.add_parser("ask", help="Ask a question")
    p_ask.add_argument("question", help="Question to ask")
    p_ask.add_argument("-k", "--max-results", type=int, help="Number of chunks to retrieve")
    p_ask.add_argument("--no-metadata", action="store_true", help="Omit source metadata")
    p_ask.add_argument("--json", action="store_true", help="Print the raw result as JSON")

    p_chat = subparsers.add_parser("chat", help="Answer a conversation as a chat completion")
    p_chat.add_argument("messages", nargs="*", help="User messages, oldest first")
    p_chat.add_argument("--file", help="JSON request body with a messages list (- for stdin)")
    p_chat.add_argument("--model", help="Model name to report (default: rag-enhanced)")
    p_chat.add_argument("--json", action="store_true", help="Print the full completion as JSON")

    subparsers.add_parser("clear", help="Clear all chunks")
    subparsers.add_parser("stats", help="Show store statistics")
    subparsers.add_parser("health", help="Check external services")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    services = build_services()
    try:
        COMMANDS[args.command](args, services)
    except RAGError as e:
        logger.error("%s: %s", type(e).__name__, e.message)
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)
    finally:
        services.close()


if __name__ == "__main__":
    main()
