"""Tests for the command-line entry point."""

import json
from unittest.mock import MagicMock, patch

import pytest

import run_pipeline
from core.errors import SearchError
from core.models import (
    IngestionError,
    IngestionJobResult,
    IngestionStatus,
    QueryMetadata,
    QueryResult,
    Source,
)
from retrieval.chat import NO_DOCUMENTS_ANSWER, ChatChoice, ChatCompletion, ChatMessage


@pytest.fixture
def services():
    return run_pipeline.Services(openai_client=MagicMock(), driver=MagicMock())


def test_parser_ask_options():
    args = run_pipeline.build_parser().parse_args(["ask", "What is RAG?", "-k", "50", "--no-metadata"])
    assert args.command == "ask"
    assert args.question == "What is RAG?"
    assert args.max_results == 50
    assert args.no_metadata is True


def test_main_without_command_exits():
    with pytest.raises(SystemExit) as exc_info:
        run_pipeline.main([])
    assert exc_info.value.code == 1


def test_cmd_ask_clamps_and_prints(services, capsys):
    retriever = MagicMock()
    retriever.answer_query.return_value = QueryResult(
        answer="RAG combines retrieval and generation.",
        sources=[Source(id="doc_chunk_0", content="Retrieval augmented", score=0.9, metadata={"title": "Intro"})],
        metadata=QueryMetadata(model="gpt-test", total_documents_searched=1),
    )
    args = run_pipeline.build_parser().parse_args(["ask", "What is RAG?", "-k", "50"])

    with patch.object(run_pipeline, "build_retriever", return_value=retriever):
        run_pipeline.cmd_ask(args, services)

    retriever.answer_query.assert_called_once_with(
        "What is RAG?", max_results=20, include_metadata=True
    )
    out = capsys.readouterr().out
    assert "RAG combines retrieval and generation." in out
    assert "Intro" in out


def test_cmd_ingest_reports_errors(services, capsys):
    pipeline = MagicMock()
    pipeline.run_pending.return_value = IngestionJobResult(
        job_id="ingest_1",
        status=IngestionStatus.FAILED,
        documents_processed=1,
        documents_total=2,
        errors=[IngestionError(document_id="bad.txt", message="boom")],
    )
    args = run_pipeline.build_parser().parse_args(["ingest"])

    with patch.object(run_pipeline, "build_ingestion_pipeline", return_value=pipeline):
        with pytest.raises(SystemExit) as exc_info:
            run_pipeline.cmd_ingest(args, services)

    assert exc_info.value.code == 2
    out = capsys.readouterr().out
    assert "Processed 1/2 documents" in out
    assert "bad.txt: boom" in out


def test_build_ingestion_pipeline_with_directory(services, tmp_path):
    pipeline = run_pipeline.build_ingestion_pipeline(services, str(tmp_path))

    sources = pipeline.document_source.sources
    assert [type(s).__name__ for s in sources] == ["DirectoryDocumentSource", "DocumentStore"]
    assert pipeline.job_store is sources[1]


def test_main_reports_pipeline_errors(services, capsys):
    failing = MagicMock(side_effect=SearchError("index down"))

    with patch.object(run_pipeline, "build_services", return_value=services), patch.dict(
        run_pipeline.COMMANDS, {"stats": failing}
    ):
        with pytest.raises(SystemExit) as exc_info:
            run_pipeline.main(["stats"])

    assert exc_info.value.code == 1
    assert "index down" in capsys.readouterr().err
    services.driver.close.assert_called_once()


def test_cmd_ingest_reports_skipped_documents(services, capsys):
    pipeline = MagicMock()
    pipeline.run_pending.return_value = IngestionJobResult(
        job_id="ingest_2",
        status=IngestionStatus.COMPLETED,
        documents_processed=2,
        documents_total=5,
        timed_out=True,
        documents_skipped=3,
    )
    args = run_pipeline.build_parser().parse_args(["ingest"])

    with patch.object(run_pipeline, "build_ingestion_pipeline", return_value=pipeline):
        run_pipeline.cmd_ingest(args, services)

    assert "Deadline reached, 3 documents left pending" in capsys.readouterr().out


def test_cmd_chat_from_arguments(services, capsys):
    retriever = MagicMock()
    args = run_pipeline.build_parser().parse_args(["chat", "What is RAG?", "And chunking?"])

    with patch.object(run_pipeline, "build_retriever", return_value=retriever), patch(
        "retrieval.chat.answer_chat"
    ) as mock_answer:
        mock_answer.return_value = ChatCompletion(
            id="chatcmpl-1",
            created=1,
            model="rag-enhanced",
            choices=[ChatChoice(message=ChatMessage(role="assistant", content="Chunked by words."))],
        )
        run_pipeline.cmd_chat(args, services)

    mock_answer.assert_called_once_with(
        retriever,
        [
            {"role": "user", "content": "What is RAG?"},
            {"role": "user", "content": "And chunking?"},
        ],
        model="rag-enhanced",
    )
    assert "Chunked by words." in capsys.readouterr().out


def test_cmd_chat_from_request_file(services, tmp_path, capsys):
    body = {
        "model": "webui-model",
        "messages": [
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "reply"},
            {"role": "user", "content": "second"},
        ],
    }
    request_file = tmp_path / "request.json"
    request_file.write_text(json.dumps(body), encoding="utf-8")
    retriever = MagicMock()
    retriever.vector_index.query.return_value = []
    retriever.default_max_results = 5
    retriever.embedder.embed.return_value = [0.1]
    args = run_pipeline.build_parser().parse_args(["chat", "--file", str(request_file), "--json"])

    with patch.object(run_pipeline, "build_retriever", return_value=retriever):
        run_pipeline.cmd_chat(args, services)

    retriever.embedder.embed.assert_called_once_with("second")
    data = json.loads(capsys.readouterr().out)
    assert data["object"] == "chat.completion"
    assert data["model"] == "webui-model"
    assert data["choices"][0]["message"]["content"] == NO_DOCUMENTS_ANSWER


def test_main_reports_chat_without_user_message(services, capsys):
    with patch.object(run_pipeline, "build_services", return_value=services), patch.object(
        run_pipeline, "build_retriever", return_value=MagicMock()
    ):
        with pytest.raises(SystemExit) as exc_info:
            run_pipeline.main(["chat"])

    assert exc_info.value.code == 1
    assert "must not be empty" in capsys.readouterr().err
