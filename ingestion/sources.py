"""Document sources feeding the ingestion job."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from core.interfaces import DocumentSource, JobStore
from core.models import DocumentMetadata, DocumentToIngest
from core.utils import best_effort
from ingestion.loader import is_supported, load_file

logger = logging.getLogger(__name__)


class DirectoryDocumentSource(DocumentSource):
    """Files under a directory that the job store has not seen as indexed.

    Document ids are paths relative to the directory, so re-listing the same
    file always yields the same id. A file edited after it was last indexed
    is listed again.
    """

    def __init__(self, directory: str | Path, job_store: JobStore | None = None):
        self.directory = Path(directory)
        self.job_store = job_store

    def list_unprocessed(self, limit: int | None = None) -> list[DocumentToIngest]:
        if not self.directory.is_dir():
            logger.warning("Document directory not found: %s", self.directory)
            return []

        documents: list[DocumentToIngest] = []
        for path in sorted(p for p in self.directory.rglob("*") if p.is_file()):
            if limit is not None and len(documents) >= limit:
                break
            if not is_supported(path):
                continue

            document_id = path.relative_to(self.directory).as_posix()
            modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            if self._already_indexed(document_id, modified):
                continue

            try:
                content = load_file(path)
            except Exception as e:
                logger.warning("Skipping unreadable file %s: %s", path, e)
                continue

            documents.append(
                DocumentToIngest(
                    id=document_id,
                    content=content,
                    metadata=DocumentMetadata(
                        title=document_id,
                        url=path.resolve().as_uri(),
                        created_at=modified.isoformat(),
                        document_type="file",
                    ),
                    source_path=str(path),
                )
            )

        logger.info("Found %d unprocessed files in %s", len(documents), self.directory)
        return documents

    def _already_indexed(self, document_id: str, modified: datetime) -> bool:
        if self.job_store is None:
            return False
        return bool(
            best_effort(
                self.job_store.is_indexed,
                document_id,
                since=modified,
                description=f"indexed check for {document_id}",
                default=False,
            )
        )


class CompositeDocumentSource(DocumentSource):
    """Concatenates several sources; one failing source does not hide the others.

    `limit` caps the combined listing. Earlier sources fill it first.
    """

    def __init__(self, sources: Sequence[DocumentSource]):
        self.sources = list(sources)

    def list_unprocessed(self, limit: int | None = None) -> list[DocumentToIngest]:
        documents: list[DocumentToIngest] = []
        for source in self.sources:
            remaining = None if limit is None else limit - len(documents)
            if remaining is not None and remaining <= 0:
                break
            found = best_effort(
                source.list_unprocessed,
                remaining,
                description=f"listing {type(source).__name__}",
                default=[],
            )
            documents.extend((found or [])[:remaining])
        return documents
