"""Document loader: plain text read directly, other formats via Docling."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".md", ".markdown"}
DOCLING_SUFFIXES = {".pdf", ".docx", ".pptx", ".xlsx", ".html", ".htm"}
SUPPORTED_SUFFIXES = TEXT_SUFFIXES | DOCLING_SUFFIXES


def is_supported(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_SUFFIXES


def load_file(file_path: str | Path) -> str:
    """Load a document as text.

    TXT/Markdown files are read as UTF-8. PDF, DOCX, PPTX, XLSX and HTML are
    converted to markdown with Docling.
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        logger.info("Loading text file: %s", path)
        return path.read_text(encoding="utf-8")

    if suffix not in DOCLING_SUFFIXES:
        raise ValueError(f"Unsupported file type: {path.suffix}")

    # Docling is heavy; import lazily
    from docling.document_converter import DocumentConverter

    logger.info("Loading document via Docling: %s", path)
    result = DocumentConverter().convert(str(path))
    markdown_text = result.document.export_to_markdown()
    logger.info("Loaded %d characters from %s", len(markdown_text), path)

    return markdown_text
