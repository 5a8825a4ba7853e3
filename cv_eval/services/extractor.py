# =============================================================================
# Text Extraction — Plain Text, PDF and DOCX
# =============================================================================
#
# Turns a stored upload into the text the pipeline evaluates.
#
#   text/plain → decoded directly (UTF-8, undecodable bytes replaced)
#   PDF / DOCX → Docling DocumentConverter, exported as markdown
#
# Extraction problems are reported IN the returned text ("Unable to extract
# content from ...") rather than raised: a CV that could not be read is
# still evaluated, and the low scores explain themselves. Only a failure to
# even attempt extraction propagates.
#
# Docling is imported lazily. Initialization loads layout models into
# memory, which plain-text-only deployments and the test suite never need.
# =============================================================================

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from cv_eval.services.uploads import StoredFile

if TYPE_CHECKING:
    from docling.document_converter import DocumentConverter

logger = logging.getLogger(__name__)

PLAIN_TEXT = "text/plain"
DOCLING_MIMETYPES = frozenset({
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})

_converter: DocumentConverter | None = None


def _get_converter() -> DocumentConverter:
    """Lazily initialize and cache the Docling DocumentConverter."""
    global _converter
    if _converter is None:
        from docling.document_converter import DocumentConverter

        logger.info(
            "Initializing Docling DocumentConverter "
            "(first use, may take a few seconds)..."
        )
        _converter = DocumentConverter()
    return _converter


def extract_text(file: StoredFile) -> str:
    """
    Return the text content of a stored file.

    Blocking: call through asyncio.to_thread() from async code.
    """
    logger.info("Extracting content from: %s (%s)", file.original_name, file.mimetype)
    path = Path(file.path)

    try:
        if file.mimetype == PLAIN_TEXT:
            content = path.read_bytes().decode("utf-8", errors="replace")
        elif file.mimetype in DOCLING_MIMETYPES:
            result = _get_converter().convert(str(path))
            content = result.document.export_to_markdown()
        else:
            return (
                f"Unable to extract content from {file.original_name}: "
                f"unsupported type {file.mimetype}"
            )
    except Exception as exc:
        logger.error("Extraction failed for %s: %s", file.original_name, exc)
        return f"Unable to extract content from {file.original_name}: {exc}"

    logger.info("Extracted %d characters from %s", len(content), file.original_name)
    return content
