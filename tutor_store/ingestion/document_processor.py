"""
Document Processor - Turns raw file bytes into a structured Document.

Pipeline:
    bytes + MIME type -> PDFParser (text, page by page)
                      -> Segmenter (sections for the document type)
                      -> Document(content, metadata, sections)

Nothing is stored here; persistence is the orchestrator's job.
"""

import logging
from pathlib import Path
from typing import Any

from tutor_store.ingestion.pdf_parser import DocumentContent, PDFParser, guess_mime_type
from tutor_store.ingestion.segmenter import Segmenter
from tutor_store.models import Document, Metadata, new_document_id, parse_metadata, utcnow

logger = logging.getLogger(__name__)


def coerce_metadata(metadata: Metadata | dict[str, Any]) -> Metadata:
    """Accept either a metadata model or a raw (camelCase or snake_case) dict."""
    if isinstance(metadata, dict):
        return parse_metadata(metadata)
    return metadata


class DocumentProcessor:
    """
    Extracts text and sections from uploaded files.

    Example:
        processor = DocumentProcessor()
        document = processor.process(data, "application/pdf", {
            "type": "notes", "title": "Vectors", "subject": "Maths", ...
        })
        print(len(document.sections))
    """

    def __init__(self, parser: PDFParser | None = None, segmenter: Segmenter | None = None):
        self.parser = parser or PDFParser()
        self.segmenter = segmenter or Segmenter()

    def extract(self, data: bytes, mime_type: str) -> DocumentContent:
        """
        Raises:
            InvalidFormat: If the MIME type is not supported
            ParseError: If the file cannot be read
        """
        content = self.parser.parse(data, mime_type)
        if content.truncated:
            logger.warning(
                "Extraction truncated: kept %d of %d pages",
                len(content.pages),
                content.total_pages,
            )
        return content

    def process(
        self,
        data: bytes,
        mime_type: str,
        metadata: Metadata | dict[str, Any],
    ) -> Document:
        """
        Build a Document from file bytes.

        Args:
            data: File content
            mime_type: MIME type of the content
            metadata: Uploader-supplied metadata; store-owned fields are reset

        Returns:
            Document with a fresh ``<type>_<hex>`` id, the full text and its
            sections. Empty text gives empty content and no sections.

        Raises:
            ValidationError: If the metadata is invalid
            InvalidFormat: If the MIME type is not supported
            ParseError: If the file cannot be read
        """
        metadata = coerce_metadata(metadata)
        content = self.extract(data, mime_type)

        now = utcnow()
        metadata = metadata.model_copy(
            update={"date_added": now, "last_modified": now, "vetted": False, "vetted_by": None}
        )

        sections = self.segmenter.sections(content.full_text, metadata.type)
        logger.debug(
            "Processed %s '%s': %d characters, %d sections",
            metadata.type,
            metadata.title,
            len(content.full_text),
            len(sections),
        )
        return Document(
            id=new_document_id(metadata.type),
            content=content.full_text,
            metadata=metadata,
            sections=sections,
        )

    def process_path(
        self,
        path: str | Path,
        metadata: Metadata | dict[str, Any],
        mime_type: str | None = None,
    ) -> Document:
        """Same as process(), reading the file from disk."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return self.process(path.read_bytes(), mime_type or guess_mime_type(path), metadata)
