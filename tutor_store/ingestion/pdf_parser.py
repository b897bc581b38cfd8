"""
PDF Parser - Extracts text from uploaded PDF and plain-text files.

This module handles the extraction of text content from raw file bytes.
It uses pymupdf (fitz) which is excellent for handling complex PDFs
including those with mathematical content.

Key Concepts:
- PDFs store text in a structured way (pages, blocks, lines)
- Mathematical symbols may not always extract perfectly
- Images and diagrams are not extracted (text only)
- Extraction goes page by page; a bounded parse stops at a page boundary
  and keeps only the pages it finished
- Plain text and markdown have no pages, so every 40 lines count as one
"""

import logging
import mimetypes
import re
import time
from dataclasses import dataclass, field
from pathlib import Path

import fitz  # pymupdf - the library is called 'fitz' historically

from tutor_store.config import LINES_PER_PAGE, MAX_PAGES, PARSE_TIME_BUDGET, SUPPORTED_MIME_TYPES
from tutor_store.exceptions import InvalidFormat, ParseError

logger = logging.getLogger(__name__)

# mimetypes does not know markdown on every platform
_EXTENSION_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
}


@dataclass
class PageContent:
    """
    Represents the content of a single page.

    Attributes:
        page_number: 1-indexed page number
        text: Extracted text content
    """
    page_number: int
    text: str


@dataclass
class DocumentContent:
    """
    Represents the extracted content of one file.

    Attributes:
        total_pages: Pages in the source (pseudo pages for plain text)
        pages: Pages that were fully extracted
        full_text: Text of the extracted pages, in order
        truncated: True if a page or time bound stopped extraction early
    """
    total_pages: int
    pages: list[PageContent] = field(default_factory=list)
    full_text: str = ""
    truncated: bool = False


def normalize_mime_type(mime_type: str) -> str:
    """``"Text/Plain; charset=utf-8"`` -> ``"text/plain"``"""
    return mime_type.split(";")[0].strip().lower()


def guess_mime_type(filename: str | Path) -> str:
    """
    Guess a MIME type from a file name.

    Returns:
        The MIME type, or "application/octet-stream" if unknown
    """
    suffix = Path(filename).suffix.lower()
    if suffix in _EXTENSION_MIME_TYPES:
        return _EXTENSION_MIME_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(str(filename))
    return guessed or "application/octet-stream"


def is_supported(mime_type: str) -> bool:
    return normalize_mime_type(mime_type) in SUPPORTED_MIME_TYPES


class PDFParser:
    """
    Parses uploaded files and extracts text content.

    This class provides methods to:
    - Extract text from PDF bytes or a PDF on disk
    - Split plain text into pseudo pages
    - Stop early at a page boundary when a page or time bound is reached

    Example:
        parser = PDFParser(max_pages=20)
        content = parser.parse(data, "application/pdf")
        print(content.full_text)
    """

    def __init__(
        self,
        clean_text: bool = True,
        max_pages: int | None = None,
        time_budget: float | None = None,
        lines_per_page: int | None = None,
    ):
        """
        Initialize the parser.

        Args:
            clean_text: If True, apply text cleaning to PDF text
            max_pages: Stop after this many pages (0 or None = no limit)
            time_budget: Stop after this many seconds (0 or None = no limit)
            lines_per_page: Lines that make one pseudo page of plain text
        """
        self.clean_text = clean_text
        self.max_pages = MAX_PAGES if max_pages is None else max_pages
        self.time_budget = PARSE_TIME_BUDGET if time_budget is None else time_budget
        self.lines_per_page = lines_per_page or LINES_PER_PAGE

    def _clean_extracted_text(self, text: str) -> str:
        """
        Clean extracted text by removing common artifacts.

        This handles issues like:
        - Multiple consecutive newlines
        - Extra whitespace
        - Page headers/footers (basic removal)

        Args:
            text: Raw extracted text

        Returns:
            Cleaned text
        """
        if not self.clean_text:
            return text

        # Replace multiple newlines with double newline (paragraph break)
        text = re.sub(r'\n{3,}', '\n\n', text)

        # Replace multiple spaces with single space
        text = re.sub(r' {2,}', ' ', text)

        # Remove lines that are just numbers (likely page numbers)
        lines = text.split('\n')
        cleaned_lines = [
            line for line in lines
            if not (line.strip().isdigit() and len(line.strip()) < 4)
        ]
        text = '\n'.join(cleaned_lines)

        return text.strip()

    def _should_stop(self, pages_done: int, started: float) -> bool:
        """Checkpoint run before each page."""
        if self.max_pages and pages_done >= self.max_pages:
            return True
        if self.time_budget and time.monotonic() - started >= self.time_budget:
            return True
        return False

    def parse(self, data: bytes, mime_type: str) -> DocumentContent:
        """
        Extract text from raw file bytes.

        Args:
            data: File content
            mime_type: MIME type of the content

        Returns:
            DocumentContent with the extracted pages

        Raises:
            InvalidFormat: If the MIME type is not supported
            ParseError: If the content cannot be read
        """
        mime_type = normalize_mime_type(mime_type)
        if mime_type == "application/pdf":
            return self.parse_pdf(data)
        if mime_type in SUPPORTED_MIME_TYPES:
            return self.parse_text(data)
        raise InvalidFormat(
            f"Unsupported file type: {mime_type}. "
            f"Supported types: {', '.join(SUPPORTED_MIME_TYPES)}"
        )

    def parse_pdf(self, source: bytes | str | Path) -> DocumentContent:
        """
        Parse a PDF given as bytes or as a path.

        Raises:
            FileNotFoundError: If a path is given and doesn't exist
            ParseError: If the PDF cannot be opened or read
        """
        if isinstance(source, (str, Path)):
            pdf_path = Path(source)
            if not pdf_path.exists():
                raise FileNotFoundError(f"PDF not found: {pdf_path}")
            open_args = {"filename": str(pdf_path)}
        else:
            open_args = {"stream": source, "filetype": "pdf"}

        try:
            doc = fitz.open(**open_args)
        except Exception as e:
            raise ParseError(f"Failed to open PDF: {e}") from e

        started = time.monotonic()
        pages = []
        all_text = []
        truncated = False

        try:
            total_pages = len(doc)
            for page_num in range(total_pages):
                if self._should_stop(page_num, started):
                    truncated = True
                    break

                text = doc[page_num].get_text()
                cleaned = self._clean_extracted_text(text)

                if cleaned:  # Only add non-empty pages
                    pages.append(PageContent(page_number=page_num + 1, text=cleaned))
                    all_text.append(cleaned)
        except Exception as e:
            raise ParseError(f"Failed to read PDF: {e}") from e
        finally:
            doc.close()

        if truncated:
            logger.warning(
                "PDF extraction stopped after %d of %d pages", page_num, total_pages
            )

        return DocumentContent(
            total_pages=total_pages,
            pages=pages,
            full_text='\n\n'.join(all_text),
            truncated=truncated,
        )

    def parse_text(self, data: bytes) -> DocumentContent:
        """
        Decode plain text (UTF-8, invalid bytes replaced) into pseudo pages.

        Line positions are preserved exactly: ``full_text`` of an
        untruncated parse is the decoded input with normalized newlines.
        """
        text = data.decode("utf-8", errors="replace")
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        if not text.strip():
            return DocumentContent(total_pages=0)

        lines = text.split("\n")
        chunks = [
            lines[i:i + self.lines_per_page]
            for i in range(0, len(lines), self.lines_per_page)
        ]

        started = time.monotonic()
        pages = []
        truncated = False
        for index, chunk in enumerate(chunks):
            if self._should_stop(index, started):
                truncated = True
                logger.warning(
                    "Text extraction stopped after %d of %d pages", index, len(chunks)
                )
                break
            pages.append(PageContent(page_number=index + 1, text="\n".join(chunk)))

        return DocumentContent(
            total_pages=len(chunks),
            pages=pages,
            full_text="\n".join(page.text for page in pages),
            truncated=truncated,
        )

    def parse_file(self, path: str | Path, mime_type: str | None = None) -> DocumentContent:
        """
        Parse a file on disk, guessing the MIME type from its name if needed.

        Example:
            parser = PDFParser()
            content = parser.parse_file("paper1_2023.pdf")
            print(f"Parsed {len(content.pages)} of {content.total_pages} pages")
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return self.parse(path.read_bytes(), mime_type or guess_mime_type(path))


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def extract_text(data: bytes, mime_type: str, clean: bool = True) -> str:
    """
    Simple function to extract all text from file bytes.

    This is a convenience wrapper around PDFParser for simple use cases.

    Example:
        text = extract_text(Path("notes.md").read_bytes(), "text/markdown")
        print(text[:500])  # First 500 characters
    """
    return PDFParser(clean_text=clean).parse(data, mime_type).full_text
