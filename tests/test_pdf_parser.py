"""Tests for text extraction."""

import fitz
import pytest

from tutor_store.exceptions import InvalidFormat, ParseError
from tutor_store.ingestion.pdf_parser import PDFParser, extract_text, guess_mime_type


def _make_pdf(pages: list[str]) -> bytes:
    """Build a small PDF in memory, one text block per page."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


# ── Plain text ───────────────────────────────────────────────────────────────


class TestPlainText:
    def test_pseudo_pages_of_forty_lines(self):
        text = "\n".join(f"line {i}" for i in range(100))
        content = PDFParser().parse(text.encode(), "text/plain")

        assert content.total_pages == 3
        assert [page.page_number for page in content.pages] == [1, 2, 3]
        assert content.pages[1].text.startswith("line 40")
        assert content.full_text == text
        assert not content.truncated

    def test_markdown_supported(self):
        content = PDFParser().parse(b"# Heading\nBody", "text/markdown; charset=utf-8")
        assert content.full_text == "# Heading\nBody"

    def test_invalid_utf8_replaced(self):
        content = PDFParser().parse(b"caf\xe9", "text/plain")
        assert content.full_text == "caf�"

    def test_empty_text(self):
        content = PDFParser().parse(b"  \n ", "text/plain")
        assert content.full_text == ""
        assert content.pages == []

    def test_max_pages_truncates_at_page_boundary(self):
        text = "\n".join(f"line {i}" for i in range(100))
        content = PDFParser(max_pages=2).parse(text.encode(), "text/plain")

        assert content.truncated
        assert len(content.pages) == 2
        assert content.full_text.splitlines()[-1] == "line 79"


# ── PDF ──────────────────────────────────────────────────────────────────────


class TestPDF:
    def test_extracts_every_page(self):
        content = PDFParser().parse(_make_pdf(["Question 1 Solve", "Question 2 Expand"]), "application/pdf")
        assert content.total_pages == 2
        assert "Question 1" in content.pages[0].text
        assert "Question 2" in content.pages[1].text
        assert "Question 1" in content.full_text and "Question 2" in content.full_text

    def test_max_pages(self):
        content = PDFParser(max_pages=1).parse(_make_pdf(["first", "second", "third"]), "application/pdf")
        assert content.truncated
        assert content.full_text == "first"

    def test_parse_from_path(self, tmp_path):
        path = tmp_path / "paper.pdf"
        path.write_bytes(_make_pdf(["Derivatives"]))
        assert "Derivatives" in PDFParser().parse_file(path).full_text

    def test_corrupt_pdf_raises_parse_error(self):
        with pytest.raises(ParseError):
            PDFParser().parse(b"definitely not a pdf", "application/pdf")


# ── Formats ──────────────────────────────────────────────────────────────────


class TestFormats:
    def test_unsupported_mime_type(self):
        with pytest.raises(InvalidFormat):
            PDFParser().parse(b"...", "image/png")

    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("paper.pdf", "application/pdf"),
            ("notes.md", "text/markdown"),
            ("worksheet.TXT", "text/plain"),
        ],
    )
    def test_guess_mime_type(self, filename, expected):
        assert guess_mime_type(filename) == expected

    def test_extract_text_convenience(self):
        assert extract_text(b"hello", "text/plain") == "hello"

    def test_clean_text_collapses_blank_lines(self):
        parser = PDFParser()
        assert parser._clean_extracted_text("a\n\n\n\nb\n12\nc") == "a\n\nb\nc"
