"""Tests for the record and metadata models."""

from datetime import datetime, timezone

import pytest

from tutor_store.exceptions import ValidationError
from tutor_store.models import (
    Document,
    ExamMetadata,
    NotesMetadata,
    Problem,
    new_document_id,
    normalize_filter,
    parse_metadata,
    parse_record,
)


# ── Metadata ─────────────────────────────────────────────────────────────────


class TestMetadata:
    def test_type_selects_metadata_class(self, make_metadata):
        assert isinstance(parse_metadata(make_metadata()), NotesMetadata)
        assert isinstance(parse_metadata(make_metadata(type="exam")), ExamMetadata)

    def test_exam_requires_paper(self, make_metadata):
        data = make_metadata(type="exam")
        del data["paper"]
        with pytest.raises(ValidationError):
            parse_metadata(data)

    def test_notes_paper_is_optional(self, make_metadata):
        assert parse_metadata(make_metadata()).paper is None

    def test_unknown_type_rejected(self, make_metadata):
        with pytest.raises(ValidationError):
            parse_metadata(make_metadata(type="poster"))

    def test_unknown_difficulty_rejected(self, make_metadata):
        with pytest.raises(ValidationError):
            parse_metadata(make_metadata(difficulty="impossible"))

    def test_store_owned_fields_default(self, make_metadata):
        metadata = parse_metadata(make_metadata())
        assert metadata.vetted is False
        assert metadata.vetted_by is None
        assert metadata.date_added.tzinfo is not None

    def test_accepts_camel_case_keys(self, make_metadata):
        metadata = parse_metadata(make_metadata(vettedBy="ms-lee", dateAdded="2024-01-02T03:04:05"))
        assert metadata.vetted_by == "ms-lee"
        assert metadata.date_added == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_wire_form_is_camel_case(self, make_metadata):
        wire = parse_metadata(make_metadata()).to_wire()
        assert "dateAdded" in wire
        assert "lastModified" in wire
        assert "vettedBy" in wire
        assert "date_added" not in wire


# ── Records ──────────────────────────────────────────────────────────────────


class TestRecords:
    def test_parse_document(self, make_metadata):
        record = parse_record({"id": "d1", "content": "Some notes", "metadata": make_metadata()})
        assert isinstance(record, Document)
        assert record.searchable_text == "Some notes"

    def test_parse_problem_without_kind(self, make_metadata):
        record = parse_record({
            "id": "p1",
            "question": "Solve x^2 = 9",
            "solution": {"steps": ["x = ±3"], "finalAnswer": "x = 3 or x = -3"},
            "metadata": make_metadata(type="exam"),
        })
        assert isinstance(record, Problem)
        assert record.solution.final_answer == "x = 3 or x = -3"
        assert record.searchable_text == "Solve x^2 = 9"

    def test_problem_needs_exam_metadata(self, make_metadata):
        with pytest.raises(ValidationError):
            parse_record({"kind": "problem", "question": "Q", "metadata": make_metadata()})

    def test_section_page_number_alias(self, make_metadata):
        record = parse_record({
            "content": "x",
            "metadata": make_metadata(),
            "sections": [{"title": "Intro", "content": "x", "pageNumber": 3}],
        })
        assert record.sections[0].page_number == 3

    def test_document_id_format(self):
        doc_id = new_document_id("syllabus")
        prefix, suffix = doc_id.split("_")
        assert prefix == "syllabus"
        assert len(suffix) == 12
        int(suffix, 16)


# ── Filters ──────────────────────────────────────────────────────────────────


class TestNormalizeFilter:
    def test_maps_camel_case(self):
        assert normalize_filter({"vettedBy": "ms-lee", "type": "exam"}) == {
            "vetted_by": "ms-lee",
            "type": "exam",
        }

    def test_none_is_empty(self):
        assert normalize_filter(None) == {}

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            normalize_filter({"colour": "blue"})
