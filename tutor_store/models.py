"""
Data models - Documents, exam problems and their metadata.

Every record in the store is either a Document (a whole upload or one
section of it) or a Problem (one exam question paired with its solution).
Both carry typed metadata, a tagged union on ``type`` so that each document
type can add its own rules (exam metadata must name its paper).

Python code uses snake_case attributes; the JSON wire format uses camelCase
(``dateAdded``, ``vettedBy``, ``pageNumber``...). Both spellings are accepted
on input.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from tutor_store.exceptions import ValidationError

DocumentType = Literal["exam", "syllabus", "notes", "worksheet"]
Difficulty = Literal["easy", "medium", "hard"]
RecordKind = Literal["document", "problem"]

DOCUMENT_TYPES: tuple[str, ...] = ("exam", "syllabus", "notes", "worksheet")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_document_id(doc_type: str) -> str:
    """Generate a store-unique id such as ``notes_3f9a0c1b2d4e``."""
    return f"{doc_type}_{uuid4().hex[:12]}"


class WireModel(BaseModel):
    """Base for every model that crosses the HTTP boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump as JSON-ready camelCase dict (dates become ISO-8601 strings)."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# METADATA
# =============================================================================


class _BaseMetadata(WireModel):
    """
    Fields shared by every document type.

    ``date_added``, ``last_modified``, ``vetted`` and ``vetted_by`` are owned
    by the store: uploaders may omit them and whatever they send is replaced
    on write. Only an explicit approval sets ``vetted``.
    """

    title: str = Field(min_length=1)
    subject: str
    level: str
    topic: str
    subtopic: str | None = None
    difficulty: Difficulty
    source: str
    year: int
    paper: str | None = None
    chapter: str | None = None
    date_added: datetime = Field(default_factory=utcnow)
    last_modified: datetime = Field(default_factory=utcnow)
    vetted: bool = False
    vetted_by: str | None = None

    @field_validator("date_added", "last_modified")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # Naive datetimes from older clients are assumed to be UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ExamMetadata(_BaseMetadata):
    """Exam papers are always identified by their paper number."""

    type: Literal["exam"] = "exam"
    paper: str = Field(min_length=1)


class SyllabusMetadata(_BaseMetadata):
    type: Literal["syllabus"] = "syllabus"


class NotesMetadata(_BaseMetadata):
    type: Literal["notes"] = "notes"


class WorksheetMetadata(_BaseMetadata):
    type: Literal["worksheet"] = "worksheet"


Metadata = Annotated[
    Union[ExamMetadata, SyllabusMetadata, NotesMetadata, WorksheetMetadata],
    Field(discriminator="type"),
]

_METADATA_ADAPTER: TypeAdapter = TypeAdapter(Metadata)

# Fields a query filter may match on, keyed by both spellings
FILTERABLE_FIELDS: tuple[str, ...] = (
    "kind",
    "type",
    "title",
    "subject",
    "level",
    "topic",
    "subtopic",
    "difficulty",
    "source",
    "year",
    "paper",
    "chapter",
    "vetted",
    "vetted_by",
)
_FILTER_ALIASES = {to_camel(name): name for name in FILTERABLE_FIELDS}


def parse_metadata(data: dict[str, Any]) -> Metadata:
    """
    Validate a raw metadata dict into the right metadata class.

    Raises:
        ValidationError: If the type is unknown or a required field is missing
    """
    try:
        return _METADATA_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError("Invalid metadata", detail=str(e)) from e


def normalize_filter(filter_: dict[str, Any] | None) -> dict[str, Any]:
    """
    Map a query filter onto snake_case metadata field names.

    Accepts ``{"vettedBy": "ms-lee"}`` as well as ``{"vetted_by": "ms-lee"}``.

    Raises:
        ValidationError: If a key is not a filterable metadata field
    """
    normalized: dict[str, Any] = {}
    for key, value in (filter_ or {}).items():
        name = _FILTER_ALIASES.get(key, key)
        if name not in FILTERABLE_FIELDS:
            raise ValidationError(f"Cannot filter on unknown field: {key!r}")
        normalized[name] = value
    return normalized


# =============================================================================
# RECORDS
# =============================================================================


class Section(WireModel):
    """
    A structurally identified excerpt of a document.

    ``page_number`` is estimated from line position, not read from the file.
    """

    title: str
    content: str
    page_number: int = 1


class Solution(WireModel):
    steps: list[str] = Field(default_factory=list)
    final_answer: str = ""


class Document(WireModel):
    """A whole document or one section of it, stored as a single record."""

    kind: Literal["document"] = "document"
    id: str = Field(default_factory=lambda: uuid4().hex, min_length=1)
    content: str
    metadata: Metadata
    sections: list[Section] = Field(default_factory=list)
    embedding: list[float] | None = None

    @property
    def searchable_text(self) -> str:
        return self.content


class Problem(WireModel):
    """One exam question paired with its worked solution."""

    kind: Literal["problem"] = "problem"
    id: str = Field(default_factory=lambda: uuid4().hex, min_length=1)
    question: str = Field(min_length=1)
    solution: Solution = Field(default_factory=Solution)
    metadata: ExamMetadata
    embedding: list[float] | None = None

    @property
    def searchable_text(self) -> str:
        return self.question


def _record_kind(value: Any) -> str:
    if isinstance(value, dict):
        if "kind" in value:
            return value["kind"]
        return "problem" if "question" in value else "document"
    return getattr(value, "kind", "document")


Record = Annotated[
    Union[Annotated[Document, Tag("document")], Annotated[Problem, Tag("problem")]],
    Discriminator(_record_kind),
]

_RECORD_ADAPTER: TypeAdapter = TypeAdapter(Record)


def parse_record(data: dict[str, Any]) -> Document | Problem:
    """
    Validate a raw dict (wire or storage form) into a Document or Problem.

    Raises:
        ValidationError: If the payload is not a valid record
    """
    try:
        return _RECORD_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError("Invalid record", detail=str(e)) from e


# =============================================================================
# QUERY RESULTS
# =============================================================================


class QueryResult(WireModel):
    """
    A ranked search hit.

    ``score`` is cosine similarity (higher is closer); ``distance`` is
    ``1 - score`` so that clients expecting a distance sort ascending.
    """

    id: str
    content: str
    metadata: Metadata
    score: float
    distance: float


class CollectionInfo(WireModel):
    name: str
    count: int
    embedding_model: str
