"""
Ingestion Orchestrator - Runs one upload from raw files to stored records.

This is the "write path" of the Tutor Store:
1. Validate the request (metadata, file types, exam needs a solution)
2. Stage the files in the upload directory
3. Extract and segment the text (DocumentProcessor)
4. Exam only: pair every question with its solution
5. Persist each record independently
6. Report what was stored and what failed

One failing item never stops its siblings. Validation problems, on the
other hand, abort the whole request before anything is written.

Example:
    orchestrator = IngestionOrchestrator(DocumentProcessor(), store)
    result = orchestrator.ingest(UploadRequest(
        document=UploadedFile.from_path("paper1_2023.pdf"),
        solution=UploadedFile.from_path("paper1_2023_solutions.pdf"),
        metadata={"type": "exam", "title": "Paper 1 2023", "paper": "1", ...},
    ))
    print(f"Stored {result.processed_count}, failed {len(result.errors)}")
"""

import logging
import tempfile
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from tutor_store.config import INGEST_WORKERS, UPLOAD_DIR
from tutor_store.embeddings.vector_store import StoredRecord, VectorStoreBase
from tutor_store.exceptions import InvalidFormat, ParseError, TutorStoreError, ValidationError
from tutor_store.ingestion.document_processor import DocumentProcessor, coerce_metadata
from tutor_store.ingestion.exam_pairing import (
    build_problem,
    numbered,
    pair_questions,
    problem_id,
)
from tutor_store.ingestion.pdf_parser import guess_mime_type, is_supported, normalize_mime_type
from tutor_store.ingestion.segmenter import EXAM_SOLUTIONS
from tutor_store.models import Document, Metadata

logger = logging.getLogger(__name__)


class IngestionStage(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    PARSED = "parsed"
    PAIRED = "paired"
    PERSISTED = "persisted"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class UploadedFile:
    """
    One uploaded file as received from the transport layer.

    Attributes:
        data: Raw file bytes
        filename: Original file name (used for the MIME guess and messages)
        mime_type: Declared MIME type; guessed from the name when empty
    """
    data: bytes
    filename: str
    mime_type: str = ""

    def __post_init__(self):
        self.mime_type = normalize_mime_type(self.mime_type or guess_mime_type(self.filename))

    @classmethod
    def from_path(cls, path: str | Path, mime_type: str = "") -> "UploadedFile":
        path = Path(path)
        return cls(data=path.read_bytes(), filename=path.name, mime_type=mime_type)


@dataclass
class UploadRequest:
    document: UploadedFile
    metadata: Metadata | dict[str, Any]
    solution: UploadedFile | None = None


@dataclass
class IngestionResult:
    """
    Outcome of one upload.

    Attributes:
        processed_count: Records stored successfully
        errors: One message per failed item, in item order
        persisted_ids: Ids of the stored records, in item order
        failures: Failed item id -> error message
        stage: Last stage the run reached
    """
    processed_count: int = 0
    errors: list[str] = field(default_factory=list)
    persisted_ids: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    stage: IngestionStage = IngestionStage.RECEIVED

    def to_wire(self) -> dict[str, Any]:
        return {
            "processedCount": self.processed_count,
            "errors": list(self.errors),
            "persistedIds": list(self.persisted_ids),
            "failures": dict(self.failures),
            "stage": self.stage.value,
        }


@dataclass
class _WorkItem:
    """A record to persist, or an error found before persistence."""
    item_id: str
    label: str
    record: StoredRecord | None = None
    error: str | None = None


class IngestionOrchestrator:
    """
    Coordinates processing and persistence for upload requests.

    Independent requests may be ingested concurrently from different
    threads; each call stages its own files.
    """

    def __init__(
        self,
        processor: DocumentProcessor,
        store: VectorStoreBase,
        upload_dir: str | Path | None = None,
        max_workers: int | None = None,
    ):
        """
        Args:
            processor: Turns file bytes into Documents
            store: Where records are persisted
            upload_dir: Directory for staged files (removed after each run)
            max_workers: Parallel persistence threads (1 = sequential)
        """
        self.processor = processor
        self.store = store
        self.upload_dir = Path(upload_dir or UPLOAD_DIR)
        self.max_workers = max(1, max_workers or INGEST_WORKERS)

    # -- validation -----------------------------------------------------------

    def validate(self, request: UploadRequest) -> Metadata:
        """
        Check a request before anything is staged or stored.

        Raises:
            ValidationError: If metadata or a required file is missing/invalid
            InvalidFormat: If a file type is not supported
        """
        if request.document is None:
            raise ValidationError("A document file is required")
        metadata = coerce_metadata(request.metadata)

        files = [request.document]
        if metadata.type == "exam":
            if request.solution is None:
                raise ValidationError("Solution file is required for exam papers")
            files.append(request.solution)

        for uploaded in files:
            if not is_supported(uploaded.mime_type):
                raise InvalidFormat(
                    f"Unsupported file type for {uploaded.filename}: {uploaded.mime_type}"
                )
        return metadata

    # -- main entry point -----------------------------------------------------

    def ingest(self, request: UploadRequest) -> IngestionResult:
        """
        Process and persist one upload.

        Returns:
            IngestionResult with per-item outcomes

        Raises:
            ValidationError / InvalidFormat: Request rejected, nothing stored
        """
        result = IngestionResult()
        try:
            metadata = self.validate(request)
        except (ValidationError, InvalidFormat) as e:
            logger.warning("Upload %s: %s", IngestionStage.ABORTED.value, e)
            raise
        result.stage = IngestionStage.VALIDATED

        with ExitStack() as stack:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            document_path = self._stage(stack, request.document, "document")
            solution_path = None
            if metadata.type == "exam":
                solution_path = self._stage(stack, request.solution, "solution")

            uploaded = request.document
            try:
                document = self.processor.process_path(document_path, metadata, uploaded.mime_type)
                solution = None
                if solution_path is not None:
                    uploaded = request.solution
                    solution = self.processor.process_path(
                        solution_path, metadata, uploaded.mime_type
                    )
            except (ParseError, InvalidFormat) as e:
                logger.error("Failed to parse %s: %s", uploaded.filename, e)
                result.errors.append(f"Failed to process {uploaded.filename}: {e}")
                return result
            result.stage = IngestionStage.PARSED

            if solution is not None:
                items = self._exam_items(document, solution)
                result.stage = IngestionStage.PAIRED
            else:
                items = self._document_items(document)

            self._persist_all(items, result)
            result.stage = IngestionStage.PERSISTED

        result.stage = IngestionStage.COMPLETED
        logger.info(
            "Ingested %s: %d stored, %d failed",
            request.document.filename,
            result.processed_count,
            len(result.errors),
        )
        return result

    # -- helpers --------------------------------------------------------------

    def _stage(self, stack: ExitStack, uploaded: UploadedFile, role: str) -> Path:
        """Write an uploaded file to the upload dir; removed when the stack closes."""
        suffix = Path(uploaded.filename).suffix
        with tempfile.NamedTemporaryFile(
            dir=self.upload_dir, prefix=f"{role}_", suffix=suffix, delete=False
        ) as handle:
            handle.write(uploaded.data)
            path = Path(handle.name)
        stack.callback(path.unlink, missing_ok=True)
        return path

    def _document_items(self, document: Document) -> list[_WorkItem]:
        if not document.sections:
            return [_WorkItem(document.id, "document", record=document)]

        items = []
        parent_title = document.metadata.title
        for i, section in enumerate(document.sections, start=1):
            item_id = f"{document.id}_section_{i}"
            record = Document(
                id=item_id,
                content=section.content,
                metadata=document.metadata.model_copy(
                    update={"title": f"{parent_title} - {section.title}"}
                ),
                sections=[section],
            )
            items.append(_WorkItem(item_id, f'section "{section.title}"', record=record))
        return items

    def _exam_items(self, exam: Document, solutions: Document) -> list[_WorkItem]:
        segmenter = self.processor.segmenter
        questions = segmenter.segment(exam.content, "exam")
        answers = segmenter.segment(solutions.content, EXAM_SOLUTIONS)
        pairing = pair_questions(questions, answers)

        paired = {id(question): solution for question, solution in pairing.pairs}
        items = []
        for number, occurrence, question in numbered(questions):
            item_id = problem_id(exam.id, number, occurrence)
            label = f"question {item_id}"
            solution = paired.get(id(question))
            if solution is None:
                items.append(_WorkItem(item_id, label, error="no matching solution found"))
                continue
            try:
                record = build_problem(
                    exam.id, exam.metadata, question, solution, number, occurrence
                )
            except ValidationError as e:
                items.append(_WorkItem(item_id, label, error=str(e)))
                continue
            items.append(_WorkItem(item_id, label, record=record))
        return items

    def _persist(self, item: _WorkItem) -> str | None:
        """Store one item; returns an error message or None."""
        if item.error is not None:
            return item.error
        try:
            self.store.put(item.record)
        except TutorStoreError as e:
            logger.error("Failed to store %s: %s", item.item_id, e)
            return str(e)
        except Exception as e:
            # Past validation, any backend failure is an item error
            logger.exception("Unexpected error storing %s", item.item_id)
            return f"{type(e).__name__}: {e}"
        return None

    def _persist_all(self, items: list[_WorkItem], result: IngestionResult) -> None:
        if self.max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(self._persist, items))
        else:
            outcomes = [self._persist(item) for item in items]

        # executor.map keeps submission order, so errors follow item order
        for item, error in zip(items, outcomes):
            if error is None:
                result.processed_count += 1
                result.persisted_ids.append(item.item_id)
            else:
                message = f"Failed to process {item.label}: {error}"
                result.errors.append(message)
                result.failures[item.item_id] = message
