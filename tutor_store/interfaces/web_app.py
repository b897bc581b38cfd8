"""
Web App - HTTP API over a vector store.

Exposes the store operations as a small JSON API (FastAPI). The remote
backend (RemoteVectorStore) is a client for exactly this API, so a store
served here can be used from another process as if it were local.

Routes:
    GET    /status                   collection name, count, model
    POST   /documents                store a document (201)
    POST   /problems                 store an exam problem (201)
    POST   /query                    similarity search
    GET    /documents/{id}           fetch a document or problem
    PUT    /documents/{id}           overwrite an existing record
    DELETE /documents/{id}           remove a record
    POST   /documents/{id}/approve   mark a record as vetted

Run with:
    python -m tutor_store serve
"""

import logging
from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tutor_store import __version__
from tutor_store.config import DEFAULT_QUERY_LIMIT
from tutor_store.embeddings.factory import create_vector_store
from tutor_store.embeddings.vector_store import StoredRecord, VectorStoreBase
from tutor_store.exceptions import (
    EmbeddingError,
    InvalidFormat,
    NotFound,
    StorageError,
    TutorStoreError,
    ValidationError,
)
from tutor_store.models import Document, Problem, Record, WireModel

logger = logging.getLogger(__name__)

_RECORD = TypeAdapter(Record)


# ── Request schemas ──────────────────────────────────────────────────────────


class QueryRequest(WireModel):
    """Similarity search over the collection."""

    query: str
    filter: dict[str, Any] = Field(default_factory=dict)
    limit: int = Field(default=DEFAULT_QUERY_LIMIT, ge=1)


class ApproveRequest(WireModel):
    vetted_by: str = Field(min_length=1)


# ── Error mapping ────────────────────────────────────────────────────────────


def error_status(exc: TutorStoreError) -> int:
    """HTTP status code for a store exception."""
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, (ValidationError, InvalidFormat)):
        return 400
    if isinstance(exc, EmbeddingError):
        return 503
    if isinstance(exc, StorageError):
        return 503 if exc.network else 500
    return 500


def _record_body(record: StoredRecord) -> dict[str, Any]:
    # Embedding included, as a local get() returns it
    return record.model_dump(mode="json", by_alias=True)


# ── App factory ──────────────────────────────────────────────────────────────


def create_app(store: VectorStoreBase | None = None) -> FastAPI:
    """
    Build the FastAPI app around a vector store.

    Args:
        store: Store to serve; the configured backend is created if omitted
    """
    if store is None:
        store = create_vector_store()

    app = FastAPI(
        title="Tutor Store API",
        version=__version__,
        description="Educational documents and exam problems with similarity search.",
    )
    app.state.store = store

    @app.exception_handler(TutorStoreError)
    async def handle_store_error(request: Request, exc: TutorStoreError) -> JSONResponse:
        status_code = error_status(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"status": "error", "error": type(exc).__name__, "message": exc.message},
        )

    # ── Health ──

    @app.get("/status")
    def status() -> dict[str, Any]:
        """Liveness probe plus collection stats."""
        return {"status": "ok", "collection": store.info().to_wire()}

    # ── Create ──

    @app.post("/documents", status_code=201)
    def add_document(document: Document) -> dict[str, str]:
        return {"id": store.put(document)}

    @app.post("/problems", status_code=201)
    def add_problem(problem: Problem) -> dict[str, str]:
        return {"id": store.put(problem)}

    # ── Query ──

    @app.post("/query")
    def query(request: QueryRequest) -> dict[str, Any]:
        results = store.query(request.query, request.filter, request.limit)
        return {"results": [result.to_wire() for result in results]}

    # ── Single record ──

    @app.get("/documents/{record_id}")
    def get_record(record_id: str) -> dict[str, Any]:
        return _record_body(store.get(record_id))

    @app.put("/documents/{record_id}")
    def update_record(
        record_id: str,
        payload: dict[str, Any] = Body(...),
    ) -> dict[str, str]:
        # The path id wins over any id in the body
        try:
            record = _RECORD.validate_python({**payload, "id": record_id})
        except PydanticValidationError as e:
            raise RequestValidationError(e.errors(include_context=False)) from e
        return {"id": store.update(record)}

    @app.delete("/documents/{record_id}")
    def delete_record(record_id: str) -> dict[str, bool]:
        store.delete(record_id)
        return {"success": True}

    @app.post("/documents/{record_id}/approve")
    def approve_record(record_id: str, request: ApproveRequest) -> dict[str, str]:
        return {"id": store.approve(record_id, request.vetted_by)}

    return app
