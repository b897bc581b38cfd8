"""Tests for the HTTP-backed vector store."""

from unittest.mock import patch

import httpx
import pytest

from tutor_store.embeddings.factory import create_vector_store
from tutor_store.embeddings.remote_store import RemoteVectorStore
from tutor_store.exceptions import (
    EmbeddingError,
    InvalidFormat,
    NotFound,
    RemoteUnavailable,
    StorageError,
    ValidationError,
)
from tutor_store.models import Document, Problem, Solution, parse_metadata


@pytest.fixture()
def document(make_metadata):
    return Document(
        id="notes_r1",
        content="Integration by parts",
        metadata=parse_metadata(make_metadata(title="Calculus")),
    )


@pytest.fixture()
def problem(make_metadata):
    return Problem(
        id="exam_r1_q1",
        question="Integrate x e^x",
        solution=Solution(steps=["u = x, dv = e^x dx"], final_answer="(x - 1)e^x + C"),
        metadata=parse_metadata(make_metadata(type="exam")),
    )


def _store_with_transport(handler) -> RemoteVectorStore:
    client = httpx.Client(base_url="http://tutor-store", transport=httpx.MockTransport(handler))
    return RemoteVectorStore(base_url="http://tutor-store", timeout=1.0, client=client)


# ── Against the real app ─────────────────────────────────────────────────────


class TestRemoteAgainstApp:
    def test_put_get_round_trip(self, remote_store, document):
        assert remote_store.put(document) == "notes_r1"
        stored = remote_store.get("notes_r1")
        assert isinstance(stored, Document)
        assert stored.content == "Integration by parts"

    def test_problem_round_trip(self, remote_store, problem):
        remote_store.put(problem)
        stored = remote_store.get("exam_r1_q1")
        assert isinstance(stored, Problem)
        assert stored.solution.final_answer == "(x - 1)e^x + C"

    def test_writes_visible_to_local_store(self, remote_store, local_store, document):
        remote_store.put(document)
        assert local_store.get("notes_r1").content == "Integration by parts"
        assert remote_store.count == local_store.count == 1

    def test_query_matches_local(self, remote_store, local_store, document, problem):
        remote_store.put(document)
        remote_store.put(problem)

        remote_hits = remote_store.query("integrate", {"type": "exam"})
        local_hits = local_store.query("integrate", {"type": "exam"})
        assert [(h.id, h.score) for h in remote_hits] == [(h.id, h.score) for h in local_hits]
        assert remote_hits[0].id == "exam_r1_q1"

    def test_get_unknown_raises_not_found(self, remote_store):
        with pytest.raises(NotFound) as excinfo:
            remote_store.get("missing")
        assert excinfo.value.record_id == "missing"

    def test_update_and_approve(self, remote_store, document):
        remote_store.put(document)
        remote_store.update(document.model_copy(update={"content": "Integration by substitution"}))
        remote_store.approve("notes_r1", "mr-khan")

        stored = remote_store.get("notes_r1")
        assert stored.content == "Integration by substitution"
        assert stored.metadata.vetted_by == "mr-khan"

    def test_update_unknown_raises(self, remote_store, document):
        with pytest.raises(NotFound):
            remote_store.update(document)

    def test_delete(self, remote_store, document):
        remote_store.put(document)
        remote_store.delete("notes_r1")
        with pytest.raises(NotFound):
            remote_store.get("notes_r1")

    def test_info(self, remote_store):
        info = remote_store.info()
        assert info.name == "test_documents"
        assert info.embedding_model == "hashing-test-model"

    def test_unknown_filter_key(self, remote_store):
        with pytest.raises(ValidationError):
            remote_store.query("anything", {"colour": "blue"})


# ── Same behaviour as the local backend ──────────────────────────────────────


class TestBackendParity:
    def test_embedding_failure_is_embedding_error(self, remote_store, local_store, provider, document):
        with patch.object(provider, "_encode", side_effect=EmbeddingError("model unavailable")):
            with pytest.raises(EmbeddingError) as local_exc:
                local_store.put(document)
            with pytest.raises(EmbeddingError) as remote_exc:
                remote_store.put(document)
        assert remote_exc.value.message == local_exc.value.message == "model unavailable"
        assert remote_exc.value.retryable is True

    def test_get_returns_stored_embedding(self, remote_store, local_store, document):
        remote_store.put(document)
        remote_doc = remote_store.get("notes_r1")
        local_doc = local_store.get("notes_r1")
        assert len(remote_doc.embedding) == 384
        assert remote_doc.embedding == pytest.approx(local_doc.embedding)

    def test_named_error_class_is_raised(self):
        def unsupported(request):
            return httpx.Response(
                400,
                json={"status": "error", "error": "InvalidFormat", "message": "image/png"},
            )

        store = _store_with_transport(unsupported)
        with pytest.raises(InvalidFormat):
            store.info()

    def test_network_failure_behind_server_stays_remote_unavailable(self):
        def upstream_down(request):
            return httpx.Response(
                503,
                json={"status": "error", "error": "RemoteUnavailable", "message": "upstream down"},
            )

        store = _store_with_transport(upstream_down)
        with pytest.raises(RemoteUnavailable) as excinfo:
            store.info()
        assert excinfo.value.network is True


# ── Transport failures ───────────────────────────────────────────────────────


class TestRemoteFailures:
    def test_connection_error_is_remote_unavailable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = _store_with_transport(refuse)
        with pytest.raises(RemoteUnavailable) as excinfo:
            store.get("anything")
        assert excinfo.value.network is True
        assert isinstance(excinfo.value, StorageError)

    def test_timeout_is_remote_unavailable(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        store = _store_with_transport(slow)
        with pytest.raises(RemoteUnavailable):
            store.info()

    def test_server_error_is_storage_error(self):
        def broken(request):
            return httpx.Response(500, json={"status": "error", "message": "disk full"})

        store = _store_with_transport(broken)
        with pytest.raises(StorageError) as excinfo:
            store.info()
        assert not isinstance(excinfo.value, RemoteUnavailable)
        assert "disk full" in str(excinfo.value)

    def test_bad_request_is_validation_error(self):
        def reject(request):
            return httpx.Response(400, json={"status": "error", "message": "bad filter"})

        store = _store_with_transport(reject)
        with pytest.raises(ValidationError):
            store.query("anything")


class TestFactory:
    def test_remote_backend(self):
        store = create_vector_store("remote", base_url="http://example.invalid:9999")
        assert isinstance(store, RemoteVectorStore)
        assert store.base_url == "http://example.invalid:9999"
        store.close()
