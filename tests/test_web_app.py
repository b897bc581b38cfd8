"""Tests for the FastAPI web interface."""

from unittest.mock import patch

import pytest

from tutor_store.exceptions import EmbeddingError, RemoteUnavailable, StorageError


@pytest.fixture()
def document_body(make_metadata):
    return {
        "id": "notes_w1",
        "content": "The chain rule differentiates composite functions",
        "metadata": make_metadata(title="Calculus notes"),
    }


@pytest.fixture()
def problem_body(make_metadata):
    return {
        "id": "exam_w1_q1",
        "question": "Differentiate sin(x^2)",
        "solution": {"steps": ["Let u = x^2"], "finalAnswer": "2x cos(x^2)"},
        "metadata": make_metadata(type="exam", title="Paper 2"),
    }


# ── Health ───────────────────────────────────────────────────────────────────


class TestStatus:
    def test_status_ok(self, test_client):
        resp = test_client.get("/status")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["collection"] == {
            "name": "test_documents",
            "count": 0,
            "embeddingModel": "hashing-test-model",
        }


# ── POST /documents, /problems ───────────────────────────────────────────────


class TestCreate:
    def test_add_document(self, test_client, document_body):
        resp = test_client.post("/documents", json=document_body)
        assert resp.status_code == 201
        assert resp.json() == {"id": "notes_w1"}
        assert test_client.get("/status").json()["collection"]["count"] == 1

    def test_add_problem(self, test_client, problem_body):
        resp = test_client.post("/problems", json=problem_body)
        assert resp.status_code == 201
        assert resp.json() == {"id": "exam_w1_q1"}

    def test_generated_id(self, test_client, document_body):
        del document_body["id"]
        resp = test_client.post("/documents", json=document_body)
        assert resp.status_code == 201
        assert resp.json()["id"]

    def test_rejects_missing_content(self, test_client, document_body):
        del document_body["content"]
        resp = test_client.post("/documents", json=document_body)
        assert resp.status_code == 422

    def test_rejects_missing_metadata_field(self, test_client, document_body):
        del document_body["metadata"]["title"]
        resp = test_client.post("/documents", json=document_body)
        assert resp.status_code == 422

    def test_rejects_exam_problem_without_paper(self, test_client, problem_body):
        del problem_body["metadata"]["paper"]
        resp = test_client.post("/problems", json=problem_body)
        assert resp.status_code == 422


# ── GET / PUT / DELETE /documents/{id} ───────────────────────────────────────


class TestSingleRecord:
    def test_get_document(self, test_client, document_body):
        test_client.post("/documents", json=document_body)
        resp = test_client.get("/documents/notes_w1")
        assert resp.status_code == 200
        body = resp.json()
        assert body["content"] == document_body["content"]
        assert body["metadata"]["vetted"] is False
        assert "dateAdded" in body["metadata"]
        assert len(body["embedding"]) == 384

    def test_get_problem(self, test_client, problem_body):
        test_client.post("/problems", json=problem_body)
        body = test_client.get("/documents/exam_w1_q1").json()
        assert body["kind"] == "problem"
        assert body["solution"]["finalAnswer"] == "2x cos(x^2)"

    def test_get_unknown_is_404(self, test_client):
        resp = test_client.get("/documents/missing")
        assert resp.status_code == 404
        assert resp.json() == {
            "status": "error",
            "error": "NotFound",
            "message": "Record with ID missing not found",
        }

    def test_put_updates(self, test_client, document_body):
        test_client.post("/documents", json=document_body)
        document_body["content"] = "Product rule"
        resp = test_client.put("/documents/notes_w1", json=document_body)
        assert resp.status_code == 200
        assert test_client.get("/documents/notes_w1").json()["content"] == "Product rule"

    def test_put_path_id_wins(self, test_client, document_body):
        test_client.post("/documents", json=document_body)
        document_body["id"] = "something_else"
        resp = test_client.put("/documents/notes_w1", json=document_body)
        assert resp.json() == {"id": "notes_w1"}

    def test_put_unknown_is_404(self, test_client, document_body):
        resp = test_client.put("/documents/notes_w1", json=document_body)
        assert resp.status_code == 404

    def test_put_invalid_body_is_422(self, test_client, document_body):
        test_client.post("/documents", json=document_body)
        resp = test_client.put("/documents/notes_w1", json={"content": "no metadata"})
        assert resp.status_code == 422

    def test_delete(self, test_client, document_body):
        test_client.post("/documents", json=document_body)
        resp = test_client.delete("/documents/notes_w1")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert test_client.get("/documents/notes_w1").status_code == 404

    def test_delete_unknown_succeeds(self, test_client):
        assert test_client.delete("/documents/missing").json() == {"success": True}


# ── POST /documents/{id}/approve ─────────────────────────────────────────────


class TestApprove:
    def test_approve(self, test_client, document_body):
        test_client.post("/documents", json=document_body)
        resp = test_client.post("/documents/notes_w1/approve", json={"vettedBy": "dr-patel"})
        assert resp.status_code == 200

        metadata = test_client.get("/documents/notes_w1").json()["metadata"]
        assert metadata["vetted"] is True
        assert metadata["vettedBy"] == "dr-patel"

    def test_approve_unknown_is_404(self, test_client):
        resp = test_client.post("/documents/missing/approve", json={"vettedBy": "dr-patel"})
        assert resp.status_code == 404

    def test_approve_requires_actor(self, test_client, document_body):
        test_client.post("/documents", json=document_body)
        resp = test_client.post("/documents/notes_w1/approve", json={})
        assert resp.status_code == 422


# ── POST /query ──────────────────────────────────────────────────────────────


class TestQuery:
    def test_ranked_results(self, test_client, document_body, problem_body):
        test_client.post("/documents", json=document_body)
        test_client.post("/problems", json=problem_body)

        resp = test_client.post("/query", json={"query": "chain rule", "limit": 5})
        assert resp.status_code == 200
        results = resp.json()["results"]
        assert results[0]["id"] == "notes_w1"
        for hit in results:
            assert set(hit) == {"id", "content", "metadata", "score", "distance"}
            assert hit["distance"] == pytest.approx(1 - hit["score"])

    def test_filter(self, test_client, document_body, problem_body):
        test_client.post("/documents", json=document_body)
        test_client.post("/problems", json=problem_body)

        resp = test_client.post("/query", json={"query": "chain rule", "filter": {"type": "exam"}})
        results = resp.json()["results"]
        assert [hit["id"] for hit in results] == ["exam_w1_q1"]
        assert results[0]["content"] == "Differentiate sin(x^2)"

    def test_empty_store(self, test_client):
        resp = test_client.post("/query", json={"query": "anything"})
        assert resp.json() == {"results": []}

    def test_unknown_filter_key_is_400(self, test_client):
        resp = test_client.post("/query", json={"query": "x", "filter": {"colour": "red"}})
        assert resp.status_code == 400
        assert resp.json()["status"] == "error"

    def test_rejects_zero_limit(self, test_client):
        resp = test_client.post("/query", json={"query": "x", "limit": 0})
        assert resp.status_code == 422

    def test_rejects_missing_query(self, test_client):
        resp = test_client.post("/query", json={"limit": 3})
        assert resp.status_code == 422


# ── Error mapping ────────────────────────────────────────────────────────────


class TestErrorMapping:
    @pytest.mark.parametrize(
        "error, status_code",
        [
            (EmbeddingError("model unavailable"), 503),
            (RemoteUnavailable("upstream down"), 503),
            (StorageError("disk full"), 500),
        ],
    )
    def test_store_errors(self, test_client, local_store, error, status_code):
        with patch.object(local_store, "info", side_effect=error):
            resp = test_client.get("/status")
        assert resp.status_code == status_code
        assert resp.json() == {
            "status": "error",
            "error": type(error).__name__,
            "message": error.message,
        }
