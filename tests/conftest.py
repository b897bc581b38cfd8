"""Shared fixtures for the Tutor Store test suite."""

import hashlib
import re

import pytest
from fastapi.testclient import TestClient

from tutor_store.embeddings.embedder import EmbeddingProvider
from tutor_store.embeddings.local_store import LocalVectorStore
from tutor_store.embeddings.remote_store import RemoteVectorStore
from tutor_store.interfaces.web_app import create_app

# ---------------------------------------------------------------------------
# Deterministic embedding provider that never downloads a model
# ---------------------------------------------------------------------------


class HashingEmbeddingProvider(EmbeddingProvider):
    """
    Bag-of-words vectors: every word adds 1 to a hashed bucket.

    Texts sharing words get a positive cosine similarity, texts with no
    words in common score 0, and the same text always gives the same
    vector.
    """

    def __init__(self, dimension: int = 384):
        super().__init__("hashing-test-model", dimension)
        self.initialize_calls = 0

    def initialize(self) -> None:
        self.initialize_calls += 1

    def _encode(self, texts: list[str]) -> list[list[float]]:
        vectors = []
        for text in texts:
            vector = [0.0] * self.dimension
            for token in re.findall(r"\w+", text.lower()):
                digest = hashlib.md5(token.encode("utf-8")).digest()
                vector[int.from_bytes(digest[:4], "little") % self.dimension] += 1.0
            vectors.append(vector)
        return vectors


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


BASE_METADATA = {
    "type": "notes",
    "title": "Quadratics",
    "subject": "Mathematics",
    "level": "A-Level",
    "topic": "Algebra",
    "difficulty": "medium",
    "source": "Tutor notes",
    "year": 2023,
}


@pytest.fixture()
def make_metadata():
    """Factory for valid raw metadata dicts; keyword args override fields."""

    def _make(**overrides) -> dict:
        data = dict(BASE_METADATA)
        if overrides.get("type") == "exam":
            data["paper"] = "1"
        data.update(overrides)
        return data

    return _make


# ---------------------------------------------------------------------------
# Stores and clients
# ---------------------------------------------------------------------------


@pytest.fixture()
def provider():
    return HashingEmbeddingProvider()


@pytest.fixture()
def local_store(tmp_path, provider):
    """A ChromaDB store in a throwaway directory."""
    return LocalVectorStore(
        provider=provider,
        collection_name="test_documents",
        persist_directory=tmp_path / "chroma",
    )


@pytest.fixture()
def test_client(local_store):
    """
    TestClient serving a real local store.

    Embeddings come from HashingEmbeddingProvider so requests run in
    milliseconds without sentence-transformers.
    """
    app = create_app(local_store)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def remote_store(test_client):
    """RemoteVectorStore talking to the in-process app."""
    return RemoteVectorStore(base_url="http://testserver", client=test_client)
