"""
Vector Store - One interface over interchangeable storage backends.

A store keeps records (documents, sections and exam problems) together
with their embeddings and metadata, and ranks them by similarity to a text
query.

Key Concepts:
- Records: a Document or a Problem, keyed by a unique id
- Embeddings: unit vectors produced by an EmbeddingProvider
- Metadata: typed fields used for exact-match filtering
- Similarity: cosine similarity, higher = closer. Results also carry
  ``distance = 1 - score`` for clients that sort by distance.

Backends:
- LocalVectorStore: embedded ChromaDB collection on disk
- RemoteVectorStore: the same operations over HTTP

Both raise the same exceptions (NotFound, StorageError, EmbeddingError,
ValidationError) so callers never need to know which one is configured.
"""

from abc import ABC, abstractmethod
from datetime import datetime

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

from tutor_store.models import CollectionInfo, Document, Problem, QueryResult, utcnow

StoredRecord = Document | Problem


class VectorStoreBase(ABC):
    """
    Backend-agnostic vector-store interface.

    Args:
        collection_name: Logical name of the collection the store serves
    """

    def __init__(self, collection_name: str):
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def put(self, record: StoredRecord) -> str:
        """
        Insert or overwrite a record by id.

        The embedding is regenerated from the record's text, ``last_modified``
        is refreshed and ``date_added`` of an existing record is kept.

        Returns:
            The record id
        """
        ...

    @abstractmethod
    def get(self, record_id: str) -> StoredRecord:
        """Return the record or raise NotFound."""
        ...

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Remove a record. Deleting an unknown id is not an error."""
        ...

    @abstractmethod
    def query(
        self,
        text: str,
        filter: dict | None = None,
        limit: int | None = None,
    ) -> list[QueryResult]:
        """
        Rank records by cosine similarity to ``text``.

        Only records whose metadata equals every field in ``filter`` are
        considered. Ties are broken by ascending id, so identical inputs on
        an identical store always give the same ordered output. A filter
        that matches nothing gives an empty list.
        """
        ...

    @abstractmethod
    def approve(self, record_id: str, vetted_by: str) -> str:
        """Mark a record as vetted by ``vetted_by``. Raises NotFound."""
        ...

    @property
    @abstractmethod
    def count(self) -> int:
        """Number of records in the collection."""
        ...

    @abstractmethod
    def info(self) -> CollectionInfo:
        """Collection name, record count and embedding model."""
        ...

    # -- shared behaviour -----------------------------------------------------

    def update(self, record: StoredRecord) -> str:
        """
        Overwrite an existing record.

        Raises:
            NotFound: If no record has this id
        """
        self.get(record.id)
        return self.put(record)


# =============================================================================
# HELPERS SHARED BY BACKENDS
# =============================================================================


def stamp_record(
    record: StoredRecord,
    existing: StoredRecord | None,
    now: datetime | None = None,
) -> StoredRecord:
    """
    Apply the store-owned metadata fields before a write.

    ``date_added`` is set once and never changes. Vetting survives an
    overwrite and is only granted through approve().
    """
    now = now or utcnow()
    if existing is None:
        update = {"date_added": now, "vetted": False, "vetted_by": None}
    else:
        update = {
            "date_added": existing.metadata.date_added,
            "vetted": existing.metadata.vetted,
            "vetted_by": existing.metadata.vetted_by,
        }
    update["last_modified"] = now
    metadata = record.metadata.model_copy(update=update)
    return record.model_copy(update={"metadata": metadata})


def rank_by_similarity(
    query_vector: list[float],
    ids: list[str],
    embeddings,
    limit: int,
) -> list[tuple[str, float]]:
    """
    Exact cosine scan over candidate embeddings.

    Args:
        query_vector: Embedding of the query text
        ids: Candidate ids
        embeddings: One embedding per candidate id (list or 2-D array)
        limit: Maximum number of hits to return

    Returns:
        (id, score) pairs, highest score first, ties by ascending id
    """
    if not ids:
        return []

    matrix = np.asarray(embeddings, dtype=np.float64).reshape(len(ids), -1)
    query = np.asarray(query_vector, dtype=np.float64).reshape(1, -1)

    # cosine_similarity returns 0 for zero vectors instead of dividing by zero
    scores = cosine_similarity(query, matrix)[0]

    ranked = sorted(zip(ids, scores.tolist()), key=lambda hit: (-hit[1], hit[0]))
    return ranked[:limit]


def to_query_result(record: StoredRecord, score: float) -> QueryResult:
    return QueryResult(
        id=record.id,
        content=record.searchable_text,
        metadata=record.metadata,
        score=score,
        distance=1.0 - score,
    )
