"""
Local Vector Store - Stores and searches records in an embedded ChromaDB.

ChromaDB keeps the records on disk: id, embedding, the searchable text and
a flat metadata dict. Ranking does NOT use Chroma's approximate index:
candidates that pass the metadata filter are scored with an exact cosine
scan, so results are identical to the remote backend and fully
deterministic.

How it works:
1. Store: record -> embedding (EmbeddingProvider) -> one Chroma upsert
2. Query: filter -> matching embeddings -> cosine scan -> top results
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any

import chromadb

from tutor_store.config import CHROMA_DB_DIR, COLLECTION_NAME, DEFAULT_QUERY_LIMIT
from tutor_store.embeddings.embedder import EmbeddingProvider
from tutor_store.embeddings.vector_store import (
    StoredRecord,
    VectorStoreBase,
    rank_by_similarity,
    stamp_record,
    to_query_result,
)
from tutor_store.exceptions import (
    EmbeddingError,
    NotFound,
    StorageError,
    ValidationError,
)
from tutor_store.models import (
    FILTERABLE_FIELDS,
    CollectionInfo,
    QueryResult,
    normalize_filter,
    parse_record,
    utcnow,
)

logger = logging.getLogger(__name__)

# Key holding the full serialized record inside Chroma metadata
_RECORD_KEY = "record_json"


def _flat_metadata(record: StoredRecord) -> dict[str, Any]:
    """
    Flatten a record into Chroma-compatible metadata.

    Chroma only stores str/int/float/bool values, so missing optional
    fields are stored as "" and the full record travels as JSON.
    """
    fields = record.metadata.model_dump()
    flat = {"kind": record.kind}
    for name in FILTERABLE_FIELDS:
        if name == "kind":
            continue
        value = fields.get(name)
        flat[name] = "" if value is None else value
    flat[_RECORD_KEY] = record.model_dump_json(by_alias=True, exclude={"embedding"})
    return flat


def _build_where(filter_: dict[str, Any]) -> dict[str, Any] | None:
    """Convert an exact-match filter into Chroma ``where`` syntax."""
    if not filter_:
        return None

    clauses = [
        {name: {"$eq": "" if value is None else value}} for name, value in filter_.items()
    ]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class LocalVectorStore(VectorStoreBase):
    """
    ChromaDB-backed vector store persisted on local disk.

    Example:
        store = LocalVectorStore(provider=SentenceTransformerProvider())

        store.put(document)
        hits = store.query("completing the square", {"type": "exam"}, limit=5)
        for hit in hits:
            print(f"Score: {hit.score:.3f}, Text: {hit.content[:50]}...")
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        collection_name: str | None = None,
        persist_directory: str | Path | None = None,
        client=None,
    ):
        """
        Args:
            provider: Embedding provider used for records and queries
            collection_name: Name of the collection to use/create
            persist_directory: Where to store the database files
            client: Optional pre-built Chroma client (overrides persist_directory)
        """
        super().__init__(collection_name or COLLECTION_NAME)
        self.provider = provider
        self.dimension = provider.dimension
        self.persist_directory = Path(persist_directory or CHROMA_DB_DIR)
        self._lock = threading.RLock()

        try:
            if client is None:
                self.persist_directory.mkdir(parents=True, exist_ok=True)
                client = chromadb.PersistentClient(path=str(self.persist_directory))
            self._client = client

            # Embeddings always come from our provider, never from Chroma
            self._collection = self._client.get_or_create_collection(
                name=self.collection_name,
                embedding_function=None,
                metadata={
                    "description": "Tutor documents, sections and exam problems",
                    "hnsw:space": "cosine",
                },
            )
        except Exception as e:
            raise StorageError(f"Failed to open collection {self.collection_name}: {e}") from e

    # -- reads ----------------------------------------------------------------

    @property
    def count(self) -> int:
        try:
            return self._collection.count()
        except Exception as e:
            raise StorageError(f"Failed to count records: {e}") from e

    def info(self) -> CollectionInfo:
        return CollectionInfo(
            name=self.collection_name,
            count=self.count,
            embedding_model=self.provider.model_name,
        )

    def get(self, record_id: str) -> StoredRecord:
        record = self._fetch(record_id)
        if record is None:
            raise NotFound(record_id)
        return record

    def query(
        self,
        text: str,
        filter: dict | None = None,
        limit: int | None = None,
    ) -> list[QueryResult]:
        limit = DEFAULT_QUERY_LIMIT if limit is None else limit
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        where = _build_where(normalize_filter(filter))

        query_vector = self.provider.generate_embedding(text)

        try:
            result = self._collection.get(where=where, include=["embeddings", "metadatas"])
        except Exception as e:
            raise StorageError(f"Failed to query collection: {e}") from e

        ids = result.get("ids") or []
        if not ids:
            return []

        metadatas = result.get("metadatas")
        embeddings = result.get("embeddings")
        records = {
            record_id: self._decode(record_id, meta)
            for record_id, meta in zip(ids, metadatas)
        }

        ranked = rank_by_similarity(query_vector, ids, embeddings, limit)
        logger.debug("Query matched %d candidates, returning %d", len(ids), len(ranked))
        return [to_query_result(records[record_id], score) for record_id, score in ranked]

    # -- writes ---------------------------------------------------------------

    def put(self, record: StoredRecord) -> str:
        embedding = self.provider.generate_embedding(record.searchable_text)
        if len(embedding) != self.dimension:
            raise EmbeddingError(
                f"Embedding has {len(embedding)} dimensions, store expects {self.dimension}"
            )

        with self._lock:
            existing = self._fetch(record.id)
            stamped = stamp_record(record, existing)
            self._write(stamped, embedding)
        logger.debug("Stored %s %s", record.kind, record.id)
        return record.id

    def approve(self, record_id: str, vetted_by: str) -> str:
        if not vetted_by or not vetted_by.strip():
            raise ValidationError("vetted_by is required to approve a record")

        with self._lock:
            existing = self.get(record_id)
            metadata = existing.metadata.model_copy(
                update={"vetted": True, "vetted_by": vetted_by, "last_modified": utcnow()}
            )
            approved = existing.model_copy(update={"metadata": metadata})
            # Content is unchanged, so the stored embedding is still valid
            self._write(approved, existing.embedding)
        logger.info("Record %s approved by %s", record_id, vetted_by)
        return record_id

    def delete(self, record_id: str) -> None:
        with self._lock:
            try:
                self._collection.delete(ids=[record_id])
            except Exception as e:
                raise StorageError(f"Failed to delete record {record_id}: {e}") from e
        logger.debug("Deleted record %s", record_id)

    # -- internals ------------------------------------------------------------

    def _write(self, record: StoredRecord, embedding: list[float]) -> None:
        # One upsert carries embedding, text and metadata together, so a
        # record is either fully written or not written at all
        try:
            self._collection.upsert(
                ids=[record.id],
                embeddings=[embedding],
                documents=[record.searchable_text],
                metadatas=[_flat_metadata(record)],
            )
        except Exception as e:
            raise StorageError(f"Failed to store record {record.id}: {e}") from e

    def _fetch(self, record_id: str) -> StoredRecord | None:
        try:
            result = self._collection.get(ids=[record_id], include=["embeddings", "metadatas"])
        except Exception as e:
            raise StorageError(f"Failed to read record {record_id}: {e}") from e

        if not result.get("ids"):
            return None
        record = self._decode(record_id, result["metadatas"][0])
        embedding = result.get("embeddings")
        if embedding is not None and len(embedding) > 0:
            record = record.model_copy(update={"embedding": [float(x) for x in embedding[0]]})
        return record

    def _decode(self, record_id: str, meta: dict[str, Any]) -> StoredRecord:
        try:
            return parse_record(json.loads(meta[_RECORD_KEY]))
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise StorageError(f"Stored record {record_id} is corrupt: {e}") from e
