"""
Vector store factory - Picks the backend named in configuration.

``TUTOR_STORE_BACKEND=local`` (default) opens the embedded ChromaDB store,
``TUTOR_STORE_BACKEND=remote`` talks to a Tutor Store server over HTTP.
Callers get a VectorStoreBase either way.
"""

import logging
from pathlib import Path

from tutor_store.config import VECTOR_STORE_BACKEND
from tutor_store.embeddings.embedder import EmbeddingProvider, SentenceTransformerProvider
from tutor_store.embeddings.local_store import LocalVectorStore
from tutor_store.embeddings.remote_store import RemoteVectorStore
from tutor_store.embeddings.vector_store import VectorStoreBase

logger = logging.getLogger(__name__)

BACKENDS = ("local", "remote")


def create_vector_store(
    backend: str | None = None,
    provider: EmbeddingProvider | None = None,
    collection_name: str | None = None,
    persist_directory: str | Path | None = None,
    base_url: str | None = None,
    timeout: float | None = None,
) -> VectorStoreBase:
    """
    Build the configured vector store.

    Args:
        backend: "local" or "remote" (config default if omitted)
        provider: Embedding provider for the local backend
        collection_name: Collection to open
        persist_directory: ChromaDB directory for the local backend
        base_url: Server URL for the remote backend
        timeout: Per-request timeout for the remote backend

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = (backend or VECTOR_STORE_BACKEND).lower()

    if backend == "local":
        logger.info("Creating local ChromaDB vector store")
        return LocalVectorStore(
            provider=provider or SentenceTransformerProvider(),
            collection_name=collection_name,
            persist_directory=persist_directory,
        )

    elif backend == "remote":
        logger.info("Creating remote vector store at %s", base_url or "configured URL")
        return RemoteVectorStore(
            base_url=base_url,
            timeout=timeout,
            collection_name=collection_name,
        )

    else:
        raise ValueError(
            f"Invalid vector store backend: {backend}. Must be one of {', '.join(BACKENDS)}."
        )
