"""
Embeddings module - Handles embedding generation and vector storage.

This module is responsible for:
1. Converting text to unit-length embeddings
2. Storing, filtering and ranking records in a vector store
"""

from .embedder import EmbeddingProvider, SentenceTransformerProvider
from .factory import create_vector_store
from .local_store import LocalVectorStore
from .remote_store import RemoteVectorStore
from .vector_store import VectorStoreBase

__all__ = [
    "EmbeddingProvider",
    "SentenceTransformerProvider",
    "VectorStoreBase",
    "LocalVectorStore",
    "RemoteVectorStore",
    "create_vector_store",
]
